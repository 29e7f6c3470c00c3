import pytest

from fakes import FakeKubectl, kubectl_result, read_fixture
from kube_surface.core.exceptions import FatalKubeAPIError
from kube_surface.core.integrations.discovery import TabularCommandFetcher
from kube_surface.core.integrations.discovery.tabular import parse_bool, parse_verbs

NAMESPACED_COMMAND = ("api-resources", "--namespaced=true")
CLUSTER_COMMAND = ("api-resources", "--namespaced=false")


@pytest.fixture
def kubectl() -> FakeKubectl:
    return FakeKubectl(
        {
            NAMESPACED_COMMAND: kubectl_result(read_fixture("api_resources_namespaced_apigroup.txt")),
            CLUSTER_COMMAND: kubectl_result(read_fixture("api_resources_cluster_apigroup.txt")),
            ("api-versions",): kubectl_result(read_fixture("api_versions.txt")),
        }
    )


@pytest.fixture
def fetcher(kubectl: FakeKubectl) -> TabularCommandFetcher:
    return TabularCommandFetcher(kubectl)  # type: ignore


def test_single_row_round_trip():
    raw = (
        "NAME   SHORTNAMES   APIGROUP   NAMESPACED   KIND   VERBS\n"
        "pods   po                      true         Pod    [get list watch delete]\n"
    )

    [descriptor] = TabularCommandFetcher.parse_resources(raw, namespaced=True)

    assert descriptor.kind == "Pod"
    assert descriptor.api_group == ""
    assert descriptor.version is None
    assert descriptor.verbs == {"get", "list", "watch", "delete"}
    assert descriptor.namespaced is True
    assert descriptor.short_names == ["po"]


def test_fetch_namespaced_resources(fetcher: TabularCommandFetcher, kubectl: FakeKubectl):
    resources = fetcher.fetch_resources(namespaced=True)

    assert [(r.api_group, r.kind) for r in resources] == [
        ("", "Binding"),
        ("", "ConfigMap"),
        ("", "Pod"),
        ("apps", "ControllerRevision"),
        ("apps", "Deployment"),
        ("batch", "CronJob"),
        ("batch", "Job"),
        ("events.k8s.io", "Event"),
        ("extensions", "Ingress"),
        ("networking.k8s.io", "Ingress"),
        ("authorization.k8s.io", "LocalSubjectAccessReview"),
    ]
    assert resources[0].verbs == {"create"}
    assert all(r.version is None for r in resources)

    [(args, kwargs)] = kubectl.calls
    assert args == NAMESPACED_COMMAND
    assert kwargs["output"] == "wide"
    assert kwargs["use_namespace"] is False


def test_fetch_cluster_scoped_resources(fetcher: TabularCommandFetcher):
    resources = fetcher.fetch_resources(namespaced=False)

    assert [r.kind for r in resources] == [
        "Namespace",
        "Node",
        "PersistentVolume",
        "ClusterRole",
        "StorageClass",
        "CSIDriver",
        "ComponentStatus",
    ]


def test_apiversion_column_carries_the_version():
    resources = TabularCommandFetcher.parse_resources(
        read_fixture("api_resources_namespaced_apiversion.txt"), namespaced=True
    )

    assert [str(r) for r in resources] == [
        "v1/ConfigMap",
        "v1/Pod",
        "apps/v1/Deployment",
        "cert-manager.io/v1/Certificate",
        "networking.internal.knative.dev/v1alpha1/Certificate",
        "metrics.k8s.io/v1beta1/PodMetrics",
    ]
    assert resources[3].short_names == ["cert", "certs"]


def test_rows_without_kind_or_verbs_are_dropped():
    raw = (
        "NAME      SHORTNAMES   APIGROUP   NAMESPACED   KIND      VERBS\n"
        "pods                              true         Pod       [get delete]\n"
        "broken                            true                   [get delete]\n"
        "noverbs                           true         NoVerbs\n"
        "other                             false        Other     [get delete]\n"
    )

    assert [r.kind for r in TabularCommandFetcher.parse_resources(raw, namespaced=True)] == ["Pod"]


def test_blank_namespaced_cell_matches_the_requested_scope():
    raw = (
        "NAME      SHORTNAMES   APIGROUP   NAMESPACED   KIND      VERBS\n"
        "pods                                           Pod       [get delete]\n"
        "other                             false        Other     [get delete]\n"
    )

    [descriptor] = TabularCommandFetcher.parse_resources(raw, namespaced=True)

    assert descriptor.kind == "Pod"
    assert descriptor.namespaced is True
    assert [r.kind for r in TabularCommandFetcher.parse_resources(raw, namespaced=False)] == ["Pod", "Other"]


def test_fetch_group_versions(fetcher: TabularCommandFetcher):
    group_versions = fetcher.fetch_group_versions()

    assert group_versions[""] == ["v1"]
    assert group_versions["batch"] == ["v1", "v1beta1", "v2alpha1"]
    assert group_versions["networking.k8s.io"] == ["v1", "v1beta1"]
    assert "v1" not in group_versions


def test_failed_command_is_fatal(kubectl: FakeKubectl, fetcher: TabularCommandFetcher):
    kubectl.responses[NAMESPACED_COMMAND] = kubectl_result(stderr="the server is currently unable", returncode=1)

    with pytest.raises(FatalKubeAPIError) as exc_info:
        fetcher.fetch_resources(namespaced=True)

    assert exc_info.value.request == "api-resources"
    assert "the server is currently unable" in str(exc_info.value)


def test_failed_api_versions_is_fatal(kubectl: FakeKubectl, fetcher: TabularCommandFetcher):
    kubectl.responses[("api-versions",)] = kubectl_result(stderr="timeout", returncode=1)

    with pytest.raises(FatalKubeAPIError) as exc_info:
        fetcher.fetch_group_versions()

    assert exc_info.value.request == "api-versions"


@pytest.mark.parametrize(
    "cell, expected",
    [
        ("[get list]", {"get", "list"}),
        ("[]", set()),
        ("", None),
        ("get list", None),
    ],
)
def test_parse_verbs(cell: str, expected):
    assert parse_verbs(cell) == expected


def test_parse_bool():
    assert parse_bool("true") is True
    assert parse_bool("False") is False
    assert parse_bool("") is None
