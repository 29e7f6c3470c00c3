from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from typing import Optional

from kube_surface.core.abstract.api_surface import DISCOVERY_ATTEMPTS, BaseApiSurfaceFetcher
from kube_surface.core.exceptions import FatalKubeAPIError
from kube_surface.core.integrations.kubectl import Kubectl
from kube_surface.core.models.config import settings
from kube_surface.core.models.crd import CustomResourceDefinition
from kube_surface.core.models.objects import (
    CORE_GROUP,
    ApiResourceDescriptor,
    GroupVersionIndex,
    join_resource_id,
)
from kube_surface.core.versions import VersionResolver

logger = logging.getLogger("kube_surface")


def unique_by_kind(descriptors: Iterable[ApiResourceDescriptor]) -> list[ApiResourceDescriptor]:
    """Keep the first descriptor seen for every kind."""

    seen: set[str] = set()
    unique = []
    for descriptor in descriptors:
        if descriptor.kind in seen:
            continue
        seen.add(descriptor.kind)
        unique.append(descriptor)
    return unique


class ClusterResourceDiscovery:
    """Discovers what one cluster context serves: prunable kinds and custom resource definitions.

    The CRD list is fetched once per discovery object. Prunable resources are computed fresh on
    every call, since the API surface can change between calls (e.g. a CRD installed meanwhile).
    """

    def __init__(
        self,
        context: Optional[str] = None,
        namespace: Optional[str] = None,
        namespace_tags: Optional[list[str]] = None,
        strategy: Optional[str] = None,
        kubectl: Optional[Kubectl] = None,
    ) -> None:
        self.context = context if context is not None else settings.current_context
        self.namespace = namespace or settings.namespace
        self.namespace_tags = list(namespace_tags or [])
        self.strategy = strategy or settings.discovery_strategy
        self.version_resolver = VersionResolver(settings.version_overrides)

        self.__kubectl = kubectl
        self.__fetcher: Optional[BaseApiSurfaceFetcher] = None
        self.__crds: Optional[list[CustomResourceDefinition]] = None

    @property
    def kubectl(self) -> Kubectl:
        if self.__kubectl is None:
            self.__kubectl = Kubectl(
                context=self.context,
                namespace=self.namespace,
                kubeconfig=settings.kubeconfig,
                log_failure_by_default=True,
            )
        return self.__kubectl

    @property
    def fetcher(self) -> BaseApiSurfaceFetcher:
        if self.__fetcher is None:
            self.__fetcher = BaseApiSurfaceFetcher.find(self.strategy)(self.kubectl)
        return self.__fetcher

    def crds(self) -> list[CustomResourceDefinition]:
        if self.__crds is None:
            self.__crds = [
                CustomResourceDefinition(
                    namespace=self.namespace,
                    context=self.context,
                    logger=logger,
                    definition=definition,
                    statsd_tags=self.namespace_tags,
                )
                for definition in self._fetch_crds()
            ]
        return self.__crds

    def prunable_crds(self) -> list[CustomResourceDefinition]:
        return [crd for crd in self.crds() if crd.prunable]

    def fetch_resources(self, namespaced: bool = False) -> list[ApiResourceDescriptor]:
        return self.fetcher.fetch_resources(namespaced)

    def prunable_resources(self, namespaced: bool) -> list[str]:
        """List `group/version/kind` identifiers that are safe to prune.

        Only the first descriptor of every kind counts, in fetch order. So if two API groups
        serve the same kind, only the group fetched first gets an identifier.
        """

        blacklist = set(settings.prune_blacklist) | self.fetcher.extra_blacklist
        group_versions: Optional[GroupVersionIndex] = None

        prunable = []
        for descriptor in unique_by_kind(self.fetch_resources(namespaced=namespaced)):
            if not descriptor.deletable:
                continue
            if descriptor.kind in blacklist:
                continue

            if descriptor.version is not None:
                prunable.append(join_resource_id(descriptor.api_group, descriptor.version, descriptor.kind))
                continue

            if group_versions is None:
                group_versions = self.fetcher.fetch_group_versions()

            resource_id = self._resolve_resource_id(descriptor, group_versions)
            if resource_id is None:
                logger.debug(f"Could not resolve a version for {descriptor.kind}, it will not be pruned")
                continue
            prunable.append(resource_id)

        return prunable

    def _resolve_resource_id(
        self, descriptor: ApiResourceDescriptor, group_versions: GroupVersionIndex
    ) -> Optional[str]:
        group = descriptor.api_group.strip() or CORE_GROUP
        versions = group_versions.get("" if group == CORE_GROUP else group)
        if not versions:
            return None

        version = self.version_resolver.resolve(versions, descriptor.kind)
        if version is None:
            return None

        return join_resource_id(group, version, descriptor.kind)

    def _fetch_crds(self) -> list[dict]:
        raw_json, err, status = self.kubectl.run(
            "get", "CustomResourceDefinition", output="json", attempts=DISCOVERY_ATTEMPTS, use_namespace=False
        )
        if not status.success:
            raise FatalKubeAPIError(
                f"Error retrieving CustomResourceDefinition: {err}", stderr=err, request="CustomResourceDefinition"
            )

        try:
            return json.loads(raw_json).get("items") or []
        except json.JSONDecodeError as e:
            raise FatalKubeAPIError(
                f"Error decoding CustomResourceDefinition: {e}", request="CustomResourceDefinition"
            ) from e
