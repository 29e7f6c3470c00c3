from importlib.metadata import PackageNotFoundError, version

import kube_surface

DISTRIBUTION_NAME = "kube-surface"


def get_version() -> str:
    """Version of the installed distribution, or `kube_surface.__version__` when running from a source tree."""

    try:
        return version(DISTRIBUTION_NAME)
    except PackageNotFoundError:
        return kube_surface.__version__
