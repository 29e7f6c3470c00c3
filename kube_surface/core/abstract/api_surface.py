from __future__ import annotations

import abc
import json
import logging
from typing import Any, Optional, TypeVar

from kube_surface.core.exceptions import FatalKubeAPIError
from kube_surface.core.integrations.kubectl import Kubectl
from kube_surface.core.models.objects import ApiResourceDescriptor, GroupVersionIndex

logger = logging.getLogger("kube_surface")

SelfAF = TypeVar("SelfAF", bound="BaseApiSurfaceFetcher")

# Every discovery request goes through the same retry budget
DISCOVERY_ATTEMPTS = 5


class BaseApiSurfaceFetcher(abc.ABC):
    """An abstract base class for reading the API surface of a cluster.

    Subclasses are registered automatically by their `display_name`, and picked with `find`.
    Every command runs cluster-wide with the discovery retry budget. A failed command raises
    FatalKubeAPIError, while records that are merely incomplete are dropped.
    """

    display_name: str

    # Kinds that only show up through this strategy and must never be pruned
    extra_blacklist: frozenset[str] = frozenset()

    def __init__(self, kubectl: Kubectl) -> None:
        self.kubectl = kubectl

    @abc.abstractmethod
    def fetch_resources(self, namespaced: bool) -> list[ApiResourceDescriptor]:
        pass

    @abc.abstractmethod
    def fetch_group_versions(self) -> GroupVersionIndex:
        pass

    def _run(self, *args: str, request: str, output: Optional[str] = None) -> str:
        out, err, status = self.kubectl.run(*args, output=output, attempts=DISCOVERY_ATTEMPTS, use_namespace=False)
        if not status.success:
            raise FatalKubeAPIError(f"Error retrieving {request}: {err}", stderr=err, request=request)
        return out

    def _run_json(self, *args: str, request: str, output: Optional[str] = None) -> Any:
        raw_json = self._run(*args, request=request, output=output)
        try:
            return json.loads(raw_json)
        except json.JSONDecodeError as e:
            raise FatalKubeAPIError(f"Error decoding {request}: {e}", request=request) from e

    @classmethod
    def find(cls: type[SelfAF], name: str) -> type[SelfAF]:
        fetchers = cls.get_all()
        if name.lower() in fetchers:
            return fetchers[name.lower()]

        raise ValueError(f"Unknown discovery strategy: {name}. Available strategies: {', '.join(fetchers)}")

    @classmethod
    def get_all(cls: type[SelfAF]) -> dict[str, type[SelfAF]]:
        from kube_surface.core.integrations import discovery as _  # noqa: F401

        return {sub_cls.display_name.lower(): sub_cls for sub_cls in cls.__subclasses__()}
