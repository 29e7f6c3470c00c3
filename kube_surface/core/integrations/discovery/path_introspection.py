from __future__ import annotations

import logging
import re
from typing import Any, Optional

from kube_surface.core.abstract.api_surface import BaseApiSurfaceFetcher
from kube_surface.core.models.objects import ApiResourceDescriptor, GroupVersionIndex

logger = logging.getLogger("kube_surface")

API_PATH_PREFIX = "/api"

# /api/v1 for the legacy group, /apis/<group>/<version> for everything else
GROUP_VERSION_PATH = re.compile(r"^/apis?/(?:(?P<group>[^/]+)/)?(?P<version>v\d+(?:alpha|beta)?\d*)$")


class PathIntrospectionFetcher(BaseApiSurfaceFetcher):
    """Reads the API surface from the raw discovery documents served under /api and /apis.

    The group and version of each resource come from the path its document was served at.
    """

    display_name = "path"
    # NOTE: NodeProxyOptions is listed under the raw paths of some server versions only
    extra_blacklist = frozenset({"NodeProxyOptions"})

    def fetch_resources(self, namespaced: bool) -> list[ApiResourceDescriptor]:
        descriptors = []
        for path in self.api_paths():
            resources = self.fetch_api_path(path).get("resources") or []
            for resource in resources:
                descriptor = self.build_descriptor(path, namespaced, resource)
                if descriptor is not None:
                    descriptors.append(descriptor)

        logger.debug(f"Discovered {len(descriptors)} resources with namespaced={namespaced}")
        return descriptors

    def fetch_group_versions(self) -> GroupVersionIndex:
        group_versions: GroupVersionIndex = {}
        for path in self.api_paths():
            match = GROUP_VERSION_PATH.match(path)
            if match is None:
                continue

            versions = group_versions.setdefault(match["group"] or "", [])
            if match["version"] not in versions:
                versions.append(match["version"])

        return group_versions

    def api_paths(self) -> list[str]:
        root = self._run_json("get", "--raw", "/", request="raw path /")
        return [path for path in root.get("paths") or [] if path.startswith(API_PATH_PREFIX)]

    def fetch_api_path(self, path: str) -> dict[str, Any]:
        return self._run_json("get", "--raw", path, request=f"api path {path}")

    @staticmethod
    def build_descriptor(path: str, namespaced: bool, blob: dict[str, Any]) -> Optional[ApiResourceDescriptor]:
        if blob.get("namespaced") != namespaced:
            return None
        if blob.get("verbs") is None or not blob.get("kind"):
            return None

        match = GROUP_VERSION_PATH.match(path)
        if match is None:
            return None

        return ApiResourceDescriptor(
            kind=blob["kind"],
            api_group=match["group"] or "",
            version=match["version"],
            verbs=set(blob["verbs"]),
            namespaced=namespaced,
            name=blob.get("name"),
            short_names=blob.get("shortNames") or [],
        )
