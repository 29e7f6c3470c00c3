from __future__ import annotations

import logging
from typing import Optional

from kube_surface.core.abstract.api_surface import BaseApiSurfaceFetcher
from kube_surface.core.models.objects import ApiResourceDescriptor, GroupVersionIndex
from kube_surface.utils.table import parse_table

logger = logging.getLogger("kube_surface")


def parse_verbs(cell: str) -> Optional[set[str]]:
    """Turn "[get list delete]" into {"get", "list", "delete"}."""

    cell = cell.strip()
    if not (cell.startswith("[") and cell.endswith("]")):
        return None
    return set(cell[1:-1].split())


def parse_bool(cell: str) -> Optional[bool]:
    return {"true": True, "false": False}.get(cell.strip().lower())


class TabularCommandFetcher(BaseApiSurfaceFetcher):
    """Reads the API surface from `kubectl api-resources -o wide` and `kubectl api-versions`.

    The table carries no version, so descriptors come back without one and the version
    is resolved later against `fetch_group_versions`.
    """

    display_name = "tabular"

    def fetch_resources(self, namespaced: bool) -> list[ApiResourceDescriptor]:
        raw = self._run(
            "api-resources", f"--namespaced={str(namespaced).lower()}", output="wide", request="api-resources"
        )
        return self.parse_resources(raw, namespaced)

    def fetch_group_versions(self) -> GroupVersionIndex:
        raw = self._run("api-versions", request="api-versions")
        return self.parse_group_versions(raw)

    @staticmethod
    def parse_resources(raw: str, namespaced: bool) -> list[ApiResourceDescriptor]:
        descriptors = []
        for row in parse_table(raw):
            kind = row.get("kind")
            verbs = parse_verbs(row.get("verbs", ""))
            if not kind or verbs is None:
                logger.debug(f"Skipping incomplete api-resources row: {row}")
                continue
            # NOTE: A blank NAMESPACED cell is trusted to match, the command already filters by scope
            row_namespaced = parse_bool(row.get("namespaced", ""))
            if row_namespaced is not None and row_namespaced != namespaced:
                continue

            api_group, version = row.get("apigroup", ""), None
            # NOTE: Newer kubectl prints APIVERSION (group/version) in place of APIGROUP
            if row.get("apiversion"):
                api_group, _, version = row["apiversion"].rpartition("/")

            descriptors.append(
                ApiResourceDescriptor(
                    kind=kind,
                    api_group=api_group,
                    version=version,
                    verbs=verbs,
                    namespaced=namespaced,
                    name=row.get("name") or None,
                    short_names=[name for name in row.get("shortnames", "").split(",") if name],
                )
            )

        return descriptors

    @staticmethod
    def parse_group_versions(raw: str) -> GroupVersionIndex:
        group_versions: GroupVersionIndex = {}
        for line in raw.splitlines():
            line = line.strip()
            if not line:
                continue

            # NOTE: The legacy core group is printed as a bare "v1"
            group, _, version = line.rpartition("/")
            versions = group_versions.setdefault(group, [])
            if version not in versions:
                versions.append(version)

        return group_versions
