"""Picking the authoritative version of a kind out of the versions a group serves."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Optional, Union

import yaml

logger = logging.getLogger("kube_surface")

DEFAULT_VERSION_OVERRIDES_PATH = Path(__file__).parent.parent / "version_overrides.yaml"

VERSION_PATTERN = re.compile(r"v(?P<major>\d+)(?P<stability>alpha|beta)?(?P<minor>\d+)?")

STABILITY_RANK = {"alpha": 0, "beta": 1, None: 2}

VersionKey = tuple[int, int, int]


def load_version_overrides(path: Union[str, Path]) -> dict[str, str]:
    """Read a `Kind: version` mapping from a YAML file."""

    with open(path, "r") as file:
        data = yaml.safe_load(file) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Version overrides in {path} must be a mapping of kind to version")

    return {str(kind): str(version) for kind, version in data.items()}


def load_default_version_overrides() -> dict[str, str]:
    return load_version_overrides(DEFAULT_VERSION_OVERRIDES_PATH)


def version_sort_key(version: str) -> Optional[VersionKey]:
    match = VERSION_PATTERN.fullmatch(version)
    if match is None:
        return None

    return (
        int(match["major"]),
        STABILITY_RANK[match["stability"]],
        int(match["minor"] or 0),
    )


def latest_version(versions: Iterable[str]) -> Optional[str]:
    ranked = [(key, version) for version in versions if (key := version_sort_key(version)) is not None]
    if not ranked:
        return None

    return max(ranked, key=lambda item: item[0])[1]


class VersionResolver:
    """Resolves the one version a kind should be addressed with.

    The newest version of the group wins (highest major, then stable over beta over alpha,
    then highest minor), unless the kind is listed in the overrides table.
    """

    def __init__(self, overrides: Optional[Mapping[str, str]] = None) -> None:
        self.overrides = dict(load_default_version_overrides() if overrides is None else overrides)

    def resolve(self, group_versions: Iterable[str], kind: str) -> Optional[str]:
        if kind in self.overrides:
            return self.overrides[kind]

        group_versions = list(group_versions)
        version = latest_version(group_versions)
        if version is None:
            logger.debug(f"No recognizable version for {kind} among {group_versions}")

        return version
