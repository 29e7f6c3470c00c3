from __future__ import annotations

import logging
from typing import Any, Optional

from kube_surface.core.models.objects import join_resource_id

PRUNABLE_ANNOTATION = "kube-surface.dev/prunable"


class CustomResourceDefinition:
    """A CustomResourceDefinition found in the cluster.

    The raw definition is kept verbatim, everything else is read from it on demand.
    """

    def __init__(
        self,
        namespace: str,
        context: Optional[str],
        logger: logging.Logger,
        definition: dict[str, Any],
        statsd_tags: Optional[list[str]] = None,
    ) -> None:
        self.namespace = namespace
        self.context = context
        self.logger = logger
        self.definition = definition
        self.statsd_tags = list(statsd_tags or [])

    def __repr__(self) -> str:
        return f"<CustomResourceDefinition {self.name}>"

    @property
    def metadata(self) -> dict[str, Any]:
        return self.definition.get("metadata") or {}

    @property
    def spec(self) -> dict[str, Any]:
        return self.definition.get("spec") or {}

    @property
    def name(self) -> str:
        return self.metadata.get("name", "")

    @property
    def kind(self) -> str:
        return (self.spec.get("names") or {}).get("kind", "")

    @property
    def group(self) -> str:
        return self.spec.get("group", "")

    @property
    def namespaced(self) -> bool:
        return self.spec.get("scope") == "Namespaced"

    @property
    def served_versions(self) -> list[str]:
        versions = self.spec.get("versions")
        if versions is None:
            # apiextensions.k8s.io/v1beta1 definitions may only carry a single spec.version
            return [self.spec["version"]] if self.spec.get("version") else []
        return [version["name"] for version in versions if version.get("served", True)]

    @property
    def storage_version(self) -> Optional[str]:
        for version in self.spec.get("versions") or []:
            if version.get("storage"):
                return version["name"]
        return self.spec.get("version")

    @property
    def group_version_kind(self) -> str:
        return join_resource_id(self.group, self.storage_version, self.kind)

    @property
    def prunable(self) -> bool:
        annotations = self.metadata.get("annotations") or {}
        return annotations.get(PRUNABLE_ANNOTATION) == "true"
