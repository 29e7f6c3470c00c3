from __future__ import annotations

from typing import Optional

import pydantic as pd

# Mapping: API group -> versions observed for it, in discovery order.
# The legacy core group is stored under the empty string.
GroupVersionIndex = dict[str, list[str]]

CORE_GROUP = "core"


class ApiResourceDescriptor(pd.BaseModel):
    """One resource kind as reported by the cluster's discovery endpoints.

    `version` is only known when the descriptor came from raw API path introspection.
    """

    kind: str
    api_group: str = ""
    version: Optional[str] = None
    verbs: set[str]
    namespaced: Optional[bool] = None
    name: Optional[str] = None
    short_names: list[str] = pd.Field(default_factory=list)

    def __str__(self) -> str:
        return join_resource_id(self.api_group, self.version, self.kind)

    @property
    def deletable(self) -> bool:
        return "delete" in self.verbs


def join_resource_id(*segments: Optional[str]) -> str:
    """Join group/version/kind, leaving out empty segments."""

    return "/".join(segment for segment in segments if segment)
