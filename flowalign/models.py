"""Pydantic models for the parts of the NiFi REST documents flowalign reads.

Field names follow NiFi's camelCase JSON so documents can be validated with
`model_validate` as they come off the wire. Unknown fields are ignored, except
on `Revision` which is echoed back to the server verbatim.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .timestamps import TimestampParseError, parse_timestamp


logger = logging.getLogger(__name__)

ROOT_GROUP_ID = "root"

# Flow element kinds that make a process group "populated". Labels are
# decorative and deliberately absent.
FLOW_ELEMENT_KINDS = (
    "connections",
    "funnels",
    "inputPorts",
    "outputPorts",
    "remoteProcessGroups",
    "processors",
)


class Position(BaseModel):
    """2D position on canvas."""

    x: float
    y: float


class Revision(BaseModel):
    """Optimistic-concurrency token of a component."""

    model_config = ConfigDict(extra="allow")

    version: int = 0
    clientId: Optional[str] = None
    lastModifier: Optional[str] = None


class GroupComponent(BaseModel):
    id: Optional[str] = None
    name: Optional[str] = None
    position: Optional[Position] = None


class GroupRef(BaseModel):
    """A child process group as listed in its parent's flow."""

    id: str
    revision: Revision = Field(default_factory=Revision)
    component: Optional[GroupComponent] = None

    @property
    def name(self) -> str:
        if self.component is not None and self.component.name:
            return self.component.name
        return self.id


class FlowContents(BaseModel):
    processGroups: List[GroupRef] = Field(default_factory=list)
    remoteProcessGroups: List[Dict[str, Any]] = Field(default_factory=list)
    processors: List[Dict[str, Any]] = Field(default_factory=list)
    inputPorts: List[Dict[str, Any]] = Field(default_factory=list)
    outputPorts: List[Dict[str, Any]] = Field(default_factory=list)
    connections: List[Dict[str, Any]] = Field(default_factory=list)
    funnels: List[Dict[str, Any]] = Field(default_factory=list)
    labels: List[Dict[str, Any]] = Field(default_factory=list)


class ProcessGroupFlow(BaseModel):
    id: str
    parentGroupId: Optional[str] = None
    flow: FlowContents = Field(default_factory=FlowContents)
    lastRefreshed: Optional[datetime] = None

    @field_validator("lastRefreshed", mode="before")
    @classmethod
    def _parse_last_refreshed(cls, value: Any) -> Any:
        if value is None or isinstance(value, datetime):
            return value
        try:
            return parse_timestamp(str(value))
        except TimestampParseError as e:
            logger.warning(f"Ignoring lastRefreshed: {e}")
            return None


class FlowSnapshot(BaseModel):
    """Point-in-time read of one process group's immediate contents."""

    processGroupFlow: ProcessGroupFlow

    @property
    def group_id(self) -> str:
        return self.processGroupFlow.id

    @property
    def children(self) -> List[GroupRef]:
        """Child groups in server discovery order."""
        return list(self.processGroupFlow.flow.processGroups)

    def element_counts(self) -> Dict[str, int]:
        flow = self.processGroupFlow.flow
        return {kind: len(getattr(flow, kind)) for kind in FLOW_ELEMENT_KINDS}

    @property
    def has_flow_elements(self) -> bool:
        return any(self.element_counts().values())


@dataclass(frozen=True)
class AlignmentRequest:
    """What to align.

    root_id: start group id; "" means the server's root group.
    max_depth: levels below the start group to descend into
               (-1 = unlimited, 0 = nothing to do).
    max_columns: grid width, always >= 1 by the time the engine sees it.
    """

    root_id: str = ""
    max_depth: int = 5
    max_columns: int = 4
    dry_run: bool = False


@dataclass
class AlignmentReport:
    visited: int = 0
    skipped: int = 0
    updated: int = 0
