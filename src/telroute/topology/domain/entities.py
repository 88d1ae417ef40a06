"""Domain entities for the line routing topology.

These are pure domain objects with no infrastructure dependencies.
A phone line is routed through nodes as an ordered chain of hops; each
hop occupies one port of one node.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID

from .capacity import NodeCapacity, NodeConfig, NodeKind

DASHBOARD_CARDS_SETTINGS_KEY = "phone_line_dashboard_cards"


@dataclass
class Node:
    """A piece of distribution equipment."""

    id: UUID
    name: str
    config: NodeConfig
    created_at: Optional[datetime] = None

    @property
    def kind(self) -> NodeKind:
        return self.config.kind

    @property
    def capacity(self) -> NodeCapacity:
        return self.config.capacity

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "id": str(self.id),
            "name": self.name,
            "kind": self.kind.value,
            "config": self.config.to_record(),
            "total_ports": self.capacity.total_ports,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass
class Tag:
    id: UUID
    name: str
    color: Optional[str] = None


@dataclass
class PhoneLine:
    """A phone line, identified by its unique number."""

    id: UUID
    number: str
    consumer_label: Optional[str] = None
    has_active_fault: bool = False
    tags: list[Tag] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "number": self.number,
            "consumer_label": self.consumer_label,
            "has_active_fault": self.has_active_fault,
            "tags": [{"id": str(t.id), "name": t.name, "color": t.color} for t in self.tags],
        }


@dataclass
class RouteHop:
    """One port traversed by a line, at position ``sequence`` of its path."""

    id: UUID
    line_id: UUID
    node_id: UUID
    sequence: int
    port_address: str
    wire1: Optional[str] = None
    wire2: Optional[str] = None
    updated_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "line_id": str(self.line_id),
            "node_id": str(self.node_id),
            "sequence": self.sequence,
            "port_address": self.port_address,
            "wire1": self.wire1,
            "wire2": self.wire2,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass
class HopDraft:
    """A hop to be appended; the store assigns id and sequence."""

    line_id: UUID
    node_id: UUID
    port_address: str
    wire1: Optional[str] = None
    wire2: Optional[str] = None


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


@dataclass
class LineAssignment:
    """The line an operator wants on a port."""

    phone_number: str
    consumer_label: Optional[str] = None

    def __post_init__(self):
        self.phone_number = (self.phone_number or "").strip()
        self.consumer_label = _clean(self.consumer_label)


class ChangeKind(str, Enum):
    """Outcome of a port reassignment."""

    ASSIGNED = "assigned"  # Empty port now carries a line
    REASSIGNED = "reassigned"  # Port moved to another line, or its data changed
    CLEARED = "cleared"  # Port emptied
    UNCHANGED = "unchanged"  # Request matched current state


@dataclass
class AppliedChange:
    """What a reassignment did to a port."""

    kind: ChangeKind
    node_id: UUID
    port_address: str
    hop: Optional[RouteHop] = None
    retired_hop: Optional[RouteHop] = None
    line: Optional[PhoneLine] = None
    previous_line_number: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "node_id": str(self.node_id),
            "port_address": self.port_address,
            "hop": self.hop.to_dict() if self.hop else None,
            "retired_hop": self.retired_hop.to_dict() if self.retired_hop else None,
            "line": self.line.to_dict() if self.line else None,
            "previous_line_number": self.previous_line_number,
        }


@dataclass
class ChangeLogEntry:
    """Audit entry recorded against a phone line."""

    line_id: Optional[UUID]
    description: str
    actor: Optional[str] = None
    created_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "line_id": str(self.line_id) if self.line_id else None,
            "description": self.description,
            "actor": self.actor,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class PortStatus(str, Enum):
    FREE = "free"
    CONNECTED = "connected"
    LINE_FAULT = "line_fault"  # Connected line has an open fault
    BROKEN = "broken"  # Port marked physically broken
    OUT_OF_RANGE = "out_of_range"  # Stored token does not decode for this node


@dataclass
class PortView:
    """One port as shown in a set or node detail view."""

    address: str
    label: str
    status: PortStatus
    terminal: Optional[int] = None
    port: Optional[int] = None
    hop_id: Optional[UUID] = None
    line_number: Optional[str] = None
    consumer_label: Optional[str] = None
    wire1: Optional[str] = None
    wire2: Optional[str] = None
    custom_name: Optional[str] = None
    physically_broken: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "label": self.label,
            "status": self.status.value,
            "terminal": self.terminal,
            "port": self.port,
            "hop_id": str(self.hop_id) if self.hop_id else None,
            "line_number": self.line_number,
            "consumer_label": self.consumer_label,
            "wire1": self.wire1,
            "wire2": self.wire2,
            "custom_name": self.custom_name,
            "physically_broken": self.physically_broken,
        }


@dataclass
class NodeStats:
    """Port usage for a node."""

    node_id: UUID
    total_ports: int
    used_ports: int
    last_activity: Optional[datetime] = None

    @property
    def free_ports(self) -> int:
        return max(0, self.total_ports - self.used_ports)

    def to_dict(self) -> dict:
        return {
            "node_id": str(self.node_id),
            "total_ports": self.total_ports,
            "used_ports": self.used_ports,
            "free_ports": self.free_ports,
            "last_activity": self.last_activity.isoformat() if self.last_activity else None,
        }


@dataclass
class DashboardCard:
    """A dashboard counter of phone lines carrying any of the given tags."""

    id: str
    name: str
    tag_ids: list[str] = field(default_factory=list)
    tag_names: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "tagIds": self.tag_ids,
            "tagNames": self.tag_names,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DashboardCard":
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "")),
            tag_ids=[str(t) for t in data.get("tagIds", [])],
            tag_names=[str(t) for t in data.get("tagNames", [])],
        )
