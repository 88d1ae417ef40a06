"""Pydantic schemas for API request/response validation."""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, Field


# ========== Nodes ==========


class NodeRequest(BaseModel):
    """Create or update a node.

    Only the counts relevant to ``kind`` are read: ``sets`` and
    ``terminals_per_set`` for a Frame, ``slots`` and ``ports_per_slot`` for
    a SlotDevice, ``ports`` for a Converter or Socket.
    """

    name: str
    kind: str
    sets: Optional[int] = None
    terminals_per_set: Optional[int] = None
    slots: Optional[int] = None
    ports_per_slot: Optional[int] = None
    ports: Optional[int] = None
    description: Optional[str] = None

    def capacity_fields(self) -> dict[str, Any]:
        return self.model_dump(exclude={"name", "kind", "description"}, exclude_none=True)


class NodeResponse(BaseModel):
    id: UUID
    name: str
    kind: str
    config: dict[str, Any] = Field(default_factory=dict)
    total_ports: int
    created_at: Optional[datetime] = None


class NodeStatsResponse(BaseModel):
    node_id: UUID
    total_ports: int
    used_ports: int
    free_ports: int
    last_activity: Optional[datetime] = None


# ========== Ports ==========


class PortAssignmentRequest(BaseModel):
    """Put a line on a port; a blank phone number clears the port.

    Send ``expected_hop_id`` (``null`` for a port seen empty) to have the
    change rejected if someone else changed the port in the meantime.
    """

    phone_number: Optional[str] = None
    consumer_label: Optional[str] = None
    wire1: Optional[str] = None
    wire2: Optional[str] = None
    expected_hop_id: Optional[UUID] = None
    actor: Optional[str] = None


class PortDetailRequest(BaseModel):
    label: Optional[str] = None
    physically_broken: bool = False


class PortDetailResponse(BaseModel):
    address: str
    label: str = ""
    physically_broken: bool = False


class TerminalLabelRequest(BaseModel):
    label: Optional[str] = None


# ========== Layout ==========


class LayoutCellRequest(BaseModel):
    row: int = Field(ge=0)
    col: int = Field(ge=0)
    set_number: Optional[int] = Field(default=None, ge=1)


class LayoutResizeRequest(BaseModel):
    rows: int
    cols: int


class LayoutResponse(BaseModel):
    rows: int
    cols: int
    mapping: dict[str, int] = Field(default_factory=dict)
    duplicate_sets: list[int] = Field(default_factory=list)


# ========== Lines ==========


class ConsumerLookupResponse(BaseModel):
    phone_number: str
    consumer_label: Optional[str] = None
    found: bool = False
    superseded: bool = False


# ========== Settings catalogs ==========


class WireColorDTO(BaseModel):
    name: str
    value: str
    is_dual: bool = False


class WireColorRequest(BaseModel):
    name: str
    value: str


class DashboardCardDTO(BaseModel):
    id: str
    name: str
    tag_ids: list[str] = Field(default_factory=list)
    tag_names: list[str] = Field(default_factory=list)


class DashboardCardRequest(BaseModel):
    name: str
    tag_ids: list[str] = Field(default_factory=list)
    tag_names: list[str] = Field(default_factory=list)
