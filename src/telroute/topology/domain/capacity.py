"""Node capacity model.

Each node kind exposes its ports differently, so capacity is a tagged
union with one variant per kind instead of one record with optional
fields. Records coming from the store (or from an operator form) are
validated once here and the rest of the code works with the typed
variants.

Persisted shape (stored verbatim in the node's ``config`` column):

    {
        "kind": "Frame",
        "sets": 2, "terminalsPerSet": 10, "portsPerTerminal": 10,
        "portDetails": {"100": {"label": "Reception", "physicallyBroken": false}},
        "layout": {"rows": 1, "cols": 2, "mapping": {"0-0": 1, "0-1": 2}},
        "terminalLabels": {"1-10": "Block B"}
    }
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional, Union

from ...common.exceptions import ValidationError
from .layout import LayoutGrid, default_layout

# A terminal or port is written as one digit, with 0 standing for 10
FRAME_DIGIT_MAX = 10
PORTS_PER_TERMINAL = 10


class NodeKind(str, Enum):
    """Kinds of distribution equipment."""

    FRAME = "Frame"  # Main distribution frame: sets -> terminals -> ports
    SLOT_DEVICE = "SlotDevice"  # Slots of ports
    CONVERTER = "Converter"
    SOCKET = "Socket"

    @classmethod
    def parse(cls, value: Any) -> "NodeKind":
        """Parse a kind, accepting the labels older records were saved with."""
        if isinstance(value, cls):
            return value
        aliases = {"MDF": cls.FRAME, "Slot Device": cls.SLOT_DEVICE}
        text = str(value or "").strip()
        if text in aliases:
            return aliases[text]
        try:
            return cls(text)
        except ValueError:
            raise ValidationError(
                f"Unknown node kind: {text!r}",
                field_errors={"kind": "Unknown node kind"},
            )


@dataclass(frozen=True)
class FrameCapacity:
    """Frame (MDF) capacity. Ports per terminal is always 10."""

    sets: int
    terminals_per_set: int
    ports_per_terminal: int = PORTS_PER_TERMINAL

    @property
    def kind(self) -> NodeKind:
        return NodeKind.FRAME

    @property
    def total_ports(self) -> int:
        return self.sets * self.terminals_per_set * self.ports_per_terminal

    def to_record(self) -> dict[str, Any]:
        return {
            "sets": self.sets,
            "terminalsPerSet": self.terminals_per_set,
            "portsPerTerminal": self.ports_per_terminal,
        }


@dataclass(frozen=True)
class SlotDeviceCapacity:
    """Slot device capacity."""

    slots: int
    ports_per_slot: int

    @property
    def kind(self) -> NodeKind:
        return NodeKind.SLOT_DEVICE

    @property
    def total_ports(self) -> int:
        return self.slots * self.ports_per_slot

    def to_record(self) -> dict[str, Any]:
        return {"slots": self.slots, "portsPerSlot": self.ports_per_slot}


@dataclass(frozen=True)
class PortCapacity:
    """Flat capacity used by Converter and Socket nodes."""

    kind: NodeKind
    ports: int

    @property
    def total_ports(self) -> int:
        return self.ports

    def to_record(self) -> dict[str, Any]:
        return {"ports": self.ports}


NodeCapacity = Union[FrameCapacity, SlotDeviceCapacity, PortCapacity]

# Required count fields per kind, with the message shown when one is bad
_REQUIRED_FIELDS: dict[NodeKind, dict[str, str]] = {
    NodeKind.FRAME: {
        "sets": "Number of sets must be a positive integer",
        "terminals_per_set": "Terminals per set must be a positive integer",
    },
    NodeKind.SLOT_DEVICE: {
        "slots": "Number of slots must be a positive integer",
        "ports_per_slot": "Ports per slot must be a positive integer",
    },
    NodeKind.CONVERTER: {
        "ports": "Number of ports must be a positive integer",
    },
    NodeKind.SOCKET: {
        "ports": "Number of ports must be a positive integer",
    },
}

_RECORD_ALIASES = {
    "terminalsPerSet": "terminals_per_set",
    "portsPerTerminal": "ports_per_terminal",
    "portsPerSlot": "ports_per_slot",
}


def _coerce_count(value: Any) -> Optional[int]:
    """Return a positive int, or None when the value is missing or invalid."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, float):
        return int(value) if value.is_integer() and value > 0 else None
    text = str(value).strip()
    if text.isdigit() and int(text) > 0:
        return int(text)
    return None


def validate_capacity(
    kind: Any,
    fields: Mapping[str, Any],
    name: Optional[str] = None,
    check_name: bool = False,
) -> NodeCapacity:
    """Validate operator input and build the capacity variant for a kind.

    All problems are collected before raising so a form can highlight
    every bad field at once. For Frames ``ports_per_terminal`` is forced
    to 10 whatever the input says.

    Args:
        kind: Node kind (enum or its string value)
        fields: Count fields, in snake_case or the persisted camelCase
        name: Node name, checked when ``check_name`` is set
        check_name: Also require a non-blank node name

    Returns:
        FrameCapacity, SlotDeviceCapacity or PortCapacity

    Raises:
        ValidationError: With a field -> message map
    """
    node_kind = NodeKind.parse(kind)
    normalized = {_RECORD_ALIASES.get(k, k): v for k, v in fields.items()}

    errors: dict[str, str] = {}
    if check_name and not (name or "").strip():
        errors["name"] = "Node name is required"

    counts: dict[str, int] = {}
    for field_name, message in _REQUIRED_FIELDS[node_kind].items():
        count = _coerce_count(normalized.get(field_name))
        if count is None:
            errors[field_name] = message
        else:
            counts[field_name] = count

    if node_kind == NodeKind.FRAME and counts.get("terminals_per_set", 0) > FRAME_DIGIT_MAX:
        errors["terminals_per_set"] = f"A set holds at most {FRAME_DIGIT_MAX} terminals"

    if errors:
        raise ValidationError("Invalid node configuration", field_errors=errors)

    if node_kind == NodeKind.FRAME:
        return FrameCapacity(
            sets=counts["sets"],
            terminals_per_set=counts["terminals_per_set"],
        )
    if node_kind == NodeKind.SLOT_DEVICE:
        return SlotDeviceCapacity(slots=counts["slots"], ports_per_slot=counts["ports_per_slot"])
    return PortCapacity(kind=node_kind, ports=counts["ports"])


@dataclass(frozen=True)
class PortDetail:
    """Operator annotations on a single port."""

    label: str = ""
    physically_broken: bool = False

    @property
    def is_default(self) -> bool:
        return not self.label and not self.physically_broken

    def to_record(self) -> dict[str, Any]:
        return {"label": self.label, "physicallyBroken": self.physically_broken}

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "PortDetail":
        label = record.get("label", record.get("customName")) or ""
        broken = record.get("physicallyBroken", record.get("isPhysicallyBroken", False))
        return cls(label=str(label).strip(), physically_broken=bool(broken))


@dataclass
class NodeConfig:
    """Capacity plus the per-node maps stored alongside it."""

    capacity: NodeCapacity
    port_details: dict[str, PortDetail] = field(default_factory=dict)
    layout: Optional[LayoutGrid] = None
    terminal_labels: dict[str, str] = field(default_factory=dict)
    description: Optional[str] = None

    @property
    def kind(self) -> NodeKind:
        return self.capacity.kind

    def effective_layout(self) -> Optional[LayoutGrid]:
        """Saved layout, or the default single-row layout. None for non-Frames."""
        if not isinstance(self.capacity, FrameCapacity):
            return None
        return self.layout or default_layout(self.capacity.sets)

    def port_detail(self, address: str) -> PortDetail:
        return self.port_details.get(address, PortDetail())

    def with_port_detail(self, address: str, detail: PortDetail) -> "NodeConfig":
        """Copy with one port detail replaced. Default details are pruned."""
        details = dict(self.port_details)
        if detail.is_default:
            details.pop(address, None)
        else:
            details[address] = detail
        return NodeConfig(
            capacity=self.capacity,
            port_details=details,
            layout=self.layout,
            terminal_labels=dict(self.terminal_labels),
            description=self.description,
        )

    def with_terminal_label(self, set_number: int, terminal: int, label: str) -> "NodeConfig":
        """Copy with one terminal label set. An empty label removes it."""
        labels = dict(self.terminal_labels)
        key = f"{set_number}-{terminal}"
        label = (label or "").strip()
        if label:
            labels[key] = label
        else:
            labels.pop(key, None)
        return NodeConfig(
            capacity=self.capacity,
            port_details=dict(self.port_details),
            layout=self.layout,
            terminal_labels=labels,
            description=self.description,
        )

    def with_layout(self, layout: Optional[LayoutGrid]) -> "NodeConfig":
        return NodeConfig(
            capacity=self.capacity,
            port_details=dict(self.port_details),
            layout=layout,
            terminal_labels=dict(self.terminal_labels),
            description=self.description,
        )

    def with_capacity(self, capacity: NodeCapacity) -> "NodeConfig":
        """Copy with a new capacity; maps are kept, layout only for Frames."""
        return NodeConfig(
            capacity=capacity,
            port_details=dict(self.port_details),
            layout=self.layout if isinstance(capacity, FrameCapacity) else None,
            terminal_labels=dict(self.terminal_labels) if isinstance(capacity, FrameCapacity) else {},
            description=self.description,
        )

    def terminal_label(self, set_number: int, terminal: int) -> Optional[str]:
        return self.terminal_labels.get(f"{set_number}-{terminal}")

    def to_record(self) -> dict[str, Any]:
        """Serialize to the persisted config JSON shape."""
        record: dict[str, Any] = {"kind": self.kind.value}
        record.update(self.capacity.to_record())
        if self.description:
            record["description"] = self.description
        if self.port_details:
            record["portDetails"] = {
                addr: d.to_record() for addr, d in sorted(self.port_details.items())
            }
        if self.layout is not None:
            record["layout"] = self.layout.to_record()
        if self.terminal_labels:
            record["terminalLabels"] = dict(sorted(self.terminal_labels.items()))
        return record

    @classmethod
    def from_record(cls, record: Mapping[str, Any], kind: Any = None) -> "NodeConfig":
        """Parse and validate a persisted config record.

        Args:
            record: Config JSON object
            kind: Kind stored outside the record (e.g. a ``kind`` column);
                used when the record itself carries none

        Raises:
            ValidationError: If the kind or capacity counts are invalid
        """
        node_kind = NodeKind.parse(record.get("kind") or record.get("type") or kind)
        capacity = validate_capacity(node_kind, record)

        port_details: dict[str, PortDetail] = {}
        for address, raw in (record.get("portDetails") or {}).items():
            if not isinstance(raw, Mapping):
                continue
            detail = PortDetail.from_record(raw)
            if not detail.is_default:
                port_details[str(address)] = detail

        layout = None
        if node_kind == NodeKind.FRAME and record.get("layout"):
            layout = LayoutGrid.from_record(record["layout"])

        terminal_labels = {
            str(k): str(v).strip()
            for k, v in (record.get("terminalLabels") or {}).items()
            if v and str(v).strip()
        }

        return cls(
            capacity=capacity,
            port_details=port_details,
            layout=layout,
            terminal_labels=terminal_labels,
            description=record.get("description") or None,
        )
