"""Domain layer for the line routing topology.

Contains:
- Entities: nodes, phone lines, route hops and views
- Capacity: per-kind node capacity and configuration
- Address codec: port address tokens
- Layout: Frame presentation grids
- Wire colors: the wire color catalog
- Ports: Interface definitions for infrastructure adapters
"""

from .address_codec import (
    FlatLocator,
    FrameLocator,
    PortLocator,
    SlotLocator,
    canonical_address,
    decode_address,
    encode_address,
    encode_frame_address,
    format_frame_label,
    is_valid_address,
    iter_node_addresses,
    iter_set_addresses,
)
from .capacity import (
    FrameCapacity,
    NodeCapacity,
    NodeConfig,
    NodeKind,
    PortCapacity,
    PortDetail,
    SlotDeviceCapacity,
    validate_capacity,
)
from .entities import (
    AppliedChange,
    ChangeKind,
    ChangeLogEntry,
    DashboardCard,
    HopDraft,
    LineAssignment,
    Node,
    NodeStats,
    PhoneLine,
    PortStatus,
    PortView,
    RouteHop,
    Tag,
)
from .layout import LayoutGrid, default_layout
from .ports import (
    IChangeLog,
    INodeRepository,
    IPhoneLineRepository,
    IRouteRepository,
    ISettingsStore,
)
from .wire_colors import WireColor, WireColorCatalog

__all__ = [
    # Codec
    "FrameLocator",
    "SlotLocator",
    "FlatLocator",
    "PortLocator",
    "encode_frame_address",
    "encode_address",
    "canonical_address",
    "decode_address",
    "format_frame_label",
    "is_valid_address",
    "iter_node_addresses",
    "iter_set_addresses",
    # Capacity
    "NodeKind",
    "FrameCapacity",
    "SlotDeviceCapacity",
    "PortCapacity",
    "NodeCapacity",
    "NodeConfig",
    "PortDetail",
    "validate_capacity",
    # Entities
    "Node",
    "Tag",
    "PhoneLine",
    "RouteHop",
    "HopDraft",
    "LineAssignment",
    "ChangeKind",
    "AppliedChange",
    "ChangeLogEntry",
    "PortStatus",
    "PortView",
    "NodeStats",
    "DashboardCard",
    # Layout
    "LayoutGrid",
    "default_layout",
    # Wire colors
    "WireColor",
    "WireColorCatalog",
    # Ports
    "INodeRepository",
    "IPhoneLineRepository",
    "IRouteRepository",
    "IChangeLog",
    "ISettingsStore",
]
