"""Use cases for the routing topology.

Each use case represents a single user action and orchestrates
domain logic without knowing about infrastructure details.
"""

from .consumer_lookup import ConsumerLookupUseCase, DebouncedLookup, LookupDebouncers, LookupOutcome
from .manage_lines import ManagePhoneLinesUseCase, PathStep
from .manage_nodes import ManageNodesUseCase
from .port_views import LayoutOverview, PortViewsUseCase, SetView, TerminalView
from .route_assignment import UNSET, PortGuard, RouteAssignmentEngine
from .settings_catalogs import DashboardCardsUseCase, WireColorSettingsUseCase

__all__ = [
    "RouteAssignmentEngine",
    "PortGuard",
    "UNSET",
    "ManageNodesUseCase",
    "ManagePhoneLinesUseCase",
    "PathStep",
    "PortViewsUseCase",
    "SetView",
    "TerminalView",
    "LayoutOverview",
    "WireColorSettingsUseCase",
    "DashboardCardsUseCase",
    "ConsumerLookupUseCase",
    "DebouncedLookup",
    "LookupDebouncers",
    "LookupOutcome",
]
