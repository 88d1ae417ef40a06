"""Port view use case.

Builds what an operator sees when opening a node: the layout overview of
a Frame, the 10x10 grid of one set, or the flat port list of other kinds.
Hops whose stored address no longer decodes for the node (for example
after its capacity shrank) are shown as ``out_of_range`` entries instead
of failing the whole view.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional
from uuid import UUID

from ...common.exceptions import InvalidAddress, NotFoundError, ValidationError
from ..domain.address_codec import decode_address, iter_node_addresses, iter_set_addresses
from ..domain.capacity import FrameCapacity, NodeConfig
from ..domain.entities import Node, PhoneLine, PortStatus, PortView, RouteHop
from ..domain.ports import INodeRepository, IPhoneLineRepository, IRouteRepository

logger = logging.getLogger(__name__)


@dataclass
class TerminalView:
    terminal: int
    label: Optional[str]
    ports: list[PortView] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "terminal": self.terminal,
            "label": self.label,
            "ports": [p.to_dict() for p in self.ports],
        }


@dataclass
class SetView:
    """One Frame set: terminals of ports with their occupants."""

    node_id: UUID
    node_name: str
    set_number: int
    terminals: list[TerminalView] = field(default_factory=list)

    @property
    def used_ports(self) -> int:
        return sum(1 for t in self.terminals for p in t.ports if p.line_number)

    def to_dict(self) -> dict:
        return {
            "node_id": str(self.node_id),
            "node_name": self.node_name,
            "set_number": self.set_number,
            "used_ports": self.used_ports,
            "terminals": [t.to_dict() for t in self.terminals],
        }


@dataclass
class LayoutCellView:
    row: int
    col: int
    set_number: Optional[int]
    used_ports: int = 0
    total_ports: int = 0


@dataclass
class LayoutOverview:
    """A Frame's layout grid with per-set usage."""

    node_id: UUID
    rows: int
    cols: int
    cells: list[LayoutCellView] = field(default_factory=list)
    duplicate_sets: dict[int, list[tuple[int, int]]] = field(default_factory=dict)
    out_of_range_sets: list[int] = field(default_factory=list)
    unplaced_hops: int = 0

    def to_dict(self) -> dict:
        return {
            "node_id": str(self.node_id),
            "rows": self.rows,
            "cols": self.cols,
            "cells": [
                {
                    "row": c.row,
                    "col": c.col,
                    "set_number": c.set_number,
                    "used_ports": c.used_ports,
                    "total_ports": c.total_ports,
                }
                for c in self.cells
            ],
            "duplicate_sets": {
                str(s): [f"{r}-{c}" for r, c in cells] for s, cells in self.duplicate_sets.items()
            },
            "out_of_range_sets": self.out_of_range_sets,
            "unplaced_hops": self.unplaced_hops,
        }


def _port_status(hop: Optional[RouteHop], line: Optional[PhoneLine], broken: bool) -> PortStatus:
    if broken:
        return PortStatus.BROKEN
    if hop is None:
        return PortStatus.FREE
    if line is not None and line.has_active_fault:
        return PortStatus.LINE_FAULT
    return PortStatus.CONNECTED


class PortViewsUseCase:
    """Read-only views over a node's ports."""

    def __init__(
        self,
        node_repo: INodeRepository,
        line_repo: IPhoneLineRepository,
        route_repo: IRouteRepository,
    ):
        self.nodes = node_repo
        self.lines = line_repo
        self.routes = route_repo

    async def layout_overview(self, node_id: UUID) -> LayoutOverview:
        """Layout grid of a Frame with the number of used ports per cell."""
        node = await self._load_node(node_id)
        capacity = self._frame_capacity(node)
        layout = node.config.effective_layout()

        used_per_set: dict[int, int] = {}
        unplaced = 0
        for hop in await self.routes.list_node_hops(node.id):
            try:
                locator = decode_address(hop.port_address, capacity)
            except InvalidAddress:
                unplaced += 1
                continue
            used_per_set[locator.set_number] = used_per_set.get(locator.set_number, 0) + 1

        per_set_total = capacity.terminals_per_set * capacity.ports_per_terminal
        cells = [
            LayoutCellView(
                row=r,
                col=c,
                set_number=s,
                used_ports=used_per_set.get(s, 0) if s else 0,
                total_ports=per_set_total if s and s <= capacity.sets else 0,
            )
            for r, c, s in layout.cells()
        ]
        if unplaced:
            logger.warning(f"Node '{node.name}' has {unplaced} hop(s) outside its capacity")

        return LayoutOverview(
            node_id=node.id,
            rows=layout.rows,
            cols=layout.cols,
            cells=cells,
            duplicate_sets=layout.duplicate_set_warnings(),
            out_of_range_sets=layout.sets_out_of_range(capacity.sets),
            unplaced_hops=unplaced,
        )

    async def open_cell(self, node_id: UUID, row: int, col: int) -> Optional[SetView]:
        """Resolve a layout cell to its set and build that set's view.

        Returns None for an empty cell.
        """
        node = await self._load_node(node_id)
        self._frame_capacity(node)
        set_number = node.config.effective_layout().resolve_cell(row, col)
        if set_number is None:
            return None
        return await self._build_set_view(node, set_number)

    async def set_view(self, node_id: UUID, set_number: int) -> SetView:
        node = await self._load_node(node_id)
        return await self._build_set_view(node, set_number)

    async def node_ports(self, node_id: UUID) -> list[PortView]:
        """Every port of a node, plus any hop whose address is out of range."""
        node = await self._load_node(node_id)
        hops, lines = await self._occupancy(node)
        views = [
            self._port_view(node.config, token, locator.label, hops.get(token), lines,
                            terminal=getattr(locator, "terminal", None), port=locator.port)
            for token, locator in iter_node_addresses(node.capacity)
        ]
        known = {v.address for v in views}
        views.extend(
            self._out_of_range_view(hop, lines)
            for token, hop in sorted(hops.items())
            if token not in known
        )
        return views

    async def _build_set_view(self, node: Node, set_number: int) -> SetView:
        capacity = self._frame_capacity(node)
        if not 1 <= set_number <= capacity.sets:
            raise ValidationError(
                f"Set {set_number} does not exist on node '{node.name}'",
                field_errors={"set_number": f"Node has {capacity.sets} sets"},
            )

        hops, lines = await self._occupancy(node)
        terminals: dict[int, TerminalView] = {}
        for token, locator in iter_set_addresses(capacity, set_number):
            view = terminals.get(locator.terminal)
            if view is None:
                view = TerminalView(
                    terminal=locator.terminal,
                    label=node.config.terminal_label(set_number, locator.terminal),
                )
                terminals[locator.terminal] = view
            view.ports.append(
                self._port_view(node.config, token, locator.label, hops.get(token), lines,
                                terminal=locator.terminal, port=locator.port)
            )

        return SetView(
            node_id=node.id,
            node_name=node.name,
            set_number=set_number,
            terminals=[terminals[t] for t in sorted(terminals)],
        )

    async def _occupancy(self, node: Node) -> tuple[dict[str, RouteHop], dict[UUID, PhoneLine]]:
        hops = {h.port_address: h for h in await self.routes.list_node_hops(node.id)}
        lines = await self.lines.get_lines(sorted({h.line_id for h in hops.values()}, key=str))
        return hops, lines

    @staticmethod
    def _port_view(
        config: NodeConfig,
        token: str,
        label: str,
        hop: Optional[RouteHop],
        lines: dict[UUID, PhoneLine],
        terminal: Optional[int] = None,
        port: Optional[int] = None,
    ) -> PortView:
        detail = config.port_detail(token)
        line = lines.get(hop.line_id) if hop else None
        return PortView(
            address=token,
            label=label,
            status=_port_status(hop, line, detail.physically_broken),
            terminal=terminal,
            port=port,
            hop_id=hop.id if hop else None,
            line_number=line.number if line else None,
            consumer_label=line.consumer_label if line else None,
            wire1=hop.wire1 if hop else None,
            wire2=hop.wire2 if hop else None,
            custom_name=detail.label or None,
            physically_broken=detail.physically_broken,
        )

    @staticmethod
    def _out_of_range_view(hop: RouteHop, lines: dict[UUID, PhoneLine]) -> PortView:
        line = lines.get(hop.line_id)
        return PortView(
            address=hop.port_address,
            label=hop.port_address,
            status=PortStatus.OUT_OF_RANGE,
            hop_id=hop.id,
            line_number=line.number if line else None,
            consumer_label=line.consumer_label if line else None,
            wire1=hop.wire1,
            wire2=hop.wire2,
        )

    async def _load_node(self, node_id: UUID) -> Node:
        node = await self.nodes.get_node(node_id)
        if node is None:
            raise NotFoundError(f"Node {node_id} not found", resource="node", resource_id=node_id)
        return node

    @staticmethod
    def _frame_capacity(node: Node) -> FrameCapacity:
        if not isinstance(node.capacity, FrameCapacity):
            raise ValidationError(
                f"Node '{node.name}' is a {node.kind.value}, not a Frame",
                field_errors={"kind": "Only Frame nodes have sets and layouts"},
            )
        return node.capacity
