"""Node management use case.

Create, edit and delete distribution nodes, and edit the per-node maps
stored in the node's config record (terminal labels, layout grid).
"""

import logging
from typing import Any, Mapping, Optional
from uuid import UUID

from ...common.exceptions import InvalidAddress, NodeInUseError, NotFoundError, ValidationError
from ..domain.address_codec import FrameLocator, SlotLocator, decode_address, is_valid_address
from ..domain.capacity import FrameCapacity, NodeCapacity, NodeConfig, validate_capacity
from ..domain.entities import Node, NodeStats, RouteHop
from ..domain.layout import LayoutGrid
from ..domain.ports import INodeRepository, IRouteRepository

logger = logging.getLogger(__name__)


def _stranded_hop_errors(
    old: NodeCapacity, new: NodeCapacity, hops: list[RouteHop]
) -> dict[str, str]:
    """Field errors for each count that shrinks below a port some hop uses.

    Hops that were already out of range under ``old`` are left alone.
    """
    stranded: dict[str, int] = {}
    for hop in hops:
        if is_valid_address(hop.port_address, new):
            continue
        try:
            locator = decode_address(hop.port_address, old)
        except InvalidAddress:
            continue

        if isinstance(locator, FrameLocator):
            field_name = "sets" if locator.set_number > new.sets else "terminals_per_set"
        elif isinstance(locator, SlotLocator):
            field_name = "slots" if locator.slot > new.slots else "ports_per_slot"
        else:
            field_name = "ports"
        stranded[field_name] = stranded.get(field_name, 0) + 1

    return {
        field_name: f"{count} line hop(s) use ports beyond this value"
        for field_name, count in stranded.items()
    }


class ManageNodesUseCase:
    """Node lifecycle and configuration edits."""

    def __init__(self, node_repo: INodeRepository, route_repo: IRouteRepository):
        self.nodes = node_repo
        self.routes = route_repo

    async def list_nodes(self) -> list[Node]:
        return await self.nodes.list_nodes()

    async def get_node(self, node_id: UUID) -> Node:
        node = await self.nodes.get_node(node_id)
        if node is None:
            raise NotFoundError(f"Node {node_id} not found", resource="node", resource_id=node_id)
        return node

    async def create_node(
        self,
        name: str,
        kind: Any,
        fields: Mapping[str, Any],
        description: Optional[str] = None,
    ) -> Node:
        """Validate and create a node.

        Raises:
            ValidationError: With every invalid field (including a blank name)
        """
        capacity = validate_capacity(kind, fields, name=name, check_name=True)
        config = NodeConfig(capacity=capacity, description=(description or "").strip() or None)
        node = await self.nodes.create_node(name.strip(), config)
        logger.info(f"Created {node.kind.value} node '{node.name}' ({capacity.total_ports} ports)")
        return node

    async def update_node(
        self,
        node_id: UUID,
        name: str,
        kind: Any,
        fields: Mapping[str, Any],
        description: Optional[str] = None,
    ) -> Node:
        """Change a node's name and capacity, keeping its port details and layout.

        Raises:
            NotFoundError: If the node does not exist
            ValidationError: With every invalid field, or every count that
                would leave a hop's port outside the node
        """
        node = await self.get_node(node_id)
        capacity = validate_capacity(kind, fields, name=name, check_name=True)
        if capacity.kind != node.kind:
            # Existing hop addresses would stop decoding under another scheme
            usage = await self.routes.count_node_hops(node.id)
            if usage:
                raise ValidationError(
                    "Cannot change the kind of a node that carries lines",
                    field_errors={"kind": f"Node carries {usage} line hop(s)"},
                )
        else:
            hops = await self.routes.list_node_hops(node.id)
            errors = _stranded_hop_errors(node.capacity, capacity, hops)
            if errors:
                raise ValidationError(
                    "New capacity leaves ports in use outside the node",
                    field_errors=errors,
                )

        config = node.config.with_capacity(capacity)
        config.description = (description or "").strip() or None
        updated = await self.nodes.update_node(node.id, name.strip(), config)
        logger.info(f"Updated node '{updated.name}'")
        return updated

    async def delete_node(self, node_id: UUID) -> None:
        """Delete a node that no hop references.

        Raises:
            NotFoundError: If the node does not exist
            NodeInUseError: If any route hop still uses the node
        """
        node = await self.get_node(node_id)
        usage = await self.routes.count_node_hops(node.id)
        if usage > 0:
            raise NodeInUseError(
                f"Node '{node.name}' is used by {usage} line hop(s) and cannot be deleted",
                usage_count=usage,
            )
        await self.nodes.delete_node(node.id)
        logger.info(f"Deleted node '{node.name}'")

    async def get_stats(self, node_id: UUID) -> NodeStats:
        node = await self.get_node(node_id)
        used = await self.routes.count_node_hops(node.id)
        last_activity = await self.routes.last_node_activity(node.id)
        return NodeStats(
            node_id=node.id,
            total_ports=node.capacity.total_ports,
            used_ports=used,
            last_activity=last_activity,
        )

    async def set_terminal_label(
        self, node_id: UUID, set_number: int, terminal: int, label: Optional[str]
    ) -> NodeConfig:
        """Name a Frame terminal; an empty label removes the name."""
        node = await self.get_node(node_id)
        capacity = self._frame_capacity(node)
        if not 1 <= set_number <= capacity.sets:
            raise ValidationError(
                f"Set {set_number} does not exist on this node",
                field_errors={"set_number": "Set is out of range"},
            )
        if not 1 <= terminal <= capacity.terminals_per_set:
            raise ValidationError(
                f"Terminal {terminal} does not exist on this node",
                field_errors={"terminal": "Terminal is out of range"},
            )
        config = node.config.with_terminal_label(set_number, terminal, label or "")
        await self.nodes.update_config(node.id, config)
        return config

    async def get_layout(self, node_id: UUID) -> LayoutGrid:
        """Saved layout, or the default one-row layout."""
        node = await self.get_node(node_id)
        self._frame_capacity(node)
        return node.config.effective_layout()

    async def assign_layout_cell(
        self, node_id: UUID, row: int, col: int, set_number: Optional[int]
    ) -> LayoutGrid:
        """Point one cell of a Frame's layout at a set (or clear it).

        The same set may appear in several cells; this is reported by
        ``LayoutGrid.duplicate_set_warnings`` but never rejected.
        """
        node = await self.get_node(node_id)
        capacity = self._frame_capacity(node)
        if set_number is not None and set_number > capacity.sets:
            raise ValidationError(
                f"Set {set_number} does not exist on this node",
                field_errors={"set_number": f"Node has {capacity.sets} sets"},
            )
        layout = node.config.effective_layout().assign_cell(row, col, set_number)
        await self._save_layout(node, layout)
        return layout

    async def resize_layout(self, node_id: UUID, rows: int, cols: int) -> LayoutGrid:
        node = await self.get_node(node_id)
        self._frame_capacity(node)
        layout = node.config.effective_layout().resize(rows, cols)
        await self._save_layout(node, layout)
        return layout

    async def reset_layout(self, node_id: UUID) -> LayoutGrid:
        """Drop the saved layout so the default applies again."""
        node = await self.get_node(node_id)
        self._frame_capacity(node)
        config = node.config.with_layout(None)
        await self.nodes.update_config(node.id, config)
        return config.effective_layout()

    async def _save_layout(self, node: Node, layout: LayoutGrid) -> None:
        duplicates = layout.duplicate_set_warnings()
        if duplicates:
            logger.warning(
                f"Layout of node '{node.name}' shows sets {sorted(duplicates)} in more than one cell"
            )
        await self.nodes.update_config(node.id, node.config.with_layout(layout))

    @staticmethod
    def _frame_capacity(node: Node) -> FrameCapacity:
        if not isinstance(node.capacity, FrameCapacity):
            raise ValidationError(
                f"Node '{node.name}' is a {node.kind.value}, not a Frame",
                field_errors={"kind": "Only Frame nodes have sets, terminals and layouts"},
            )
        return node.capacity
