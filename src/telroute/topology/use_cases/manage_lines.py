"""Phone line management use case."""

import logging
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from ...common.exceptions import InvalidAddress, NodeInUseError, NotFoundError
from ..domain.address_codec import decode_address
from ..domain.entities import ChangeLogEntry, PhoneLine, RouteHop
from ..domain.ports import IChangeLog, INodeRepository, IPhoneLineRepository, IRouteRepository

logger = logging.getLogger(__name__)


@dataclass
class PathStep:
    """One hop of a line's path, with the node and port resolved for display."""

    sequence: int
    node_id: UUID
    node_name: str
    port_address: str
    port_label: str
    wire1: Optional[str] = None
    wire2: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "sequence": self.sequence,
            "node_id": str(self.node_id),
            "node_name": self.node_name,
            "port_address": self.port_address,
            "port_label": self.port_label,
            "wire1": self.wire1,
            "wire2": self.wire2,
        }


class ManagePhoneLinesUseCase:
    """Read a line's path and history, and delete unused lines."""

    def __init__(
        self,
        node_repo: INodeRepository,
        line_repo: IPhoneLineRepository,
        route_repo: IRouteRepository,
        change_log: IChangeLog,
    ):
        self.nodes = node_repo
        self.lines = line_repo
        self.routes = route_repo
        self.change_log = change_log

    async def get_line(self, line_id: UUID) -> PhoneLine:
        found = await self.lines.get_lines([line_id])
        line = found.get(line_id)
        if line is None:
            raise NotFoundError(f"Phone line {line_id} not found", resource="phone_line", resource_id=line_id)
        return line

    async def path(self, line_id: UUID) -> list[PathStep]:
        """The line's hops in sequence order."""
        await self.get_line(line_id)
        hops: list[RouteHop] = await self.routes.list_line_hops(line_id)
        steps = []
        for hop in sorted(hops, key=lambda h: h.sequence):
            node = await self.nodes.get_node(hop.node_id)
            label = hop.port_address
            if node is not None:
                try:
                    label = decode_address(hop.port_address, node.capacity).label
                except InvalidAddress as e:
                    logger.warning(f"Hop {hop.id} has an undecodable address: {e}")
            steps.append(
                PathStep(
                    sequence=hop.sequence,
                    node_id=hop.node_id,
                    node_name=node.name if node else "unknown",
                    port_address=hop.port_address,
                    port_label=label,
                    wire1=hop.wire1,
                    wire2=hop.wire2,
                )
            )
        return steps

    async def history(self, line_id: UUID) -> list[ChangeLogEntry]:
        await self.get_line(line_id)
        return await self.change_log.list_for_line(line_id)

    async def delete_line(self, line_id: UUID, actor: Optional[str] = None) -> None:
        """Delete a line that is not routed through any node.

        Raises:
            NotFoundError: If the line does not exist
            NodeInUseError: If the line still has hops
        """
        line = await self.get_line(line_id)
        usage = await self.routes.count_line_hops(line.id)
        if usage > 0:
            raise NodeInUseError(
                f"Line {line.number} is routed through {usage} port(s); clear them first",
                usage_count=usage,
            )

        try:
            await self.change_log.record(line.id, f"Line {line.number} deleted", actor)
        except Exception as e:
            logger.warning(f"Failed to record deletion of line {line.number}: {e}")

        await self.lines.delete_line(line.id)
        logger.info(f"Deleted phone line {line.number}")
