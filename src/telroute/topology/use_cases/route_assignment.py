"""Route assignment use case.

Moves phone lines on and off node ports. A port carries at most one hop;
putting a line on an occupied port retires the old hop first and then
appends the new one at the end of the target line's path. Both steps
form one unit of work: stores that support it do them in a single
transaction, otherwise they run as two awaited calls and a failure in
between is reported as PartialReassignmentFailure, never swallowed.

Concurrent edits of the same port inside this process fail fast with
PortConflictError instead of interleaving.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional
from uuid import UUID

from ...common.exceptions import (
    DuplicateKeyError,
    NotFoundError,
    PartialReassignmentFailure,
    PortConflictError,
    ValidationError,
)
from ..domain.address_codec import canonical_address, decode_address
from ..domain.capacity import PortDetail
from ..domain.entities import (
    AppliedChange,
    ChangeKind,
    HopDraft,
    LineAssignment,
    Node,
    PhoneLine,
    RouteHop,
)
from ..domain.ports import (
    IChangeLog,
    INodeRepository,
    IPhoneLineRepository,
    IRouteRepository,
)

logger = logging.getLogger(__name__)

# Sentinel for "caller did not pass an expected hop id"
UNSET = object()


class PortGuard:
    """Single-flight guard keyed by ``(node_id, port_address)``.

    Execution is cooperative, so a plain set is enough: membership is
    checked and updated without an await in between.
    """

    def __init__(self):
        self._held: set[tuple[UUID, str]] = set()

    def is_held(self, node_id: UUID, port_address: str) -> bool:
        return (node_id, port_address) in self._held

    @asynccontextmanager
    async def hold(self, node_id: UUID, port_address: str) -> AsyncIterator[None]:
        key = (node_id, port_address)
        if key in self._held:
            raise PortConflictError(
                "Port is already being modified by another operation",
                node_id=node_id,
                port_address=port_address,
            )
        self._held.add(key)
        try:
            yield
        finally:
            self._held.discard(key)


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _wires(w1: Optional[str], w2: Optional[str]) -> str:
    return f"{w1 or '-'}/{w2 or '-'}"


class RouteAssignmentEngine:
    """Assign, reassign and clear lines on node ports.

    This use case:
    1. Validates the port address against the node's capacity
    2. Serializes edits per port (fail fast on a concurrent edit)
    3. Resolves or creates the target line by number
    4. Swaps the port's hop as one unit of work
    5. Records an audit entry for every affected line
    """

    def __init__(
        self,
        node_repo: INodeRepository,
        line_repo: IPhoneLineRepository,
        route_repo: IRouteRepository,
        change_log: IChangeLog,
        guard: Optional[PortGuard] = None,
    ):
        """Initialize the use case.

        Args:
            node_repo: Repository for nodes
            line_repo: Repository for phone lines
            route_repo: Repository for route hops
            change_log: Audit trail writer
            guard: Per-port single-flight guard, shared across requests
        """
        self.nodes = node_repo
        self.lines = line_repo
        self.routes = route_repo
        self.change_log = change_log
        self.guard = guard or PortGuard()

    async def reassign_port(
        self,
        node_id: UUID,
        port_address: str,
        assignment: Optional[LineAssignment],
        wire1: Optional[str] = None,
        wire2: Optional[str] = None,
        actor: Optional[str] = None,
        expected_hop_id=UNSET,
    ) -> AppliedChange:
        """Put a line on a port, or clear the port when ``assignment`` is None.

        Args:
            node_id: Node owning the port
            port_address: Address token of the port
            assignment: Target line number and consumer label, or None
            wire1: First wire color name
            wire2: Second wire color name
            actor: Operator performing the change (for the audit trail)
            expected_hop_id: Hop id (or None for an empty port) the caller
                last saw on this port; the change is rejected if it differs

        Returns:
            AppliedChange describing the outcome

        Raises:
            NotFoundError: If the node does not exist
            InvalidAddress: If the address is not valid for the node
            ValidationError: If the assignment has no phone number
            PortConflictError: On a concurrent edit, a stale expected hop,
                or when another line took the port meanwhile
            PartialReassignmentFailure: If the old hop was retired but the
                new hop could not be written
        """
        node = await self._load_node(node_id)
        port_address = canonical_address(port_address, node.capacity)
        wire1, wire2 = _clean(wire1), _clean(wire2)

        if assignment is not None and not assignment.phone_number:
            raise ValidationError(
                "Phone number is required",
                field_errors={"phone_number": "Phone number is required"},
            )

        async with self.guard.hold(node.id, port_address):
            current = await self.routes.find_hop(node.id, port_address)

            if expected_hop_id is not UNSET:
                current_id = current.id if current else None
                if current_id != expected_hop_id:
                    raise PortConflictError(
                        "Port changed since it was loaded; reload and retry",
                        node_id=node.id,
                        port_address=port_address,
                    )

            current_line: Optional[PhoneLine] = None
            if current is not None:
                found = await self.lines.get_lines([current.line_id])
                current_line = found.get(current.line_id)

            if assignment is None:
                return await self._clear(node, port_address, current, current_line, actor)

            if current is not None and current_line is not None and self._is_unchanged(
                current, current_line, assignment, wire1, wire2
            ):
                logger.info(f"Port {port_address} on node {node.name}: no change")
                return AppliedChange(
                    kind=ChangeKind.UNCHANGED,
                    node_id=node.id,
                    port_address=port_address,
                    hop=current,
                    line=current_line,
                )

            line = await self.lines.upsert_by_number(
                assignment.phone_number, assignment.consumer_label
            )
            draft = HopDraft(
                line_id=line.id,
                node_id=node.id,
                port_address=port_address,
                wire1=wire1,
                wire2=wire2,
            )
            new_hop = await self._swap(node, port_address, current, current_line, draft, actor)

        await self._audit_assignment(node, port_address, current, current_line, new_hop, line, actor)

        kind = ChangeKind.ASSIGNED if current is None else ChangeKind.REASSIGNED
        logger.info(
            f"Port {port_address} on node {node.name}: {kind.value} to line {line.number} "
            f"(sequence {new_hop.sequence})"
        )
        return AppliedChange(
            kind=kind,
            node_id=node.id,
            port_address=port_address,
            hop=new_hop,
            retired_hop=current,
            line=line,
            previous_line_number=current_line.number if current_line else None,
        )

    async def set_port_detail(
        self,
        node_id: UUID,
        port_address: str,
        label: Optional[str],
        physically_broken: bool,
    ) -> PortDetail:
        """Update a port's label and broken flag.

        Saved on its own, never in the same transaction as a hop change.
        A detail with empty label that is not broken is pruned.

        Raises:
            NotFoundError: If the node does not exist
            InvalidAddress: If the address is not valid for the node
        """
        node = await self._load_node(node_id)
        port_address = canonical_address(port_address, node.capacity)

        detail = PortDetail(label=(label or "").strip(), physically_broken=bool(physically_broken))
        await self.nodes.update_config(node.id, node.config.with_port_detail(port_address, detail))

        logger.info(
            f"Port detail for {port_address} on node {node.name} "
            f"{'cleared' if detail.is_default else 'saved'}"
        )
        return detail

    async def _load_node(self, node_id: UUID) -> Node:
        node = await self.nodes.get_node(node_id)
        if node is None:
            raise NotFoundError(f"Node {node_id} not found", resource="node", resource_id=node_id)
        return node

    @staticmethod
    def _is_unchanged(
        hop: RouteHop,
        line: PhoneLine,
        assignment: LineAssignment,
        wire1: Optional[str],
        wire2: Optional[str],
    ) -> bool:
        return (
            line.number == assignment.phone_number
            and _clean(line.consumer_label) == assignment.consumer_label
            and _clean(hop.wire1) == wire1
            and _clean(hop.wire2) == wire2
        )

    async def _clear(
        self,
        node: Node,
        port_address: str,
        current: Optional[RouteHop],
        current_line: Optional[PhoneLine],
        actor: Optional[str],
    ) -> AppliedChange:
        if current is None:
            return AppliedChange(kind=ChangeKind.UNCHANGED, node_id=node.id, port_address=port_address)

        await self.routes.retire_hop(current)
        await self._audit(
            current.line_id,
            f"Disconnected from port {self._port_label(node, port_address)} of node '{node.name}'",
            actor,
        )
        logger.info(f"Port {port_address} on node {node.name}: cleared")
        return AppliedChange(
            kind=ChangeKind.CLEARED,
            node_id=node.id,
            port_address=port_address,
            retired_hop=current,
            previous_line_number=current_line.number if current_line else None,
        )

    async def _swap(
        self,
        node: Node,
        port_address: str,
        current: Optional[RouteHop],
        current_line: Optional[PhoneLine],
        draft: HopDraft,
        actor: Optional[str],
    ) -> RouteHop:
        """Retire ``current`` and append ``draft`` as one unit of work."""
        if self.routes.supports_atomic_replace:
            try:
                return await self.routes.replace_hop(current, draft)
            except DuplicateKeyError as e:
                raise PortConflictError(
                    "Port is held by another line",
                    node_id=node.id,
                    port_address=port_address,
                    cause=e,
                )

        if current is not None:
            await self.routes.retire_hop(current)

        try:
            return await self.routes.append_hop(draft)
        except Exception as e:
            if current is None:
                if isinstance(e, DuplicateKeyError):
                    raise PortConflictError(
                        "Port is held by another line",
                        node_id=node.id,
                        port_address=port_address,
                        cause=e,
                    )
                raise

            retired_number = current_line.number if current_line else None
            logger.error(
                f"Port {port_address} on node {node.name} vacated but new hop failed: {e}"
            )
            await self._audit(
                current.line_id,
                f"Disconnected from port {self._port_label(node, port_address)} "
                f"of node '{node.name}'; the replacement assignment failed",
                actor,
            )
            raise PartialReassignmentFailure(
                node_id=node.id,
                port_address=port_address,
                retired_line_number=retired_number,
                cause=e,
            )

    async def _audit_assignment(
        self,
        node: Node,
        port_address: str,
        current: Optional[RouteHop],
        current_line: Optional[PhoneLine],
        new_hop: RouteHop,
        line: PhoneLine,
        actor: Optional[str],
    ) -> None:
        where = f"port {self._port_label(node, port_address)} of node '{node.name}'"
        new_wires = _wires(new_hop.wire1, new_hop.wire2)

        if current is None:
            await self._audit(line.id, f"Connected to {where} (wires {new_wires})", actor)
            return

        old_wires = _wires(current.wire1, current.wire2)
        if current.line_id == line.id:
            changes = []
            old_consumer = current_line.consumer_label if current_line else None
            if old_consumer != line.consumer_label:
                changes.append(f"consumer '{old_consumer or ''}' -> '{line.consumer_label or ''}'")
            if old_wires != new_wires:
                changes.append(f"wires {old_wires} -> {new_wires}")
            await self._audit(
                line.id,
                f"Updated {where}: {', '.join(changes) or 'no field changes'}",
                actor,
            )
            return

        old_number = current_line.number if current_line else "unknown"
        await self._audit(
            current.line_id,
            f"Disconnected from {where}; port reassigned to line {line.number}",
            actor,
        )
        await self._audit(
            line.id,
            f"Connected to {where} (wires {new_wires}); previously line {old_number}",
            actor,
        )

    async def _audit(self, line_id: Optional[UUID], description: str, actor: Optional[str]) -> None:
        """Write an audit entry. Failures are logged and never propagate."""
        try:
            await self.change_log.record(line_id, description, actor)
        except Exception as e:
            logger.warning(f"Failed to record change log entry for line {line_id}: {e}")

    @staticmethod
    def _port_label(node: Node, port_address: str) -> str:
        return decode_address(port_address, node.capacity).label
