"""In-memory record store.

Implements the node, phone line, route and change log ports over plain
dicts guarded by one asyncio lock. Suitable for tests and single-process
tooling; nothing is persisted.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4

from ...common.exceptions import DuplicateKeyError, NotFoundError
from ..domain.capacity import NodeConfig
from ..domain.entities import ChangeLogEntry, HopDraft, Node, PhoneLine, RouteHop, Tag
from ..domain.ports import (
    IChangeLog,
    INodeRepository,
    IPhoneLineRepository,
    IRouteRepository,
    ISettingsStore,
)

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryStore(INodeRepository, IPhoneLineRepository, IRouteRepository, IChangeLog):
    """Single object implementing every topology store port."""

    supports_atomic_replace = True

    def __init__(self):
        self._lock = asyncio.Lock()
        self.nodes: dict[UUID, Node] = {}
        self.lines: dict[UUID, PhoneLine] = {}
        self.hops: dict[UUID, RouteHop] = {}
        self.changes: list[ChangeLogEntry] = []

    # ------------------------------------------------------------------
    # Nodes
    # ------------------------------------------------------------------

    async def get_node(self, node_id: UUID) -> Optional[Node]:
        return self.nodes.get(node_id)

    async def list_nodes(self) -> list[Node]:
        return sorted(self.nodes.values(), key=lambda n: n.name)

    async def create_node(self, name: str, config: NodeConfig) -> Node:
        node = Node(id=uuid4(), name=name, config=config, created_at=_now())
        self.nodes[node.id] = node
        return node

    async def update_node(self, node_id: UUID, name: str, config: NodeConfig) -> Node:
        node = self._require_node(node_id)
        node.name = name
        node.config = config
        return node

    async def update_config(self, node_id: UUID, config: NodeConfig) -> None:
        self._require_node(node_id).config = config

    async def delete_node(self, node_id: UUID) -> None:
        self.nodes.pop(node_id, None)

    def _require_node(self, node_id: UUID) -> Node:
        node = self.nodes.get(node_id)
        if node is None:
            raise NotFoundError(f"Node {node_id} not found", resource="node", resource_id=node_id)
        return node

    # ------------------------------------------------------------------
    # Phone lines
    # ------------------------------------------------------------------

    async def find_by_number(self, number: str) -> Optional[PhoneLine]:
        number = number.strip()
        for line in self.lines.values():
            if line.number == number:
                return line
        return None

    async def get_lines(self, line_ids: list[UUID]) -> dict[UUID, PhoneLine]:
        return {i: self.lines[i] for i in line_ids if i in self.lines}

    async def upsert_by_number(self, number: str, consumer_label: Optional[str]) -> PhoneLine:
        async with self._lock:
            line = await self.find_by_number(number)
            if line is None:
                line = PhoneLine(id=uuid4(), number=number.strip(), consumer_label=consumer_label)
                self.lines[line.id] = line
            else:
                line.consumer_label = consumer_label
            return line

    async def delete_line(self, line_id: UUID) -> None:
        self.lines.pop(line_id, None)
        for entry in self.changes:
            if entry.line_id == line_id:
                entry.line_id = None

    def set_fault(self, line_id: UUID, active: bool = True) -> None:
        """Mark a line as having an open fault report."""
        self.lines[line_id].has_active_fault = active

    def tag_line(self, line_id: UUID, name: str, color: Optional[str] = None) -> Tag:
        tag = Tag(id=uuid4(), name=name, color=color)
        self.lines[line_id].tags.append(tag)
        return tag

    # ------------------------------------------------------------------
    # Route hops
    # ------------------------------------------------------------------

    async def find_hop(self, node_id: UUID, port_address: str) -> Optional[RouteHop]:
        for hop in self.hops.values():
            if hop.node_id == node_id and hop.port_address == port_address:
                return hop
        return None

    async def list_node_hops(self, node_id: UUID) -> list[RouteHop]:
        return [h for h in self.hops.values() if h.node_id == node_id]

    async def list_line_hops(self, line_id: UUID) -> list[RouteHop]:
        return sorted(
            (h for h in self.hops.values() if h.line_id == line_id),
            key=lambda h: h.sequence,
        )

    async def retire_hop(self, hop: RouteHop) -> None:
        async with self._lock:
            self._retire(hop)

    async def append_hop(self, draft: HopDraft) -> RouteHop:
        async with self._lock:
            return self._append(draft)

    async def replace_hop(self, old: Optional[RouteHop], draft: HopDraft) -> RouteHop:
        async with self._lock:
            snapshot = {k: RouteHop(**vars(h)) for k, h in self.hops.items()}
            try:
                if old is not None:
                    self._retire(old)
                return self._append(draft)
            except Exception:
                self.hops = snapshot
                raise

    def _retire(self, hop: RouteHop) -> None:
        removed = self.hops.pop(hop.id, None)
        if removed is None:
            logger.debug(f"Hop {hop.id} already retired")
            return
        for other in self.hops.values():
            if other.line_id == removed.line_id and other.sequence > removed.sequence:
                other.sequence -= 1

    def _append(self, draft: HopDraft) -> RouteHop:
        for existing in self.hops.values():
            if existing.node_id == draft.node_id and existing.port_address == draft.port_address:
                raise DuplicateKeyError(
                    f"Port {draft.port_address} is already occupied",
                    key="route_hops_node_port_key",
                )
        sequences = [h.sequence for h in self.hops.values() if h.line_id == draft.line_id]
        hop = RouteHop(
            id=uuid4(),
            line_id=draft.line_id,
            node_id=draft.node_id,
            sequence=max(sequences, default=0) + 1,
            port_address=draft.port_address,
            wire1=draft.wire1,
            wire2=draft.wire2,
            updated_at=_now(),
        )
        self.hops[hop.id] = hop
        return hop

    async def count_node_hops(self, node_id: UUID) -> int:
        return sum(1 for h in self.hops.values() if h.node_id == node_id)

    async def count_line_hops(self, line_id: UUID) -> int:
        return sum(1 for h in self.hops.values() if h.line_id == line_id)

    async def last_node_activity(self, node_id: UUID) -> Optional[datetime]:
        stamps = [h.updated_at for h in self.hops.values() if h.node_id == node_id and h.updated_at]
        return max(stamps, default=None)

    # ------------------------------------------------------------------
    # Change log
    # ------------------------------------------------------------------

    async def record(self, line_id: Optional[UUID], description: str, actor: Optional[str]) -> None:
        self.changes.append(
            ChangeLogEntry(line_id=line_id, description=description, actor=actor, created_at=_now())
        )

    async def list_for_line(self, line_id: UUID) -> list[ChangeLogEntry]:
        return [e for e in reversed(self.changes) if e.line_id == line_id]


class InMemorySettingsStore(ISettingsStore):
    """Settings held in a dict."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self.values: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self.values.get(key)

    async def set(self, key: str, value: str) -> None:
        self.values[key] = value
