"""Port interfaces for the routing topology.

These are abstract interfaces (ports) that define how the domain
interacts with the record store. Concrete implementations (adapters)
are provided in the adapters module.

This follows the Hexagonal Architecture pattern.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional
from uuid import UUID

from .capacity import NodeConfig
from .entities import ChangeLogEntry, HopDraft, Node, PhoneLine, RouteHop


class INodeRepository(ABC):
    """Port for node data access."""

    @abstractmethod
    async def get_node(self, node_id: UUID) -> Optional[Node]:
        """Find a node by id.

        Args:
            node_id: Node UUID

        Returns:
            Node if found, None otherwise
        """
        ...

    @abstractmethod
    async def list_nodes(self) -> list[Node]:
        """List all nodes ordered by name."""
        ...

    @abstractmethod
    async def create_node(self, name: str, config: NodeConfig) -> Node:
        """Insert a new node.

        Args:
            name: Display name
            config: Validated node configuration

        Returns:
            The created Node with its id assigned
        """
        ...

    @abstractmethod
    async def update_node(self, node_id: UUID, name: str, config: NodeConfig) -> Node:
        """Replace a node's name and configuration.

        Raises:
            NotFoundError: If the node does not exist
        """
        ...

    @abstractmethod
    async def update_config(self, node_id: UUID, config: NodeConfig) -> None:
        """Replace only a node's configuration record.

        Used for port details, terminal labels and layout edits, which are
        saved independently of hop changes.

        Raises:
            NotFoundError: If the node does not exist
        """
        ...

    @abstractmethod
    async def delete_node(self, node_id: UUID) -> None:
        """Delete a node. Callers check usage first."""
        ...


class IPhoneLineRepository(ABC):
    """Port for phone line data access."""

    @abstractmethod
    async def find_by_number(self, number: str) -> Optional[PhoneLine]:
        """Find a line by its number.

        Args:
            number: Phone number (exact match after trimming)

        Returns:
            PhoneLine if found, None otherwise
        """
        ...

    @abstractmethod
    async def get_lines(self, line_ids: list[UUID]) -> dict[UUID, PhoneLine]:
        """Fetch several lines at once, keyed by id. Missing ids are omitted."""
        ...

    @abstractmethod
    async def upsert_by_number(self, number: str, consumer_label: Optional[str]) -> PhoneLine:
        """Create the line if the number is new, else update its consumer label.

        Returns:
            The stored PhoneLine
        """
        ...

    @abstractmethod
    async def delete_line(self, line_id: UUID) -> None:
        """Delete a line. Callers check hop usage first."""
        ...


class IRouteRepository(ABC):
    """Port for route hop data access.

    Implementations keep two invariants: at most one hop per
    ``(node_id, port_address)`` and contiguous ``1..N`` sequences per line.
    """

    #: True when ``replace_hop`` runs as a single store round trip
    supports_atomic_replace: bool = False

    @abstractmethod
    async def find_hop(self, node_id: UUID, port_address: str) -> Optional[RouteHop]:
        """Find the hop occupying a port, if any."""
        ...

    @abstractmethod
    async def list_node_hops(self, node_id: UUID) -> list[RouteHop]:
        """All hops on a node."""
        ...

    @abstractmethod
    async def list_line_hops(self, line_id: UUID) -> list[RouteHop]:
        """All hops of a line ordered by sequence."""
        ...

    @abstractmethod
    async def retire_hop(self, hop: RouteHop) -> None:
        """Delete a hop and close the gap it leaves in its line's sequence.

        Deleting a hop that no longer exists is not an error.
        """
        ...

    @abstractmethod
    async def append_hop(self, draft: HopDraft) -> RouteHop:
        """Insert a hop at ``max(sequence) + 1`` of its line (1 for a new path).

        Raises:
            DuplicateKeyError: If the port is already occupied
        """
        ...

    async def replace_hop(self, old: Optional[RouteHop], draft: HopDraft) -> RouteHop:
        """Retire ``old`` (if given) and append ``draft`` as one unit of work.

        Only called when ``supports_atomic_replace`` is True.
        """
        raise NotImplementedError("Atomic replace is not supported by this store")

    @abstractmethod
    async def count_node_hops(self, node_id: UUID) -> int:
        """Number of hops on a node (its usage count)."""
        ...

    @abstractmethod
    async def count_line_hops(self, line_id: UUID) -> int:
        """Number of hops of a line."""
        ...

    @abstractmethod
    async def last_node_activity(self, node_id: UUID) -> Optional[datetime]:
        """Most recent hop write on a node, or None if it has no hops."""
        ...


class IChangeLog(ABC):
    """Port for the per-line audit trail."""

    @abstractmethod
    async def record(self, line_id: Optional[UUID], description: str, actor: Optional[str]) -> None:
        """Append an audit entry.

        Args:
            line_id: Line the change concerns
            description: Human-readable change description
            actor: Operator who made the change
        """
        ...

    @abstractmethod
    async def list_for_line(self, line_id: UUID) -> list[ChangeLogEntry]:
        """Entries for a line, newest first."""
        ...


class ISettingsStore(ABC):
    """Port for the generic string key-value settings store."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Get a setting value, or None if unset."""
        ...

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Create or overwrite a setting value."""
        ...
