"""Port address codec.

Frame ports are addressed by a compact token ``<set><terminal><port>``:
the set in plain decimal, then one digit each for terminal and port, where
the value 10 is written as ``0``. Examples: (1, 10, 10) -> "100",
(2, 3, 10) -> "230", (2, 10, 3) -> "203".

Because terminal and port always occupy exactly the last two characters,
the set is everything before them and needs no separate width. A set
prefix is validated against the node's ``sets`` bound and may not start
with ``0``, so every token has exactly one decoding, also for sets >= 10.

Other node kinds use a plain decimal port number as the token. Slot
devices number their ports flat across slots:
``number = (slot - 1) * ports_per_slot + port``.
"""

from dataclasses import dataclass
from typing import Iterator, Union

from ...common.exceptions import InvalidAddress
from .capacity import (
    FRAME_DIGIT_MAX,
    FrameCapacity,
    NodeCapacity,
    PortCapacity,
    SlotDeviceCapacity,
)


@dataclass(frozen=True)
class FrameLocator:
    set_number: int
    terminal: int
    port: int

    @property
    def label(self) -> str:
        return format_frame_label(self.set_number, self.terminal, self.port)


@dataclass(frozen=True)
class SlotLocator:
    slot: int
    port: int

    @property
    def label(self) -> str:
        return f"{self.slot}-{self.port}"


@dataclass(frozen=True)
class FlatLocator:
    port: int

    @property
    def label(self) -> str:
        return str(self.port)


PortLocator = Union[FrameLocator, SlotLocator, FlatLocator]


def _digit(value: int) -> str:
    return "0" if value == FRAME_DIGIT_MAX else str(value)


def _undigit(char: str) -> int:
    return FRAME_DIGIT_MAX if char == "0" else int(char)


def _is_decimal(text: str) -> bool:
    return text.isascii() and text.isdigit()


def format_frame_label(set_number: int, terminal: int, port: int) -> str:
    """Human-readable ``set-terminal-port`` label used in the UI."""
    return f"{set_number}-{terminal}-{port}"


def encode_frame_address(set_number: int, terminal: int, port: int) -> str:
    """Encode a Frame locator into its address token.

    Raises:
        InvalidAddress: If set is not positive or terminal/port is outside 1..10
    """
    if set_number < 1:
        raise InvalidAddress(f"Set must be positive, got {set_number}")
    for name, value in (("terminal", terminal), ("port", port)):
        if not 1 <= value <= FRAME_DIGIT_MAX:
            raise InvalidAddress(f"{name.capitalize()} must be between 1 and 10, got {value}")
    return f"{set_number}{_digit(terminal)}{_digit(port)}"


def encode_address(locator: PortLocator, capacity: NodeCapacity) -> str:
    """Encode any locator for a node, checking it against the node's bounds."""
    if isinstance(capacity, FrameCapacity) and isinstance(locator, FrameLocator):
        token = encode_frame_address(locator.set_number, locator.terminal, locator.port)
    elif isinstance(capacity, SlotDeviceCapacity) and isinstance(locator, SlotLocator):
        if not 1 <= locator.port <= capacity.ports_per_slot:
            raise InvalidAddress(
                f"Port {locator.port} exceeds {capacity.ports_per_slot} ports per slot"
            )
        token = str((locator.slot - 1) * capacity.ports_per_slot + locator.port)
    elif isinstance(capacity, PortCapacity) and isinstance(locator, FlatLocator):
        token = str(locator.port)
    else:
        raise InvalidAddress(
            f"{type(locator).__name__} does not apply to a {capacity.kind.value} node"
        )
    # Round-trip through the decoder for the bounds check
    decode_address(token, capacity)
    return token


def decode_address(token: str, capacity: NodeCapacity) -> PortLocator:
    """Decode an address token under a node's capacity.

    Args:
        token: Address token as stored on a route hop
        capacity: Capacity of the node that owns the port

    Returns:
        FrameLocator, SlotLocator or FlatLocator

    Raises:
        InvalidAddress: If the token cannot be parsed or is out of bounds
    """
    if not isinstance(token, str) or not token:
        raise InvalidAddress("Address token is empty", token=token)

    if isinstance(capacity, FrameCapacity):
        return _decode_frame(token, capacity)
    if isinstance(capacity, SlotDeviceCapacity):
        return _decode_slot(token, capacity)
    return FlatLocator(port=_decode_flat(token, capacity.ports))


def _decode_frame(token: str, capacity: FrameCapacity) -> FrameLocator:
    if len(token) < 3 or not _is_decimal(token):
        raise InvalidAddress(f"Frame address {token!r} is not <set><terminal><port>", token=token)

    set_part = token[:-2]
    if set_part.startswith("0"):
        raise InvalidAddress(f"Set in {token!r} has a leading zero", token=token)

    set_number = int(set_part)
    terminal = _undigit(token[-2])
    port = _undigit(token[-1])

    if set_number > capacity.sets:
        raise InvalidAddress(
            f"Set {set_number} exceeds {capacity.sets} configured sets", token=token
        )
    if terminal > capacity.terminals_per_set:
        raise InvalidAddress(
            f"Terminal {terminal} exceeds {capacity.terminals_per_set} terminals per set",
            token=token,
        )
    if port > capacity.ports_per_terminal:
        raise InvalidAddress(
            f"Port {port} exceeds {capacity.ports_per_terminal} ports per terminal",
            token=token,
        )
    return FrameLocator(set_number=set_number, terminal=terminal, port=port)


def _decode_slot(token: str, capacity: SlotDeviceCapacity) -> SlotLocator:
    # Older clients stored "slot/port"; still readable, never written
    if "/" in token:
        slot_part, _, port_part = token.partition("/")
        if not (_is_decimal(slot_part) and _is_decimal(port_part)):
            raise InvalidAddress(f"Slot address {token!r} is not <slot>/<port>", token=token)
        slot, port = int(slot_part), int(port_part)
        if not 1 <= slot <= capacity.slots:
            raise InvalidAddress(f"Slot {slot} exceeds {capacity.slots} slots", token=token)
        if not 1 <= port <= capacity.ports_per_slot:
            raise InvalidAddress(
                f"Port {port} exceeds {capacity.ports_per_slot} ports per slot", token=token
            )
        return SlotLocator(slot=slot, port=port)

    number = _decode_flat(token, capacity.total_ports)
    slot, offset = divmod(number - 1, capacity.ports_per_slot)
    return SlotLocator(slot=slot + 1, port=offset + 1)


def _decode_flat(token: str, max_port: int) -> int:
    if not _is_decimal(token) or token.startswith("0"):
        raise InvalidAddress(f"Port address {token!r} is not a port number", token=token)
    port = int(token)
    if port > max_port:
        raise InvalidAddress(f"Port {port} exceeds {max_port} ports", token=token)
    return port


def canonical_address(token: str, capacity: NodeCapacity) -> str:
    """The one token written for the port ``token`` names.

    Slot devices also read the legacy ``"slot/port"`` form; this maps it
    to the flat number so both spellings key the same port.

    Raises:
        InvalidAddress: If the token is not valid for the node
    """
    return encode_address(decode_address(token, capacity), capacity)


def is_valid_address(token: str, capacity: NodeCapacity) -> bool:
    try:
        decode_address(token, capacity)
    except InvalidAddress:
        return False
    return True


def iter_set_addresses(
    capacity: FrameCapacity, set_number: int
) -> Iterator[tuple[str, FrameLocator]]:
    """Every (token, locator) of one Frame set, terminal-major."""
    if not 1 <= set_number <= capacity.sets:
        raise InvalidAddress(f"Set {set_number} exceeds {capacity.sets} configured sets")
    for terminal in range(1, capacity.terminals_per_set + 1):
        for port in range(1, capacity.ports_per_terminal + 1):
            yield (
                encode_frame_address(set_number, terminal, port),
                FrameLocator(set_number, terminal, port),
            )


def iter_node_addresses(capacity: NodeCapacity) -> Iterator[tuple[str, PortLocator]]:
    """Every (token, locator) a node exposes."""
    if isinstance(capacity, FrameCapacity):
        for set_number in range(1, capacity.sets + 1):
            yield from iter_set_addresses(capacity, set_number)
    elif isinstance(capacity, SlotDeviceCapacity):
        for number in range(1, capacity.total_ports + 1):
            slot, offset = divmod(number - 1, capacity.ports_per_slot)
            yield str(number), SlotLocator(slot=slot + 1, port=offset + 1)
    else:
        for port in range(1, capacity.ports + 1):
            yield str(port), FlatLocator(port=port)
