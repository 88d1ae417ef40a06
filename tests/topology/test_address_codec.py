"""Tests for the port address codec."""

import sys

import pytest

sys.path.insert(0, str(__file__).rsplit("/tests", 1)[0])

from src.telroute.common.exceptions import InvalidAddress
from src.telroute.topology.domain.address_codec import (
    FlatLocator,
    FrameLocator,
    SlotLocator,
    decode_address,
    encode_address,
    encode_frame_address,
    is_valid_address,
    iter_node_addresses,
    iter_set_addresses,
)
from src.telroute.topology.domain.capacity import (
    FrameCapacity,
    NodeKind,
    PortCapacity,
    SlotDeviceCapacity,
)


@pytest.fixture
def frame():
    return FrameCapacity(sets=12, terminals_per_set=10)


class TestFrameEncoding:
    """Tests for the <set><terminal><port> token."""

    def test_tenth_terminal_and_port_written_as_zero(self):
        assert encode_frame_address(1, 10, 10) == "100"

    def test_tenth_port_only(self):
        assert encode_frame_address(2, 3, 10) == "230"

    def test_tenth_terminal_only(self):
        assert encode_frame_address(2, 10, 3) == "203"

    def test_multi_digit_set(self):
        assert encode_frame_address(12, 1, 1) == "1211"

    @pytest.mark.parametrize("set_number,terminal,port", [(0, 1, 1), (1, 0, 1), (1, 1, 11)])
    def test_out_of_bounds_rejected(self, set_number, terminal, port):
        with pytest.raises(InvalidAddress):
            encode_frame_address(set_number, terminal, port)


class TestFrameDecoding:
    """Tests for decoding Frame tokens under a capacity."""

    def test_decode_examples(self, frame):
        assert decode_address("100", frame) == FrameLocator(1, 10, 10)
        assert decode_address("230", frame) == FrameLocator(2, 3, 10)
        assert decode_address("203", frame) == FrameLocator(2, 10, 3)

    def test_decode_multi_digit_set(self, frame):
        assert decode_address("1211", frame) == FrameLocator(12, 1, 1)

    def test_every_address_round_trips(self, frame):
        tokens = set()
        for token, locator in iter_node_addresses(frame):
            assert decode_address(token, frame) == locator
            tokens.add(token)
        # Encoding is injective across the whole node
        assert len(tokens) == frame.total_ports

    def test_label(self, frame):
        assert decode_address("203", frame).label == "2-10-3"

    def test_set_beyond_capacity(self, frame):
        with pytest.raises(InvalidAddress) as exc:
            decode_address("1311", frame)
        assert exc.value.token == "1311"

    def test_terminal_beyond_capacity(self):
        small = FrameCapacity(sets=2, terminals_per_set=5)
        with pytest.raises(InvalidAddress):
            decode_address("161", small)

    @pytest.mark.parametrize("token", ["", "11", "0111", "1a1", "١١١"])
    def test_malformed(self, frame, token):
        with pytest.raises(InvalidAddress):
            decode_address(token, frame)

    def test_is_valid_address(self, frame):
        assert is_valid_address("111", frame)
        assert not is_valid_address("99", frame)

    def test_iter_set_addresses_is_terminal_major(self, frame):
        tokens = [t for t, _ in iter_set_addresses(frame, 3)]
        assert tokens[:3] == ["311", "312", "313"]
        assert tokens[9] == "310"
        assert tokens[-1] == "300"
        assert len(tokens) == 100


class TestOtherKinds:
    """Tests for slot devices and flat nodes."""

    def test_slot_device_numbering(self):
        capacity = SlotDeviceCapacity(slots=3, ports_per_slot=8)
        assert decode_address("1", capacity) == SlotLocator(1, 1)
        assert decode_address("9", capacity) == SlotLocator(2, 1)
        assert decode_address("24", capacity) == SlotLocator(3, 8)
        assert encode_address(SlotLocator(2, 3), capacity) == "11"

    def test_slot_device_legacy_token(self):
        capacity = SlotDeviceCapacity(slots=3, ports_per_slot=8)
        assert decode_address("2/5", capacity) == SlotLocator(2, 5)

    def test_slot_device_out_of_range(self):
        capacity = SlotDeviceCapacity(slots=3, ports_per_slot=8)
        with pytest.raises(InvalidAddress):
            decode_address("25", capacity)

    def test_flat_ports(self):
        capacity = PortCapacity(kind=NodeKind.SOCKET, ports=4)
        assert decode_address("4", capacity) == FlatLocator(4)
        with pytest.raises(InvalidAddress):
            decode_address("5", capacity)
        with pytest.raises(InvalidAddress):
            decode_address("04", capacity)

    def test_locator_kind_mismatch(self):
        capacity = PortCapacity(kind=NodeKind.CONVERTER, ports=4)
        with pytest.raises(InvalidAddress):
            encode_address(FrameLocator(1, 1, 1), capacity)
