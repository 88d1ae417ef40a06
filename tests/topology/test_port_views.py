"""Tests for port and layout views."""

import sys

import pytest

sys.path.insert(0, str(__file__).rsplit("/tests", 1)[0])

from src.telroute.common.exceptions import ValidationError
from src.telroute.topology.domain.capacity import FrameCapacity
from src.telroute.topology.domain.entities import LineAssignment, PortStatus
from src.telroute.topology.use_cases import ManageNodesUseCase, PortViewsUseCase


@pytest.fixture
def views(store):
    return PortViewsUseCase(store, store, store)


class TestSetView:
    """Tests for the view of one Frame set."""

    @pytest.mark.asyncio
    async def test_set_view_shows_occupants(self, store, engine, views, frame_node):
        await engine.reassign_port(frame_node.id, "100", LineAssignment("1234", "Lobby"), wire1="Red")
        await engine.set_port_detail(frame_node.id, "111", "Spare", True)

        view = await views.set_view(frame_node.id, 1)

        assert len(view.terminals) == 10
        assert view.used_ports == 1
        port = view.terminals[9].ports[9]
        assert port.address == "100"
        assert port.label == "1-10-10"
        assert port.line_number == "1234"
        assert port.consumer_label == "Lobby"
        assert port.status == PortStatus.CONNECTED
        assert view.terminals[0].ports[0].status == PortStatus.BROKEN
        assert view.terminals[0].ports[1].status == PortStatus.FREE

    @pytest.mark.asyncio
    async def test_line_fault_status(self, store, engine, views, frame_node):
        change = await engine.reassign_port(frame_node.id, "111", LineAssignment("1234"))
        store.set_fault(change.line.id)
        view = await views.set_view(frame_node.id, 1)
        assert view.terminals[0].ports[0].status == PortStatus.LINE_FAULT

    @pytest.mark.asyncio
    async def test_terminal_labels_in_view(self, store, views, frame_node):
        await ManageNodesUseCase(store, store).set_terminal_label(frame_node.id, 1, 3, "Block C")
        view = await views.set_view(frame_node.id, 1)
        assert view.terminals[2].label == "Block C"

    @pytest.mark.asyncio
    async def test_missing_set(self, views, frame_node):
        with pytest.raises(ValidationError):
            await views.set_view(frame_node.id, 3)


class TestLayoutOverview:
    """Tests for layout overview and cell navigation."""

    @pytest.mark.asyncio
    async def test_overview_counts_per_set(self, engine, views, frame_node):
        await engine.reassign_port(frame_node.id, "111", LineAssignment("1"))
        await engine.reassign_port(frame_node.id, "211", LineAssignment("2"))
        await engine.reassign_port(frame_node.id, "212", LineAssignment("3"))

        overview = await views.layout_overview(frame_node.id)

        assert [(c.set_number, c.used_ports, c.total_ports) for c in overview.cells] == [
            (1, 1, 100),
            (2, 2, 100),
        ]
        assert overview.unplaced_hops == 0

    @pytest.mark.asyncio
    async def test_open_cell_follows_mapping(self, store, views, frame_node):
        nodes = ManageNodesUseCase(store, store)
        await nodes.assign_layout_cell(frame_node.id, 0, 0, 2)

        view = await views.open_cell(frame_node.id, 0, 0)
        assert view.set_number == 2

    @pytest.mark.asyncio
    async def test_open_empty_cell(self, store, views, frame_node):
        nodes = ManageNodesUseCase(store, store)
        await nodes.resize_layout(frame_node.id, 2, 2)
        assert await views.open_cell(frame_node.id, 1, 1) is None

    @pytest.mark.asyncio
    async def test_hops_outside_shrunk_capacity(self, store, engine, views, frame_node):
        await engine.reassign_port(frame_node.id, "211", LineAssignment("1"))
        node = store.nodes[frame_node.id]
        node.config = node.config.with_capacity(FrameCapacity(sets=1, terminals_per_set=10))

        overview = await views.layout_overview(frame_node.id)
        assert overview.unplaced_hops == 1

        ports = await views.node_ports(frame_node.id)
        assert ports[-1].address == "211"
        assert ports[-1].status == PortStatus.OUT_OF_RANGE


class TestNodePorts:
    """Tests for flat port lists."""

    @pytest.mark.asyncio
    async def test_socket_ports(self, engine, views, socket_node):
        await engine.reassign_port(socket_node.id, "2", LineAssignment("1234"))
        ports = await views.node_ports(socket_node.id)
        assert [p.address for p in ports] == ["1", "2", "3", "4"]
        assert ports[1].line_number == "1234"
        assert ports[0].status == PortStatus.FREE
