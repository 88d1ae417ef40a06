"""Shared fixtures for topology tests."""

import sys

import pytest
import pytest_asyncio

sys.path.insert(0, str(__file__).rsplit("/tests", 1)[0])

from src.telroute.topology.adapters import InMemoryStore
from src.telroute.topology.domain.capacity import (
    FrameCapacity,
    NodeConfig,
    NodeKind,
    PortCapacity,
    SlotDeviceCapacity,
)
from src.telroute.topology.use_cases import RouteAssignmentEngine


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def engine(store):
    return RouteAssignmentEngine(store, store, store, store)


@pytest_asyncio.fixture
async def frame_node(store):
    """Frame with 2 sets of 10 terminals."""
    return await store.create_node(
        "MDF-1", NodeConfig(capacity=FrameCapacity(sets=2, terminals_per_set=10))
    )


@pytest_asyncio.fixture
async def socket_node(store):
    return await store.create_node(
        "Socket-7", NodeConfig(capacity=PortCapacity(kind=NodeKind.SOCKET, ports=4))
    )


@pytest_asyncio.fixture
async def slot_node(store):
    """Slot device with 2 slots of 8 ports."""
    return await store.create_node(
        "DSLAM-2", NodeConfig(capacity=SlotDeviceCapacity(slots=2, ports_per_slot=8))
    )
