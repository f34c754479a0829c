import pytest

from focus_shield.bridge import DndBridge
from focus_shield.policy import MemoryNotificationPolicy


@pytest.fixture
def policy() -> MemoryNotificationPolicy:
    return MemoryNotificationPolicy(granted=True)


@pytest.fixture
def denied_policy() -> MemoryNotificationPolicy:
    return MemoryNotificationPolicy(granted=False)


@pytest.fixture
def bridge(policy: MemoryNotificationPolicy) -> DndBridge:
    return DndBridge(policy)


@pytest.fixture
def denied_bridge(denied_policy: MemoryNotificationPolicy) -> DndBridge:
    return DndBridge(denied_policy)
