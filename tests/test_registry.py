import sys
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from services.registry import SubscriberRegistry


class DummySubscriber:
    def __init__(self, key):
        self.key = key

    def send(self, event, payload):
        pass


def test_add_returns_connection_key_as_handle():
    registry = SubscriberRegistry()
    viewer = DummySubscriber("sid-1")

    assert registry.add(viewer) == "sid-1"
    assert "sid-1" in registry
    assert registry.get("sid-1") is viewer
    assert registry.size() == 1


def test_remove_is_idempotent():
    registry = SubscriberRegistry()
    viewer = DummySubscriber("sid-1")
    registry.add(viewer)

    assert registry.remove("sid-1") is viewer
    assert registry.remove("sid-1") is None
    assert registry.remove("unknown") is None
    assert "sid-1" not in registry
    assert len(registry) == 0


def test_enumerate_is_a_snapshot_in_registration_order():
    registry = SubscriberRegistry()
    first, second, third = (DummySubscriber(f"sid-{n}") for n in range(1, 4))
    registry.add(first)
    registry.add(second)

    snapshot = registry.enumerate()
    registry.add(third)
    registry.remove("sid-1")

    assert snapshot == [first, second]
    assert registry.enumerate() == [second, third]


def test_same_connection_keeps_single_entry():
    registry = SubscriberRegistry()
    registry.add(DummySubscriber("sid-1"))
    replacement = DummySubscriber("sid-1")
    registry.add(replacement)

    assert registry.size() == 1
    assert registry.enumerate() == [replacement]
