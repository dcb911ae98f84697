"""
Tests for the in-memory session identity store.
"""

from src.conversation.domain import SessionIdentity
from src.conversation.infrastructure import InMemorySessionStore


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def identity(name: str = "Kanak") -> SessionIdentity:
    return SessionIdentity(name, f"{name.lower()}@mps.com", "MPS")


def test_put_then_get():
    store = InMemorySessionStore()
    store.put("s-1", identity())

    assert store.get("s-1") == identity()
    assert store.get("s-2") is None


def test_entries_expire_after_idle_ttl():
    clock = FakeClock()
    store = InMemorySessionStore(ttl_seconds=60, clock=clock)
    store.put("s-1", identity())

    clock.now = 61

    assert store.get("s-1") is None
    assert len(store) == 0


def test_reads_refresh_idle_time():
    clock = FakeClock()
    store = InMemorySessionStore(ttl_seconds=60, clock=clock)
    store.put("s-1", identity())

    clock.now = 50
    assert store.get("s-1") is not None

    clock.now = 100
    assert store.get("s-1") is not None


def test_least_recently_used_is_evicted():
    store = InMemorySessionStore(max_entries=2)
    store.put("s-1", identity("Ana"))
    store.put("s-2", identity("Ben"))
    store.get("s-1")

    store.put("s-3", identity("Cy"))

    assert store.get("s-2") is None
    assert store.get("s-1").name == "Ana"
    assert store.get("s-3").name == "Cy"


def test_put_replaces_identity():
    store = InMemorySessionStore()
    store.put("s-1", identity("Ana"))
    store.put("s-1", identity("Ben"))

    assert store.get("s-1").name == "Ben"
    assert len(store) == 1
