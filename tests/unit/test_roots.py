"""
Unit tests for the root history window.
"""

import pytest

from shielded_pool.core.state.roots import RootHistory
from shielded_pool.core.storage import StateStore
from shielded_pool.crypto import blake2_256


def root(i: int) -> bytes:
    return blake2_256(b"root-%d" % i)


@pytest.fixture
def history():
    return RootHistory(StateStore.in_memory(), capacity=3)


class TestRootHistory:
    """Tests for the bounded ring buffer."""

    def test_empty(self, history):
        assert len(history) == 0
        assert history.latest() is None
        assert not history.is_valid(root(0))

    def test_record_and_lookup(self, history):
        assert history.record(root(0))
        assert history.is_valid(root(0))
        assert history.latest() == root(0)

    def test_eviction(self, history):
        """Oldest root is evicted once W is exceeded."""
        for i in range(4):
            history.record(root(i))

        assert not history.is_valid(root(0))
        for i in range(1, 4):
            assert history.is_valid(root(i))
        assert len(history) == 3

    def test_order_oldest_first(self, history):
        for i in range(5):
            history.record(root(i))
        assert history.roots() == [root(2), root(3), root(4)]
        assert history.latest() == root(4)

    def test_latest_duplicate_skipped(self, history):
        """Re-recording the current root does not consume a slot."""
        history.record(root(0))
        history.record(root(1))
        assert not history.record(root(1))
        history.record(root(2))
        assert history.roots() == [root(0), root(1), root(2)]

    def test_reappearing_root_survives_old_slot_eviction(self, history):
        history.record(root(0))
        history.record(root(1))
        history.record(root(0))
        history.record(root(2))  # evicts the first root(0) slot
        assert history.is_valid(root(0))
        assert history.roots() == [root(1), root(0), root(2)]

    def test_capacity_one(self):
        history = RootHistory(StateStore.in_memory(), capacity=1)
        history.record(root(0))
        history.record(root(1))
        assert not history.is_valid(root(0))
        assert history.is_valid(root(1))

    def test_rejects_zero_capacity(self):
        with pytest.raises(ValueError):
            RootHistory(StateStore.in_memory(), capacity=0)

    def test_persists_in_store(self):
        store = StateStore.in_memory()
        RootHistory(store, capacity=3).record(root(7))
        assert RootHistory(store, capacity=3).is_valid(root(7))
