"""Tests for TelemetryState: grid shape, ownership lookups, copies."""

import pytest

from blitwatch.core.state import ClientStats, TelemetryState


def _make_state() -> TelemetryState:
    return TelemetryState(
        tiles_x=2,
        tiles_y=2,
        tiles=["a", "a", "b", None],
        clients={
            "a": ClientStats(name="alpha", average_time=0.2, current_count=2, total_count=5),
            "b": ClientStats(name="beta", average_time=0.4, current_count=1, total_count=1),
        },
    )


class TestGridShape:
    def test_empty_state_is_unowned(self):
        state = TelemetryState.empty(3, 2)
        assert state.tiles == [None] * 6
        assert state.tile_count == 6
        assert state.clients == {}

    def test_rejects_non_positive_dimensions(self):
        with pytest.raises(ValueError):
            TelemetryState(tiles_x=0, tiles_y=4)

    def test_rejects_wrong_tile_count(self):
        with pytest.raises(ValueError):
            TelemetryState(tiles_x=2, tiles_y=2, tiles=["a", None, None])


class TestOwnership:
    def test_owner_of_known_client(self):
        assert _make_state().owner(2) == "b"

    def test_owner_of_unowned_tile(self):
        assert _make_state().owner(3) is None

    def test_stale_owner_reads_as_unowned(self):
        state = _make_state()
        del state.clients["b"]
        assert state.tiles[2] == "b"
        assert state.owner(2) is None

    def test_tiles_owned_by(self):
        assert _make_state().tiles_owned_by("a") == [0, 1]

    def test_consistent_counts(self):
        state = _make_state()
        assert state.ownership_counts() == {"a": 2, "b": 1}
        assert state.is_consistent()

    def test_detects_count_drift(self):
        state = _make_state()
        state.clients["b"].current_count = 3
        assert not state.is_consistent()

    def test_client_with_no_tiles_counts_zero(self):
        state = _make_state()
        state.clients["c"] = ClientStats(name="gamma", average_time=1.0, total_count=4)
        assert state.ownership_counts()["c"] == 0
        assert state.is_consistent()


class TestCopies:
    def test_copy_is_independent(self):
        state = _make_state()
        clone = state.copy()
        clone.tiles[3] = "a"
        clone.clients["a"].current_count = 3
        assert state.tiles[3] is None
        assert state.clients["a"].current_count == 2

    def test_replace_with_keeps_identity(self):
        state = TelemetryState.empty()
        source = _make_state()
        state.replace_with(source)
        assert state == source
        source.clients["a"].name = "changed"
        assert state.clients["a"].name == "alpha"


class TestStaleOwners:
    def test_construction_clears_ids_without_stats(self):
        state = TelemetryState(tiles_x=2, tiles_y=1, tiles=["x", None])
        assert state.tiles == [None, None]

    def test_clear_returns_count(self):
        state = _make_state()
        del state.clients["a"]
        assert state.clear_stale_owners() == 2
        assert state.tiles == [None, None, "b", None]
        assert state.is_consistent()
