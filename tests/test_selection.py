"""Tests for client ranking and the highlight resolver."""

import pytest

from blitwatch.core.selection import SortKey, rank_clients, resolve, tile_at
from blitwatch.core.state import ClientStats, TelemetryState


def _make_state() -> TelemetryState:
    # 3x2 grid:  a a b
    #            c - a
    return TelemetryState(
        tiles_x=3,
        tiles_y=2,
        tiles=["a", "a", "b", "c", None, "a"],
        clients={
            "a": ClientStats(name="zeta", average_time=0.30, current_count=3, total_count=10),
            "b": ClientStats(name="alpha", average_time=0.10, current_count=1, total_count=40),
            "c": ClientStats(name="mid", average_time=0.20, current_count=1, total_count=5),
        },
    )


class TestRankClients:
    def test_name_ascending(self):
        assert rank_clients(_make_state(), SortKey.NAME) == ["b", "c", "a"]

    def test_average_time_fastest_first(self):
        assert rank_clients(_make_state(), SortKey.AVERAGE_TIME) == ["b", "c", "a"]

    def test_current_count_descending(self):
        assert rank_clients(_make_state(), SortKey.CURRENT_COUNT)[0] == "a"

    def test_total_count_descending(self):
        assert rank_clients(_make_state(), "total_count") == ["b", "a", "c"]

    def test_ties_break_by_client_id(self):
        ranked = rank_clients(_make_state(), SortKey.CURRENT_COUNT)
        assert ranked == ["a", "b", "c"]

    def test_unknown_key_rejected(self):
        with pytest.raises(ValueError):
            rank_clients(_make_state(), "fastest")

    def test_empty_state(self):
        assert rank_clients(TelemetryState.empty(), SortKey.NAME) == []


class TestTileAt:
    def test_maps_pointer_to_index(self):
        state = _make_state()
        assert tile_at(state, 0.0, 0.0) == 0
        assert tile_at(state, 0.9, 0.2) == 2
        assert tile_at(state, 0.5, 0.75) == 4

    def test_far_edge_maps_to_last_tile(self):
        assert tile_at(_make_state(), 1.0, 1.0) == 5


class TestResolve:
    def test_rank_wins_over_pointer(self):
        state = _make_state()
        ranked = rank_clients(state, SortKey.NAME)
        assert resolve(state, (0.0, 0.0), 0, ranked) == "b"

    def test_pointer_when_no_rank(self):
        state = _make_state()
        assert resolve(state, (0.0, 0.9), None, ["a", "b", "c"]) == "c"

    def test_out_of_bounds_rank_falls_back_to_pointer(self):
        state = _make_state()
        assert resolve(state, (0.9, 0.0), 7, ["a", "b", "c"]) == "b"

    def test_negative_rank_ignored(self):
        state = _make_state()
        assert resolve(state, None, -1, ["a", "b", "c"]) is None

    def test_unowned_tile(self):
        assert resolve(_make_state(), (0.5, 0.75), None, []) is None

    def test_stale_owner_resolves_to_none(self):
        state = _make_state()
        del state.clients["c"]
        assert resolve(state, (0.0, 0.9), None, []) is None

    def test_nothing_hovered(self):
        assert resolve(_make_state(), None, None, ["a"]) is None
