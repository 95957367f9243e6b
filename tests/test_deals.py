"""
Tests for the deal board store: ordering index, cross-stage moves,
in-stage reorders and best-effort stage write-back.
"""
import random
from unittest.mock import MagicMock

import pytest

from nexus.deals import DealBoardStore, MoveRejected, build_state
from nexus.remote import WriteDispatcher
from nexus.sample_data import sample_clients, sample_deals
from nexus.schema import Deal, DealStage


def _deal(deal_id, stage):
    return Deal(id=deal_id, title=deal_id.upper(), stage=stage)


def _assert_index_consistent(store):
    """Every deal sits in exactly one column, once, matching its own stage."""
    state = store.state
    placed = [i for ids in state.deal_order.values() for i in ids]
    assert sorted(placed) == sorted(d.id for d in state.deals)
    for stage, ids in state.deal_order.items():
        for deal_id in ids:
            assert state.deal(deal_id).stage == stage


@pytest.fixture
def board():
    store = DealBoardStore([
        _deal("d1", DealStage.PROSPECTING),
        _deal("d2", DealStage.PROSPECTING),
        _deal("d3", DealStage.WON),
    ])
    yield store
    store.dispose()


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Loading
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def test_sample_board_groups_by_stage_in_load_order():
    store = DealBoardStore(sample_deals(), sample_clients())
    order = store.state.deal_order
    assert order[DealStage.PROSPECTING] == ["deal-1", "deal-6"]
    assert order[DealStage.QUALIFICATION] == ["deal-2", "deal-8"]
    assert order[DealStage.LOST] == ["deal-7"]
    assert set(order) == set(DealStage)
    _assert_index_consistent(store)


def test_build_state_rejects_duplicate_ids():
    with pytest.raises(ValueError):
        build_state([_deal("d1", DealStage.WON), _deal("d1", DealStage.LOST)], [])


def test_load_replaces_records(board):
    board.load([_deal("x", DealStage.PROPOSAL)], [])
    assert board.state.deal_order[DealStage.PROPOSAL] == ["x"]
    assert board.state.deal_order[DealStage.PROSPECTING] == []


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# move_deal
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def test_move_deal_to_another_stage(board):
    """Moving d1 to the top of Won"""
    board.move_deal("d1", "prospecting", "won", 0)
    state = board.state
    assert state.deal_order[DealStage.PROSPECTING] == ["d2"]
    assert state.deal_order[DealStage.WON] == ["d1", "d3"]
    assert state.deal("d1").stage == DealStage.WON
    _assert_index_consistent(board)


def test_move_deal_into_empty_stage(board):
    board.move_deal("d1", DealStage.PROSPECTING, DealStage.LOST, 0)
    assert board.state.deal_order[DealStage.LOST] == ["d1"]


def test_move_deal_clamps_index(board):
    board.move_deal("d1", "prospecting", "won", 99)
    assert board.state.deal_order[DealStage.WON] == ["d3", "d1"]
    board.move_deal("d2", "prospecting", "won", -4)
    assert board.state.deal_order[DealStage.WON] == ["d2", "d3", "d1"]
    _assert_index_consistent(board)


def test_move_deal_and_back_restores_order(board):
    before = {s: list(ids) for s, ids in board.state.deal_order.items()}
    board.move_deal("d2", "prospecting", "proposal", 0)
    board.move_deal("d2", "proposal", "prospecting", 1)
    assert board.state.deal_order == before
    assert board.state.deal("d2").stage == DealStage.PROSPECTING


def test_move_deal_rejects_wrong_source_stage(board):
    snapshot = board.state
    with pytest.raises(MoveRejected):
        board.move_deal("d3", "prospecting", "lost", 0)
    assert board.state is snapshot


def test_move_deal_rejects_same_stage(board):
    with pytest.raises(MoveRejected):
        board.move_deal("d1", "prospecting", "prospecting", 1)


def test_move_deal_unknown_stage_raises(board):
    with pytest.raises(ValueError):
        board.move_deal("d1", "prospecting", "archived", 0)


def test_move_deal_leaves_previous_snapshot_untouched(board):
    old = board.state
    board.move_deal("d1", "prospecting", "won", 0)
    assert old.deal_order[DealStage.PROSPECTING] == ["d1", "d2"]
    assert old.deal("d1").stage == DealStage.PROSPECTING


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# reorder_deal
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def test_reorder_moves_first_to_last():
    store = DealBoardStore([_deal(i, DealStage.PROPOSAL) for i in ("a", "b", "c")])
    store.reorder_deal("proposal", 0, 2)
    assert store.state.deal_order[DealStage.PROPOSAL] == ["b", "c", "a"]
    store.reorder_deal("proposal", 2, 0)
    assert store.state.deal_order[DealStage.PROPOSAL] == ["a", "b", "c"]


def test_reorder_same_index_is_noop(board):
    calls = []
    board.subscribe(lambda new, old: calls.append(new))
    snapshot = board.state
    board.reorder_deal("prospecting", 1, 1)
    assert board.state is snapshot
    assert calls == []


def test_reorder_out_of_range_rejected(board):
    with pytest.raises(MoveRejected):
        board.reorder_deal("won", 1, 0)


def test_reorder_does_not_change_deal_records(board):
    deals_before = board.state.deals
    board.reorder_deal("prospecting", 0, 1)
    assert board.state.deals is deals_before
    assert board.state.deal_order[DealStage.PROSPECTING] == ["d2", "d1"]


def test_random_moves_and_reorders_keep_index_consistent():
    """Mixed moves and reorders with out-of-range indices never corrupt the board"""
    rng = random.Random(20250115)
    stages = list(DealStage)
    store = DealBoardStore([_deal(f"d{n}", stages[n % 3]) for n in range(9)])
    ids = [d.id for d in store.state.deals]

    for _ in range(500):
        order = store.state.deal_order
        if rng.random() < 0.5:
            deal_id = rng.choice(ids)
            source = store.state.stage_of(deal_id)
            target = rng.choice([s for s in stages if s != source])
            size = len(order[target])
            store.move_deal(deal_id, source, target, rng.randint(-3, size + 3))
            assert store.state.stage_of(deal_id) == target
        else:
            stage = rng.choice(stages)
            size = len(order[stage])
            old_index = rng.randint(-2, size + 2)
            new_index = rng.randint(-3, size + 3)
            if 0 <= old_index < size:
                store.reorder_deal(stage, old_index, new_index)
                assert sorted(store.state.deal_order[stage]) == sorted(order[stage])
            else:
                snapshot = store.state
                with pytest.raises(MoveRejected):
                    store.reorder_deal(stage, old_index, new_index)
                assert store.state is snapshot
        _assert_index_consistent(store)
    store.dispose()


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Notifications and remote write-back
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def test_subscribers_see_new_and_old(board):
    seen = []
    board.subscribe(lambda new, old: seen.append((new, old)))
    old = board.state
    board.move_deal("d1", "prospecting", "won", 0)
    assert len(seen) == 1
    assert seen[0] == (board.state, old)


def test_selector_listener_only_fires_for_its_column(board):
    won_changes = []
    board.subscribe(lambda new, old: won_changes.append(new),
                    selector=lambda s: s.deal_order[DealStage.WON])
    board.reorder_deal("prospecting", 0, 1)
    assert won_changes == []
    board.move_deal("d1", "prospecting", "won", 1)
    assert won_changes == [["d3", "d1"]]


def test_stage_change_is_written_back():
    remote = MagicMock()
    remote.is_configured = True
    writes = WriteDispatcher("test-writes")
    store = DealBoardStore([_deal("d1", DealStage.PROSPECTING)], remote=remote, dispatcher=writes)

    store.move_deal("d1", "prospecting", "negotiation", 0)
    assert writes.flush(timeout=2)
    remote.update_field.assert_called_once_with("deals", "d1", {"stage": "negotiation"})
    writes.close()


def test_reorder_is_not_written_back():
    remote = MagicMock()
    remote.is_configured = True
    writes = WriteDispatcher("test-writes")
    store = DealBoardStore([_deal("a", DealStage.WON), _deal("b", DealStage.WON)],
                           remote=remote, dispatcher=writes)

    store.reorder_deal("won", 0, 1)
    assert writes.flush(timeout=2)
    remote.update_field.assert_not_called()
    writes.close()


def test_failed_write_back_keeps_local_move():
    remote = MagicMock()
    remote.is_configured = True
    remote.update_field.side_effect = RuntimeError("remote down")
    store = DealBoardStore([_deal("d1", DealStage.PROSPECTING)], remote=remote)

    store.move_deal("d1", "prospecting", "won", 0)
    assert store._writes.flush(timeout=2)
    assert store.state.stage_of("d1") == DealStage.WON
    store.dispose()


def test_unconfigured_remote_gets_no_writes(offline_remote):
    store = DealBoardStore([_deal("d1", DealStage.PROSPECTING)], remote=offline_remote)
    store.move_deal("d1", "prospecting", "won", 0)
    assert store._writes.flush(timeout=2)
    offline_remote.session.request.assert_not_called()
    store.dispose()
