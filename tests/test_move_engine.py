import pytest

import core
from helpers import B, make_board, make_state, values
from models import DIRECTION, GameState


def test_pairs_merge_left():
    state = make_state([[2, 2, 4, 4]])
    new_state = core.move_tiles(state, DIRECTION.LEFT)
    assert values(new_state.board)[0] == [4, 8, None, None, None]
    assert core.calculate_move_score(state, new_state) == 12


def test_tile_merges_only_once_per_move():
    state = make_state([[2, 2, 2]])
    new_state = core.move_tiles(state, DIRECTION.LEFT)
    assert values(new_state.board)[0] == [4, 2, None, None, None]
    assert new_state.score == 4


def test_four_equal_tiles_make_two_pairs():
    new_state = core.move_tiles(make_state([[4, 4, 4, 4]]), DIRECTION.LEFT)
    assert values(new_state.board)[0] == [8, 8, None, None, None]


def test_merge_priority_starts_at_destination_edge():
    new_state = core.move_tiles(make_state([[2, 2, 2]]), DIRECTION.RIGHT)
    assert values(new_state.board)[0] == [None, None, None, 2, 4]


def test_vertical_moves():
    state = make_state([[2], [None], [2], [8], [8]])
    up = core.move_tiles(state, DIRECTION.UP)
    assert [row[0] for row in values(up.board)] == [4, 16, None, None, None]
    down = core.move_tiles(state, DIRECTION.DOWN)
    assert [row[0] for row in values(down.board)] == [None, None, None, 4, 16]
    assert up.score == down.score == 20


def test_blocker_pair_annihilates():
    state = make_state([[B, B]])
    new_state = core.move_tiles(state, DIRECTION.LEFT)
    assert new_state is not state
    assert values(new_state.board)[0] == [None] * 5
    assert new_state.score == 0


def test_tiles_slide_into_space_left_by_blockers():
    new_state = core.move_tiles(make_state([[2, B, B, 2]]), DIRECTION.LEFT)
    # The tiles close the gap but do not merge across it.
    assert values(new_state.board)[0] == [2, 2, None, None, None]
    assert new_state.score == 0


def test_blocker_does_not_merge_with_normal_tile():
    state = make_state([[B, 2, 2, B]])
    new_state = core.move_tiles(state, DIRECTION.LEFT)
    assert values(new_state.board)[0] == [B, 4, B, None, None]


def test_no_op_move_returns_input_state():
    state = make_state([[2, 4, 8], [B, 2]])
    assert core.move_tiles(state, DIRECTION.LEFT) is state
    new_board, score, milestones, changed = core.process_move(state.board, DIRECTION.LEFT)
    assert new_board is state.board
    assert (score, milestones, changed) == (0, 0, False)


def test_move_does_not_mutate_input():
    state = make_state([[2, 2, None, 4], [None, 8, 8]])
    before = values(state.board)
    core.move_tiles(state, DIRECTION.RIGHT)
    assert values(state.board) == before
    assert state.score == 0


def test_tile_positions_match_cells_after_move():
    new_state = core.move_tiles(make_state([[None, 2, None, 2], [4], [None, None, 8]]), DIRECTION.DOWN)
    for r, row in enumerate(new_state.board):
        for c, tile in enumerate(row):
            if tile is not None:
                assert (tile.row, tile.col) == (r, c)


def test_slid_tile_keeps_id_and_merged_tile_gets_new_one():
    state = make_state([[None, None, 8, 2, 2]])
    slid = state.board[0][2]
    new_state = core.move_tiles(state, DIRECTION.LEFT)
    assert new_state.board[0][0].id == slid.id
    assert not new_state.board[0][0].is_merged
    merged = new_state.board[0][1]
    assert merged.value == 4 and merged.is_merged
    assert merged.id not in {t.id for t in state.all_tiles}


def test_flags_from_previous_turn_are_cleared():
    state = core.move_tiles(make_state([[2, 2, None, None, 4]]), DIRECTION.LEFT)
    assert state.board[0][0].is_merged
    # The merged 4 may merge again on the next move.
    next_state = core.move_tiles(state, DIRECTION.LEFT)
    assert values(next_state.board)[0] == [8, None, None, None, None]
    assert not next_state.board[0][0].is_new


def test_merging_to_2048_wins():
    state = make_state([[1024, None, 1024]])
    new_state = core.move_tiles(state, DIRECTION.LEFT)
    assert new_state.board[0][0].value == 2048
    assert new_state.has_won
    assert core.has_player_won(new_state)


def test_milestone_merges_earn_blockers():
    state = make_state([[128, 128], [256, 256], [2, 2]])
    new_state = core.move_tiles(state, DIRECTION.LEFT)
    assert new_state.pending_blockers == 2
    # Blockers are placed by the spawn step, not by the move itself.
    assert not any(t.is_blocker for t in new_state.all_tiles)


def test_rejects_board_with_wrong_shape():
    short = GameState(board=make_board([])[:4])
    with pytest.raises(core.InvalidBoardShapeError):
        core.move_tiles(short, DIRECTION.LEFT)

    narrow = GameState(board=tuple(row[:4] for row in make_board([])))
    with pytest.raises(core.InvalidBoardShapeError):
        core.move_tiles(narrow, DIRECTION.UP)
