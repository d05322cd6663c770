from dataclasses import replace

import core
import powerups
from helpers import B, checkerboard, make_state
from models import DIRECTION, PowerupType


def test_full_board_without_pairs_is_game_over():
    state = make_state(checkerboard())
    assert core.is_board_full(state.board)
    assert not core.is_any_move_possible(state.board)
    assert core.is_game_over(state)
    assert core.determine_game_status(state) == core.GameProgressState.GAME_OVER


def test_full_board_with_one_pair_is_not_game_over():
    layout = checkerboard()
    layout[2][2] = 8
    layout[2][3] = 8
    state = make_state(layout)
    assert not core.is_game_over(state)
    assert core.is_move_possible_in_direction(state.board, DIRECTION.LEFT)
    assert not core.is_move_possible_in_direction(state.board, DIRECTION.UP)


def test_full_board_with_adjacent_blockers_is_not_game_over():
    layout = checkerboard()
    layout[0][0] = B
    layout[1][0] = B
    assert not core.is_game_over(make_state(layout))


def test_full_board_with_isolated_blockers_is_game_over():
    layout = checkerboard()
    layout[0][0] = B
    layout[2][2] = B
    assert core.is_game_over(make_state(layout))


def test_board_with_empty_cell_is_not_game_over():
    layout = checkerboard()
    layout[4][0] = None
    assert not core.is_game_over(make_state(layout))


def test_merged_flags_do_not_hide_available_merges():
    layout = checkerboard()
    layout[0][0] = 4  # next to the 4 at (0, 1)
    state = make_state(layout)
    board = tuple(
        tuple(replace(tile, is_merged=True) for tile in row) for row in state.board
    )
    assert not core.is_game_over(state.copy_with(board=board))


def test_win_threshold():
    assert not core.has_player_won(make_state([[1024, 512]]))
    assert core.has_player_won(make_state([[2048]]))
    assert core.has_player_won(make_state([[4096]]))
    assert core.determine_game_status(make_state([[2048]])) == core.GameProgressState.GAME_WON


def test_win_flag_is_sticky():
    state = make_state([[2, 4]], has_won=True)
    assert core.has_player_won(state)


def test_win_survives_removal_of_winning_tile():
    state = make_state([[2048, 2]], has_won=True)
    state, _ = powerups.add_powerup(state, PowerupType.TILE_DESTROYER)
    new_state, applied = powerups.apply_powerup(state, powerups.DestroyTile(0, 0))
    assert applied
    assert all(t.value < 2048 for t in new_state.all_tiles)
    assert new_state.has_won
    assert core.has_player_won(new_state)


def test_calculate_move_score():
    before = make_state([[8, 8]], score=100)
    after = core.move_tiles(before, DIRECTION.LEFT)
    assert core.calculate_move_score(before, after) == 16
