# core.py
# This file is the stateless core logic for a 5x5 2048 game with blocker tiles.
# Every function takes a GameState (or a board) and returns a new one.

import logging
import random
from dataclasses import replace
from enum import Enum
from typing import List, Optional, Sequence, Tuple

import notifications
from models import (
    BOARD_SIZE,
    DIRECTION,
    Board,
    GameState,
    Position,
    Tile,
    WIN_TILE,
)

logger = logging.getLogger(__name__)

FOUR_PROBABILITY = 0.1   # Spawned tile is a 4 with this probability, otherwise a 2
BLOCKER_MILESTONE = 256  # Each merge producing a tile >= this earns one blocker
INITIAL_TILES = 2

Grid = List[List[Optional[Tile]]]


class GameProgressState(Enum):
    """Represents the current progress state of the game."""
    IN_PROGRESS = 1
    GAME_OVER = 2  # No moves left
    GAME_WON = 3   # Still playable; the win is sticky


class InvalidBoardShapeError(ValueError):
    """Raised when a board is not exactly BOARD_SIZE x BOARD_SIZE."""


# --- Board Helper Functions ---

def get_board_size(board: Sequence[Sequence[Optional[Tile]]]) -> int:
    """
    Gets the size of the board, rejecting anything that is not BOARD_SIZE x BOARD_SIZE.
    Args:
        board: The game board.
    Returns:
        int: The dimension of the board.
    Raises:
        InvalidBoardShapeError: If the board does not have exactly BOARD_SIZE rows of
                                BOARD_SIZE cells.
    """
    if board is None or len(board) != BOARD_SIZE:
        raise InvalidBoardShapeError(
            f"Board must have {BOARD_SIZE} rows, got {0 if board is None else len(board)}."
        )
    for index, row in enumerate(board):
        if row is None or len(row) != BOARD_SIZE:
            raise InvalidBoardShapeError(
                f"Row {index} must have {BOARD_SIZE} cells, got {0 if row is None else len(row)}."
            )
    return BOARD_SIZE


def freeze_board(grid: Sequence[Sequence[Optional[Tile]]]) -> Board:
    """
    Validates a grid and turns it into an immutable board whose tiles carry
    their own cell coordinates.
    Raises:
        InvalidBoardShapeError: If the grid has the wrong shape.
    """
    get_board_size(grid)
    return tuple(
        tuple(_placed(tile, r, c) for c, tile in enumerate(row))
        for r, row in enumerate(grid)
    )


def _placed(tile: Optional[Tile], row: int, col: int) -> Optional[Tile]:
    if tile is None or (tile.row == row and tile.col == col):
        return tile
    return replace(tile, row=row, col=col)


def get_empty_cells(board: Board) -> List[Position]:
    """
    Get coordinates of empty cells in the given board, in row-major order.
    Args:
        board: The board to check.
    Returns:
        List[Position]: Positions of the empty cells.
    """
    n = get_board_size(board)
    return [Position(row, col) for row in range(n) for col in range(n) if board[row][col] is None]


def is_board_full(board: Board) -> bool:
    get_board_size(board)
    return all(tile is not None for row in board for tile in row)


def get_tile_at(board: Board, row: int, col: int) -> Optional[Tile]:
    """Returns the tile at (row, col), or None for empty or out-of-range cells."""
    if not (0 <= row < len(board) and 0 <= col < len(board[row])):
        return None
    return board[row][col]


def set_tile_at(board: Board, row: int, col: int, tile: Optional[Tile]) -> Board:
    """
    Returns a copy of the board with (row, col) set to `tile`.
    Raises:
        IndexError: If the position lies outside the board.
    """
    n = get_board_size(board)
    if not (0 <= row < n and 0 <= col < n):
        raise IndexError(f"Position ({row}, {col}) is outside the {n}x{n} board.")
    new_row = list(board[row])
    new_row[col] = _placed(tile, row, col)
    return board[:row] + (tuple(new_row),) + board[row + 1:]


def _board_signature(board: Board) -> Tuple:
    """Occupancy of the board as (value, is_blocker) per cell, ignoring ids and flags."""
    return tuple(
        tuple(None if tile is None else (tile.value, tile.is_blocker) for tile in row)
        for row in board
    )


# --- Board Transformations ---

def transpose_board(grid: Sequence[Sequence[Optional[Tile]]]) -> Grid:
    """
    Transposes a given grid (swaps rows and columns).
    Args:
        grid: The grid to transpose.
    Returns:
        A new transposed grid.
    """
    n = len(grid)
    return [[grid[r][c] for r in range(n)] for c in range(n)]


def reverse_rows(grid: Sequence[Sequence[Optional[Tile]]]) -> Grid:
    """
    Reverses each row in a given grid.
    Args:
        grid: The grid whose rows are to be reversed.
    Returns:
        A new grid with rows reversed.
    """
    return [list(row)[::-1] for row in grid]


# --- Line Manipulation (Core Move Logic Helpers) ---

def _merge_line(line: Sequence[Optional[Tile]]) -> Tuple[List[Optional[Tile]], int, int]:
    """
    Slides and merges a single line towards index 0.

    Tiles are walked from the destination edge outwards. Each tile either merges
    with the last tile placed (when `can_merge_with` allows it) or is placed right
    after it. A merged tile is marked `is_merged`, so it cannot take part in a second
    merge during the same move. Two blockers annihilate: neither is placed, no score
    is gained, and the next tile only slides into the freed cell.

    Args:
        line: The cells of one row or column, destination edge first.
    Returns:
        Tuple[List[Optional[Tile]], int, int]: The new line, the score gained, and the
                                               number of merges that reached
                                               BLOCKER_MILESTONE.
    """
    placed: List[Tile] = []
    merge_target: Optional[Tile] = None
    score_increase = 0
    milestone_merges = 0

    for tile in line:
        if tile is None:
            continue

        if merge_target is not None and tile.can_merge_with(merge_target):
            placed.pop()
            merge_target = None
            if tile.is_blocker:
                continue
            merged_tile = tile.merged(tile.row, tile.col)
            placed.append(merged_tile)
            score_increase += merged_tile.value
            if merged_tile.value >= BLOCKER_MILESTONE:
                milestone_merges += 1
            continue

        placed.append(tile)
        merge_target = tile

    return placed + [None] * (len(line) - len(placed)), score_increase, milestone_merges


def _apply_left_processing_to_all_lines(grid: Grid) -> Tuple[Grid, int, int]:
    """
    Processes every row of a grid with `_merge_line`.
    Returns:
        Tuple[Grid, int, int]: The processed grid, total score increase, and total
                               milestone merges.
    """
    processed: Grid = []
    total_score_increase = 0
    total_milestones = 0
    for line in grid:
        new_line, score_from_line, milestones = _merge_line(line)
        processed.append(new_line)
        total_score_increase += score_from_line
        total_milestones += milestones
    return processed, total_score_increase, total_milestones


# --- Core Game Move Processing ---

def process_move(board: Board, direction: DIRECTION) -> Tuple[Board, int, int, bool]:
    """
    Slides and merges every line of the board in the given direction.
    Args:
        board: The current game board.
        direction: The direction to move.
    Returns:
        Tuple[Board, int, int, bool]:
            - The board after the move (the input board itself when nothing changed).
            - The score gained from merges.
            - The number of merges that reached BLOCKER_MILESTONE.
            - Whether the board changed.
    Raises:
        InvalidBoardShapeError: If the board is not BOARD_SIZE x BOARD_SIZE.
        ValueError: If an invalid direction is specified.
    """
    get_board_size(board)
    # Flags from the previous turn no longer restrict merging.
    grid = [[tile.reset_flags() if tile is not None else None for tile in row] for row in board]

    if direction == DIRECTION.LEFT:
        processed, score_gained, milestones = _apply_left_processing_to_all_lines(grid)

    elif direction == DIRECTION.RIGHT:
        processed, score_gained, milestones = _apply_left_processing_to_all_lines(reverse_rows(grid))
        processed = reverse_rows(processed)

    elif direction == DIRECTION.UP:
        processed, score_gained, milestones = _apply_left_processing_to_all_lines(transpose_board(grid))
        processed = transpose_board(processed)

    elif direction == DIRECTION.DOWN:
        processed, score_gained, milestones = _apply_left_processing_to_all_lines(
            reverse_rows(transpose_board(grid))
        )
        processed = transpose_board(reverse_rows(processed))
    else:
        raise ValueError("Invalid direction specified for process_move.")

    new_board = freeze_board(processed)
    if _board_signature(new_board) == _board_signature(board):
        return board, 0, 0, False
    return new_board, score_gained, milestones, True


def move_tiles(state: GameState, direction: DIRECTION) -> GameState:
    """
    Applies a move to the game state. Does not spawn a tile; the caller spawns
    only when the returned state differs from the input.
    Args:
        state: The current game state.
        direction: The direction to move.
    Returns:
        GameState: The new state, or `state` itself when the move changed nothing.
    """
    new_board, score_gained, milestones, changed = process_move(state.board, direction)
    if not changed:
        logger.debug("Move %s changed nothing", direction.name)
        return state

    new_state = state.copy_with(
        board=new_board,
        score=state.score + score_gained,
        pending_blockers=state.pending_blockers + milestones,
    )
    if milestones:
        logger.debug("%d milestone merge(s) earned blockers", milestones)
    return new_state.copy_with(has_won=has_player_won(new_state))


def calculate_move_score(before: GameState, after: GameState) -> int:
    """Score gained between two states."""
    return after.score - before.score


# --- Spawning ---

def _spawn_value(rng) -> int:
    return 4 if rng.random() < FOUR_PROBABILITY else 2


def _place_blockers(
    board: Board,
    empty_cells: List[Position],
    count: int,
    rng,
    bus: Optional[notifications.EventBus],
) -> Tuple[Board, List[Position]]:
    """Places up to `count` blockers on random empty cells. Blockers that do not fit are dropped."""
    remaining = list(empty_cells)
    to_place = min(count, len(remaining))
    for _ in range(to_place):
        position = remaining.pop(rng.randrange(len(remaining)))
        board = set_tile_at(board, position.row, position.col, Tile.blocker(*position))
        logger.debug("Blocker tile placed at %s", position)
        if bus is not None:
            bus.emit(notifications.EVENT_BLOCKER_PLACED, position=position)
    if count > to_place:
        logger.debug("Dropped %d blocker(s): no room on the board", count - to_place)
    return board, remaining


def add_random_tile(
    state: GameState,
    rng: Optional[random.Random] = None,
    bus: Optional[notifications.EventBus] = None,
) -> GameState:
    """
    Places any earned blockers, then a new tile (2, or 4 with probability
    FOUR_PROBABILITY) on a uniformly chosen empty cell.
    Args:
        state: The current game state.
        rng: Source of randomness; the `random` module when omitted.
        bus: Optional event bus notified of every placed tile.
    Returns:
        GameState: The new state. A full board is returned unchanged.
    """
    rng = rng or random
    board = state.board
    empty_cells = get_empty_cells(board)
    if not empty_cells:
        logger.debug("No empty cells; spawn skipped")
        return state

    if state.pending_blockers:
        board, empty_cells = _place_blockers(board, empty_cells, state.pending_blockers, rng, bus)

    if empty_cells:
        position = rng.choice(empty_cells)
        value = _spawn_value(rng)
        board = set_tile_at(board, position.row, position.col, Tile.with_value(value, *position))
        logger.debug("Spawned %d at %s (%d empty cells)", value, position, len(empty_cells))
        if bus is not None:
            bus.emit(notifications.EVENT_TILE_SPAWNED, position=position, value=value)

    return state.copy_with(board=board, pending_blockers=0)


# --- Game Lifecycle ---

def initialize_game(
    best_score: int = 0,
    rng: Optional[random.Random] = None,
    time_limit: Optional[int] = None,
    scenic_background: Optional[int] = None,
) -> GameState:
    """
    Creates a new game: empty board, INITIAL_TILES seeded tiles, score 0.
    Args:
        best_score: Best score carried over from earlier games.
        rng: Source of randomness.
        time_limit: Seconds for a time-attack game; None for a normal game.
        scenic_background: Background index for a scenic game.
    Returns:
        GameState: The initial game state.
    Raises:
        ValueError: If best_score is negative or time_limit is not positive.
    """
    if best_score < 0:
        raise ValueError("Best score cannot be negative.")
    if time_limit is not None and time_limit <= 0:
        raise ValueError("Time limit must be a positive number of seconds.")

    state = GameState(
        best_score=best_score,
        is_time_attack=time_limit is not None,
        time_limit=time_limit,
        is_scenic=scenic_background is not None,
        scenic_background_index=scenic_background,
    )
    for _ in range(INITIAL_TILES):
        state = add_random_tile(state, rng)
    return state


def restart_game(state: GameState, rng: Optional[random.Random] = None) -> GameState:
    """Starts a fresh game in the same mode, keeping the best score."""
    return initialize_game(
        best_score=max(state.best_score, state.score),
        rng=rng,
        time_limit=state.time_limit if state.is_time_attack else None,
        scenic_background=state.scenic_background_index if state.is_scenic else None,
    )


# --- Game State Checks ---

def has_player_won(state: GameState, win_tile: int = WIN_TILE) -> bool:
    """
    Check if the player has won. The stored flag is sticky: once set, the game
    stays won even if the winning tile is later removed.
    Args:
        state: The game state.
        win_tile: The tile value that signifies a win. Default is 2048.
    Returns:
        bool: True if the game is won, False otherwise.
    """
    if state.has_won:
        return True
    return any(tile.is_winning_tile(win_tile) for tile in state.all_tiles)


def is_move_possible_in_direction(board: Board, direction: DIRECTION) -> bool:
    """
    Check if any tile can move or merge in the given specific direction.
    Args:
        board: The game board.
        direction: The direction to check.
    Returns:
       bool: True if at least one tile can slide or merge that way, False otherwise.
    """
    n = get_board_size(board)
    d_row, d_col = direction.vector
    for r_idx in range(n):
        for c_idx in range(n):
            tile = board[r_idx][c_idx]
            if tile is None:
                continue  # Only non-empty tiles can initiate a move

            n_row, n_col = r_idx + d_row, c_idx + d_col
            if not (0 <= n_row < n and 0 <= n_col < n):
                continue
            neighbour = board[n_row][n_col]
            if neighbour is None or tile.matches(neighbour):
                return True
    return False


def is_any_move_possible(board: Board) -> bool:
    """
    Checks if any move is possible in any direction on the board.
    Args:
        board: The game board.
    Returns:
        bool: True if any move can be made, False otherwise.
    """
    for direction_enum_member in DIRECTION:
        if is_move_possible_in_direction(board, direction_enum_member):
            return True
    return False


def is_game_over(state: GameState) -> bool:
    """
    The game is over when the board is full and no direction slides or merges
    anything. A full board with one mergeable pair is still playable.
    """
    return is_board_full(state.board) and not is_any_move_possible(state.board)


def determine_game_status(state: GameState, win_tile: int = WIN_TILE) -> GameProgressState:
    """
    Determines the current progress state of the game.
    A won game keeps being played, so GAME_OVER takes precedence over GAME_WON.
    Args:
        state: The current game state.
        win_tile: The tile value that signifies a win. Default is 2048.
    Returns:
        GameProgressState: The current state (IN_PROGRESS, GAME_WON, GAME_OVER).
    """
    if is_game_over(state):
        return GameProgressState.GAME_OVER
    if has_player_won(state, win_tile):
        return GameProgressState.GAME_WON
    return GameProgressState.IN_PROGRESS
