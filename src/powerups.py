# powerups.py
# Powerup inventory, duration tracking and the effects powerups apply to the board.
# Effects run between moves on the settled board and never award score.

import logging
import random
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, List, Optional, Tuple, Union

import core
import notifications
from models import BOARD_SIZE, Board, GameState, Powerup, PowerupType, empty_board

logger = logging.getLogger(__name__)

MAX_POWERUPS_IN_INVENTORY = 3
FIRST_POWERUP_SCORE = 1000
POWERUP_SCORE_INTERVAL = 2000


# --- Effect variants ---

@dataclass(frozen=True)
class FreezeSpawns:
    """No new tiles spawn for the next few moves."""
    type: ClassVar[PowerupType] = PowerupType.TILE_FREEZE


@dataclass(frozen=True)
class ShieldBlockers:
    """Blockers earned during the next few moves are discarded; ones already pending are kept."""
    type: ClassVar[PowerupType] = PowerupType.BLOCKER_SHIELD


@dataclass(frozen=True)
class UndoMove:
    type: ClassVar[PowerupType] = PowerupType.UNDO_MOVE


@dataclass(frozen=True)
class ShuffleBoard:
    type: ClassVar[PowerupType] = PowerupType.SHUFFLE_BOARD


@dataclass(frozen=True)
class UpgradeValues:
    """Doubles every normal tile on the board."""
    type: ClassVar[PowerupType] = PowerupType.VALUE_UPGRADE


@dataclass(frozen=True)
class DestroyTile:
    row: int
    col: int
    type: ClassVar[PowerupType] = PowerupType.TILE_DESTROYER


@dataclass(frozen=True)
class ShrinkTile:
    row: int
    col: int
    type: ClassVar[PowerupType] = PowerupType.TILE_SHRINK


@dataclass(frozen=True)
class ClearRow:
    row: int
    type: ClassVar[PowerupType] = PowerupType.ROW_CLEAR


@dataclass(frozen=True)
class ClearColumn:
    col: int
    type: ClassVar[PowerupType] = PowerupType.COLUMN_CLEAR


PowerupEffect = Union[
    FreezeSpawns,
    ShieldBlockers,
    UndoMove,
    ShuffleBoard,
    UpgradeValues,
    DestroyTile,
    ShrinkTile,
    ClearRow,
    ClearColumn,
]


def effect_for(powerup_type: PowerupType, row: Optional[int] = None, col: Optional[int] = None) -> PowerupEffect:
    """
    Builds the effect for a powerup type from an optional target cell.
    Raises:
        ValueError: If the type needs a target coordinate that was not given.
    """
    if powerup_type == PowerupType.TILE_FREEZE:
        return FreezeSpawns()
    if powerup_type == PowerupType.BLOCKER_SHIELD:
        return ShieldBlockers()
    if powerup_type == PowerupType.UNDO_MOVE:
        return UndoMove()
    if powerup_type == PowerupType.SHUFFLE_BOARD:
        return ShuffleBoard()
    if powerup_type == PowerupType.VALUE_UPGRADE:
        return UpgradeValues()
    if powerup_type == PowerupType.ROW_CLEAR:
        if row is None:
            raise ValueError("Row Clear needs a target row.")
        return ClearRow(row)
    if powerup_type == PowerupType.COLUMN_CLEAR:
        if col is None:
            raise ValueError("Column Clear needs a target column.")
        return ClearColumn(col)
    if row is None or col is None:
        raise ValueError(f"{powerup_type.display_name} needs a target cell.")
    if powerup_type == PowerupType.TILE_DESTROYER:
        return DestroyTile(row, col)
    return ShrinkTile(row, col)


# --- Inventory ---

class AddPowerupResult(Enum):
    SUCCESS = 1
    INVENTORY_FULL = 2
    ALREADY_EXISTS = 3


def add_powerup(state: GameState, powerup_type: PowerupType) -> Tuple[GameState, AddPowerupResult]:
    """Adds a powerup to the inventory, which holds at most one of each type."""
    if len(state.available_powerups) >= MAX_POWERUPS_IN_INVENTORY:
        logger.warning("Powerup inventory full; %s not added", powerup_type.value)
        return state, AddPowerupResult.INVENTORY_FULL
    if any(p.type == powerup_type for p in state.available_powerups):
        logger.warning("Powerup %s already in inventory", powerup_type.value)
        return state, AddPowerupResult.ALREADY_EXISTS

    new_state = state.copy_with(
        available_powerups=state.available_powerups + (Powerup.create(powerup_type),)
    )
    logger.debug("Powerup %s added to inventory", powerup_type.value)
    return new_state, AddPowerupResult.SUCCESS


def powerups_earned(score: int) -> int:
    """The first powerup comes at FIRST_POWERUP_SCORE, then one every POWERUP_SCORE_INTERVAL points."""
    if score < FIRST_POWERUP_SCORE:
        return 0
    return 1 + (score - FIRST_POWERUP_SCORE) // POWERUP_SCORE_INTERVAL


def check_powerup_awards(state: GameState, rng: Optional[random.Random] = None) -> List[PowerupType]:
    """Picks primary powerups not yet unlocked this game, one per threshold newly passed."""
    rng = rng or random
    owed = powerups_earned(state.score) - state.total_powerups_unlocked
    if owed <= 0:
        return []
    candidates = [
        t for t in PowerupType
        if t.is_primary and not state.is_powerup_ever_unlocked(t)
    ]
    rng.shuffle(candidates)
    return candidates[:owed]


def award_powerups(
    state: GameState,
    rng: Optional[random.Random] = None,
    bus: Optional[notifications.EventBus] = None,
) -> GameState:
    for powerup_type in check_powerup_awards(state, rng):
        state, result = add_powerup(state, powerup_type)
        if result == AddPowerupResult.SUCCESS and bus is not None:
            bus.emit(notifications.EVENT_POWERUP_AWARDED, powerup_type=powerup_type)
    return state


def tick_powerups(state: GameState, bus: Optional[notifications.EventBus] = None) -> GameState:
    """
    Consumes one move from every active effect. Effects that run out are removed
    and reported on the bus.
    """
    if not state.active_powerups:
        return state

    still_active = []
    for powerup in state.active_powerups:
        updated = powerup.use_move()
        if updated.is_active:
            still_active.append(updated)
            continue
        logger.debug("Powerup %s expired", powerup.type.value)
        if bus is not None:
            bus.emit(notifications.EVENT_POWERUP_EXPIRED, powerup_type=powerup.type)
    return state.copy_with(active_powerups=tuple(still_active))


# --- Effect application ---

def _in_range(index: int) -> bool:
    return 0 <= index < BOARD_SIZE


def _rejected(state: GameState, reason: str, *args) -> Tuple[GameState, bool]:
    logger.warning("Powerup rejected: " + reason, *args)
    return state, False


def _clear_cells(board: Board, cells) -> Board:
    for row, col in cells:
        board = core.set_tile_at(board, row, col, None)
    return board


def _shuffle(state: GameState, rng) -> Board:
    tiles = list(state.all_tiles)
    cells = [(r, c) for r in range(BOARD_SIZE) for c in range(BOARD_SIZE)]
    rng.shuffle(cells)
    board = empty_board()
    for tile, (row, col) in zip(tiles, cells):
        board = core.set_tile_at(board, row, col, tile)
    return board


def _upgrade(board: Board) -> Board:
    return core.freeze_board([
        [tile.revalued(tile.value * 2) if tile is not None and not tile.is_blocker else tile for tile in row]
        for row in board
    ])


def _undo(state: GameState) -> GameState:
    previous = state.previous_state
    return previous.copy_with(
        available_powerups=state.available_powerups,
        used_powerup_types=state.used_powerup_types,
        active_powerups=(),
        previous_state=None,
        has_won=previous.has_won or state.has_won,
        best_score=max(previous.best_score, state.best_score),
    )


def _resolve(state: GameState, effect: PowerupEffect, rng) -> Tuple[GameState, bool]:
    """Validates the target and computes the mutated state, before inventory bookkeeping."""
    board = state.board

    if effect.type.is_duration_based:
        if state.is_powerup_active(effect.type):
            return _rejected(state, "%s is already active", effect.type.value)
        active = Powerup.create(effect.type).activate()
        return state.copy_with(active_powerups=state.active_powerups + (active,)), True

    if isinstance(effect, UndoMove):
        if state.previous_state is None:
            return _rejected(state, "no previous move to undo")
        return _undo(state), True

    if isinstance(effect, ShuffleBoard):
        if not state.all_tiles:
            return _rejected(state, "cannot shuffle an empty board")
        return state.copy_with(board=_shuffle(state, rng)), True

    if isinstance(effect, UpgradeValues):
        if not any(not tile.is_blocker for tile in state.all_tiles):
            return _rejected(state, "no tiles to upgrade")
        return state.copy_with(board=_upgrade(board)), True

    if isinstance(effect, ClearRow):
        if not _in_range(effect.row):
            return _rejected(state, "row %d is outside the board", effect.row)
        cells = [(effect.row, c) for c in range(BOARD_SIZE)]
        return state.copy_with(board=_clear_cells(board, cells)), True

    if isinstance(effect, ClearColumn):
        if not _in_range(effect.col):
            return _rejected(state, "column %d is outside the board", effect.col)
        cells = [(r, effect.col) for r in range(BOARD_SIZE)]
        return state.copy_with(board=_clear_cells(board, cells)), True

    if isinstance(effect, (DestroyTile, ShrinkTile)):
        if not (_in_range(effect.row) and _in_range(effect.col)):
            return _rejected(state, "cell (%d, %d) is outside the board", effect.row, effect.col)
        tile = core.get_tile_at(board, effect.row, effect.col)
        if tile is None:
            return _rejected(state, "cell (%d, %d) is empty", effect.row, effect.col)
        if isinstance(effect, DestroyTile):
            return state.copy_with(board=_clear_cells(board, [(effect.row, effect.col)])), True
        if tile.is_blocker or tile.value <= 2:
            return _rejected(state, "tile at (%d, %d) cannot shrink", effect.row, effect.col)
        shrunk = tile.revalued(tile.value // 2)
        return state.copy_with(board=core.set_tile_at(board, effect.row, effect.col, shrunk)), True

    raise TypeError(f"Unknown powerup effect: {effect!r}")


def apply_powerup(
    state: GameState,
    effect: PowerupEffect,
    rng: Optional[random.Random] = None,
    bus: Optional[notifications.EventBus] = None,
) -> Tuple[GameState, bool]:
    """
    Applies a powerup from the inventory to the settled board.

    The powerup must be in `state.available_powerups`. On success it leaves the
    inventory and is recorded in `used_powerup_types`; duration-based effects join
    `active_powerups` instead of touching the board.

    Args:
        state: The current game state.
        effect: The effect to apply, carrying its own target.
        rng: Source of randomness for Shuffle Board.
        bus: Optional event bus notified when the powerup activates.
    Returns:
        Tuple[GameState, bool]: The new state and True, or the unchanged state and
                                False when the powerup is unavailable or the target
                                is invalid.
    Raises:
        InvalidBoardShapeError: If the board is not BOARD_SIZE x BOARD_SIZE.
    """
    core.get_board_size(state.board)
    rng = rng or random

    held = next((p for p in state.available_powerups if p.type == effect.type), None)
    if held is None:
        return _rejected(state, "%s is not in the inventory", effect.type.value)

    new_state, applied = _resolve(state, effect, rng)
    if not applied:
        return state, False

    new_state = new_state.copy_with(
        available_powerups=tuple(p for p in new_state.available_powerups if p.id != held.id),
        used_powerup_types=new_state.used_powerup_types | {effect.type},
    )
    new_state = new_state.copy_with(has_won=core.has_player_won(new_state))
    new_state = new_state.copy_with(is_game_over=core.is_game_over(new_state))

    logger.info("Powerup %s applied", effect.type.value)
    if bus is not None:
        bus.emit(notifications.EVENT_POWERUP_ACTIVATED, powerup_type=effect.type)
    return new_state, True
