# game.py
# One player turn: move, powerup upkeep, spawn, awards and end-of-game checks,
# in the order the engine requires.

import logging
import random
from typing import Optional, Tuple

import core
import notifications
import powerups
from models import DIRECTION, GameState

logger = logging.getLogger(__name__)


def play_move(
    state: GameState,
    direction: DIRECTION,
    rng: Optional[random.Random] = None,
    bus: Optional[notifications.EventBus] = None,
) -> Tuple[GameState, bool]:
    """
    Plays one turn in the given direction.

    A move that changes nothing consumes no powerup duration and spawns nothing;
    only the game-over and win flags are refreshed. Otherwise effects active when
    the move was made apply to it (Tile Freeze suppresses the spawn, Blocker Shield
    discards the blockers this move earns) before their durations are consumed.

    Args:
        state: The current game state.
        direction: The direction to move.
        rng: Source of randomness for spawns and powerup awards.
        bus: Optional event bus for spawn, powerup and game-end notifications.
    Returns:
        Tuple[GameState, bool]: The new state and whether the move changed the board.
    """
    moved_state = core.move_tiles(state, direction)
    if moved_state is state:
        refreshed = state.copy_with(
            is_game_over=core.is_game_over(state),
            has_won=core.has_player_won(state),
        )
        _announce_game_end(state, refreshed, bus)
        return refreshed, False

    spawn_frozen = state.is_tile_freeze_active
    blockers_shielded = state.is_blocker_shield_active

    new_state = moved_state.copy_with(previous_state=state.copy_with(previous_state=None))
    earned = moved_state.pending_blockers - state.pending_blockers
    if blockers_shielded and earned:
        logger.debug("Blocker Shield discarded %d blocker(s)", earned)
        new_state = new_state.copy_with(pending_blockers=state.pending_blockers)

    new_state = powerups.tick_powerups(new_state, bus)

    if spawn_frozen:
        logger.debug("Tile Freeze active; spawn skipped")
    else:
        new_state = core.add_random_tile(new_state, rng, bus)

    new_state = powerups.award_powerups(new_state, rng, bus)
    new_state = new_state.copy_with(
        is_game_over=core.is_game_over(new_state),
        has_won=core.has_player_won(new_state),
        best_score=max(new_state.best_score, new_state.score),
    )
    _announce_game_end(state, new_state, bus)
    return new_state, True


def _announce_game_end(before: GameState, after: GameState, bus: Optional[notifications.EventBus]) -> None:
    if after.has_won and not before.has_won:
        logger.info("Game won with score %d", after.score)
        if bus is not None:
            bus.emit(notifications.EVENT_GAME_WON, score=after.score)
    if after.is_game_over and not before.is_game_over:
        logger.info("Game over with score %d", after.score)
        if bus is not None:
            bus.emit(notifications.EVENT_GAME_OVER, score=after.score)
