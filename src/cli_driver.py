# cli_driver.py
# This file is intended to be run to play the game on the CLI. The game is saved
# after every turn and resumed on the next start.

import logging
import time
from typing import Optional

import core
import game
import powerups
from models import DIRECTION, GameState, PowerupType
from notifications import (
    EVENT_GAME_OVER,
    EVENT_GAME_WON,
    EVENT_POWERUP_AWARDED,
    EVENT_POWERUP_EXPIRED,
    EventBus,
)
from settings import load_settings
from storage import GameRepository, StorageError

logger = logging.getLogger(__name__)

DIRECTION_KEYS = {'W': DIRECTION.UP, 'A': DIRECTION.LEFT, 'S': DIRECTION.DOWN, 'D': DIRECTION.RIGHT}
HELP_TEXT = (
    "W/A/S/D move | P <powerup> [row] [col] use a powerup | N new game | Q quit\n"
    "Powerups: " + ", ".join(t.value for t in PowerupType)
)


def main():
    settings = load_settings()
    logging.basicConfig(level=settings.log_level, format="%(levelname)s %(name)s: %(message)s")
    repository = GameRepository(settings.data_dir)

    bus = EventBus()
    bus.subscribe(EVENT_POWERUP_AWARDED, lambda sender, powerup_type: print(f"New powerup: {powerup_type.display_name}"))
    bus.subscribe(EVENT_POWERUP_EXPIRED, lambda sender, powerup_type: print(f"{powerup_type.display_name} wore off."))
    bus.subscribe(EVENT_GAME_WON, lambda sender, score: print("Congratulations! You reached the 2048 tile!"))
    bus.subscribe(EVENT_GAME_OVER, lambda sender, score: print("No more moves possible. Better luck next time!"))

    # 1. Resume the saved game, or start a new one
    state = _load_or_start(repository)
    started = time.monotonic()
    print(HELP_TEXT)
    display_board_state(state)

    # 2. Game Loop
    while not state.is_game_over:
        command = input("> ").strip().split()
        if not command:
            continue
        key = command[0].upper()

        if key == 'Q':
            print("Quitting game. Progress saved.")
            break

        if key == 'N':
            # An abandoned game only counts toward the best score
            repository.update_best_score(state.score)
            state = core.restart_game(state)
            started = time.monotonic()
        elif key == 'P':
            state = _use_powerup(state, command[1:], bus)
        elif key in DIRECTION_KEYS:
            # 3. Play the turn: move, then spawn and bookkeeping if the board changed
            state, moved = game.play_move(state, DIRECTION_KEYS[key], bus=bus)
            if not moved:
                print("Move did not change the board. Try a different direction.")
        else:
            print("Invalid input. " + HELP_TEXT)
            continue

        repository.save_game_state(state)
        display_board_state(state)

    # 4. Game Ended
    if state.is_game_over:
        statistics = repository.record_finished_game(state, int(time.monotonic() - started))
        repository.clear_game_state()
        print(f"\nGames played: {statistics.games_played}  Win rate: {statistics.win_rate:.0%}  "
              f"Best score: {statistics.best_score}")


def _load_or_start(repository: GameRepository) -> GameState:
    try:
        saved = repository.load_game_state()
    except StorageError as e:
        logger.warning("Discarding unreadable saved game: %s", e)
        saved = None
    if saved is not None and not saved.is_game_over:
        print("Resuming saved game.")
        return saved
    return core.initialize_game(best_score=repository.load_best_score())


def _use_powerup(state: GameState, args, bus: EventBus) -> GameState:
    if not args:
        print("Usage: P <powerup> [row] [col]")
        return state
    try:
        powerup_type = PowerupType(args[0].lower())
        numbers = [int(a) for a in args[1:3]]
    except ValueError:
        print("Unknown powerup or bad coordinates.")
        return state

    row: Optional[int] = numbers[0] if numbers else None
    col: Optional[int] = numbers[1] if len(numbers) > 1 else None
    if powerup_type == PowerupType.COLUMN_CLEAR and len(numbers) == 1:
        row, col = None, numbers[0]

    try:
        effect = powerups.effect_for(powerup_type, row, col)
    except ValueError as e:
        print(str(e))
        return state

    new_state, applied = powerups.apply_powerup(state, effect, bus=bus)
    if not applied:
        print("That powerup can't be used there.")
    return new_state


# --- Display Function (Example of external usage) ---
def display_board_state(state: GameState):
    """Prints the board, score, powerups and game status to the console."""
    print(f"\nScore: {state.score}  Best: {state.best_score}")
    progress = core.determine_game_status(state)
    status_message = {
        core.GameProgressState.IN_PROGRESS: f"Status: {progress.name}",
        core.GameProgressState.GAME_WON: "YOU WON! Keep going.",
        core.GameProgressState.GAME_OVER: "GAME OVER!"
    }
    print(status_message[progress])
    if state.available_powerups:
        print("Powerups: " + ", ".join(p.type.value for p in state.available_powerups))
    for powerup in state.active_powerups:
        print(f"Active: {powerup.type.display_name} ({powerup.moves_remaining} moves left)")

    for row in state.board:
        print("\t".join(tile.display_text if tile else "." for tile in row))
    print("-" * (len(state.board) * 6))


if __name__ == "__main__":
    main()
