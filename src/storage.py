# storage.py
# Persistence collaborator: game state, best score and statistics as JSON files
# in one directory. The engine never touches this module; drivers do.

import json
import logging
from pathlib import Path
from typing import Optional, Union

from pydantic import ValidationError

import schemas
from models import GameState

logger = logging.getLogger(__name__)

GAME_STATE_FILE = "game_state.json"
BEST_SCORE_FILE = "best_score.json"
STATISTICS_FILE = "statistics.json"


class StorageError(Exception):
    """Raised when stored data cannot be read or written."""


class GameRepository:
    """Reads and writes saved games under `directory`, creating it on first write."""

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory).expanduser()

    def _path(self, name: str) -> Path:
        return self.directory / name

    def _write(self, name: str, text: str) -> None:
        path = self._path(name)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            tmp = path.with_suffix(".tmp")
            tmp.write_text(text, encoding="utf-8")
            tmp.replace(path)
        except OSError as e:
            raise StorageError(f"Could not write {path}: {e}") from e

    def _read(self, name: str) -> Optional[str]:
        path = self._path(name)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Could not read {path}: {e}") from e

    # --- Game state ---

    def save_game_state(self, state: GameState) -> None:
        self._write(GAME_STATE_FILE, schemas.state_to_data(state).model_dump_json())
        logger.debug("Saved game state (score %d)", state.score)

    def load_game_state(self) -> Optional[GameState]:
        """Returns the saved game, or None when nothing has been saved."""
        text = self._read(GAME_STATE_FILE)
        if text is None:
            return None
        try:
            return schemas.data_to_state(schemas.GameStateData.model_validate_json(text))
        except (ValidationError, ValueError) as e:
            raise StorageError(f"Saved game state is corrupt: {e}") from e

    def clear_game_state(self) -> None:
        self._path(GAME_STATE_FILE).unlink(missing_ok=True)

    # --- Best score ---

    def save_best_score(self, score: int) -> None:
        self._write(BEST_SCORE_FILE, json.dumps({"best_score": score}))

    def load_best_score(self) -> int:
        text = self._read(BEST_SCORE_FILE)
        if text is None:
            return 0
        try:
            return int(json.loads(text)["best_score"])
        except (ValueError, KeyError, TypeError) as e:
            raise StorageError(f"Saved best score is corrupt: {e}") from e

    # --- Statistics ---

    def save_statistics(self, statistics: schemas.GameStatistics) -> None:
        self._write(STATISTICS_FILE, statistics.model_dump_json())

    def load_statistics(self) -> schemas.GameStatistics:
        text = self._read(STATISTICS_FILE)
        if text is None:
            return schemas.GameStatistics()
        try:
            return schemas.GameStatistics.model_validate_json(text)
        except ValidationError as e:
            raise StorageError(f"Saved statistics are corrupt: {e}") from e

    def update_best_score(self, score: int) -> int:
        """Saves `score` if it beats the stored best score. Returns the best score."""
        best = self.load_best_score()
        if score > best:
            self.save_best_score(score)
            return score
        return best

    def record_finished_game(self, state: GameState, duration_seconds: int = 0) -> schemas.GameStatistics:
        """Folds a finished game into the saved statistics and best score."""
        statistics = self.load_statistics().record_game(state, duration_seconds)
        self.save_statistics(statistics)
        self.update_best_score(state.score)
        return statistics

    def reset_all_data(self) -> None:
        for name in (GAME_STATE_FILE, BEST_SCORE_FILE, STATISTICS_FILE):
            self._path(name).unlink(missing_ok=True)
        logger.info("Cleared all saved data in %s", self.directory)
