# schemas.py
# Pydantic models for game state on the wire and on disk, and the conversions to
# and from the engine's immutable types.

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

import core
from models import BLOCKER_VALUE, WIN_TILE, GameState, Powerup, PowerupType, Tile, is_valid_tile_value


class TileData(BaseModel):
    """A single tile. Its cell position is implied by where it sits on the board."""
    value: int = Field(..., description="Tile value, or -1 for a blocker tile.")
    id: str = Field(..., description="Identifier stable across slides, replaced on merge.")
    is_new: bool = Field(default=False, description="Spawned during the last turn.")
    is_merged: bool = Field(default=False, description="Produced by a merge during the last turn.")
    is_blocker: bool = Field(default=False, description="Obstacle tile that only merges with another blocker.")
    color: Optional[int] = Field(default=None, description="ARGB background color, for display only.")


class PowerupData(BaseModel):
    type: PowerupType
    moves_remaining: int = Field(..., ge=0)
    id: str
    is_active: bool = False


class GameStateData(BaseModel):
    """Represents the complete state of a game instance."""
    board: List[List[Optional[TileData]]] = Field(
        ..., description="The 5 x 5 game board; null marks an empty cell."
    )
    score: int = Field(..., ge=0, description="Current score of the game.")
    best_score: int = Field(default=0, ge=0, description="Best score across games.")
    is_game_over: bool = False
    has_won: bool = False
    progress: Optional[core.GameProgressState] = Field(
        default=None,
        description="Derived progress (IN_PROGRESS, GAME_WON, GAME_OVER); ignored on input.",
    )
    pending_blockers: int = Field(default=0, ge=0, description="Blockers earned but not yet placed.")
    available_powerups: List[PowerupData] = Field(default_factory=list)
    active_powerups: List[PowerupData] = Field(default_factory=list)
    used_powerup_types: List[PowerupType] = Field(default_factory=list)
    is_time_attack: bool = False
    time_limit: Optional[int] = Field(default=None, gt=0)
    is_scenic: bool = False
    scenic_background_index: Optional[int] = None
    previous_state: Optional["GameStateData"] = Field(
        default=None, description="State before the last move, restored by Undo Move."
    )


GameStateData.model_rebuild()


def _tile_to_data(tile: Optional[Tile]) -> Optional[TileData]:
    if tile is None:
        return None
    return TileData(
        value=tile.value,
        id=tile.id,
        is_new=tile.is_new,
        is_merged=tile.is_merged,
        is_blocker=tile.is_blocker,
        color=tile.color,
    )


def _data_to_tile(data: Optional[TileData], row: int, col: int) -> Optional[Tile]:
    if data is None:
        return None
    if data.is_blocker:
        value = BLOCKER_VALUE
    elif not is_valid_tile_value(data.value):
        raise ValueError(f"Tile at ({row}, {col}) has value {data.value}, which is not a power of two.")
    else:
        value = data.value
    return Tile(
        value=value,
        row=row,
        col=col,
        id=data.id,
        is_new=data.is_new,
        is_merged=data.is_merged,
        is_blocker=data.is_blocker,
    )


def _powerup_to_data(powerup: Powerup) -> PowerupData:
    return PowerupData(
        type=powerup.type,
        moves_remaining=powerup.moves_remaining,
        id=powerup.id,
        is_active=powerup.is_active,
    )


def _data_to_powerup(data: PowerupData) -> Powerup:
    return Powerup(type=data.type, moves_remaining=data.moves_remaining, id=data.id, is_active=data.is_active)


def state_to_data(state: GameState) -> GameStateData:
    """Converts an engine GameState into its serializable form."""
    return GameStateData(
        board=[[_tile_to_data(tile) for tile in row] for row in state.board],
        score=state.score,
        best_score=state.best_score,
        is_game_over=state.is_game_over,
        has_won=state.has_won,
        progress=core.determine_game_status(state),
        pending_blockers=state.pending_blockers,
        available_powerups=[_powerup_to_data(p) for p in state.available_powerups],
        active_powerups=[_powerup_to_data(p) for p in state.active_powerups],
        used_powerup_types=sorted(state.used_powerup_types, key=lambda t: t.value),
        is_time_attack=state.is_time_attack,
        time_limit=state.time_limit,
        is_scenic=state.is_scenic,
        scenic_background_index=state.scenic_background_index,
        previous_state=state_to_data(state.previous_state) if state.previous_state else None,
    )


def data_to_state(data: GameStateData) -> GameState:
    """
    Converts serialized data back into an engine GameState.
    Raises:
        InvalidBoardShapeError: If the board is not 5 x 5.
        ValueError: If a normal tile value is not a power of two.
    """
    core.get_board_size(data.board)
    board = core.freeze_board([
        [_data_to_tile(cell, r, c) for c, cell in enumerate(row)]
        for r, row in enumerate(data.board)
    ])
    return GameState(
        board=board,
        score=data.score,
        best_score=data.best_score,
        is_game_over=data.is_game_over,
        has_won=data.has_won,
        pending_blockers=data.pending_blockers,
        available_powerups=tuple(_data_to_powerup(p) for p in data.available_powerups),
        active_powerups=tuple(_data_to_powerup(p) for p in data.active_powerups),
        used_powerup_types=frozenset(data.used_powerup_types),
        is_time_attack=data.is_time_attack,
        time_limit=data.time_limit,
        is_scenic=data.is_scenic,
        scenic_background_index=data.scenic_background_index,
        previous_state=data_to_state(data.previous_state) if data.previous_state else None,
    )


RECENT_GAMES_LIMIT = 10

GAME_MODE_CLASSIC = "classic"
GAME_MODE_TIME_ATTACK = "time_attack"
GAME_MODE_SCENIC = "scenic"


def game_mode_of(state: GameState) -> str:
    if state.is_time_attack:
        return GAME_MODE_TIME_ATTACK
    if state.is_scenic:
        return GAME_MODE_SCENIC
    return GAME_MODE_CLASSIC


class GamePerformance(BaseModel):
    """Summary of one finished game, kept in the recent-games list."""
    score: int = Field(..., ge=0)
    won: bool
    duration_seconds: int = Field(default=0, ge=0)
    game_mode: str
    date_played: datetime
    highest_tile_reached: int = Field(default=0, ge=0)
    powerups_used: int = Field(default=0, ge=0)


class GameStatistics(BaseModel):
    """Aggregate statistics across finished games."""
    games_played: int = Field(default=0, ge=0)
    games_won: int = Field(default=0, ge=0)
    best_score: int = Field(default=0, ge=0)
    total_score: int = Field(default=0, ge=0)
    total_play_time_seconds: int = Field(default=0, ge=0)
    last_played: Optional[datetime] = None
    game_mode_stats: Dict[str, int] = Field(
        default_factory=dict, description="Game mode -> games played."
    )
    game_mode_wins: Dict[str, int] = Field(
        default_factory=dict, description="Game mode -> games won."
    )
    game_mode_best_scores: Dict[str, int] = Field(
        default_factory=dict, description="Game mode -> best score."
    )
    powerup_usage_count: Dict[str, int] = Field(
        default_factory=dict, description="Powerup type -> times used."
    )
    highest_tile_value: int = Field(default=0, ge=0)
    total_2048_achievements: int = Field(
        default=0, ge=0, description="Games in which the winning tile was reached."
    )
    tile_value_achievements: Dict[int, int] = Field(
        default_factory=dict, description="Tile value -> games in which it was reached."
    )
    recent_games: List[GamePerformance] = Field(
        default_factory=list, description="The last RECENT_GAMES_LIMIT games, newest first."
    )

    @property
    def win_rate(self) -> float:
        return self.games_won / self.games_played if self.games_played else 0.0

    @property
    def average_score(self) -> float:
        return self.total_score / self.games_played if self.games_played else 0.0

    def mode_win_rate(self, game_mode: str) -> float:
        played = self.game_mode_stats.get(game_mode, 0)
        return self.game_mode_wins.get(game_mode, 0) / played if played else 0.0

    def record_game(
        self,
        state: GameState,
        duration_seconds: int = 0,
        played_at: Optional[datetime] = None,
    ) -> "GameStatistics":
        """
        Returns statistics updated with one finished game.
        Args:
            state: The final state of the game.
            duration_seconds: How long the game was played.
            played_at: When the game finished; now when omitted.
        Returns:
            GameStatistics: A new statistics object; this one is left unchanged.
        """
        played_at = played_at or datetime.now()
        mode = game_mode_of(state)
        won = state.has_won
        highest = state.highest_tile_value

        powerup_usage = dict(self.powerup_usage_count)
        for powerup_type in state.used_powerup_types:
            powerup_usage[powerup_type.value] = powerup_usage.get(powerup_type.value, 0) + 1

        achievements = dict(self.tile_value_achievements)
        value = 2
        while value <= highest:
            achievements[value] = achievements.get(value, 0) + 1
            value *= 2

        mode_stats = dict(self.game_mode_stats)
        mode_stats[mode] = mode_stats.get(mode, 0) + 1
        mode_wins = dict(self.game_mode_wins)
        if won:
            mode_wins[mode] = mode_wins.get(mode, 0) + 1
        mode_best = dict(self.game_mode_best_scores)
        mode_best[mode] = max(mode_best.get(mode, 0), state.score)

        performance = GamePerformance(
            score=state.score,
            won=won,
            duration_seconds=duration_seconds,
            game_mode=mode,
            date_played=played_at,
            highest_tile_reached=highest,
            powerups_used=len(state.used_powerup_types),
        )

        return self.model_copy(update={
            "games_played": self.games_played + 1,
            "games_won": self.games_won + (1 if won else 0),
            "best_score": max(self.best_score, state.score),
            "total_score": self.total_score + state.score,
            "total_play_time_seconds": self.total_play_time_seconds + duration_seconds,
            "last_played": played_at,
            "game_mode_stats": mode_stats,
            "game_mode_wins": mode_wins,
            "game_mode_best_scores": mode_best,
            "powerup_usage_count": powerup_usage,
            "highest_tile_value": max(self.highest_tile_value, highest),
            "total_2048_achievements": self.total_2048_achievements + (1 if highest >= WIN_TILE else 0),
            "tile_value_achievements": achievements,
            "recent_games": [performance] + self.recent_games[:RECENT_GAMES_LIMIT - 1],
        })
