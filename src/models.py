# models.py
# Immutable value types shared by the engine, the powerup resolver and the API.

import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import FrozenSet, NamedTuple, Optional, Tuple

BOARD_SIZE = 5
BLOCKER_VALUE = -1  # Sentinel value carried by blocker tiles
WIN_TILE = 2048

TILE_COLORS = {
    2: 0xFFEEE4DA,
    4: 0xFFEDE0C8,
    8: 0xFFF2B179,
    16: 0xFFF59563,
    32: 0xFFF67C5F,
    64: 0xFFF65E3B,
    128: 0xFFEDCF72,
    256: 0xFFEDCC61,
    512: 0xFFEDC850,
    1024: 0xFFEDC53F,
    2048: 0xFFEDC22E,
}
HIGH_TILE_COLOR = 0xFF3C3A32
BLOCKER_COLOR = 0xFF2C2C2C
DARK_TEXT_COLOR = 0xFF776E65
LIGHT_TEXT_COLOR = 0xFFF9F6F2
BLOCKER_TEXT_COLOR = 0xFFFFFFFF
BLOCKER_TEXT = "X"


def is_valid_tile_value(value: int) -> bool:
    """Normal tiles hold powers of two: 2, 4, 8, ..."""
    return value >= 2 and value & (value - 1) == 0


class DIRECTION(Enum):
    """Represents the possible move directions."""
    UP = 1
    DOWN = 2
    LEFT = 3
    RIGHT = 4

    @property
    def opposite(self) -> "DIRECTION":
        return _OPPOSITES[self]

    @property
    def vector(self) -> Tuple[int, int]:
        """(row, col) step of a tile travelling in this direction."""
        return _VECTORS[self]


_OPPOSITES = {
    DIRECTION.UP: DIRECTION.DOWN,
    DIRECTION.DOWN: DIRECTION.UP,
    DIRECTION.LEFT: DIRECTION.RIGHT,
    DIRECTION.RIGHT: DIRECTION.LEFT,
}
_VECTORS = {
    DIRECTION.UP: (-1, 0),
    DIRECTION.DOWN: (1, 0),
    DIRECTION.LEFT: (0, -1),
    DIRECTION.RIGHT: (0, 1),
}


class Position(NamedTuple):
    """A (row, col) cell coordinate."""
    row: int
    col: int


def new_tile_id(row: int, col: int, prefix: str = "tile") -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}_{row}_{col}"


@dataclass(frozen=True)
class Tile:
    """
    A single occupant of a board cell.

    A tile never changes in place: moving, merging and flag resets all return
    a new Tile. `id` survives a slide but not a merge.
    """
    value: int
    row: int
    col: int
    id: str
    is_new: bool = False
    is_merged: bool = False
    is_blocker: bool = False

    @classmethod
    def with_value(cls, value: int, row: int, col: int) -> "Tile":
        """Creates a freshly spawned normal tile."""
        if not is_valid_tile_value(value):
            raise ValueError(f"Tile value must be a power of two of at least 2, got {value}.")
        return cls(value=value, row=row, col=col, id=new_tile_id(row, col), is_new=True)

    @classmethod
    def blocker(cls, row: int, col: int) -> "Tile":
        """Creates a freshly placed blocker tile."""
        return cls(
            value=BLOCKER_VALUE,
            row=row,
            col=col,
            id=new_tile_id(row, col, prefix="blocker"),
            is_new=True,
            is_blocker=True,
        )

    def moved_to(self, row: int, col: int) -> "Tile":
        return replace(self, row=row, col=col, is_new=False)

    def merged(self, row: int, col: int) -> "Tile":
        """The tile produced by merging this tile with an equal one at (row, col)."""
        return Tile(
            value=self.value * 2,
            row=row,
            col=col,
            id=new_tile_id(row, col),
            is_merged=True,
        )

    def revalued(self, value: int) -> "Tile":
        return replace(self, value=value)

    def reset_flags(self) -> "Tile":
        if not self.is_new and not self.is_merged:
            return self
        return replace(self, is_new=False, is_merged=False)

    def matches(self, other: "Tile") -> bool:
        """True if the two tiles are merge-compatible, ignoring this turn's flags."""
        if self.is_blocker or other.is_blocker:
            return self.is_blocker and other.is_blocker
        return self.value == other.value

    def can_merge_with(self, other: "Tile") -> bool:
        """
        Checks whether this tile may merge with `other` during the current move.
        A tile that already merged this turn cannot merge again, and blockers only
        ever merge with blockers.
        """
        if self.is_merged or other.is_merged:
            return False
        return self.matches(other)

    def is_winning_tile(self, win_tile: int = WIN_TILE) -> bool:
        return not self.is_blocker and self.value >= win_tile

    @property
    def color(self) -> int:
        if self.is_blocker:
            return BLOCKER_COLOR
        return TILE_COLORS.get(self.value, HIGH_TILE_COLOR)

    @property
    def text_color(self) -> int:
        if self.is_blocker:
            return BLOCKER_TEXT_COLOR
        return DARK_TEXT_COLOR if self.value <= 4 else LIGHT_TEXT_COLOR

    @property
    def font_size(self) -> float:
        if self.is_blocker:
            return 16.0
        if self.value < 100:
            return 24.0
        if self.value < 1000:
            return 20.0
        if self.value < 10000:
            return 18.0
        return 16.0

    @property
    def display_text(self) -> str:
        return BLOCKER_TEXT if self.is_blocker else str(self.value)


# A board is a BOARD_SIZE x BOARD_SIZE grid of optional tiles, stored as nested
# tuples so that no transform can alias and mutate a caller's board.
Board = Tuple[Tuple[Optional[Tile], ...], ...]


class PowerupType(Enum):
    """Every powerup the engine knows how to resolve."""
    TILE_FREEZE = "tile_freeze"
    UNDO_MOVE = "undo_move"
    SHUFFLE_BOARD = "shuffle_board"
    TILE_DESTROYER = "tile_destroyer"
    VALUE_UPGRADE = "value_upgrade"
    ROW_CLEAR = "row_clear"
    COLUMN_CLEAR = "column_clear"
    BLOCKER_SHIELD = "blocker_shield"
    TILE_SHRINK = "tile_shrink"

    @property
    def default_duration(self) -> int:
        """Number of moves the effect lasts; 1 for single-use powerups."""
        return _DURATIONS.get(self, 1)

    @property
    def is_duration_based(self) -> bool:
        return self in _DURATIONS

    @property
    def is_primary(self) -> bool:
        return self not in (PowerupType.BLOCKER_SHIELD, PowerupType.TILE_SHRINK)

    @property
    def display_name(self) -> str:
        return self.value.replace("_", " ").title()


_DURATIONS = {
    PowerupType.TILE_FREEZE: 5,
    PowerupType.BLOCKER_SHIELD: 3,
}


@dataclass(frozen=True)
class Powerup:
    """A powerup held in the inventory or running as an active effect."""
    type: PowerupType
    moves_remaining: int
    id: str
    is_active: bool = False

    @classmethod
    def create(cls, powerup_type: PowerupType) -> "Powerup":
        return cls(
            type=powerup_type,
            moves_remaining=powerup_type.default_duration,
            id=f"{powerup_type.value}_{uuid.uuid4().hex[:12]}",
        )

    def activate(self) -> "Powerup":
        return replace(self, is_active=True)

    def use_move(self) -> "Powerup":
        if not self.is_active or self.moves_remaining <= 0:
            return self
        remaining = self.moves_remaining - 1
        return replace(self, moves_remaining=remaining, is_active=remaining > 0)


def empty_board() -> Board:
    return tuple(tuple(None for _ in range(BOARD_SIZE)) for _ in range(BOARD_SIZE))


@dataclass(frozen=True)
class GameState:
    """
    The complete state of one game. Every engine operation takes a GameState and
    returns a new one; the input is never modified.

    `pending_blockers` counts blockers earned by high-value merges that have not
    been placed on the board yet. `previous_state` is the state before the last
    successful move and is what Undo restores; it never nests more than one level.
    """
    board: Board = field(default_factory=empty_board)
    score: int = 0
    best_score: int = 0
    is_game_over: bool = False
    has_won: bool = False
    pending_blockers: int = 0
    available_powerups: Tuple[Powerup, ...] = ()
    active_powerups: Tuple[Powerup, ...] = ()
    used_powerup_types: FrozenSet[PowerupType] = frozenset()
    is_time_attack: bool = False
    time_limit: Optional[int] = None
    is_scenic: bool = False
    scenic_background_index: Optional[int] = None
    previous_state: Optional["GameState"] = None

    def copy_with(self, **changes) -> "GameState":
        return replace(self, **changes)

    @property
    def all_tiles(self) -> Tuple[Tile, ...]:
        return tuple(tile for row in self.board for tile in row if tile is not None)

    @property
    def highest_tile_value(self) -> int:
        values = [tile.value for tile in self.all_tiles if not tile.is_blocker]
        return max(values, default=0)

    def is_powerup_active(self, powerup_type: PowerupType) -> bool:
        return any(p.type == powerup_type and p.is_active for p in self.active_powerups)

    def get_active_powerup(self, powerup_type: PowerupType) -> Optional[Powerup]:
        for powerup in self.active_powerups:
            if powerup.type == powerup_type and powerup.is_active:
                return powerup
        return None

    def is_powerup_ever_unlocked(self, powerup_type: PowerupType) -> bool:
        return powerup_type in self.used_powerup_types or any(
            p.type == powerup_type for p in self.available_powerups
        )

    @property
    def total_powerups_unlocked(self) -> int:
        unlocked = set(self.used_powerup_types)
        unlocked.update(p.type for p in self.available_powerups)
        return len(unlocked)

    @property
    def is_tile_freeze_active(self) -> bool:
        return self.is_powerup_active(PowerupType.TILE_FREEZE)

    @property
    def is_blocker_shield_active(self) -> bool:
        return self.is_powerup_active(PowerupType.BLOCKER_SHIELD)
