import logging
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from pydantic import BaseModel, Field
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

import core
import game
import powerups
import schemas
from models import DIRECTION, PowerupType
from settings import load_settings

logger = logging.getLogger(__name__)
settings = load_settings()

# Initialize the rate limiter
limiter = Limiter(key_func=get_remote_address)
app = FastAPI(
    title="Blocker 2048 Game API",
    description="A stateless API for playing 5x5 2048 with blocker tiles and powerups. "\
                "The client keeps the game state and sends it back with every request.",
    version="1.0.0"
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# --- Pydantic Models for API requests and responses ---

class NewGameSettings(BaseModel):
    """Settings for creating a new game."""
    best_score: int = Field(
        default=0,
        ge=0,
        description="Best score from earlier games, carried into the new game."
    )
    time_limit: Optional[int] = Field(
        default=None,
        gt=0,
        description="Seconds for a time-attack game; omit for a normal game."
    )
    scenic_background: Optional[int] = Field(
        default=None,
        ge=0,
        description="Background index for a scenic game; omit for a normal game."
    )


class MoveRequestData(BaseModel):
    """Data required to make a move."""
    state: schemas.GameStateData = Field(..., description="Current game state before the move.")
    direction: DIRECTION = Field(
        ...,
        description="Direction of the move (1=UP, 2=DOWN, 3=LEFT, 4=RIGHT)."
    )


class MoveResponseData(schemas.GameStateData):
    """Response after a move, including the new game state and move effectiveness."""
    move_was_effective: bool = Field(
        ...,
        description="True if the move resulted in a change to the board state, False otherwise."
    )
    message: Optional[str] = Field(
        default=None,
        description="An optional message, e.g., if a move was invalid, game ended, or other info."
    )


class PowerupRequestData(BaseModel):
    """Data required to use a powerup from the inventory."""
    state: schemas.GameStateData = Field(..., description="Current game state.")
    powerup_type: PowerupType = Field(..., description="The powerup to use.")
    row: Optional[int] = Field(default=None, description="Target row, for row and cell powerups.")
    col: Optional[int] = Field(default=None, description="Target column, for column and cell powerups.")


class PowerupResponseData(schemas.GameStateData):
    """Response after a powerup attempt."""
    applied: bool = Field(
        ...,
        description="False if the powerup was unavailable or the target was invalid; "
                    "the state is then unchanged and the selection should stay open."
    )
    message: Optional[str] = None


def _load_state(data: schemas.GameStateData):
    try:
        return schemas.data_to_state(data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid game state in request: {str(e)}")


# --- API Endpoints ---

@app.post("/game/new", response_model=schemas.GameStateData, summary="Start a New Game")
@limiter.limit(settings.rate_limit)
async def start_new_game(request: Request, new_game: NewGameSettings):
    """
    Initializes a new game on an empty 5x5 board with two random tiles.

    - **best_score**: Best score to carry over. Default is 0.
    - **time_limit**: Seconds for a time-attack game.
    - **scenic_background**: Background index for a scenic game.
    """
    try:
        state = core.initialize_game(
            best_score=new_game.best_score,
            time_limit=new_game.time_limit,
            scenic_background=new_game.scenic_background,
        )
        return schemas.state_to_data(state)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Unexpected error in /game/new: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"An unexpected error occurred during game creation: {str(e)}")


@app.post("/game/move", response_model=MoveResponseData, summary="Make a Move in the Game")
@limiter.limit(settings.rate_limit)
async def make_move(request: Request, request_data: MoveRequestData):
    """
    Processes a player's move in the game.

    The API will:
    1. Slide and merge tiles in the requested direction.
    2. If the board changed: advance active powerups, spawn a tile (unless Tile Freeze
       is active), place earned blockers and award powerups for the new score.
    3. Re-evaluate the win and game-over flags.

    Returns the updated game state, whether the move was effective, and an optional message.
    """
    current_state = _load_state(request_data.state)
    message_for_client: Optional[str] = None

    try:
        new_state, move_was_effective = game.play_move(current_state, request_data.direction)

        if not move_was_effective:
            message_for_client = "Move was not effective; board state unchanged by slide."

        progress = core.determine_game_status(new_state)
        if progress == core.GameProgressState.GAME_OVER:
            message_for_client = "Game Over. No more valid moves."
        elif new_state.has_won and not current_state.has_won:
            message_for_client = "Congratulations! You won!"

        return MoveResponseData(
            **schemas.state_to_data(new_state).model_dump(),
            move_was_effective=move_was_effective,
            message=message_for_client
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Error processing move: {str(e)}")
    except Exception as e:
        logger.error(f"Unexpected error in /game/move: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"An unexpected server error occurred while processing the move: {str(e)}")


@app.post("/game/powerup", response_model=PowerupResponseData, summary="Use a Powerup")
@limiter.limit(settings.rate_limit)
async def use_powerup(request: Request, request_data: PowerupRequestData):
    """
    Applies a powerup from the inventory to the current board.

    Tile Destroyer and Tile Shrink need `row` and `col`, Row Clear needs `row`,
    Column Clear needs `col`; the other powerups take no target.
    """
    current_state = _load_state(request_data.state)

    try:
        effect = powerups.effect_for(request_data.powerup_type, request_data.row, request_data.col)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        new_state, applied = powerups.apply_powerup(current_state, effect)
        message = None if applied else "Powerup could not be applied to that selection."
        return PowerupResponseData(
            **schemas.state_to_data(new_state).model_dump(),
            applied=applied,
            message=message
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Error applying powerup: {str(e)}")
    except Exception as e:
        logger.error(f"Unexpected error in /game/powerup: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"An unexpected server error occurred while applying the powerup: {str(e)}")
