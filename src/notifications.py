# notifications.py
# Event bus the engine reports through. Listeners (UI, sound, statistics) subscribe
# by event name; the engine never knows who is listening.

from typing import Dict

from blinker import Signal


class EventBus:
    """Simple event bus leveraging blinker Signal objects."""
    def __init__(self):
        self._signals: Dict[str, Signal] = {}

    def subscribe(self, name: str, fn):
        sig = self._signals.setdefault(name, Signal(name))
        # Strong reference so lambdas and bound methods of short-lived objects still fire.
        sig.connect(fn, weak=False)

    def unsubscribe(self, name: str, fn):
        sig = self._signals.get(name)
        if sig:
            sig.disconnect(fn)

    def emit(self, name: str, **payload):
        sig = self._signals.get(name)
        if sig:
            sig.send(self, **payload)


# ============================================================================
# BOARD
# ============================================================================
EVENT_TILE_SPAWNED = "tile_spawned"          # payload: position=Position, value=int
EVENT_BLOCKER_PLACED = "blocker_placed"      # payload: position=Position


# ============================================================================
# POWERUPS
# ============================================================================
EVENT_POWERUP_AWARDED = "powerup_awarded"      # payload: powerup_type=PowerupType
EVENT_POWERUP_ACTIVATED = "powerup_activated"  # payload: powerup_type=PowerupType
EVENT_POWERUP_EXPIRED = "powerup_expired"      # payload: powerup_type=PowerupType


# ============================================================================
# GAME FLOW
# ============================================================================
EVENT_GAME_WON = "game_won"    # payload: score=int
EVENT_GAME_OVER = "game_over"  # payload: score=int
