import sys, os

# Ensure src is on path for test imports
ROOT = os.path.dirname(os.path.dirname(__file__))
SRC = os.path.join(ROOT, 'src')
if SRC not in sys.path:
    sys.path.insert(0, SRC)

import random

import pytest

import notifications
from notifications import EventBus


@pytest.fixture
def rng():
    return random.Random(2048)


@pytest.fixture
def bus_events():
    """An EventBus plus the list of (event, payload) it has emitted."""
    bus = EventBus()
    events = []

    def recorder(name):
        return lambda sender, **payload: events.append((name, payload))

    for name in (
        notifications.EVENT_TILE_SPAWNED,
        notifications.EVENT_BLOCKER_PLACED,
        notifications.EVENT_POWERUP_AWARDED,
        notifications.EVENT_POWERUP_ACTIVATED,
        notifications.EVENT_POWERUP_EXPIRED,
        notifications.EVENT_GAME_WON,
        notifications.EVENT_GAME_OVER,
    ):
        bus.subscribe(name, recorder(name))
    return bus, events
