import pytest
from pydantic import ValidationError

import cli_driver
from helpers import B, make_state
from settings import ServiceSettings, load_settings


def test_defaults_without_environment():
    settings = load_settings({})
    assert settings == ServiceSettings()
    assert settings.rate_limit == "100/minute"
    assert settings.log_level == "WARNING"


def test_environment_overrides():
    settings = load_settings({
        "BLOCKER2048_RATE_LIMIT": "5/second",
        "BLOCKER2048_DATA_DIR": "/tmp/games",
        "BLOCKER2048_LOG_LEVEL": "debug",
        "UNRELATED": "x",
    })
    assert settings.rate_limit == "5/second"
    assert settings.data_dir == "/tmp/games"
    assert settings.log_level == "DEBUG"


def test_unknown_log_level_is_rejected():
    with pytest.raises(ValidationError):
        load_settings({"BLOCKER2048_LOG_LEVEL": "chatty"})


def test_cli_board_display(capsys):
    cli_driver.display_board_state(make_state([[2, B, 2048]], score=12))
    out = capsys.readouterr().out
    assert "Score: 12" in out
    assert "2\tX\t2048\t.\t." in out
    assert "YOU WON!" in out
