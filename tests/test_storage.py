import json
from datetime import datetime, timedelta

import pytest

import core
import powerups
import schemas
from helpers import B, make_state, values
from models import PowerupType
from storage import GameRepository, StorageError


@pytest.fixture
def repo(tmp_path):
    return GameRepository(tmp_path / "data")


def test_missing_files_have_defaults(repo):
    assert repo.load_game_state() is None
    assert repo.load_best_score() == 0
    assert repo.load_statistics() == schemas.GameStatistics()


def test_saved_game_survives_reload(repo):
    state = make_state([[2, B, 8], [None, 1024]], score=1234, best_score=5000, pending_blockers=1)
    state, _ = powerups.add_powerup(state, PowerupType.TILE_FREEZE)
    state, _ = powerups.add_powerup(state, PowerupType.ROW_CLEAR)
    state, _ = powerups.apply_powerup(state, powerups.FreezeSpawns())

    repo.save_game_state(state)
    loaded = repo.load_game_state()

    assert values(loaded.board) == values(state.board)
    assert [t.id for t in loaded.all_tiles] == [t.id for t in state.all_tiles]
    assert loaded.score == 1234 and loaded.best_score == 5000
    assert loaded.pending_blockers == 1
    assert [p.type for p in loaded.available_powerups] == [PowerupType.ROW_CLEAR]
    assert loaded.is_tile_freeze_active
    assert loaded.used_powerup_types == {PowerupType.TILE_FREEZE}

    repo.clear_game_state()
    assert repo.load_game_state() is None


def test_corrupt_game_state_raises(repo):
    repo.directory.mkdir(parents=True)
    (repo.directory / "game_state.json").write_text("{not json", encoding="utf-8")
    with pytest.raises(StorageError):
        repo.load_game_state()


def test_wrong_board_size_raises(repo):
    data = schemas.state_to_data(make_state([[2]]))
    data.board = [row[:4] for row in data.board[:4]]
    repo.directory.mkdir(parents=True)
    (repo.directory / "game_state.json").write_text(data.model_dump_json(), encoding="utf-8")
    with pytest.raises(StorageError):
        repo.load_game_state()


def test_data_to_state_checks_shape():
    data = schemas.state_to_data(make_state([[2]]))
    data.board = data.board[:3]
    with pytest.raises(core.InvalidBoardShapeError):
        schemas.data_to_state(data)


def test_record_finished_game_updates_statistics_and_best_score(repo):
    won = make_state([[2048, 16]], score=20000, has_won=True,
                     used_powerup_types=frozenset({PowerupType.UNDO_MOVE}))
    lost = make_state([[64]], score=800)

    repo.record_finished_game(won)
    stats = repo.record_finished_game(lost)

    assert stats.games_played == 2 and stats.games_won == 1
    assert stats.win_rate == 0.5
    assert stats.average_score == 10400
    assert stats.highest_tile_value == 2048
    assert stats.tile_value_achievements[64] == 2
    assert stats.tile_value_achievements[2048] == 1
    assert stats.powerup_usage_count == {"undo_move": 1}
    assert repo.load_statistics() == stats
    assert repo.load_best_score() == 20000


def test_empty_statistics_rates():
    stats = schemas.GameStatistics()
    assert stats.win_rate == 0.0 and stats.average_score == 0.0


def test_reset_all_data(repo):
    repo.save_game_state(make_state([[2]]))
    repo.save_best_score(100)
    repo.record_finished_game(make_state([[4]], score=4))
    repo.reset_all_data()
    assert repo.load_game_state() is None
    assert repo.load_best_score() == 0
    assert repo.load_statistics().games_played == 0


def test_non_power_of_two_tile_is_rejected(repo):
    data = schemas.state_to_data(make_state([[2, 2]])).model_dump(mode="json")
    data["board"][0][0]["value"] = 3
    data["board"][0][1]["value"] = 3
    with pytest.raises(ValueError):
        schemas.data_to_state(schemas.GameStateData.model_validate(data))

    repo.directory.mkdir(parents=True)
    (repo.directory / "game_state.json").write_text(json.dumps(data), encoding="utf-8")
    with pytest.raises(StorageError):
        repo.load_game_state()


def test_statistics_by_game_mode():
    stats = schemas.GameStatistics()
    stats = stats.record_game(make_state([[2048]], score=25000, has_won=True), duration_seconds=600)
    stats = stats.record_game(make_state([[512]], score=6000, is_time_attack=True, time_limit=120),
                              duration_seconds=120)
    stats = stats.record_game(make_state([[1024]], score=9000, is_time_attack=True, time_limit=120))
    stats = stats.record_game(make_state([[256]], score=3000, is_scenic=True, scenic_background_index=2))

    assert stats.game_mode_stats == {"classic": 1, "time_attack": 2, "scenic": 1}
    assert stats.game_mode_wins == {"classic": 1}
    assert stats.game_mode_best_scores == {"classic": 25000, "time_attack": 9000, "scenic": 3000}
    assert stats.mode_win_rate("classic") == 1.0
    assert stats.mode_win_rate("time_attack") == 0.0
    assert stats.total_2048_achievements == 1
    assert stats.total_play_time_seconds == 720


def test_recent_games_newest_first_and_capped():
    stats = schemas.GameStatistics()
    first_day = datetime(2024, 1, 1, 12, 0)
    for i in range(schemas.RECENT_GAMES_LIMIT + 2):
        stats = stats.record_game(
            make_state([[4]], score=i, used_powerup_types=frozenset({PowerupType.ROW_CLEAR})),
            played_at=first_day + timedelta(days=i),
        )

    assert stats.games_played == schemas.RECENT_GAMES_LIMIT + 2
    assert len(stats.recent_games) == schemas.RECENT_GAMES_LIMIT
    assert [g.score for g in stats.recent_games[:2]] == [11, 10]
    latest = stats.recent_games[0]
    assert latest.game_mode == "classic" and not latest.won
    assert latest.highest_tile_reached == 4 and latest.powerups_used == 1
    assert stats.last_played == first_day + timedelta(days=11)


def test_extended_statistics_survive_reload(repo):
    played_at = datetime(2024, 5, 1, 9, 30)
    repo.save_statistics(
        schemas.GameStatistics().record_game(make_state([[2048]], score=21000, has_won=True), 300, played_at)
    )
    loaded = repo.load_statistics()
    assert loaded.last_played == played_at
    assert loaded.recent_games[0].date_played == played_at
    assert loaded.tile_value_achievements[2048] == 1


def test_update_best_score_only_raises(repo):
    assert repo.update_best_score(300) == 300
    assert repo.update_best_score(100) == 300
    assert repo.load_best_score() == 300
