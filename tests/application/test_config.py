from pathlib import Path

import pytest
from pydantic import ValidationError

from lessontrack.application.config import AppConfig, resolve_config
from lessontrack.domain.constants import FLUSH_DELAY_MS, TICK_INTERVAL_MS


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, mock_home):
    for var in ["USER_ID", "STORE_PATH", "TICK_INTERVAL_MS", "LESSONS_DIR", "CONTENT_URL"]:
        monkeypatch.delenv(f"LESSONTRACK_{var}", raising=False)


def write_toml(home: Path, text: str) -> None:
    path = home / ".config/lessontrack/config.toml"
    path.parent.mkdir(parents=True)
    path.write_text(text)


def test_defaults(mock_home):
    config = resolve_config()

    assert config.tick_interval_ms == TICK_INTERVAL_MS
    assert config.flush_delay_ms == FLUSH_DELAY_MS
    assert config.user_id is None
    assert config.resolved_store_path == mock_home / ".local/share/lessontrack/progress.sqlite3"


def test_env_overrides_defaults(monkeypatch):
    monkeypatch.setenv("LESSONTRACK_USER_ID", "7")
    monkeypatch.setenv("LESSONTRACK_TICK_INTERVAL_MS", "2500")

    config = resolve_config()

    assert config.user_id == 7
    assert config.tick_interval_ms == 2500


def test_toml_file_is_read(mock_home):
    write_toml(mock_home, 'user_id = 3\ncontent_url = "https://lessons.example"\n')

    config = resolve_config()

    assert config.user_id == 3
    assert config.content_url == "https://lessons.example"


def test_env_wins_over_toml(mock_home, monkeypatch):
    write_toml(mock_home, "user_id = 3\n")
    monkeypatch.setenv("LESSONTRACK_USER_ID", "9")

    assert resolve_config().user_id == 9


def test_cli_overrides_win_and_none_is_ignored(mock_home, monkeypatch):
    write_toml(mock_home, "user_id = 3\n")
    monkeypatch.setenv("LESSONTRACK_TICK_INTERVAL_MS", "2500")

    config = resolve_config({"user_id": 11, "tick_interval_ms": None})

    assert config.user_id == 11
    assert config.tick_interval_ms == 2500


def test_paths_are_expanded(mock_home, tmp_path):
    config = AppConfig(store_path="~/data/p.sqlite3", lessons_dir="", data_dir="~/d")

    assert config.store_path == (mock_home / "data/p.sqlite3").resolve()
    assert config.lessons_dir is None
    assert config.data_dir == mock_home / "d"


@pytest.mark.parametrize("field", ["tick_interval_ms", "dwell_bonus_ms", "max_events"])
def test_invalid_bounds_rejected(field):
    with pytest.raises(ValidationError):
        AppConfig(**{field: 0})
