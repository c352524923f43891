from __future__ import annotations

import pytest
from pydantic import ValidationError

from lecture_app.core.services.timer_receiver import OrderingPolicy
from lecture_app.core.settings import LectureSettings, load_settings


def test_defaults(make_settings) -> None:
    settings = make_settings()

    assert settings.interval_minutes == 15
    assert settings.auto_question_enabled is True
    assert settings.sync_every_seconds == 1
    assert settings.student_flash_seconds == 1.0
    assert settings.pip_flash_seconds == 1.5
    assert settings.ordering_policy is OrderingPolicy.LAST_WRITE_WINS


def test_environment_overrides(monkeypatch) -> None:
    monkeypatch.setenv("LECTURE_INTERVAL_MINUTES", "5")
    monkeypatch.setenv("LECTURE_ORDERING", "sequenced")
    monkeypatch.setenv("LECTURE_LOG_LEVEL", "debug")

    settings = LectureSettings(_env_file=None)

    assert settings.interval_minutes == 5
    assert settings.ordering_policy is OrderingPolicy.SEQUENCED
    assert settings.log_level == "DEBUG"


def test_dotenv_file_is_read_and_cached(tmp_path) -> None:
    (tmp_path / ".env").write_text("LECTURE_INSTRUCTOR_ID=  room42  \n", encoding="utf-8")

    settings = load_settings()

    assert settings.instructor_id == "room42"
    assert load_settings() is settings


@pytest.mark.parametrize(
    "overrides",
    [
        {"interval_minutes": 0},
        {"interval_minutes": 500},
        {"instructor_id": "   "},
        {"port": 70000},
        {"sync_every_seconds": 0},
        {"log_level": "chatty"},
        {"ordering": "random"},
        {"student_flash_seconds": 0},
    ],
)
def test_invalid_values_are_rejected(make_settings, overrides) -> None:
    with pytest.raises(ValidationError):
        make_settings(**overrides)
