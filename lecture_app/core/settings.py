"""Runtime configuration read from ``LECTURE_*`` environment variables or ``.env``."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from lecture_app.constants.network_constants import (
    DEFAULT_HOST,
    DEFAULT_POLL_INTERVAL_SECONDS,
    DEFAULT_PORT,
)
from lecture_app.constants.timer_constants import (
    DEFAULT_INTERVAL_MINUTES,
    MAX_INTERVAL_MINUTES,
    MIN_INTERVAL_MINUTES,
    PIP_FLASH_SECONDS,
    STALE_AFTER_SECONDS,
    STUDENT_FLASH_SECONDS,
)
from lecture_app.core.services.timer_receiver import OrderingPolicy


class LectureSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="LECTURE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    host: str = DEFAULT_HOST
    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535)
    instructor_id: str = "classroom"

    interval_minutes: int = Field(default=DEFAULT_INTERVAL_MINUTES, ge=MIN_INTERVAL_MINUTES, le=MAX_INTERVAL_MINUTES)
    auto_question_enabled: bool = True
    # Seconds between snapshots; every tick is broadcast once 10 seconds or fewer remain.
    sync_every_seconds: int = Field(default=1, ge=1)

    student_flash_seconds: float = Field(default=STUDENT_FLASH_SECONDS, gt=0)
    pip_flash_seconds: float = Field(default=PIP_FLASH_SECONDS, gt=0)
    stale_after_seconds: float = Field(default=STALE_AFTER_SECONDS, gt=0)
    poll_interval_seconds: float = Field(default=DEFAULT_POLL_INTERVAL_SECONDS, gt=0)

    ordering: Literal["last_write_wins", "sequenced"] = "last_write_wins"
    log_level: str = "INFO"

    @field_validator("instructor_id")
    @classmethod
    def _instructor_id_not_blank(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("instructor_id must not be blank")
        return cleaned

    @field_validator("log_level")
    @classmethod
    def _known_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level '{value}'")
        return level

    @property
    def ordering_policy(self) -> OrderingPolicy:
        return OrderingPolicy(self.ordering)


@lru_cache
def load_settings() -> LectureSettings:
    return LectureSettings()
