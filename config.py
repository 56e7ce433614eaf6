from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path

from appdirs import user_log_dir
from dotenv import load_dotenv

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _default_session_file() -> str:
    return str(Path.home() / ".cleaning_desk" / "session.json")


@dataclass
class Settings:
    database_url: str = ""
    log_dir: str = field(default_factory=lambda: user_log_dir("cleaning_desk"))
    log_level: str = "INFO"
    detailed_logging: bool = False
    session_file: str = field(default_factory=_default_session_file)
    realtime_enabled: bool = True
    reward_visit_threshold: int = 5
    currency: str = "RWF"


@lru_cache()
def get_settings() -> Settings:
    dotenv_path = Path(__file__).resolve().parent / ".env"
    load_dotenv(dotenv_path)

    return Settings(
        database_url=os.getenv("DATABASE_URL", ""),
        log_dir=os.getenv("LOG_DIR") or user_log_dir("cleaning_desk"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        detailed_logging=os.getenv("DETAILED_LOGGING", "0").lower() in _TRUE_VALUES,
        session_file=os.getenv("SESSION_FILE") or _default_session_file(),
        realtime_enabled=os.getenv("REALTIME_ENABLED", "1").lower() in _TRUE_VALUES,
        reward_visit_threshold=int(os.getenv("REWARD_VISIT_THRESHOLD", "5")),
        currency=os.getenv("CURRENCY", "RWF"),
    )
