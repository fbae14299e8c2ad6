"""Runtime settings read from the environment (and a .env file if present)."""
from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv


class WriteFailurePolicy(str, Enum):
    """What happens to a candidate whose match could not be written.

    RELEASE puts the candidate back into the pool for later seekers.
    CONSUME keeps it out of the pool for the rest of the run.
    """

    RELEASE = "release"
    CONSUME = "consume"


DEFAULT_DATABASE_URL = "sqlite:///data/matches.db"


@dataclass(frozen=True)
class Settings:
    database_url: str = DEFAULT_DATABASE_URL
    log_level: str = "INFO"
    log_dir: Optional[Path] = None
    write_failure_policy: WriteFailurePolicy = WriteFailurePolicy.RELEASE
    simulation_top_k: int = 10


def _parse_policy(raw: str) -> WriteFailurePolicy:
    try:
        return WriteFailurePolicy(raw.strip().lower())
    except ValueError:
        allowed = ", ".join(p.value for p in WriteFailurePolicy)
        raise ValueError(
            f"CAMPUSMATCH_WRITE_FAILURE_POLICY must be one of {allowed}, got {raw!r}"
        ) from None


def _parse_positive_int(name: str, raw: str) -> int:
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")
    return value


def load_settings(env: Optional[Mapping[str, str]] = None, dotenv: bool = True) -> Settings:
    """Build Settings from `env` (defaults to os.environ after loading .env)."""
    if env is None:
        if dotenv:
            load_dotenv()
        env = os.environ

    log_dir = env.get("CAMPUSMATCH_LOG_DIR")
    level = env.get("CAMPUSMATCH_LOG_LEVEL", "INFO").strip().upper()
    if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        raise ValueError(f"CAMPUSMATCH_LOG_LEVEL is not a log level: {level!r}")

    return Settings(
        database_url=env.get("CAMPUSMATCH_DATABASE_URL", DEFAULT_DATABASE_URL),
        log_level=level,
        log_dir=Path(log_dir) if log_dir else None,
        write_failure_policy=_parse_policy(env.get("CAMPUSMATCH_WRITE_FAILURE_POLICY", "release")),
        simulation_top_k=_parse_positive_int(
            "CAMPUSMATCH_SIMULATION_TOP_K", env.get("CAMPUSMATCH_SIMULATION_TOP_K", "10")
        ),
    )
