"""
Engine configuration.

Values come from environment variables (a `.env` file next to the project is
loaded first). Workflow rules such as the 24-hour draft lifetime, the 2-second
autosave window and the 5-character return justification are fixed constants
in their modules.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

env_path = Path(__file__).parent.parent / ".env"
load_dotenv(dotenv_path=env_path)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise RuntimeError(f"Environment variable {name} must be a number, got {raw!r}") from exc


def _env_int(name: str, default: int) -> int:
    value = _env_float(name, float(default))
    if value != int(value):
        raise RuntimeError(f"Environment variable {name} must be an integer")
    return int(value)


@dataclass(frozen=True, slots=True)
class EngineConfig:
    storage_dir: Path = Path(".sales_store")
    storage_bucket: str = "documentos"

    queue_refresh_seconds: float = 5.0
    reconcile_seconds: float = 10.0
    sync_interval_seconds: float = 30.0

    remote_timeout_seconds: float = 5.0
    probe_timeout_seconds: float = 3.0

    max_sync_attempts: int = 5

    log_level: str = "INFO"


def load_config() -> EngineConfig:
    """Build an EngineConfig from the current environment."""

    return EngineConfig(
        storage_dir=Path(os.getenv("SALES_STORAGE_DIR", ".sales_store")),
        storage_bucket=os.getenv("SUPABASE_STORAGE_BUCKET", "documentos"),
        queue_refresh_seconds=_env_float("QUEUE_REFRESH_SECONDS", 5.0),
        reconcile_seconds=_env_float("RECONCILE_SECONDS", 10.0),
        sync_interval_seconds=_env_float("SYNC_INTERVAL_SECONDS", 30.0),
        remote_timeout_seconds=_env_float("REMOTE_TIMEOUT_SECONDS", 5.0),
        probe_timeout_seconds=_env_float("PROBE_TIMEOUT_SECONDS", 3.0),
        max_sync_attempts=_env_int("MAX_SYNC_ATTEMPTS", 5),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )


__all__ = ["EngineConfig", "load_config"]
