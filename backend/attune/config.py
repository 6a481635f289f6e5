import os
from dataclasses import dataclass
from typing import Tuple

from dotenv import load_dotenv

load_dotenv()


def _env(name: str, default: str) -> str:
    return os.getenv(name, default)


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    host: str = _env("BACKEND_HOST", "0.0.0.0")
    port: int = _env_int("BACKEND_PORT", 8000)
    log_level: str = _env("LOG_LEVEL", "INFO")

    smoothing_window: int = _env_int("SMOOTHING_WINDOW", 5)
    low_focus_threshold: int = _env_int("LOW_FOCUS_THRESHOLD", 40)
    suggestion_cooldown_s: float = _env_float("SUGGESTION_COOLDOWN_S", 60.0)
    default_attention_level: int = _env_int("DEFAULT_ATTENTION_LEVEL", 75)

    content_source_mode: str = _env("CONTENT_SOURCE_MODE", "simulated")
    content_source_url: str = _env("CONTENT_SOURCE_URL", "http://127.0.0.1:5001")
    content_source_timeout_s: float = _env_float("CONTENT_SOURCE_TIMEOUT_S", 30.0)
    content_cache_max: int = _env_int("CONTENT_CACHE_MAX", 16)

    max_sessions: int = _env_int("MAX_SESSIONS", 100)
    session_idle_timeout_s: float = _env_float("SESSION_IDLE_TIMEOUT_S", 1800.0)
    session_reap_interval_s: float = _env_float("SESSION_REAP_INTERVAL_S", 60.0)
    ws_max_connections: int = _env_int("WS_MAX_CONNECTIONS", 20)
    ws_send_timeout_s: float = _env_float("WS_SEND_TIMEOUT_S", 1.0)
    ingest_heartbeat_interval_s: int = _env_int("INGEST_HEARTBEAT_INTERVAL_S", 15)

    runtime_log_max_entries: int = _env_int("RUNTIME_LOG_MAX_ENTRIES", 1000)

    allowed_origins: Tuple[str, ...] = tuple(
        origin.strip()
        for origin in _env("ALLOWED_ORIGINS", "").split(",")
        if origin.strip()
    )


settings = Settings()
