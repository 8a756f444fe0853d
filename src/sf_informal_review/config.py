from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional, Tuple

DEFAULT_DATASET_URL = "https://data.sfgov.org/resource/wv5m-vpq2.json"
DEFAULT_ROLL_YEAR = "2024"
DEFAULT_RESIDENTIAL_USE_CODES = ("SRES", "MRES")


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    v = str(raw).strip().lower()
    if v in {"1", "true", "t", "yes", "y", "on"}:
        return True
    if v in {"0", "false", "f", "no", "n", "off"}:
        return False
    return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not str(raw).strip():
        return default
    try:
        value = float(str(raw).strip())
    except ValueError:
        return default
    return value if value > 0 else default


def _env_list(name: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    raw = os.getenv(name)
    if raw is None:
        return default
    items = tuple(p.strip().upper() for p in str(raw).split(",") if p.strip())
    return items or default


@dataclass(frozen=True)
class AppConfig:
    """Runtime settings, read once from ``SFIR_*`` environment variables."""

    dataset_url: str
    roll_year: str
    app_token: Optional[str]
    http_timeout_s: float
    residential_use_codes: Tuple[str, ...]
    log_level: str
    log_json: bool

    @classmethod
    def from_env(cls) -> "AppConfig":
        token = (os.getenv("SFIR_APP_TOKEN") or "").strip() or None
        return cls(
            dataset_url=(os.getenv("SFIR_DATASET_URL") or "").strip() or DEFAULT_DATASET_URL,
            roll_year=(os.getenv("SFIR_ROLL_YEAR") or "").strip() or DEFAULT_ROLL_YEAR,
            app_token=token,
            http_timeout_s=_env_float("SFIR_HTTP_TIMEOUT", 30.0),
            residential_use_codes=_env_list(
                "SFIR_RESIDENTIAL_USE_CODES", DEFAULT_RESIDENTIAL_USE_CODES
            ),
            log_level=(os.getenv("SFIR_LOG_LEVEL") or "").strip().upper() or "INFO",
            log_json=_env_bool("SFIR_LOG_JSON", False),
        )


@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    return AppConfig.from_env()


def reset_config_cache() -> None:
    """Test helper to force env re-read."""

    get_config.cache_clear()
