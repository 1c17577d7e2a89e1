# config.py

"""Settings loaded from Streamlit secrets, the environment (+ optional .env), or defaults."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Mapping

from dotenv import load_dotenv

load_dotenv(override=False)


def _secrets() -> Mapping[str, Any]:
    try:
        import streamlit as st
        return dict(st.secrets)
    except Exception:
        # no secrets.toml, or not running under streamlit
        return {}


def _get(name: str, default: str, secrets: Mapping[str, Any]) -> str:
    v = secrets.get(name)
    if v is None:
        v = os.getenv(name)
    if v is None or str(v).strip() == "":
        return default
    return str(v)


def _as_bool(raw: str) -> bool:
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _as_int(raw: str, default: int) -> int:
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    database_url: str = "sqlite:///taskdeck.db"
    db_echo: bool = False
    db_timeout: int = 30
    write_workers: int = 4
    log_level: str = "INFO"
    log_dir: str = ""
    bcrypt_rounds: int = 12


def load_settings(secrets: Mapping[str, Any] | None = None) -> Settings:
    secrets = _secrets() if secrets is None else secrets
    d = Settings()
    return Settings(
        database_url=_get("DATABASE_URL", d.database_url, secrets),
        db_echo=_as_bool(_get("DB_ECHO", "false", secrets)),
        db_timeout=_as_int(_get("DB_TIMEOUT", str(d.db_timeout), secrets), d.db_timeout),
        write_workers=max(1, _as_int(_get("WRITE_WORKERS", str(d.write_workers), secrets), d.write_workers)),
        log_level=_get("LOG_LEVEL", d.log_level, secrets).upper(),
        log_dir=_get("LOG_DIR", d.log_dir, secrets),
        bcrypt_rounds=min(31, max(4, _as_int(_get("BCRYPT_ROUNDS", str(d.bcrypt_rounds), secrets), d.bcrypt_rounds))),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()
