"""Runtime configuration read from the environment (and `.env`)."""
from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()

STORE_BACKENDS = ("sql", "json", "memory")


def _env_flag(name: str, default: bool) -> bool:
    raw = (os.getenv(name) or "").strip().lower()
    if not raw:
        return default
    return raw in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    database_url: str = "sqlite:///./credaccess.db"
    store_backend: str = "sql"
    store_path: str = "./access_requests.json"
    strict_transitions: bool = True
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        backend = (os.getenv("REQUEST_STORE_BACKEND") or cls.store_backend).strip().lower()
        if backend not in STORE_BACKENDS:
            raise ValueError(
                f"REQUEST_STORE_BACKEND must be one of {', '.join(STORE_BACKENDS)}, got {backend!r}"
            )
        return cls(
            database_url=os.getenv("DATABASE_URL", cls.database_url),
            store_backend=backend,
            store_path=os.getenv("REQUEST_STORE_PATH", cls.store_path),
            strict_transitions=_env_flag("STRICT_TRANSITIONS", cls.strict_transitions),
            log_level=(os.getenv("LOG_LEVEL") or cls.log_level).upper(),
        )
