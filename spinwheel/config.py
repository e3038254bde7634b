"""Runtime configuration loaded from the environment (and ``.env``)."""

from __future__ import annotations

import math
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

from .access import AccessConfig
from .db.utils import resolve_sqlite_url

# Project root directory (repo root)
ROOT_DIR = Path(__file__).resolve().parents[1]
DEFAULT_DATABASE_URL = resolve_sqlite_url("sqlite:///./dev.db", ROOT_DIR)

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off", ""}


def _parse_bool(name: str, raw: Optional[str], default: bool) -> bool:
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUTHY:
        return True
    if value in _FALSY:
        return False
    raise ValueError(f"{name} must be a boolean flag, got {raw!r}")


def _parse_number(name: str, raw: Optional[str], default, cast):
    if raw is None or not raw.strip():
        return default
    try:
        return cast(raw.strip())
    except ValueError as exc:
        raise ValueError(f"{name} must be numeric, got {raw!r}") from exc


@dataclass(frozen=True)
class Settings:
    """Explicit application settings passed to the workflows.

    Attributes
    ----------
    database_url : str
        SQLAlchemy URL. Relative SQLite paths are resolved against the
        project root.
    access : AccessConfig
        Secrets for the viewer and editor tiers of the admin gate.
    allow_any_booking : bool
        When ``False`` a booking id must be pre-registered in the
        ``bookings`` table before it can be used for a spin.
    db_timeout : float
        Seconds a database call may wait on a lock before failing.
    log_page_size : int
        Default page size for the spin log.
    """

    database_url: str = DEFAULT_DATABASE_URL
    access: AccessConfig = AccessConfig()
    allow_any_booking: bool = True
    db_timeout: float = 5.0
    log_page_size: int = 20

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        *,
        dotenv: bool = True,
    ) -> "Settings":
        """Build settings from ``environ`` (defaults to ``os.environ``).

        ``.env`` is loaded first when ``dotenv`` is true; existing
        environment variables win over values in the file.
        """

        if environ is None:
            if dotenv:
                load_dotenv()
            environ = os.environ

        database_url = resolve_sqlite_url(
            environ.get("DB_URL", DEFAULT_DATABASE_URL), ROOT_DIR
        )
        access = AccessConfig(
            viewer_password=environ.get("SPIN_VIEWER_PASSWORD") or None,
            editor_password=environ.get("SPIN_EDITOR_PASSWORD") or None,
        )
        log_page_size = _parse_number(
            "SPIN_LOG_PAGE_SIZE", environ.get("SPIN_LOG_PAGE_SIZE"), 20, int
        )
        if log_page_size <= 0:
            raise ValueError("SPIN_LOG_PAGE_SIZE must be a positive integer")
        db_timeout = _parse_number(
            "SPIN_DB_TIMEOUT", environ.get("SPIN_DB_TIMEOUT"), 5.0, float
        )
        if not math.isfinite(db_timeout) or db_timeout <= 0:
            raise ValueError("SPIN_DB_TIMEOUT must be a positive number")

        return cls(
            database_url=database_url,
            access=access,
            allow_any_booking=_parse_bool(
                "SPIN_ALLOW_ANY_BOOKING",
                environ.get("SPIN_ALLOW_ANY_BOOKING"),
                True,
            ),
            db_timeout=db_timeout,
            log_page_size=log_page_size,
        )


__all__ = ["DEFAULT_DATABASE_URL", "ROOT_DIR", "Settings"]
