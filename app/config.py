"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache

from db.config import load_env_files

DEFAULT_TRUTHY_TOKENS: frozenset[str] = frozenset({"sim", "yes", "true"})


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_csv_env(name: str, default: frozenset[str]) -> frozenset[str]:
    """
    Read a comma-separated token set from environment variables.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    tokens = frozenset(token.strip().lower() for token in raw_value.split(",") if token.strip())
    return tokens or default


@dataclass(frozen=True)
class BulkImportSettings:
    """
    Runtime settings for spreadsheet bulk imports.
    """

    chunk_size: int = 50
    max_upload_bytes: int = 10 * 1024 * 1024
    log_validation_errors: bool = True
    enforce_delivery_date: bool = False
    spreadsheet_epoch_offset: int = 25569
    truthy_tokens: frozenset[str] = field(default_factory=lambda: DEFAULT_TRUTHY_TOKENS)


@lru_cache(maxsize=1)
def get_bulk_import_settings() -> BulkImportSettings:
    """
    Return cached bulk import settings from environment variables.
    """

    return BulkImportSettings(
        chunk_size=max(1, _get_int_env("BULK_IMPORT_CHUNK_SIZE", 50)),
        max_upload_bytes=max(1, _get_int_env("BULK_IMPORT_MAX_UPLOAD_BYTES", 10 * 1024 * 1024)),
        log_validation_errors=_get_bool_env("BULK_IMPORT_LOG_VALIDATION_ERRORS", True),
        enforce_delivery_date=_get_bool_env("BULK_IMPORT_ENFORCE_DELIVERY_DATE", False),
        spreadsheet_epoch_offset=_get_int_env("BULK_IMPORT_SPREADSHEET_EPOCH_OFFSET", 25569),
        truthy_tokens=_get_csv_env("BULK_IMPORT_TRUTHY_TOKENS", DEFAULT_TRUTHY_TOKENS),
    )
