"""
Structured logging helpers for bulk import runs.
"""

from __future__ import annotations

import json
import logging
from typing import Any


def log_event(
    logger: logging.Logger,
    level: int,
    event: str,
    **fields: Any,
) -> None:
    """
    Emit one structured log line as compact JSON.
    """

    payload = {"event": event, **fields}
    logger.log(level, json.dumps(payload, default=str, sort_keys=True, ensure_ascii=False))


def log_row_errors(logger: logging.Logger, errors: Any, *, import_type: str) -> None:
    """
    Emit one WARNING line per rejected row.
    """

    for error in errors:
        logger.warning(
            "Import row rejected type=%s row=%s cns=%s errors=%s",
            import_type,
            error.row_number,
            error.subject_identifier,
            error.message,
        )
