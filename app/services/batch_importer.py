"""
app/services/batch_importer.py

Chunked persistence of accepted rows with per-chunk failure isolation.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from app.domain.bulk_import import InvalidRow, ValidRow
from app.logging_utils import log_event
from app.storage.base import ImportStorage
from app.storage.errors import PersistenceChunkError

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]


@dataclass
class BatchResult:
    persisted_rows: int = 0
    progress: int = 0
    chunks_total: int = 0
    chunks_failed: int = 0
    errors: list[InvalidRow] = field(default_factory=list)


class BatchImporter:
    """
    Persists rows in fixed-size chunks; a failed chunk never stops the run.
    """

    def __init__(self, *, chunk_size: int = 50) -> None:
        self._chunk_size = max(1, chunk_size)

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    def persist(
        self,
        rows: Sequence[ValidRow],
        storage: ImportStorage,
        *,
        progress_callback: ProgressCallback | None = None,
    ) -> BatchResult:
        chunks = [rows[start : start + self._chunk_size] for start in range(0, len(rows), self._chunk_size)]
        result = BatchResult(chunks_total=len(chunks))

        if not chunks:
            result.progress = 100
            if progress_callback is not None:
                progress_callback(result.progress)
            return result

        for position, chunk in enumerate(chunks, start=1):
            try:
                storage.persist_chunk(chunk)
                result.persisted_rows += len(chunk)
            except PersistenceChunkError as exc:
                result.chunks_failed += 1
                message = str(exc)
                log_event(
                    logger,
                    logging.ERROR,
                    "bulk_import_chunk_failed",
                    chunk=position,
                    chunks_total=len(chunks),
                    rows=len(chunk),
                    first_row=chunk[0].row_number,
                    error=message,
                )
                result.errors.extend(InvalidRow.from_record(row.record, [message]) for row in chunk)

            result.progress = math.floor(100 * position / len(chunks) + 0.5)
            if progress_callback is not None:
                progress_callback(result.progress)

        return result
