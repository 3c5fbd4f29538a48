"""
app/services/bulk_import_service.py

Service layer for spreadsheet bulk import orchestration.

A run has two phases separated by operator confirmation:

    1. analyze()  map headers, normalize rows, resolve references, validate
                  and deduplicate. Nothing is written.
    2. commit()   persist the accepted rows of an analysis in chunks and
                  fold persistence failures into the final ImportReport.

Fatal errors (SchemaError, ReferenceUnavailableError) propagate from
analyze() before any row is persisted. Row-level problems are data and are
returned as InvalidRow outcomes.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from functools import lru_cache
from typing import Mapping

from app.config import get_bulk_import_settings
from app.domain.bulk_import import (
    CandidateRecord,
    DuplicateKey,
    ImportPreview,
    ImportReport,
    ImportType,
    ReferenceIndex,
    TabularSheet,
    to_utc,
)
from app.logging_utils import log_event, log_row_errors
from app.mappers.header_mapper import HeaderMapper
from app.mappers.row_normalizer import RowNormalizer
from app.services.batch_importer import BatchImporter, ProgressCallback
from app.services.deduplicator import Deduplicator
from app.services.reference_resolver import ReferenceResolver
from app.storage.base import ImportStorage, ReferenceSource
from app.validators.row_validator import RowValidator, default_status_requirements

logger = logging.getLogger(__name__)


class BulkImportService:
    """
    Coordinates mapping, validation, deduplication and chunked persistence.
    """

    def __init__(
        self,
        *,
        chunk_size: int = 50,
        log_validation_errors: bool = True,
        mapper: HeaderMapper | None = None,
        normalizer: RowNormalizer | None = None,
        resolver: ReferenceResolver | None = None,
        validator: RowValidator | None = None,
        deduplicator: Deduplicator | None = None,
        importer: BatchImporter | None = None,
    ) -> None:
        self._log_validation_errors = log_validation_errors
        self._mapper = mapper or HeaderMapper()
        self._normalizer = normalizer or RowNormalizer()
        self._resolver = resolver or ReferenceResolver()
        self._validator = validator or RowValidator()
        self._deduplicator = deduplicator or Deduplicator()
        self._importer = importer or BatchImporter(chunk_size=chunk_size)

    def analyze(
        self,
        sheet: TabularSheet,
        import_type: ImportType,
        *,
        reference_source: ReferenceSource | None = None,
        manual_overrides: Mapping[str, str] | None = None,
        now: datetime | None = None,
    ) -> ImportPreview:
        """
        Run every pre-persistence stage and return the operator-facing preview.

        ``reference_source`` is required for production imports; patient
        imports have no cross references.
        """

        import_type = ImportType(import_type)
        run_at = to_utc(now) if now is not None else datetime.now(timezone.utc)

        field_map = self._mapper.resolve(sheet.headers, import_type, manual_overrides=manual_overrides)

        candidates: list[CandidateRecord] = []
        skipped_blank_rows = 0
        for raw_row in sheet.rows:
            record = self._normalizer.normalize(raw_row, field_map)
            if record is None:
                skipped_blank_rows += 1
                continue
            candidates.append(record)

        references, persisted_keys = self._load_references(import_type, candidates, reference_source)

        outcomes = [self._validator.validate(record, references, now=run_at) for record in candidates]
        outcomes = self._deduplicator.deduplicate(outcomes, persisted_keys)

        preview = ImportPreview(
            import_type=import_type,
            field_map=field_map,
            outcomes=outcomes,
            total_rows=len(candidates),
            skipped_blank_rows=skipped_blank_rows,
            persisted_keys_checked=len(persisted_keys),
            analyzed_at=run_at,
        )

        if self._log_validation_errors:
            log_row_errors(logger, preview.invalid_rows, import_type=import_type.value)

        log_event(
            logger,
            logging.INFO,
            "bulk_import_analyzed",
            import_type=import_type.value,
            total_rows=preview.total_rows,
            valid_rows=len(preview.valid_rows),
            invalid_rows=len(preview.invalid_rows),
            skipped_blank_rows=skipped_blank_rows,
            persisted_keys_checked=preview.persisted_keys_checked,
            ambiguous_fields=sorted(field_map.ambiguities),
        )
        return preview

    def commit(
        self,
        preview: ImportPreview,
        *,
        storage: ImportStorage,
        progress_callback: ProgressCallback | None = None,
    ) -> ImportReport:
        """
        Persist the accepted rows of an analysis and build the final report.
        """

        valid_rows = preview.valid_rows
        result = self._importer.persist(valid_rows, storage, progress_callback=progress_callback)

        errors = sorted([*preview.invalid_rows, *result.errors], key=lambda error: error.row_number)
        report = ImportReport(
            import_type=preview.import_type,
            total_rows=preview.total_rows,
            valid_rows=len(valid_rows),
            persisted_rows=result.persisted_rows,
            skipped_blank_rows=preview.skipped_blank_rows,
            progress=result.progress,
            chunks_total=result.chunks_total,
            chunks_failed=result.chunks_failed,
            errors=errors,
            warnings=preview.warnings,
        )

        log_event(
            logger,
            logging.WARNING if report.chunks_failed else logging.INFO,
            "bulk_import_completed",
            import_type=report.import_type.value,
            total_rows=report.total_rows,
            valid_rows=report.valid_rows,
            invalid_rows=report.invalid_rows,
            persisted_rows=report.persisted_rows,
            chunks_total=report.chunks_total,
            chunks_failed=report.chunks_failed,
        )
        return report

    def run(
        self,
        sheet: TabularSheet,
        import_type: ImportType,
        *,
        storage: ImportStorage,
        reference_source: ReferenceSource | None = None,
        manual_overrides: Mapping[str, str] | None = None,
        now: datetime | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> ImportReport:
        preview = self.analyze(
            sheet,
            import_type,
            reference_source=reference_source,
            manual_overrides=manual_overrides,
            now=now,
        )
        return self.commit(preview, storage=storage, progress_callback=progress_callback)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _load_references(
        self,
        import_type: ImportType,
        candidates: list[CandidateRecord],
        reference_source: ReferenceSource | None,
    ) -> tuple[ReferenceIndex, frozenset[DuplicateKey]]:
        if import_type is ImportType.PATIENT:
            return ReferenceIndex.empty(), frozenset()

        if reference_source is None:
            raise ValueError("A reference source is required for production imports.")

        references = self._resolver.resolve(candidates, reference_source)
        persisted_keys = self._resolver.persisted_keys(references, reference_source)
        return references, persisted_keys


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


@lru_cache(maxsize=1)
def get_bulk_import_service() -> BulkImportService:
    """
    Build and cache the bulk import service with env-driven settings.
    """
    settings = get_bulk_import_settings()
    return BulkImportService(
        chunk_size=settings.chunk_size,
        log_validation_errors=settings.log_validation_errors,
        normalizer=RowNormalizer(
            epoch_offset=settings.spreadsheet_epoch_offset,
            truthy_tokens=settings.truthy_tokens,
        ),
        validator=RowValidator(
            status_requirements=default_status_requirements(
                enforce_delivery_date=settings.enforce_delivery_date,
            )
        ),
    )
