"""
SQLAlchemy-backed storage implementations for bulk import runs.
"""

from __future__ import annotations

from abc import abstractmethod
from collections.abc import Collection, Sequence
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.bulk_import import ValidRow
from app.repositories.patient_repository import PatientRepository
from app.repositories.procedure_production_repository import ProcedureProductionRepository
from app.repositories.reference_repository import ReferenceRepository
from app.storage.base import ImportStorage, ReferenceSource
from app.storage.errors import PersistenceChunkError, ReferenceUnavailableError


class SQLAlchemyReferenceSource(ReferenceSource):
    """
    Load reference data through the repository and DB session.
    """

    def __init__(self, *, session: Session) -> None:
        self._repository = ReferenceRepository(session)

    def load_subjects(self, cns_values: Collection[str]) -> dict[str, str]:
        try:
            return self._repository.subject_ids_by_cns(cns_values)
        except SQLAlchemyError as exc:
            raise ReferenceUnavailableError(f"Failed to load patients: {exc}") from exc

    def load_procedure_codes(self) -> set[str]:
        try:
            return self._repository.procedure_codes()
        except SQLAlchemyError as exc:
            raise ReferenceUnavailableError(f"Failed to load procedure catalog: {exc}") from exc

    def load_production_events(self, subject_ids: Collection[str]) -> list[tuple[str, str, datetime]]:
        try:
            return self._repository.production_events(subject_ids)
        except SQLAlchemyError as exc:
            raise ReferenceUnavailableError(f"Failed to load existing production: {exc}") from exc


class _SQLAlchemyChunkStorage(ImportStorage):
    """
    Commit once per chunk; roll back and report the store's message on failure.
    """

    def __init__(self, *, session: Session) -> None:
        self._session = session

    def persist_chunk(self, rows: Sequence[ValidRow]) -> int:
        if not rows:
            return 0
        try:
            written = self._write(rows)
            self._session.commit()
            return written
        except SQLAlchemyError as exc:
            self._session.rollback()
            raise PersistenceChunkError(_store_message(exc)) from exc

    @abstractmethod
    def _write(self, rows: Sequence[ValidRow]) -> int:
        raise NotImplementedError


class SQLAlchemyPatientStorage(_SQLAlchemyChunkStorage):
    def _write(self, rows: Sequence[ValidRow]) -> int:
        return PatientRepository(self._session).upsert(rows)


class SQLAlchemyProductionStorage(_SQLAlchemyChunkStorage):
    def _write(self, rows: Sequence[ValidRow]) -> int:
        return ProcedureProductionRepository(self._session).bulk_insert(rows)


def _store_message(exc: SQLAlchemyError) -> str:
    original = getattr(exc, "orig", None)
    message = str(original) if original is not None else str(exc)
    return message.strip().splitlines()[0] if message.strip() else exc.__class__.__name__
