"""
app/repositories/procedure_production_repository.py

Persistence layer for procedure-production events.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from typing import Any

from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.orm import Session

from app.domain.bulk_import import ValidRow, to_utc
from app.mappers.import_schemas import STATUS_SCHEDULED
from db.models.procedure_production import ProcedureProduction


def production_payload(row: ValidRow) -> dict[str, Any]:
    if row.subject_id is None or row.service_date is None:
        raise ValueError(f"Row {row.row_number} is missing a resolved subject or service date.")

    record = row.record
    service_date = to_utc(row.service_date)
    return {
        "patient_id": uuid.UUID(str(row.subject_id)),
        "procedure_code": record.text("procedure_code"),
        "status": record.text("status") or STATUS_SCHEDULED,
        "date_service": service_date,
        "service_day": service_date.date(),
        "date_delivery": record.date("date_delivery"),
        "date_cancellation": record.date("date_cancellation"),
        "date_scheduling": record.date("date_scheduling"),
        "sia_processed": record.flag("sia_processed"),
    }


def build_production_insert(payloads: Sequence[dict[str, Any]]) -> Any:
    """
    Plain INSERT: a conflicting event fails the whole statement.
    """

    return insert(ProcedureProduction).values(list(payloads)).returning(ProcedureProduction.id)


class ProcedureProductionRepository:
    """
    Repository for batch inserts of production events.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def bulk_insert(self, rows: Sequence[ValidRow]) -> int:
        if not rows:
            return 0
        stmt = build_production_insert([production_payload(row) for row in rows])
        return len(self._session.scalars(stmt).all())
