"""
app/repositories/patient_repository.py

Persistence layer for patient bulk upserts keyed by CNS.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from sqlalchemy import func
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.orm import Session

from app.domain.bulk_import import ValidRow
from db.models.patient import Patient

_UPSERT_COLUMNS = (
    "name",
    "birth_date",
    "gender",
    "nationality",
    "race",
    "ethnicity",
    "zip_code",
    "city",
    "neighborhood",
    "street_code",
    "street_type",
    "street",
    "number",
    "complement",
    "phone",
    "email",
)


def patient_payload(row: ValidRow) -> dict[str, Any]:
    record = row.record
    birth_date = record.date("birth_date")
    payload: dict[str, Any] = {"cns": record.text("cns")}
    for column in _UPSERT_COLUMNS:
        payload[column] = record.text(column)
    payload["birth_date"] = birth_date.date() if birth_date is not None else None
    return payload


def build_patient_upsert(payloads: Sequence[dict[str, Any]]) -> Any:
    """
    INSERT ... ON CONFLICT (cns) DO UPDATE: re-imported patients overwrite their demographics.
    """

    stmt = insert(Patient).values(list(payloads))
    return stmt.on_conflict_do_update(
        index_elements=[Patient.cns],
        set_={
            **{column: stmt.excluded[column] for column in _UPSERT_COLUMNS},
            "updated_at": func.now(),
        },
    ).returning(Patient.id)


class PatientRepository:
    """
    Repository for batch upserts of patient rows.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def upsert(self, rows: Sequence[ValidRow]) -> int:
        if not rows:
            return 0
        stmt = build_patient_upsert([patient_payload(row) for row in rows])
        return len(self._session.scalars(stmt).all())
