"""
app/repositories/reference_repository.py

Read queries for the reference data consulted by import validation.
"""

from __future__ import annotations

import uuid
from collections.abc import Collection
from datetime import datetime

from sqlalchemy import Select, select
from sqlalchemy.orm import Session

from db.models.patient import Patient
from db.models.procedure_catalog import ProcedureCatalog
from db.models.procedure_production import ProcedureProduction


def build_subject_lookup(cns_values: Collection[str]) -> Select:
    return select(Patient.cns, Patient.id).where(Patient.cns.in_(sorted(set(cns_values))))


def build_procedure_code_lookup() -> Select:
    return select(ProcedureCatalog.code).where(ProcedureCatalog.is_active.is_(True))


def build_production_event_lookup(subject_ids: Collection[str]) -> Select:
    patient_ids = sorted({uuid.UUID(str(subject_id)) for subject_id in subject_ids}, key=str)
    return select(
        ProcedureProduction.patient_id,
        ProcedureProduction.procedure_code,
        ProcedureProduction.date_service,
    ).where(ProcedureProduction.patient_id.in_(patient_ids))


class ReferenceRepository:
    """
    Repository for subject, catalog and persisted-event lookups.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def subject_ids_by_cns(self, cns_values: Collection[str]) -> dict[str, str]:
        if not cns_values:
            return {}
        rows = self._session.execute(build_subject_lookup(cns_values)).all()
        return {str(cns): str(patient_id) for cns, patient_id in rows}

    def procedure_codes(self) -> set[str]:
        return {str(code) for code in self._session.scalars(build_procedure_code_lookup()).all()}

    def production_events(self, subject_ids: Collection[str]) -> list[tuple[str, str, datetime]]:
        if not subject_ids:
            return []
        rows = self._session.execute(build_production_event_lookup(subject_ids)).all()
        return [
            (str(patient_id), str(procedure_code), date_service)
            for patient_id, procedure_code, date_service in rows
        ]
