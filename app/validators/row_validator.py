"""
app/validators/row_validator.py

Rule engine applied to each CandidateRecord of an import run.

Every rule is evaluated; violations accumulate into one InvalidRow per row.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Sequence

from app.domain.bulk_import import (
    CandidateRecord,
    ImportType,
    InvalidRow,
    ReferenceIndex,
    ValidationOutcome,
    ValidRow,
)
from app.mappers.import_schemas import CNS_MIN_DIGITS, STATUS_CANCELLED, STATUS_FINALIZED

SUBJECT_IDENTIFIER_REQUIRED = "subject identifier required"
SUBJECT_IDENTIFIER_INVALID = f"subject identifier invalid (minimum {CNS_MIN_DIGITS} digits)"
SUBJECT_NAME_REQUIRED = "subject name required"
SUBJECT_NOT_FOUND = "subject not found"
PROCEDURE_NOT_REGISTERED = "procedure not registered"
CANCELLATION_DATE_REQUIRED = "cancellation date required"
DELIVERY_DATE_RECOMMENDED = f"delivery date recommended for status {STATUS_FINALIZED}"
SERVICE_DATE_DEFAULTED = "service date missing; defaulted to import time"


@dataclass(frozen=True)
class StatusRequirement:
    """
    A date field expected for rows carrying a given status.

    Enforced requirements reject the row; the others only attach a warning.
    """

    status: str
    field: str
    message: str
    enforced: bool = True


def default_status_requirements(*, enforce_delivery_date: bool = False) -> tuple[StatusRequirement, ...]:
    return (
        StatusRequirement(
            status=STATUS_CANCELLED,
            field="date_cancellation",
            message=CANCELLATION_DATE_REQUIRED,
            enforced=True,
        ),
        StatusRequirement(
            status=STATUS_FINALIZED,
            field="date_delivery",
            message=DELIVERY_DATE_RECOMMENDED,
            enforced=enforce_delivery_date,
        ),
    )


class RowValidator:
    """
    Produces a ValidationOutcome for one CandidateRecord.
    """

    def __init__(self, *, status_requirements: Sequence[StatusRequirement] | None = None) -> None:
        requirements = status_requirements if status_requirements is not None else default_status_requirements()
        self._requirements: dict[str, list[StatusRequirement]] = {}
        for requirement in requirements:
            self._requirements.setdefault(requirement.status, []).append(requirement)

    def validate(
        self,
        record: CandidateRecord,
        references: ReferenceIndex,
        *,
        now: datetime | None = None,
    ) -> ValidationOutcome:
        if record.import_type is ImportType.PATIENT:
            return self._validate_patient(record)
        return self._validate_production(record, references, now=now or datetime.now(timezone.utc))

    def _validate_patient(self, record: CandidateRecord) -> ValidationOutcome:
        violations: list[str] = []

        cns = record.text("cns")
        if cns is None:
            violations.append(SUBJECT_IDENTIFIER_REQUIRED)
        elif len(cns) < CNS_MIN_DIGITS:
            violations.append(SUBJECT_IDENTIFIER_INVALID)

        if record.text("name") is None:
            violations.append(SUBJECT_NAME_REQUIRED)

        if violations:
            return InvalidRow.from_record(record, violations)
        return ValidRow(row_number=record.row_number, record=record, subject_id=cns)

    def _validate_production(
        self,
        record: CandidateRecord,
        references: ReferenceIndex,
        *,
        now: datetime,
    ) -> ValidationOutcome:
        violations: list[str] = []
        warnings: list[str] = []

        # A missing identifier or code is reported the same way as an unknown one.
        subject_id = references.subject_id_for(record.text("cns"))
        if subject_id is None:
            violations.append(SUBJECT_NOT_FOUND)

        if not references.has_procedure(record.text("procedure_code")):
            violations.append(PROCEDURE_NOT_REGISTERED)

        status = record.text("status")
        for requirement in self._requirements.get(status or "", ()):
            if record.values.get(requirement.field) is not None:
                continue
            if requirement.enforced:
                violations.append(requirement.message)
            else:
                warnings.append(requirement.message)

        if violations:
            return InvalidRow.from_record(record, violations)

        service_date = record.date("date_service")
        if service_date is None:
            service_date = now
            warnings.append(SERVICE_DATE_DEFAULTED)

        return ValidRow(
            row_number=record.row_number,
            record=record,
            subject_id=subject_id,
            service_date=service_date,
            warnings=tuple(warnings),
        )
