from __future__ import annotations

import unittest
from datetime import datetime, timezone

from app.domain.bulk_import import CandidateRecord, ImportType, InvalidRow, ReferenceIndex, ValidRow
from app.validators.row_validator import (
    CANCELLATION_DATE_REQUIRED,
    DELIVERY_DATE_RECOMMENDED,
    PROCEDURE_NOT_REGISTERED,
    SERVICE_DATE_DEFAULTED,
    SUBJECT_IDENTIFIER_INVALID,
    SUBJECT_IDENTIFIER_REQUIRED,
    SUBJECT_NAME_REQUIRED,
    SUBJECT_NOT_FOUND,
    RowValidator,
    StatusRequirement,
    default_status_requirements,
)

RUN_AT = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
SERVICE_AT = datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)


def _production(**overrides) -> CandidateRecord:
    values = {
        "cns": "700000000000001",
        "name": "Maria Souza",
        "procedure_code": "0301010072",
        "date_service": SERVICE_AT,
        "status": "Agendado",
        "date_delivery": None,
        "date_cancellation": None,
        "sia_processed": False,
    }
    values.update(overrides)
    return CandidateRecord(row_number=5, import_type=ImportType.PRODUCTION, values=values)


def _patient(**overrides) -> CandidateRecord:
    values = {"cns": "700000000000001", "name": "Ana Lima"}
    values.update(overrides)
    return CandidateRecord(row_number=3, import_type=ImportType.PATIENT, values=values)


class TestProductionRules(unittest.TestCase):
    def setUp(self) -> None:
        self.validator = RowValidator()
        self.references = ReferenceIndex(
            subjects={"700000000000001": "subject-1"},
            procedure_codes=frozenset({"0301010072"}),
        )

    def validate(self, record: CandidateRecord):
        return self.validator.validate(record, self.references, now=RUN_AT)

    def test_fully_valid_row(self) -> None:
        outcome = self.validate(_production())

        self.assertIsInstance(outcome, ValidRow)
        self.assertEqual(outcome.subject_id, "subject-1")
        self.assertEqual(outcome.service_date, SERVICE_AT)
        self.assertEqual(outcome.warnings, ())

    def test_unknown_subject_is_never_accepted(self) -> None:
        for cns in ("799999999999999", None, ""):
            with self.subTest(cns=cns):
                outcome = self.validate(_production(cns=cns))
                self.assertIsInstance(outcome, InvalidRow)
                self.assertIn(SUBJECT_NOT_FOUND, outcome.violations)

    def test_unregistered_or_missing_procedure(self) -> None:
        for code in ("0000000000", None):
            with self.subTest(code=code):
                outcome = self.validate(_production(procedure_code=code))
                self.assertEqual(outcome.violations, (PROCEDURE_NOT_REGISTERED,))

    def test_all_violations_are_reported_together(self) -> None:
        outcome = self.validate(
            _production(cns="799999999999999", procedure_code="0000000000", status="Cancelado")
        )

        self.assertEqual(
            outcome.violations,
            (SUBJECT_NOT_FOUND, PROCEDURE_NOT_REGISTERED, CANCELLATION_DATE_REQUIRED),
        )
        self.assertEqual(
            outcome.message,
            "subject not found; procedure not registered; cancellation date required",
        )
        self.assertEqual(outcome.subject_identifier, "799999999999999")
        self.assertEqual(outcome.subject_name, "Maria Souza")

    def test_cancelled_without_cancellation_date_is_invalid(self) -> None:
        outcome = self.validate(_production(status="Cancelado", sia_processed=True, date_delivery=SERVICE_AT))

        self.assertIsInstance(outcome, InvalidRow)
        self.assertEqual(outcome.violations, (CANCELLATION_DATE_REQUIRED,))

    def test_cancelled_with_cancellation_date_is_valid(self) -> None:
        outcome = self.validate(_production(status="Cancelado", date_cancellation=SERVICE_AT))

        self.assertIsInstance(outcome, ValidRow)

    def test_finalized_without_delivery_date_only_warns_by_default(self) -> None:
        outcome = self.validate(_production(status="Finalizado"))

        self.assertIsInstance(outcome, ValidRow)
        self.assertEqual(outcome.warnings, (DELIVERY_DATE_RECOMMENDED,))

    def test_delivery_date_can_be_enforced(self) -> None:
        validator = RowValidator(status_requirements=default_status_requirements(enforce_delivery_date=True))

        outcome = validator.validate(_production(status="Finalizado"), self.references, now=RUN_AT)

        self.assertIsInstance(outcome, InvalidRow)
        self.assertEqual(outcome.violations, (DELIVERY_DATE_RECOMMENDED,))

    def test_custom_status_requirement(self) -> None:
        validator = RowValidator(
            status_requirements=[
                StatusRequirement(
                    status="Agendado Entrega",
                    field="date_scheduling",
                    message="scheduling date required",
                )
            ]
        )

        outcome = validator.validate(_production(status="Agendado Entrega"), self.references, now=RUN_AT)
        cancelled = validator.validate(_production(status="Cancelado"), self.references, now=RUN_AT)

        self.assertEqual(outcome.violations, ("scheduling date required",))
        self.assertIsInstance(cancelled, ValidRow)

    def test_missing_service_date_defaults_to_run_time(self) -> None:
        outcome = self.validate(_production(date_service=None))

        self.assertIsInstance(outcome, ValidRow)
        self.assertEqual(outcome.service_date, RUN_AT)
        self.assertEqual(outcome.warnings, (SERVICE_DATE_DEFAULTED,))


class TestPatientRules(unittest.TestCase):
    def setUp(self) -> None:
        self.validator = RowValidator()

    def test_valid_patient(self) -> None:
        outcome = self.validator.validate(_patient(), ReferenceIndex.empty())

        self.assertIsInstance(outcome, ValidRow)
        self.assertEqual(outcome.subject_id, "700000000000001")

    def test_short_cns_and_missing_name(self) -> None:
        outcome = self.validator.validate(_patient(cns="12345", name=None), ReferenceIndex.empty())

        self.assertEqual(outcome.violations, (SUBJECT_IDENTIFIER_INVALID, SUBJECT_NAME_REQUIRED))

    def test_missing_cns_echoes_placeholder(self) -> None:
        outcome = self.validator.validate(_patient(cns=None), ReferenceIndex.empty())

        self.assertEqual(outcome.violations, (SUBJECT_IDENTIFIER_REQUIRED,))
        self.assertEqual(outcome.subject_identifier, "---")


if __name__ == "__main__":
    unittest.main()
