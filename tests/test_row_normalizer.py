"""
tests/test_row_normalizer.py

Pytest unit tests for RowNormalizer: cell conversion per field kind,
date encodings, defaults and blank-row detection.
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from app.domain.bulk_import import EMPTY, ImportType, NumberCell, RawRow, TextCell, to_cell
from app.mappers.header_mapper import HeaderMapper
from app.mappers.row_normalizer import RowNormalizer
from import_fakes import PATIENT_HEADERS, PRODUCTION_HEADERS, production_row

# 2024-01-01 00:00 UTC is serial day 45292 in the 1900 date system.
JAN_1_2024_SERIAL = 45292


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def normalizer() -> RowNormalizer:
    return RowNormalizer()


@pytest.fixture
def production_map():
    return HeaderMapper().resolve(PRODUCTION_HEADERS, ImportType.PRODUCTION)


@pytest.fixture
def patient_map():
    return HeaderMapper().resolve(PATIENT_HEADERS, ImportType.PATIENT)


def _raw(values, row_number: int = 2) -> RawRow:
    return RawRow(row_number=row_number, cells=tuple(to_cell(value) for value in values))


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    ("serial", "text"),
    [
        (JAN_1_2024_SERIAL, "01/01/2024"),
        (JAN_1_2024_SERIAL + 10 / 24, "01/01/2024 10:00"),
        (JAN_1_2024_SERIAL + 59 + 18.5 / 24, "29/02/2024 18:30"),
    ],
)
def test_serial_and_day_first_text_produce_same_instant(normalizer, serial, text) -> None:
    from_serial = normalizer.parse_date(NumberCell(serial))
    from_text = normalizer.parse_date(TextCell(text))

    assert from_serial is not None
    assert from_serial == from_text
    assert from_serial.tzinfo == timezone.utc


def test_iso_strings_are_parsed_to_utc(normalizer) -> None:
    assert normalizer.parse_date(TextCell("2024-01-01T10:00:00Z")) == datetime(2024, 1, 1, 10, tzinfo=timezone.utc)
    assert normalizer.parse_date(TextCell("2024-01-01T07:00:00-03:00")) == datetime(
        2024, 1, 1, 10, tzinfo=timezone.utc
    )
    assert normalizer.parse_date(TextCell("2024-01-01")) == datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.mark.parametrize("text", ["amanhã", "31/02/2024", "2024-13-01", ""])
def test_unparseable_dates_are_absent(normalizer, text) -> None:
    assert normalizer.parse_date(TextCell(text)) is None


def test_empty_cell_date_is_absent(normalizer) -> None:
    assert normalizer.parse_date(EMPTY) is None


def test_workbook_datetime_cells_round_trip_through_serial(normalizer) -> None:
    cell = to_cell(datetime(2024, 3, 15, 8, 45))

    assert isinstance(cell, NumberCell)
    assert normalizer.parse_date(cell) == datetime(2024, 3, 15, 8, 45, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Field kinds
# ---------------------------------------------------------------------------


def test_production_row_is_normalized(normalizer, production_map) -> None:
    raw = _raw(production_row(cns=" 700 0000 0000 0001 ", status="finalizado", sia="Sim"))

    record = normalizer.normalize(raw, production_map)

    assert record is not None
    assert record.row_number == 2
    assert record.text("cns") == "700000000000001"
    assert record.text("procedure_code") == "0301010072"
    assert record.text("status") == "Finalizado"
    assert record.flag("sia_processed") is True
    assert record.date("date_service") == datetime(2024, 1, 1, 10, tzinfo=timezone.utc)


def test_numeric_procedure_code_is_zero_padded(normalizer, production_map) -> None:
    record = normalizer.normalize(_raw(production_row(code=301010072)), production_map)

    assert record.text("procedure_code") == "0301010072"


def test_numeric_cns_is_rendered_without_decimal(normalizer, production_map) -> None:
    record = normalizer.normalize(_raw(production_row(cns=700000000000001)), production_map)

    assert record.text("cns") == "700000000000001"


@pytest.mark.parametrize(("token", "expected"), [("SIM", True), ("yes", True), ("True", True), ("não", False), (None, False)])
def test_boolean_tokens(normalizer, production_map, token, expected) -> None:
    record = normalizer.normalize(_raw(production_row(sia=token)), production_map)

    assert record.flag("sia_processed") is expected


def test_custom_truthy_tokens(production_map) -> None:
    normalizer = RowNormalizer(truthy_tokens=frozenset({"s"}))

    record = normalizer.normalize(_raw(production_row(sia="S")), production_map)

    assert record.flag("sia_processed") is True


def test_missing_status_defaults_to_scheduled(normalizer, production_map) -> None:
    record = normalizer.normalize(_raw(production_row(status="")), production_map)

    assert record.text("status") == "Agendado"


def test_mold_consultation_date_backs_up_service_date(normalizer) -> None:
    headers = ("CNS_PACIENTE", "CODIGO_PROCEDIMENTO", "DATA_ATENDIMENTO", "DATA_CONSULTA_MOLDE")
    field_map = HeaderMapper().resolve(headers, ImportType.PRODUCTION)

    record = normalizer.normalize(_raw(["700000000000001", "0301010072", "", "05/02/2024"]), field_map)

    assert record.date("date_service") == datetime(2024, 2, 5, tzinfo=timezone.utc)


def test_text_fields_are_trimmed_and_empty_is_absent(normalizer, patient_map) -> None:
    record = normalizer.normalize(
        _raw(["700000000000001", "  Ana Lima  ", "10/05/1980", "   ", "Recife", None]),
        patient_map,
    )

    assert record.text("name") == "Ana Lima"
    assert record.text("gender") is None
    assert record.text("phone") is None
    assert record.date("birth_date") == datetime(1980, 5, 10, tzinfo=timezone.utc)


def test_blank_row_is_skipped(normalizer, production_map) -> None:
    assert normalizer.normalize(_raw([None, "", "   ", None]), production_map) is None
    assert normalizer.normalize(RawRow(row_number=9, cells=()), production_map) is None


def test_short_rows_fill_missing_cells_as_absent(normalizer, production_map) -> None:
    record = normalizer.normalize(_raw(["700000000000001", "Maria"]), production_map)

    assert record is not None
    assert record.text("procedure_code") is None
    assert record.date("date_service") is None
