from __future__ import annotations

import contextlib
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from openpyxl import load_workbook

import scripts.run_bulk_import as run_bulk_import
from app.services.bulk_import_service import BulkImportService
from import_fakes import PRODUCTION_HEADERS, InMemoryImportStorage


def _write_csv(path: Path, rows: list[list[str]]) -> Path:
    lines = [";".join(PRODUCTION_HEADERS)] + [";".join(row) for row in rows]
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


GOOD_ROW = ["700000000000001", "Maria Souza", "0301010072", "01/01/2024 10:00", "Agendado", "", "", ""]
UNKNOWN_ROW = ["799999999999999", "Sem Cadastro", "0301010072", "02/01/2024 10:00", "Agendado", "", "", ""]


def _report_rows(path: Path) -> list[tuple[int, str]]:
    worksheet = load_workbook(path).active
    return [
        (worksheet.cell(row=index, column=1).value, worksheet.cell(row=index, column=worksheet.max_column).value)
        for index in range(2, worksheet.max_row + 1)
    ]


@pytest.fixture
def failing_storage() -> InMemoryImportStorage:
    return InMemoryImportStorage(failing_chunks={1}, error_message="store down")


@pytest.fixture(autouse=True)
def offline_database(monkeypatch, reference_source, failing_storage) -> None:
    monkeypatch.setattr(run_bulk_import, "SessionLocal", lambda: contextlib.nullcontext(MagicMock()))
    monkeypatch.setattr(run_bulk_import, "SQLAlchemyReferenceSource", lambda session: reference_source)
    monkeypatch.setattr(run_bulk_import, "SQLAlchemyProductionStorage", lambda session: failing_storage)
    monkeypatch.setattr(run_bulk_import, "get_bulk_import_service", lambda: BulkImportService(chunk_size=50))


def test_committed_error_report_includes_rejected_chunks(tmp_path, failing_storage) -> None:
    source = _write_csv(tmp_path / "producao.csv", [GOOD_ROW, UNKNOWN_ROW])
    report_path = tmp_path / "erros.xlsx"

    exit_code = run_bulk_import.main(
        [str(source), "--type", "production", "--commit", "--error-report", str(report_path)]
    )

    assert exit_code == 1
    assert failing_storage.attempts == 1
    assert _report_rows(report_path) == [(2, "store down"), (3, "subject not found")]


def test_analysis_error_report_lists_only_validation_failures(tmp_path, failing_storage) -> None:
    source = _write_csv(tmp_path / "producao.csv", [GOOD_ROW, UNKNOWN_ROW])
    report_path = tmp_path / "erros.xlsx"

    exit_code = run_bulk_import.main([str(source), "--type", "production", "--error-report", str(report_path)])

    assert exit_code == 0
    assert failing_storage.attempts == 0
    assert _report_rows(report_path) == [(3, "subject not found")]
