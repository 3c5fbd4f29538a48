from __future__ import annotations

import io
import json

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from openpyxl import load_workbook

from app.api.dependencies import get_import_storage, get_reference_source
from app.api.routers import bulk_import_router
from app.services.bulk_import_service import BulkImportService, get_bulk_import_service
from import_fakes import PRODUCTION_HEADERS, InMemoryImportStorage, InMemoryReferenceSource

CSV_MEDIA_TYPE = "text/csv"


def _csv(rows: list[list[str]]) -> bytes:
    lines = [";".join(PRODUCTION_HEADERS)] + [";".join(row) for row in rows]
    return ("\n".join(lines) + "\n").encode("utf-8")


GOOD_ROW = ["700000000000001", "Maria Souza", "0301010072", "01/01/2024 10:00", "Agendado", "", "", "NÃO"]
UNKNOWN_ROW = ["799999999999999", "Sem Cadastro", "0301010072", "02/01/2024 10:00", "Agendado", "", "", ""]


@pytest.fixture
def client(reference_source, storage):
    app = FastAPI()
    app.include_router(bulk_import_router)
    app.dependency_overrides[get_reference_source] = lambda: reference_source
    app.dependency_overrides[get_import_storage] = lambda: storage
    app.dependency_overrides[get_bulk_import_service] = lambda: BulkImportService(chunk_size=50)
    return TestClient(app)


def _upload(content: bytes, filename: str = "producao.csv") -> dict:
    return {"file": (filename, content, CSV_MEDIA_TYPE)}


def test_preview_reports_counts_without_persisting(client, storage) -> None:
    response = client.post("/imports/production/preview", files=_upload(_csv([GOOD_ROW, UNKNOWN_ROW])))

    assert response.status_code == 200
    body = response.json()
    assert body["total_rows"] == 2
    assert body["valid_rows"] == 1
    assert body["invalid_rows"] == 1
    assert body["errors"][0]["row_number"] == 3
    assert body["errors"][0]["violations"] == ["subject not found"]
    mapped = {item["canonical_field"]: item for item in body["field_map"]}
    assert mapped["procedure_code"]["source_column"] == "CODIGO_PROCEDIMENTO"
    assert mapped["date_scheduling"]["state"] == "missing"
    assert storage.attempts == 0


def test_import_requires_confirmation(client, storage) -> None:
    response = client.post("/imports/production", files=_upload(_csv([GOOD_ROW])))

    assert response.status_code == 400
    assert storage.attempts == 0


def test_confirmed_import_persists_valid_rows(client, storage) -> None:
    response = client.post(
        "/imports/production",
        params={"confirm": "true"},
        files=_upload(_csv([GOOD_ROW, GOOD_ROW, UNKNOWN_ROW])),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["persisted_rows"] == 1
    assert body["progress"] == 100
    assert [error["message"] for error in body["errors"]] == ["duplicate within file", "subject not found"]
    assert len(storage.persisted) == 1


def test_manual_override_maps_unrecognized_header(client) -> None:
    content = "CARTAO;PACIENTE;PROC;QUANDO\n700000000000001;Maria;0301010072;01/01/2024\n".encode("utf-8")

    response = client.post(
        "/imports/production/preview",
        files=_upload(content),
        data={"overrides": json.dumps({"cns": "CARTAO", "procedure_code": "PROC", "date_service": "QUANDO"})},
    )

    assert response.status_code == 200
    assert response.json()["valid_rows"] == 1


def test_missing_identity_column_returns_structured_error(client) -> None:
    content = "NOME_PACIENTE;DATA_ATENDIMENTO\nMaria;01/01/2024\n".encode("utf-8")

    response = client.post("/imports/production/preview", files=_upload(content))

    assert response.status_code == 400
    detail = response.json()["detail"]
    assert {error["canonical_field"] for error in detail["errors"]} == {"cns", "procedure_code"}


def test_unreachable_store_returns_503(client) -> None:
    client.app.dependency_overrides[get_reference_source] = lambda: InMemoryReferenceSource(unavailable=True)

    response = client.post("/imports/production/preview", files=_upload(_csv([GOOD_ROW])))

    assert response.status_code == 503
    assert response.json()["detail"] == "record store unreachable"


@pytest.mark.parametrize("filename", ["producao.pdf", "producao.xls"])
def test_unsupported_upload_is_rejected(client, filename) -> None:
    response = client.post("/imports/production/preview", files=_upload(b"x", filename))

    assert response.status_code == 400


def test_empty_upload_is_rejected(client) -> None:
    response = client.post("/imports/production/preview", files=_upload(b""))

    assert response.status_code == 400


def test_error_report_lists_rejected_rows(client) -> None:
    response = client.post("/imports/production/error-report", files=_upload(_csv([GOOD_ROW, UNKNOWN_ROW])))

    assert response.status_code == 200
    assert "erros_importacao_production.xlsx" in response.headers["content-disposition"]
    worksheet = load_workbook(io.BytesIO(response.content)).active
    assert worksheet.max_row == 2
    assert worksheet.cell(row=2, column=1).value == 3


def test_template_download(client) -> None:
    response = client.get("/imports/production/template")

    assert response.status_code == 200
    assert "modelo_importacao_bpai.xlsx" in response.headers["content-disposition"]
    worksheet = load_workbook(io.BytesIO(response.content)).active
    assert worksheet["A1"].value == "CNS_PACIENTE"


def test_unknown_import_type_is_rejected(client) -> None:
    response = client.get("/imports/inventory/template")

    assert response.status_code == 422


def test_patient_import_uses_storage_without_references(client) -> None:
    patient_storage = InMemoryImportStorage()
    client.app.dependency_overrides[get_import_storage] = lambda: patient_storage
    content = "Cartão SUS;Nome Completo\n700000000000001;Ana Lima\n".encode("utf-8")

    response = client.post("/imports/patient", params={"confirm": "true"}, files=_upload(content, "pacientes.csv"))

    assert response.status_code == 200
    assert response.json()["persisted_rows"] == 1
    assert len(patient_storage.persisted) == 1


def test_confirmed_import_can_return_failed_rows_workbook(client) -> None:
    failing_storage = InMemoryImportStorage(failing_chunks={1}, error_message="store down")
    client.app.dependency_overrides[get_import_storage] = lambda: failing_storage

    response = client.post(
        "/imports/production",
        params={"confirm": "true", "format": "xlsx"},
        files=_upload(_csv([GOOD_ROW, UNKNOWN_ROW])),
    )

    assert response.status_code == 200
    assert "erros_importacao_production.xlsx" in response.headers["content-disposition"]
    assert response.headers["x-import-persisted-rows"] == "0"
    assert response.headers["x-import-chunks-failed"] == "1"
    worksheet = load_workbook(io.BytesIO(response.content)).active
    rows = [
        (worksheet.cell(row=index, column=1).value, worksheet.cell(row=index, column=worksheet.max_column).value)
        for index in range(2, worksheet.max_row + 1)
    ]
    assert rows == [(2, "store down"), (3, "subject not found")]
    assert failing_storage.attempts == 1
