"""
app/api/routers/bulk_import.py

Spreadsheet bulk import HTTP endpoints.

Nothing is persisted until the operator calls the import endpoint with
confirm=true; preview and error-report only analyze the upload.
"""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from app.api.dependencies import (
    ImportUpload,
    get_import_storage,
    get_import_upload,
    get_manual_overrides,
    get_reference_source,
)
from app.domain.bulk_import import ImportPreview, ImportReport, ImportType, InvalidRow, RowWarning
from app.readers.tabular_reader import read_tabular
from app.schemas.bulk_import import (
    FieldMappingResponse,
    ImportPreviewResponse,
    ImportReportResponse,
    ImportRowErrorResponse,
    ImportRowWarningResponse,
)
from app.services.bulk_import_service import BulkImportService, get_bulk_import_service
from app.services.spreadsheet_export import (
    XLSX_MEDIA_TYPE,
    build_error_report,
    build_template,
    template_filename,
)
from app.storage.base import ImportStorage, ReferenceSource
from app.storage.errors import ReferenceUnavailableError
from app.validators.mapping_validator import SchemaError

router = APIRouter(prefix="/imports", tags=["bulk-import"])


@router.post("/{import_type}/preview", response_model=ImportPreviewResponse)
def preview_import(
    import_type: ImportType,
    upload: ImportUpload = Depends(get_import_upload),
    manual_overrides: dict[str, str] | None = Depends(get_manual_overrides),
    reference_source: ReferenceSource = Depends(get_reference_source),
    import_service: BulkImportService = Depends(get_bulk_import_service),
) -> ImportPreviewResponse:
    """
    Analyze an upload and return validity counts without persisting anything.
    """

    preview = _analyze(import_service, upload, import_type, reference_source, manual_overrides)
    return _preview_response(preview)


@router.post("/{import_type}", response_model=ImportReportResponse)
def run_import(
    import_type: ImportType,
    confirm: bool = Query(default=False, description="Must be true to persist the valid rows"),
    report_format: Literal["json", "xlsx"] = Query(
        default="json",
        alias="format",
        description="xlsx returns the final failed-rows workbook instead of the JSON report",
    ),
    upload: ImportUpload = Depends(get_import_upload),
    manual_overrides: dict[str, str] | None = Depends(get_manual_overrides),
    reference_source: ReferenceSource = Depends(get_reference_source),
    storage: ImportStorage = Depends(get_import_storage),
    import_service: BulkImportService = Depends(get_bulk_import_service),
) -> ImportReportResponse | Response:
    """
    Analyze an upload and persist its valid rows in chunks.

    With format=xlsx the response is the error workbook of the finished run,
    persistence failures included; run counters travel in X-Import-* headers.
    """

    if not confirm:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Import not confirmed. Review the preview and resend with confirm=true.",
        )

    preview = _analyze(import_service, upload, import_type, reference_source, manual_overrides)
    report = import_service.commit(preview, storage=storage)
    if report_format == "xlsx":
        return _xlsx_response(
            build_error_report(import_type, report.errors),
            f"erros_importacao_{import_type.value}.xlsx",
            extra_headers={
                "X-Import-Persisted-Rows": str(report.persisted_rows),
                "X-Import-Invalid-Rows": str(report.invalid_rows),
                "X-Import-Chunks-Failed": str(report.chunks_failed),
            },
        )
    return _report_response(report)


@router.post("/{import_type}/error-report")
def download_error_report(
    import_type: ImportType,
    upload: ImportUpload = Depends(get_import_upload),
    manual_overrides: dict[str, str] | None = Depends(get_manual_overrides),
    reference_source: ReferenceSource = Depends(get_reference_source),
    import_service: BulkImportService = Depends(get_bulk_import_service),
) -> Response:
    """
    Return an xlsx with every row rejected during analysis.
    """

    preview = _analyze(import_service, upload, import_type, reference_source, manual_overrides)
    content = build_error_report(import_type, preview.invalid_rows)
    return _xlsx_response(content, f"erros_importacao_{import_type.value}.xlsx")


@router.get("/{import_type}/template")
def download_template(import_type: ImportType) -> Response:
    return _xlsx_response(build_template(import_type), template_filename(import_type))


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _analyze(
    import_service: BulkImportService,
    upload: ImportUpload,
    import_type: ImportType,
    reference_source: ReferenceSource,
    manual_overrides: dict[str, str] | None,
) -> ImportPreview:
    try:
        sheet = read_tabular(upload.content, upload.filename)
        return import_service.analyze(
            sheet,
            import_type,
            reference_source=reference_source,
            manual_overrides=manual_overrides,
        )
    except SchemaError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=exc.to_dict(),
        ) from exc
    except ReferenceUnavailableError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(exc),
        ) from exc


def _error_response(error: InvalidRow) -> ImportRowErrorResponse:
    return ImportRowErrorResponse(
        row_number=error.row_number,
        cns=error.subject_identifier,
        name=error.subject_name,
        violations=list(error.violations),
        message=error.message,
    )


def _warning_response(warning: RowWarning) -> ImportRowWarningResponse:
    return ImportRowWarningResponse(row_number=warning.row_number, message=warning.message)


def _preview_response(preview: ImportPreview) -> ImportPreviewResponse:
    field_map = preview.field_map
    return ImportPreviewResponse(
        import_type=preview.import_type.value,
        total_rows=preview.total_rows,
        valid_rows=len(preview.valid_rows),
        invalid_rows=len(preview.invalid_rows),
        skipped_blank_rows=preview.skipped_blank_rows,
        persisted_keys_checked=preview.persisted_keys_checked,
        field_map=[
            FieldMappingResponse(
                canonical_field=name,
                state=match.state.value,
                source_column=field_map.source_headers[match.index] if match.index is not None else None,
                candidates=[field_map.source_headers[index] for index in match.indices],
                strategy=field_map.match_strategies.get(name),
            )
            for name, match in field_map.matches.items()
        ],
        ambiguities=field_map.ambiguities,
        errors=[_error_response(error) for error in preview.invalid_rows],
        warnings=[_warning_response(warning) for warning in preview.warnings],
    )


def _report_response(report: ImportReport) -> ImportReportResponse:
    return ImportReportResponse(
        import_type=report.import_type.value,
        total_rows=report.total_rows,
        valid_rows=report.valid_rows,
        invalid_rows=report.invalid_rows,
        persisted_rows=report.persisted_rows,
        skipped_blank_rows=report.skipped_blank_rows,
        progress=report.progress,
        chunks_total=report.chunks_total,
        chunks_failed=report.chunks_failed,
        errors=[_error_response(error) for error in report.errors],
        warnings=[_warning_response(warning) for warning in report.warnings],
    )


def _xlsx_response(content: bytes, filename: str, extra_headers: dict[str, str] | None = None) -> Response:
    headers = {"Content-Disposition": f'attachment; filename="{filename}"'}
    headers.update(extra_headers or {})
    return Response(content=content, media_type=XLSX_MEDIA_TYPE, headers=headers)
