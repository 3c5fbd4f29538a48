"""
app/services/spreadsheet_export.py

Operator-facing workbooks: the failed-rows report and blank import templates.
"""

from __future__ import annotations

import io
from collections.abc import Sequence
from datetime import datetime

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.datavalidation import DataValidation

from app.domain.bulk_import import ImportType, InvalidRow, RecordValue
from app.mappers.import_schemas import PRODUCTION_STATUSES, FieldKind, HeaderSchema, get_schema

ERROR_REPORT_SHEET = "Erros Importação"
ERROR_REPORT_ROW_COLUMN = "LINHA"
ERROR_REPORT_MESSAGE_COLUMN = "ERRO"
TEMPLATE_VALIDATION_LAST_ROW = 1000

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def build_error_report(import_type: ImportType, errors: Sequence[InvalidRow]) -> bytes:
    """
    Build an xlsx listing each rejected row with its fields and joined violations.
    """

    schema = get_schema(import_type)
    workbook = Workbook()
    worksheet = workbook.active
    worksheet.title = ERROR_REPORT_SHEET

    worksheet.append([ERROR_REPORT_ROW_COLUMN, *schema.template_headers, ERROR_REPORT_MESSAGE_COLUMN])
    _bold_header(worksheet)

    for error in errors:
        worksheet.append([error.row_number, *_row_values(schema, error), error.message])

    return _to_bytes(workbook)


def build_template(import_type: ImportType) -> bytes:
    """
    Build a blank import workbook with the expected header row.

    The production template restricts STATUS to the known statuses and
    carries one sample row.
    """

    schema = get_schema(import_type)
    workbook = Workbook()
    worksheet = workbook.active
    worksheet.title = schema.template_sheet

    worksheet.append(list(schema.template_headers))
    _bold_header(worksheet)
    if schema.sample_row:
        worksheet.append(list(schema.sample_row))

    if "status" in schema.field_names:
        column = get_column_letter(schema.field_names.index("status") + 1)
        validation = DataValidation(
            type="list",
            formula1='"' + ",".join(PRODUCTION_STATUSES) + '"',
            allow_blank=True,
        )
        validation.error = "Selecione um status da lista."
        validation.errorTitle = "Status inválido"
        worksheet.add_data_validation(validation)
        validation.add(f"{column}2:{column}{TEMPLATE_VALIDATION_LAST_ROW}")

    for index, header in enumerate(schema.template_headers, start=1):
        worksheet.column_dimensions[get_column_letter(index)].width = max(14, len(header) + 4)

    return _to_bytes(workbook)


def template_filename(import_type: ImportType) -> str:
    return get_schema(import_type).template_filename


def _row_values(schema: HeaderSchema, error: InvalidRow) -> list[str]:
    if error.record is None:
        values: list[str] = []
        for header_field in schema.fields:
            if header_field.name == "cns":
                values.append(error.subject_identifier)
            elif header_field.name == "name":
                values.append(error.subject_name)
            else:
                values.append("")
        return values

    return [
        _format_value(error.record.values.get(header_field.name), header_field.kind)
        for header_field in schema.fields
    ]


def _format_value(value: RecordValue, kind: FieldKind) -> str:
    if kind is FieldKind.BOOLEAN:
        return "SIM" if value is True else "NÃO"
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.strftime("%d/%m/%Y")
    return str(value)


def _bold_header(worksheet) -> None:
    for cell in worksheet[1]:
        cell.font = Font(bold=True)


def _to_bytes(workbook: Workbook) -> bytes:
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()
