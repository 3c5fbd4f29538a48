"""
app/readers/tabular_reader.py

Reads uploaded CSV and Excel workbooks into a TabularSheet.
"""

from __future__ import annotations

import csv
import io
import logging
import zipfile
from pathlib import PurePath
from typing import Any, Iterable

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from app.domain.bulk_import import RawRow, TabularSheet, to_cell
from app.validators.mapping_validator import MappingErrorDetail, SchemaError

logger = logging.getLogger(__name__)

CSV_EXTENSIONS = frozenset({".csv", ".txt"})
WORKBOOK_EXTENSIONS = frozenset({".xlsx", ".xlsm"})
SUPPORTED_EXTENSIONS = CSV_EXTENSIONS | WORKBOOK_EXTENSIONS

_CSV_ENCODINGS = ("utf-8-sig", "cp1252")
_CSV_DELIMITERS = ",;\t"


def read_tabular(content: bytes, filename: str) -> TabularSheet:
    """
    Parse file content into header labels plus data rows numbered from 2.
    """

    extension = PurePath(filename or "").suffix.lower()
    if extension not in SUPPORTED_EXTENSIONS:
        raise _reader_error(
            "unsupported_file_type",
            f"Unsupported file type {extension or '(none)'!r}. Use one of: "
            + ", ".join(sorted(SUPPORTED_EXTENSIONS)),
        )
    if not content:
        raise _reader_error("empty_file", "Uploaded file is empty.")

    if extension in CSV_EXTENSIONS:
        rows = _read_csv_rows(content)
    else:
        rows = _read_workbook_rows(content)

    sheet = _build_sheet(rows)
    logger.info("Tabular file read filename=%s headers=%s rows=%s", filename, len(sheet.headers), len(sheet.rows))
    return sheet


def _read_csv_rows(content: bytes) -> list[list[Any]]:
    text: str | None = None
    for encoding in _CSV_ENCODINGS:
        try:
            text = content.decode(encoding)
            break
        except UnicodeDecodeError:
            continue
    if text is None:
        raise _reader_error("invalid_encoding", "CSV must be UTF-8 or Windows-1252 encoded.")

    sample = text[:4096]
    try:
        dialect: Any = csv.Sniffer().sniff(sample, delimiters=_CSV_DELIMITERS)
    except csv.Error:
        dialect = csv.excel

    try:
        return [list(row) for row in csv.reader(io.StringIO(text, newline=""), dialect)]
    except csv.Error as exc:
        raise _reader_error("invalid_csv", f"Invalid CSV format: {exc}") from exc


def _read_workbook_rows(content: bytes) -> list[list[Any]]:
    try:
        workbook = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as exc:
        raise _reader_error("invalid_workbook", f"Could not open workbook: {exc}") from exc

    try:
        worksheet = workbook.worksheets[0] if workbook.worksheets else None
        if worksheet is None:
            raise _reader_error("empty_workbook", "Workbook has no worksheets.")
        return [list(row) for row in worksheet.iter_rows(values_only=True)]
    finally:
        workbook.close()


def _build_sheet(rows: Iterable[list[Any]]) -> TabularSheet:
    iterator = iter(rows)
    header_row = next(iterator, None)
    headers = tuple("" if value is None else str(value).strip() for value in (header_row or ()))
    if not any(headers):
        raise _reader_error("empty_headers", "The first row must contain column headers.")

    raw_rows = [
        RawRow(row_number=row_number, cells=tuple(to_cell(value) for value in row))
        for row_number, row in enumerate(iterator, start=2)
    ]
    return TabularSheet(headers=headers, rows=raw_rows)


def _reader_error(code: str, message: str) -> SchemaError:
    return SchemaError(
        message=message,
        errors=[MappingErrorDetail(code=code, message=message)],
    )
