"""
app/mappers/row_normalizer.py

Turns one raw spreadsheet row into a typed CandidateRecord.

Pure function of (RawRow, FieldMap): no store or network access.
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone

from app.config import DEFAULT_TRUTHY_TOKENS
from app.domain.bulk_import import (
    SECONDS_PER_DAY,
    SPREADSHEET_EPOCH_OFFSET,
    CandidateRecord,
    Cell,
    EmptyCell,
    FieldMap,
    NumberCell,
    RawRow,
    RecordValue,
    TextCell,
)
from app.mappers.header_mapper import normalize_header
from app.mappers.import_schemas import PRODUCTION_STATUSES, FieldKind, HeaderField, HeaderSchema, get_schema

_UNIX_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_DAY_FIRST_DATE = re.compile(
    r"^(?P<day>\d{1,2})/(?P<month>\d{1,2})/(?P<year>\d{4})"
    r"(?:[ T]+(?P<hour>\d{1,2}):(?P<minute>\d{2})(?::(?P<second>\d{2}))?)?$"
)
_NON_DIGIT = re.compile(r"\D")
_STATUS_LOOKUP: dict[str, str] = {normalize_header(status): status for status in PRODUCTION_STATUSES}


class RowNormalizer:
    """
    Converts RawRow cells into canonical values according to each field's kind.
    """

    def __init__(
        self,
        *,
        epoch_offset: int = SPREADSHEET_EPOCH_OFFSET,
        truthy_tokens: frozenset[str] = DEFAULT_TRUTHY_TOKENS,
    ) -> None:
        self._epoch_offset = epoch_offset
        self._truthy_tokens = frozenset(token.lower() for token in truthy_tokens)

    def normalize(self, raw_row: RawRow, field_map: FieldMap) -> CandidateRecord | None:
        """
        Return the typed record, or None for a blank spreadsheet row.
        """

        schema = get_schema(field_map.import_type)
        values: dict[str, RecordValue] = {}
        populated = 0

        for header_field in schema.fields:
            column = field_map.column_for(header_field.name)
            cell: Cell = raw_row.cell(column.index) if column is not None else EmptyCell()
            if not isinstance(cell, EmptyCell):
                populated += 1
            values[header_field.name] = self._convert(cell, header_field)

        if populated == 0:
            return None

        self._apply_defaults(values, schema)
        return CandidateRecord(
            row_number=raw_row.row_number,
            import_type=schema.import_type,
            values=values,
        )

    def parse_date(self, cell: Cell) -> datetime | None:
        """
        Parse a spreadsheet serial, a DD/MM/YYYY [HH:MM] string or an ISO string into UTC.
        """

        if isinstance(cell, NumberCell):
            return self._from_serial(cell.value)
        if isinstance(cell, TextCell):
            return self._from_text(cell.value.strip())
        return None

    def _convert(self, cell: Cell, header_field: HeaderField) -> RecordValue:
        kind = header_field.kind
        if kind is FieldKind.DATE:
            return self.parse_date(cell)
        if kind is FieldKind.BOOLEAN:
            text = _cell_text(cell)
            return text is not None and text.lower() in self._truthy_tokens
        if kind is FieldKind.IDENTIFIER:
            text = _cell_text(cell)
            digits = _NON_DIGIT.sub("", text) if text else ""
            return digits or None
        if kind is FieldKind.CODE:
            text = _cell_text(cell)
            if text and isinstance(cell, NumberCell) and header_field.pad_width:
                return text.zfill(header_field.pad_width)
            return text
        if kind is FieldKind.STATUS:
            text = _cell_text(cell)
            if text is None:
                return None
            return _STATUS_LOOKUP.get(normalize_header(text), text)
        return _cell_text(cell)

    @staticmethod
    def _apply_defaults(values: dict[str, RecordValue], schema: HeaderSchema) -> None:
        for header_field in schema.fields:
            if header_field.default is not None and values.get(header_field.name) is None:
                values[header_field.name] = header_field.default

        if "date_service_fallback" in values and values.get("date_service") is None:
            values["date_service"] = values["date_service_fallback"]

    def _from_serial(self, serial: float) -> datetime | None:
        try:
            seconds = round((serial - self._epoch_offset) * SECONDS_PER_DAY)
            return _UNIX_EPOCH + timedelta(seconds=seconds)
        except (OverflowError, ValueError):
            return None

    @staticmethod
    def _from_text(raw: str) -> datetime | None:
        if not raw:
            return None

        match = _DAY_FIRST_DATE.match(raw)
        if match:
            try:
                return datetime(
                    int(match["year"]),
                    int(match["month"]),
                    int(match["day"]),
                    int(match["hour"] or 0),
                    int(match["minute"] or 0),
                    int(match["second"] or 0),
                    tzinfo=timezone.utc,
                )
            except ValueError:
                return None

        normalized = raw[:-1] + "+00:00" if raw.endswith("Z") else raw
        try:
            parsed = datetime.fromisoformat(normalized)
        except ValueError:
            return None
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)


def _cell_text(cell: Cell) -> str | None:
    if isinstance(cell, TextCell):
        text = cell.value.strip()
        return text or None
    if isinstance(cell, NumberCell):
        value = cell.value
        if value.is_integer():
            return str(int(value))
        return repr(value)
    return None
