"""
app/domain/bulk_import.py

Domain models used by the bulk import & reconciliation pipeline.

Lifecycle per run: RawRow -> CandidateRecord -> ValidationOutcome, once per
row. ReferenceIndex and the persisted DuplicateKey set are built once at the
start of a run and never mutated; ImportReport is the only object returned to
callers after persistence.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from types import MappingProxyType
from typing import Any, Mapping, Union

SPREADSHEET_EPOCH_OFFSET = 25569
SECONDS_PER_DAY = 86400
MISSING_ECHO = "---"


class ImportType(str, enum.Enum):
    PATIENT = "patient"
    PRODUCTION = "production"


# ---------------------------------------------------------------------------
# Cells
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TextCell:
    value: str


@dataclass(frozen=True)
class NumberCell:
    value: float


@dataclass(frozen=True)
class EmptyCell:
    pass


EMPTY = EmptyCell()

Cell = Union[TextCell, NumberCell, EmptyCell]


def to_cell(value: Any) -> Cell:
    """
    Convert one value produced by a tabular reader into a Cell.
    """

    if value is None:
        return EMPTY
    if isinstance(value, bool):
        return TextCell("true" if value else "false")
    if isinstance(value, (int, float)):
        return NumberCell(float(value))
    if isinstance(value, datetime):
        return NumberCell(datetime_to_serial(value))
    if isinstance(value, date):
        return NumberCell(datetime_to_serial(datetime(value.year, value.month, value.day)))
    text = str(value)
    if not text.strip():
        return EMPTY
    return TextCell(text)


def datetime_to_serial(value: datetime) -> float:
    """
    Express a datetime as a spreadsheet serial day count.

    Naive values are read as UTC wall-clock time.
    """

    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    seconds = value.timestamp()
    return seconds / SECONDS_PER_DAY + SPREADSHEET_EPOCH_OFFSET


@dataclass(frozen=True)
class RawRow:
    """
    One data row of an uploaded sheet, cells aligned to the header row.
    """

    row_number: int
    cells: tuple[Cell, ...]

    def cell(self, index: int) -> Cell:
        if 0 <= index < len(self.cells):
            return self.cells[index]
        return EMPTY


@dataclass(frozen=True)
class TabularSheet:
    """
    Header labels plus data rows read from one uploaded file.
    """

    headers: tuple[str, ...]
    rows: list[RawRow] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Header resolution
# ---------------------------------------------------------------------------


class MatchState(str, enum.Enum):
    RESOLVED = "resolved"
    AMBIGUOUS = "ambiguous"
    MISSING = "missing"


@dataclass(frozen=True)
class HeaderMatch:
    """
    Tagged result of matching one canonical field against the header row.
    """

    state: MatchState
    indices: tuple[int, ...] = ()

    @property
    def index(self) -> int | None:
        return self.indices[0] if self.indices else None


@dataclass(frozen=True)
class ResolvedColumn:
    index: int
    header: str


@dataclass(frozen=True)
class FieldMap:
    """
    Canonical field -> source column, built once per import run.
    """

    import_type: ImportType
    columns: Mapping[str, ResolvedColumn]
    matches: Mapping[str, HeaderMatch]
    source_headers: tuple[str, ...]
    match_strategies: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "columns", MappingProxyType(dict(self.columns)))
        object.__setattr__(self, "matches", MappingProxyType(dict(self.matches)))
        object.__setattr__(self, "match_strategies", MappingProxyType(dict(self.match_strategies)))

    def column_for(self, canonical_field: str) -> ResolvedColumn | None:
        return self.columns.get(canonical_field)

    @property
    def ambiguities(self) -> dict[str, list[str]]:
        return {
            canonical_field: [self.source_headers[index] for index in match.indices]
            for canonical_field, match in self.matches.items()
            if match.state is MatchState.AMBIGUOUS
        }


# ---------------------------------------------------------------------------
# Records and outcomes
# ---------------------------------------------------------------------------


RecordValue = Union[str, datetime, bool, None]


@dataclass(frozen=True)
class CandidateRecord:
    """
    Typed, normalized row ready for validation.
    """

    row_number: int
    import_type: ImportType
    values: Mapping[str, RecordValue]

    def text(self, name: str) -> str | None:
        value = self.values.get(name)
        return value if isinstance(value, str) else None

    def date(self, name: str) -> datetime | None:
        value = self.values.get(name)
        return value if isinstance(value, datetime) else None

    def flag(self, name: str) -> bool:
        return self.values.get(name) is True


@dataclass(frozen=True)
class ReferenceIndex:
    """
    Lookup structures for one import run: CNS -> subject id, known procedure codes.
    """

    subjects: Mapping[str, str]
    procedure_codes: frozenset[str]

    @classmethod
    def empty(cls) -> "ReferenceIndex":
        return cls(subjects={}, procedure_codes=frozenset())

    def subject_id_for(self, cns: str | None) -> str | None:
        if not cns:
            return None
        return self.subjects.get(cns)

    def has_procedure(self, code: str | None) -> bool:
        return bool(code) and code in self.procedure_codes


@dataclass(frozen=True)
class DuplicateKey:
    """
    Identity of one real-world production event at calendar-day granularity.
    """

    subject_id: str
    procedure_code: str | None = None
    service_day: date | None = None

    @classmethod
    def for_event(cls, subject_id: str, procedure_code: str, service_date: datetime) -> "DuplicateKey":
        return cls(
            subject_id=str(subject_id),
            procedure_code=procedure_code,
            service_day=to_utc(service_date).date(),
        )


@dataclass(frozen=True)
class ValidRow:
    row_number: int
    record: CandidateRecord
    subject_id: str | None = None
    service_date: datetime | None = None
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class InvalidRow:
    row_number: int
    subject_identifier: str
    subject_name: str
    violations: tuple[str, ...]
    record: CandidateRecord | None = None

    @property
    def message(self) -> str:
        return "; ".join(self.violations)

    @classmethod
    def from_record(cls, record: CandidateRecord, violations: list[str] | tuple[str, ...]) -> "InvalidRow":
        return cls(
            row_number=record.row_number,
            subject_identifier=record.text("cns") or MISSING_ECHO,
            subject_name=record.text("name") or MISSING_ECHO,
            violations=tuple(violations),
            record=record,
        )


ValidationOutcome = Union[ValidRow, InvalidRow]


@dataclass(frozen=True)
class RowWarning:
    """
    Non-fatal data-quality note attached to an accepted row.
    """

    row_number: int
    message: str


@dataclass(frozen=True)
class ImportPreview:
    """
    Analysis result shown to the operator before anything is persisted.
    """

    import_type: ImportType
    field_map: FieldMap
    outcomes: list[ValidationOutcome]
    total_rows: int
    skipped_blank_rows: int
    persisted_keys_checked: int
    analyzed_at: datetime

    @property
    def valid_rows(self) -> list[ValidRow]:
        return [outcome for outcome in self.outcomes if isinstance(outcome, ValidRow)]

    @property
    def invalid_rows(self) -> list[InvalidRow]:
        return [outcome for outcome in self.outcomes if isinstance(outcome, InvalidRow)]

    @property
    def warnings(self) -> list[RowWarning]:
        return [
            RowWarning(row_number=row.row_number, message=message)
            for row in self.valid_rows
            for message in row.warnings
        ]


@dataclass
class ImportReport:
    """
    End-of-run import summary, built incrementally as chunks persist.
    """

    import_type: ImportType
    total_rows: int = 0
    valid_rows: int = 0
    persisted_rows: int = 0
    skipped_blank_rows: int = 0
    progress: int = 0
    chunks_total: int = 0
    chunks_failed: int = 0
    errors: list[InvalidRow] = field(default_factory=list)
    warnings: list[RowWarning] = field(default_factory=list)

    @property
    def invalid_rows(self) -> int:
        return len(self.errors)

    def to_dict(self) -> dict[str, Any]:
        return {
            "import_type": self.import_type.value,
            "total_rows": self.total_rows,
            "valid_rows": self.valid_rows,
            "invalid_rows": self.invalid_rows,
            "persisted_rows": self.persisted_rows,
            "skipped_blank_rows": self.skipped_blank_rows,
            "progress": self.progress,
            "chunks_total": self.chunks_total,
            "chunks_failed": self.chunks_failed,
            "errors": [
                {
                    "row_number": error.row_number,
                    "cns": error.subject_identifier,
                    "name": error.subject_name,
                    "violations": list(error.violations),
                    "message": error.message,
                }
                for error in self.errors
            ],
            "warnings": [
                {"row_number": warning.row_number, "message": warning.message}
                for warning in self.warnings
            ],
        }


def to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
