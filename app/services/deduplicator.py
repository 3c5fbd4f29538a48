"""
app/services/deduplicator.py

Removes rows already persisted or repeated earlier in the same file.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from app.domain.bulk_import import (
    CandidateRecord,
    DuplicateKey,
    ImportType,
    InvalidRow,
    ValidationOutcome,
    ValidRow,
)

ALREADY_REGISTERED = "already registered"
DUPLICATE_WITHIN_FILE = "duplicate within file"


def duplicate_key_for(row: ValidRow) -> DuplicateKey | None:
    """
    Build the identity of an accepted row, or None when it carries no key.
    """

    record: CandidateRecord = row.record
    if record.import_type is ImportType.PATIENT:
        cns = record.text("cns")
        return DuplicateKey(subject_id=cns) if cns else None

    procedure_code = record.text("procedure_code")
    if row.subject_id is None or procedure_code is None or row.service_date is None:
        return None
    return DuplicateKey.for_event(row.subject_id, procedure_code, row.service_date)


class Deduplicator:
    """
    First occurrence wins; later rows with the same key are rejected.
    """

    def deduplicate(
        self,
        outcomes: Sequence[ValidationOutcome],
        persisted_keys: Iterable[DuplicateKey] = (),
    ) -> list[ValidationOutcome]:
        persisted = frozenset(persisted_keys)
        seen: set[DuplicateKey] = set()
        result: list[ValidationOutcome] = []

        for outcome in outcomes:
            if isinstance(outcome, InvalidRow):
                result.append(outcome)
                continue

            key = duplicate_key_for(outcome)
            if key is None:
                result.append(outcome)
                continue

            if key in persisted:
                result.append(InvalidRow.from_record(outcome.record, [ALREADY_REGISTERED]))
            elif key in seen:
                result.append(InvalidRow.from_record(outcome.record, [DUPLICATE_WITHIN_FILE]))
            else:
                seen.add(key)
                result.append(outcome)

        return result
