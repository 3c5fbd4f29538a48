from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from app.domain.bulk_import import CandidateRecord, DuplicateKey, ImportType
from app.services.reference_resolver import ReferenceResolver
from app.storage.errors import ReferenceUnavailableError
from import_fakes import SUBJECT_ID, InMemoryReferenceSource


def _candidate(row_number: int, cns: str | None) -> CandidateRecord:
    return CandidateRecord(
        row_number=row_number,
        import_type=ImportType.PRODUCTION,
        values={"cns": cns, "procedure_code": "0301010072"},
    )


def test_resolves_only_the_batch_identifiers_in_two_reads(reference_source) -> None:
    candidates = [
        _candidate(2, "700000000000001"),
        _candidate(3, "700000000000001"),
        _candidate(4, "799999999999999"),
        _candidate(5, None),
    ]

    index = ReferenceResolver().resolve(candidates, reference_source)

    assert index.subjects == {"700000000000001": SUBJECT_ID}
    assert index.has_procedure("0301010072")
    assert not index.has_procedure("0000000000")
    assert reference_source.calls == [
        ("subjects", ("700000000000001", "799999999999999")),
        ("procedure_codes", ()),
    ]


def test_store_failure_is_fatal() -> None:
    source = InMemoryReferenceSource(unavailable=True)

    with pytest.raises(ReferenceUnavailableError):
        ReferenceResolver().resolve([_candidate(2, "700000000000001")], source)


def test_unexpected_store_errors_are_wrapped() -> None:
    class BrokenSource(InMemoryReferenceSource):
        def load_procedure_codes(self) -> set[str]:
            raise ConnectionError("connection reset")

    with pytest.raises(ReferenceUnavailableError, match="connection reset"):
        ReferenceResolver().resolve([_candidate(2, "700000000000001")], BrokenSource())


def test_persisted_keys_are_scoped_and_reduced_to_calendar_day(reference_source) -> None:
    reference_source.events = [
        (SUBJECT_ID, "0301010072", datetime(2024, 1, 1, 22, 30, tzinfo=timezone.utc)),
        ("someone-else", "0301010072", datetime(2024, 1, 1, tzinfo=timezone.utc)),
    ]
    resolver = ReferenceResolver()
    index = resolver.resolve([_candidate(2, "700000000000001")], reference_source)

    keys = resolver.persisted_keys(index, reference_source)

    assert keys == frozenset({DuplicateKey(SUBJECT_ID, "0301010072", date(2024, 1, 1))})
    assert reference_source.calls[-1] == ("production_events", (SUBJECT_ID,))


def test_no_resolved_subjects_skips_event_lookup(reference_source) -> None:
    resolver = ReferenceResolver()
    index = resolver.resolve([_candidate(2, "799999999999999")], reference_source)

    assert resolver.persisted_keys(index, reference_source) == frozenset()
    assert all(call[0] != "production_events" for call in reference_source.calls)
