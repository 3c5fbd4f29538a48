from __future__ import annotations

import pytest

from import_fakes import OTHER_SUBJECT_ID, SUBJECT_ID, InMemoryImportStorage, InMemoryReferenceSource


@pytest.fixture
def reference_source() -> InMemoryReferenceSource:
    return InMemoryReferenceSource(
        subjects={
            "700000000000001": SUBJECT_ID,
            "700000000000002": OTHER_SUBJECT_ID,
        },
        procedure_codes={"0301010072", "0701070099"},
    )


@pytest.fixture
def storage(reference_source: InMemoryReferenceSource) -> InMemoryImportStorage:
    return InMemoryImportStorage(reference_source=reference_source)
