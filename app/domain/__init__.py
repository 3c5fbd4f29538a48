"""
app/domain package marker.
"""

from app.domain.bulk_import import (
    CandidateRecord,
    DuplicateKey,
    FieldMap,
    ImportPreview,
    ImportReport,
    ImportType,
    InvalidRow,
    RawRow,
    ReferenceIndex,
    TabularSheet,
    ValidRow,
)

__all__ = [
    "CandidateRecord",
    "DuplicateKey",
    "FieldMap",
    "ImportPreview",
    "ImportReport",
    "ImportType",
    "InvalidRow",
    "RawRow",
    "ReferenceIndex",
    "TabularSheet",
    "ValidRow",
]
