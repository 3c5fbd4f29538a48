"""
app/validators/mapping_validator.py

Fatal header-resolution errors and the identity-column check that raises them.
"""

from __future__ import annotations

from collections.abc import Collection, Sequence
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class MappingErrorDetail:
    """
    One structured reason an upload could not be mapped.
    """

    code: str
    message: str
    canonical_field: str | None = None
    source_column: str | None = None
    context: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "canonical_field": self.canonical_field,
            "source_column": self.source_column,
            "context": self.context,
        }


class SchemaError(ValueError):
    """
    Raised when an uploaded file cannot be mapped to the import schema.

    Fatal: the run aborts before any row is processed.
    """

    def __init__(self, *, message: str, errors: Sequence[MappingErrorDetail] = ()) -> None:
        super().__init__(message)
        self.message = message
        self.errors = tuple(errors)

    def to_dict(self) -> dict[str, Any]:
        return {"message": self.message, "errors": [error.to_dict() for error in self.errors]}


def require_identity_fields(
    *,
    resolved_fields: Collection[str],
    identity_fields: Sequence[str],
    source_headers: Sequence[str],
    pre_errors: Sequence[MappingErrorDetail] = (),
) -> None:
    """
    Raise SchemaError when an identity field has no column or an override was rejected.

    Override errors are reported together with the missing identity columns
    so the operator sees every header problem of the upload at once.
    """

    errors = list(pre_errors)
    missing = [name for name in identity_fields if name not in resolved_fields]
    errors.extend(
        MappingErrorDetail(
            code="required_field_unmapped",
            message="Mandatory identity column not found in the header row.",
            canonical_field=name,
            context={"source_headers": list(source_headers)},
        )
        for name in missing
    )
    if not errors:
        return

    raise SchemaError(
        message=f"Header mapping failed. Missing mandatory columns: {', '.join(missing) or 'none'}.",
        errors=errors,
    )
