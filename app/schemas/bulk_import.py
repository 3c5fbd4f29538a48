"""
app/schemas/bulk_import.py

Response schemas for bulk import endpoints.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class ImportRowErrorResponse(BaseModel):
    """
    API response model for one rejected row.
    """

    row_number: int = Field(..., ge=1)
    cns: str
    name: str
    violations: list[str] = Field(default_factory=list)
    message: str


class ImportRowWarningResponse(BaseModel):
    row_number: int = Field(..., ge=1)
    message: str


class FieldMappingResponse(BaseModel):
    """
    How one canonical field was matched against the header row.
    """

    canonical_field: str
    state: str
    source_column: str | None = None
    candidates: list[str] = Field(default_factory=list)
    strategy: str | None = None


class ImportPreviewResponse(BaseModel):
    """
    Validity counts and row errors shown before the operator confirms an import.
    """

    import_type: str
    total_rows: int = Field(..., ge=0)
    valid_rows: int = Field(..., ge=0)
    invalid_rows: int = Field(..., ge=0)
    skipped_blank_rows: int = Field(..., ge=0)
    persisted_keys_checked: int = Field(..., ge=0)
    field_map: list[FieldMappingResponse] = Field(default_factory=list)
    ambiguities: dict[str, list[str]] = Field(default_factory=dict)
    errors: list[ImportRowErrorResponse] = Field(default_factory=list)
    warnings: list[ImportRowWarningResponse] = Field(default_factory=list)


class ImportReportResponse(BaseModel):
    """
    Final summary of a confirmed import run.
    """

    import_type: str
    total_rows: int = Field(..., ge=0)
    valid_rows: int = Field(..., ge=0)
    invalid_rows: int = Field(..., ge=0)
    persisted_rows: int = Field(..., ge=0)
    skipped_blank_rows: int = Field(..., ge=0)
    progress: int = Field(..., ge=0, le=100)
    chunks_total: int = Field(..., ge=0)
    chunks_failed: int = Field(..., ge=0)
    errors: list[ImportRowErrorResponse] = Field(default_factory=list)
    warnings: list[ImportRowWarningResponse] = Field(default_factory=list)


class HealthResponse(BaseModel):
    status: str
    service: str
