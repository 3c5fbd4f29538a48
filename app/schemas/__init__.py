"""
app/schemas package marker.
"""

from app.schemas.bulk_import import (
    FieldMappingResponse,
    HealthResponse,
    ImportPreviewResponse,
    ImportReportResponse,
    ImportRowErrorResponse,
    ImportRowWarningResponse,
)

__all__ = [
    "FieldMappingResponse",
    "HealthResponse",
    "ImportPreviewResponse",
    "ImportReportResponse",
    "ImportRowErrorResponse",
    "ImportRowWarningResponse",
]
