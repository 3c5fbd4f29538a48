"""
app/validators package marker.
"""

from app.validators.mapping_validator import MappingErrorDetail, SchemaError, require_identity_fields
from app.validators.row_validator import RowValidator, StatusRequirement, default_status_requirements

__all__ = [
    "MappingErrorDetail",
    "RowValidator",
    "SchemaError",
    "StatusRequirement",
    "default_status_requirements",
    "require_identity_fields",
]
