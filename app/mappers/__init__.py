"""
app/mappers package marker.
"""

from app.mappers.header_mapper import HeaderMapper, normalize_header
from app.mappers.import_schemas import PATIENT_SCHEMA, PRODUCTION_SCHEMA, HeaderField, HeaderSchema, get_schema
from app.mappers.row_normalizer import RowNormalizer

__all__ = [
    "PATIENT_SCHEMA",
    "PRODUCTION_SCHEMA",
    "HeaderField",
    "HeaderMapper",
    "HeaderSchema",
    "RowNormalizer",
    "get_schema",
    "normalize_header",
]
