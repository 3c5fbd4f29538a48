"""
app/services package marker.
"""

from app.services.batch_importer import BatchImporter, BatchResult
from app.services.bulk_import_service import BulkImportService, get_bulk_import_service
from app.services.deduplicator import Deduplicator
from app.services.reference_resolver import ReferenceResolver

__all__ = [
    "BatchImporter",
    "BatchResult",
    "BulkImportService",
    "Deduplicator",
    "ReferenceResolver",
    "get_bulk_import_service",
]
