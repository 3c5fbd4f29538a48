"""
Storage layer exports.
"""

from app.storage.base import ImportStorage, ReferenceSource
from app.storage.errors import ImportStorageError, PersistenceChunkError, ReferenceUnavailableError
from app.storage.sqlalchemy_storage import (
    SQLAlchemyPatientStorage,
    SQLAlchemyProductionStorage,
    SQLAlchemyReferenceSource,
)

__all__ = [
    "ImportStorage",
    "ImportStorageError",
    "PersistenceChunkError",
    "ReferenceSource",
    "ReferenceUnavailableError",
    "SQLAlchemyPatientStorage",
    "SQLAlchemyProductionStorage",
    "SQLAlchemyReferenceSource",
]
