"""
Storage-layer exceptions for bulk import flows.
"""

from __future__ import annotations


class ImportStorageError(Exception):
    """Base exception for record store failures during an import run."""


class ReferenceUnavailableError(ImportStorageError):
    """Raised when reference data cannot be loaded; aborts the whole run."""


class PersistenceChunkError(ImportStorageError):
    """Raised when the store rejects one chunk; the run continues with the next chunk."""
