"""
Storage layer interfaces for bulk import runs.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Collection, Sequence
from datetime import datetime

from app.domain.bulk_import import ValidRow


class ReferenceSource(ABC):
    """
    Read-only access to reference data consulted during validation.

    Implementations raise ReferenceUnavailableError when the store cannot be reached.
    """

    @abstractmethod
    def load_subjects(self, cns_values: Collection[str]) -> dict[str, str]:
        """
        Return CNS -> subject id for the subjects whose CNS is in ``cns_values``.
        """

    @abstractmethod
    def load_procedure_codes(self) -> set[str]:
        """
        Return every registered procedure code.
        """

    @abstractmethod
    def load_production_events(
        self,
        subject_ids: Collection[str],
    ) -> list[tuple[str, str, datetime]]:
        """
        Return (subject id, procedure code, service date) for persisted events of the given subjects.
        """


class ImportStorage(ABC):
    """
    Write access used by the batch importer.
    """

    @abstractmethod
    def persist_chunk(self, rows: Sequence[ValidRow]) -> int:
        """
        Persist one chunk and return the number of rows written.

        Raises PersistenceChunkError when the store rejects the chunk.
        """
