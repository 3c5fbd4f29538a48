"""
app/services/reference_resolver.py

Loads the reference data one import run validates against.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from app.domain.bulk_import import CandidateRecord, DuplicateKey, ReferenceIndex
from app.storage.base import ReferenceSource
from app.storage.errors import ReferenceUnavailableError

logger = logging.getLogger(__name__)


class ReferenceResolver:
    """
    Builds a ReferenceIndex with at most two reads: subjects by CNS and the catalog.
    """

    def resolve(
        self,
        candidates: Sequence[CandidateRecord],
        source: ReferenceSource,
    ) -> ReferenceIndex:
        cns_values = sorted({cns for cns in (record.text("cns") for record in candidates) if cns})

        try:
            subjects = source.load_subjects(cns_values) if cns_values else {}
            procedure_codes = source.load_procedure_codes()
        except ReferenceUnavailableError:
            raise
        except Exception as exc:
            logger.exception("Reference data lookup failed")
            raise ReferenceUnavailableError(f"Reference data unavailable: {exc}") from exc

        logger.info(
            "Reference index built subjects=%s/%s procedure_codes=%s",
            len(subjects),
            len(cns_values),
            len(procedure_codes),
        )
        return ReferenceIndex(
            subjects={str(cns): str(subject_id) for cns, subject_id in subjects.items()},
            procedure_codes=frozenset(procedure_codes),
        )

    def persisted_keys(
        self,
        index: ReferenceIndex,
        source: ReferenceSource,
    ) -> frozenset[DuplicateKey]:
        """
        Read persisted production events for the resolved subjects as DuplicateKeys.
        """

        subject_ids = sorted(set(index.subjects.values()))
        if not subject_ids:
            return frozenset()

        try:
            events = source.load_production_events(subject_ids)
        except ReferenceUnavailableError:
            raise
        except Exception as exc:
            logger.exception("Persisted production lookup failed")
            raise ReferenceUnavailableError(f"Persisted production lookup failed: {exc}") from exc

        return frozenset(
            DuplicateKey.for_event(subject_id, procedure_code, service_date)
            for subject_id, procedure_code, service_date in events
            if service_date is not None
        )
