"""
app/mappers/header_mapper.py

Resolves human-entered spreadsheet headers into canonical import fields.
"""

from __future__ import annotations

import logging
import re
import unicodedata
from typing import Mapping, Sequence

from app.domain.bulk_import import FieldMap, HeaderMatch, ImportType, MatchState, ResolvedColumn
from app.mappers.import_schemas import HeaderSchema, get_schema
from app.validators.mapping_validator import MappingErrorDetail, SchemaError, require_identity_fields

logger = logging.getLogger(__name__)

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def normalize_header(header: str) -> str:
    """
    Lower-case, strip accents and collapse punctuation/underscores into single spaces.
    """

    decomposed = unicodedata.normalize("NFD", str(header).strip().lower())
    without_accents = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return _NON_ALNUM.sub(" ", without_accents).strip()


class HeaderMapper:
    """
    Maps a header row to a FieldMap by substring matching against known phrases.
    """

    def resolve(
        self,
        headers: Sequence[str | None],
        import_type: ImportType,
        *,
        manual_overrides: Mapping[str, str] | None = None,
    ) -> FieldMap:
        """
        Build the FieldMap for one import run or raise SchemaError.
        """

        schema = get_schema(import_type)
        source_headers = tuple(str(header or "").strip() for header in headers)
        if not any(source_headers):
            raise SchemaError(
                message="Header row is empty; cannot resolve import columns.",
                errors=[
                    MappingErrorDetail(
                        code="empty_headers",
                        message="No header labels were found in the first row.",
                    )
                ],
            )

        normalized = [normalize_header(header) for header in source_headers]
        candidates: dict[str, list[int]] = {name: [] for name in schema.field_names}
        strategies: dict[str, str] = {}
        consumed: set[int] = set()

        override_errors = self._apply_overrides(
            schema=schema,
            manual_overrides=manual_overrides,
            normalized=normalized,
            source_headers=source_headers,
            candidates=candidates,
            strategies=strategies,
            consumed=consumed,
        )

        for index, header_norm in enumerate(normalized):
            if index in consumed:
                continue
            matched = schema.match(header_norm)
            if matched is None or strategies.get(matched.name) == "override":
                continue
            candidates[matched.name].append(index)
            strategies.setdefault(matched.name, "phrase")

        matches: dict[str, HeaderMatch] = {}
        columns: dict[str, ResolvedColumn] = {}
        for name in schema.field_names:
            indices = tuple(candidates[name])
            if not indices:
                matches[name] = HeaderMatch(MatchState.MISSING)
                continue
            state = MatchState.RESOLVED if len(indices) == 1 else MatchState.AMBIGUOUS
            matches[name] = HeaderMatch(state, indices)
            columns[name] = ResolvedColumn(index=indices[0], header=source_headers[indices[0]])
            if state is MatchState.AMBIGUOUS:
                logger.warning(
                    "Ambiguous header match field=%s columns=%s; using first column %r",
                    name,
                    [source_headers[index] for index in indices],
                    source_headers[indices[0]],
                )

        require_identity_fields(
            resolved_fields=columns.keys(),
            identity_fields=schema.identity_fields,
            source_headers=source_headers,
            pre_errors=override_errors,
        )

        return FieldMap(
            import_type=schema.import_type,
            columns=columns,
            matches=matches,
            source_headers=source_headers,
            match_strategies=strategies,
        )

    @staticmethod
    def _apply_overrides(
        *,
        schema: HeaderSchema,
        manual_overrides: Mapping[str, str] | None,
        normalized: Sequence[str],
        source_headers: Sequence[str],
        candidates: dict[str, list[int]],
        strategies: dict[str, str],
        consumed: set[int],
    ) -> list[MappingErrorDetail]:
        errors: list[MappingErrorDetail] = []
        if not manual_overrides:
            return errors

        for canonical_field, source_column in manual_overrides.items():
            name = canonical_field.strip()
            if name not in candidates:
                errors.append(
                    MappingErrorDetail(
                        code="invalid_override_field",
                        message="Manual override contains unknown canonical field.",
                        canonical_field=name,
                        source_column=source_column,
                    )
                )
                continue

            wanted = normalize_header(source_column)
            index = next(
                (i for i, header_norm in enumerate(normalized) if wanted and header_norm == wanted),
                None,
            )
            if index is None:
                errors.append(
                    MappingErrorDetail(
                        code="override_source_not_found",
                        message="Manual override points to a column not present in the header row.",
                        canonical_field=name,
                        source_column=source_column,
                        context={"source_headers": list(source_headers)},
                    )
                )
                continue

            candidates[name] = [index]
            strategies[name] = "override"
            consumed.add(index)

        return errors
