"""Apply curated indigeneity flags to the locales of a completed graph."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from atlas_pipeline.graph.models import Locale
from atlas_pipeline.graph.store import CompletedGraph, require_stage
from atlas_pipeline.ingest.records import IndigeneityRecord
from atlas_pipeline.provenance.diagnostics import DiagnosticKind

logger = logging.getLogger(__name__)

STAGE = "indigeneity"


def _find_locale(locales: list[Locale], territory_code: str) -> Locale | None:
    for locale in locales:
        if locale.territory_code == territory_code and locale.is_plain:
            return locale
    return None


def apply_indigeneity(completed: CompletedGraph, rows: Iterable[IndigeneityRecord]) -> int:
    """Set ``lang_formed_here`` / ``historic_presence``; return rows applied."""
    graph = require_stage(completed, CompletedGraph)
    diagnostics = graph.diagnostics
    applied = 0
    for row in rows:
        entity_id = f"{row.language_code}_{row.territory_code}"
        if row.is_empty:
            diagnostics.record(DiagnosticKind.MALFORMED_ROW, STAGE, entity_id, "No flags set")
            continue
        language = graph.get_language(row.language_code)
        if language is None:
            diagnostics.record(
                DiagnosticKind.UNRESOLVED_REFERENCE,
                STAGE,
                entity_id,
                f"Language {row.language_code!r} not found",
            )
            continue
        locale = _find_locale(language.locales, row.territory_code)
        if locale is None:
            diagnostics.record(
                DiagnosticKind.UNRESOLVED_REFERENCE,
                STAGE,
                entity_id,
                f"No locale for {row.language_code} in {row.territory_code}",
            )
            continue
        if locale.lang_formed_here is not None or locale.historic_presence is not None:
            diagnostics.record(
                DiagnosticKind.DUPLICATE_INPUT,
                STAGE,
                locale.id,
                "Indigeneity already set for this locale",
            )
            continue
        locale.lang_formed_here = row.lang_formed_here
        locale.historic_presence = row.historic_presence
        applied += 1

    graph.trace.add_step("indigeneity", {"applied": applied})
    logger.info("Applied indigeneity flags to %d locales", applied)
    return applied
