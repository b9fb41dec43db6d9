"""Stage 3: attach census batches to locales.

Censuses only record citations here. Choosing between a locale's raw
figure and its census estimates happens during aggregation.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from atlas_pipeline.graph.locales import build_locale_id
from atlas_pipeline.graph.models import CensusCitation
from atlas_pipeline.graph.store import EntityGraph, ReconciledGraph, SynthesizedGraph, require_stage
from atlas_pipeline.ingest.records import CensusBatch
from atlas_pipeline.provenance.diagnostics import DiagnosticKind

logger = logging.getLogger(__name__)

STAGE = "census"


def add_language_names(graph: EntityGraph, names: dict[str, str]) -> int:
    """Merge ``"Name A / Name B"`` alternates into known languages' name lists."""
    added = 0
    for code, raw_names in names.items():
        language = graph.get_language(code)
        if language is None:
            graph.diagnostics.record(
                DiagnosticKind.UNRESOLVED_REFERENCE,
                STAGE,
                code,
                "Census names a language that is not loaded",
            )
            continue
        for name in (n.strip() for n in raw_names.split("/")):
            if name and name not in language.names:
                language.names.append(name)
                added += 1
    return added


def add_census_batch(graph: EntityGraph, batch: CensusBatch) -> int:
    """Register a batch's censuses and cite them on matching locales.

    Returns the number of citations attached.
    """
    add_language_names(graph, batch.language_names)
    cited = 0
    for census in batch.censuses:
        if census.id in graph.censuses:
            graph.diagnostics.record(
                DiagnosticKind.DUPLICATE_INPUT, STAGE, census.id, "Census already loaded"
            )
            continue
        graph.censuses[census.id] = census

        territory = graph.get_territory(census.territory_code)
        if territory is None:
            graph.diagnostics.record(
                DiagnosticKind.UNRESOLVED_REFERENCE,
                STAGE,
                census.id,
                f"Territory {census.territory_code!r} not found",
            )
        else:
            census.territory = territory
            territory.censuses.append(census)

        denominator = census.denominator
        for language_code, estimate in census.language_estimates.items():
            locale_id = build_locale_id(language_code, census.territory_code)
            locale = graph.get_locale(locale_id)
            if locale is None:
                graph.diagnostics.record(
                    DiagnosticKind.UNRESOLVED_REFERENCE,
                    STAGE,
                    census.id,
                    f"No locale {locale_id} for census estimate",
                )
                continue
            percent = estimate * 100.0 / denominator if denominator else 0.0
            locale.census_records.append(
                CensusCitation(
                    census=census, population_estimate=estimate, population_percent=percent
                )
            )
            cited += 1
    return cited


def reconcile_censuses(
    synthesized: SynthesizedGraph, batches: Iterable[CensusBatch] = ()
) -> ReconciledGraph:
    graph = require_stage(synthesized, SynthesizedGraph)
    censuses = citations = 0
    for batch in batches:
        before = len(graph.censuses)
        citations += add_census_batch(graph, batch)
        censuses += len(graph.censuses) - before

    graph.trace.add_step("census", {"censuses": censuses, "citations": citations})
    logger.info("Reconciled %d censuses into %d locale citations", censuses, citations)
    return ReconciledGraph(graph)
