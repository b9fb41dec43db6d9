"""Roll plain locales up the territory containment tree.

A region, continent or the world gets one ``language_territory`` locale
per language spoken in any of its contained territories. Regions are
processed after their children, so nested groups add up transitively.
"""

from __future__ import annotations

import logging

from atlas_pipeline.graph.locales import get_or_create_synthesized_locale, set_locale_population
from atlas_pipeline.graph.models import Locale, LocaleOrigin, Territory, is_territory_group
from atlas_pipeline.provenance.diagnostics import DiagnosticKind, DiagnosticLog

logger = logging.getLogger(__name__)

STAGE = "synthesis"


def _contributes(locale: Locale) -> bool:
    return locale.is_plain and locale.origin != LocaleOrigin.FAMILY


def _aggregate_territory(territory: Territory, locales: dict[str, Locale]) -> int:
    created = 0
    aggregates: list[Locale] = []
    for locale in territory.locales:
        if locale.origin == LocaleOrigin.REGIONAL:
            locale.contained_locales = []
            aggregates.append(locale)

    for child in territory.contains_territories:
        for child_locale in child.locales:
            if not _contributes(child_locale):
                continue
            before = len(locales)
            aggregate = get_or_create_synthesized_locale(
                locales,
                child_locale.language_code,
                territory,
                LocaleOrigin.REGIONAL,
                child_locale.language,
            )
            if aggregate is None:
                continue
            if len(locales) > before:
                created += 1
                aggregates.append(aggregate)
            aggregate.contained_locales.append(child_locale)

    for aggregate in aggregates:
        total = sum(c.population_speaking or 0 for c in aggregate.contained_locales)
        set_locale_population(aggregate, total)
    return created


def create_regional_locales(
    world: Territory | None,
    locales: dict[str, Locale],
    diagnostics: DiagnosticLog | None = None,
) -> int:
    """Create or refresh regional locales under *world*; return how many were new."""
    if world is None:
        if diagnostics is not None:
            diagnostics.record(
                DiagnosticKind.UNRESOLVED_REFERENCE,
                STAGE,
                "world",
                "World territory not found; regional locales skipped",
            )
        return 0

    def visit(territory: Territory, path: frozenset[str]) -> int:
        created = 0
        for child in territory.contains_territories:
            if child.id in path:
                if diagnostics is not None:
                    diagnostics.record(
                        DiagnosticKind.STRUCTURAL_GUARD,
                        STAGE,
                        child.id,
                        f"Territory containment cycle through {territory.id}",
                    )
                continue
            created += visit(child, path | {child.id})
        if is_territory_group(territory.scope) and territory.contains_territories:
            created += _aggregate_territory(territory, locales)
        return created

    created = visit(world, frozenset({world.id}))
    logger.info("Regional locales: %d created", created)
    return created
