"""Stage 5: recompute group territories from the territories they contain.

Dependencies count toward their own region only, never toward their
sovereign, so only ``contains_territories`` edges are followed. Locale
figures that depend on territory populations are derived afterwards.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from atlas_pipeline.graph.locales import clamp_locale_population
from atlas_pipeline.graph.models import Locale, Territory, is_territory_group
from atlas_pipeline.graph.store import AggregatedGraph, CompletedGraph, require_stage
from atlas_pipeline.provenance.diagnostics import DiagnosticKind, DiagnosticLog

logger = logging.getLogger(__name__)

STAGE = "territory"


def _weighted_literacy(children: list[Territory]) -> float | None:
    known = [c for c in children if c.literacy_percent is not None and c.population > 0]
    weight = sum(c.population for c in known)
    if not weight:
        return None
    return sum(c.literacy_percent * c.population for c in known) / weight


def compute_contained_territory_stats(
    world: Territory, diagnostics: DiagnosticLog | None = None
) -> int:
    """Recompute population and literacy below *world*; return how many changed."""
    changed = 0

    def visit(territory: Territory, path: frozenset[str]) -> None:
        nonlocal changed
        children = []
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
            visit(child, path | {child.id})
            children.append(child)
        if not children:
            return

        literacy = _weighted_literacy(children)
        if literacy is not None:
            territory.literacy_percent = literacy
        population = sum(c.population for c in children)
        if population != territory.population:
            territory.population = population
            changed += 1
            for locale in territory.locales:
                clamp_locale_population(locale)

    visit(world, frozenset({world.id}))
    return changed


def compute_locale_adjusted_population(locale: Locale) -> None:
    """Rescale a locale's speaking percent against its final territory population.

    A locale with no percent keeps its speaking figure. A zero percent is left unset.
    """
    percent = locale.population_speaking_percent
    if percent is None:
        locale.population_adjusted = locale.population_speaking
    elif percent != 0:
        territory_population = locale.territory.population if locale.territory else 0
        locale.population_adjusted = round(percent / 100.0 * (territory_population or 1))


def compute_locale_writing_population(locales: Iterable[Locale]) -> int:
    """Estimate literate speakers; return how many locales got a figure.

    Countries and dependencies apply their own literacy rate, defaulting to
    100. Group territories add up their contained locales instead, one per
    territory, narrowest groups first.
    """
    written = 0
    groups: list[Locale] = []
    for locale in locales:
        territory = locale.territory
        if territory is not None and is_territory_group(territory.scope):
            groups.append(locale)
            continue
        if territory is not None and territory.literacy_percent is not None:
            locale.literacy_percent = territory.literacy_percent
        else:
            locale.literacy_percent = 100.0
        if locale.population_speaking is None:
            continue
        locale.population_writing = round(
            locale.population_speaking * locale.literacy_percent / 100.0
        )
        if locale.population_speaking_percent is not None:
            locale.population_writing_percent = (
                locale.population_speaking_percent * locale.literacy_percent / 100.0
            )
        written += 1

    groups.sort(key=lambda loc: loc.territory.scope)
    for locale in groups:
        seen: set[str | None] = set()
        total = 0.0
        for contained in locale.contained_locales:
            if contained.territory_code in seen:
                continue
            seen.add(contained.territory_code)
            total += contained.population_writing or 0
        locale.population_writing = total
        if locale.population_speaking and total:
            locale.literacy_percent = round(total * 100 / locale.population_speaking)
        written += 1
    return written


def roll_up_territory_stats(aggregated: AggregatedGraph) -> CompletedGraph:
    graph = require_stage(aggregated, AggregatedGraph)
    changed = 0
    for territory in graph.territories.values():
        if territory.parent_region is None and territory.contains_territories:
            changed += compute_contained_territory_stats(territory, graph.diagnostics)

    for locale in graph.locales.values():
        compute_locale_adjusted_population(locale)
    written = compute_locale_writing_population(graph.locales.values())

    graph.trace.add_step("territory", {"populations_changed": changed})
    logger.info(
        "Rolled up territory stats, %d populations changed, %d locales with writing estimates",
        changed,
        written,
    )
    return CompletedGraph(graph)
