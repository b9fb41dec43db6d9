"""Stage 4: resolve one population figure per entity.

Locales are resolved first (raw figure vs. census citations, then the
synthesized rollups), languages second, following a fixed precedence:

1. a cited figure,
2. the sum over the language's outermost plain locales,
3. the sum over child languages of (child population + 1).

The ``+ 1`` per child keeps a family with unknown-size members ranked
above an empty one. Every recursive walk carries its own path set and a
depth limit; a back-edge or overflow contributes nothing and leaves a
``structural_guard`` diagnostic.
"""

from __future__ import annotations

import logging

from atlas_pipeline.config.schema import PipelineConfig
from atlas_pipeline.graph.locales import set_locale_population
from atlas_pipeline.graph.models import (
    Census,
    Language,
    LanguageSource,
    Locale,
    LocaleOrigin,
    ObjectData,
    PopulationSourceCategory,
    Territory,
    VariantTag,
    WritingSystem,
    in_source,
)
from atlas_pipeline.graph.store import AggregatedGraph, EntityGraph, ReconciledGraph, require_stage
from atlas_pipeline.provenance.diagnostics import DiagnosticKind

logger = logging.getLogger(__name__)

STAGE = "aggregate"


class PopulationAggregator:
    """Runs the population cascade over one graph.

    Memo tables live on the instance, so each instance is good for a
    single pass.
    """

    def __init__(self, graph: EntityGraph, max_depth: int = 30, tiebreaker: int = 1) -> None:
        self.graph = graph
        self.max_depth = max_depth
        self.tiebreaker = tiebreaker
        self._locale_memo: dict[str, float] = {}
        self._language_memo: dict[str, float] = {}
        self._ws_memo: dict[str, float] = {}
        self._largest_memo: dict[str, Language | None] = {}

    def _guard(self, entity_id: str, message: str) -> None:
        self.graph.diagnostics.record(DiagnosticKind.STRUCTURAL_GUARD, STAGE, entity_id, message)

    # -- locales -----------------------------------------------------------

    @staticmethod
    def _resolve_cited_locale(locale: Locale) -> None:
        best = max(locale.census_records, key=lambda c: c.population_estimate, default=None)
        raw = locale.population_raw
        if best is not None and (raw is None or best.population_estimate > raw):
            locale.population_census = best.census
            set_locale_population(locale, best.population_estimate, best.population_percent)
            locale.population_estimate_source = PopulationSourceCategory.CENSUS
        elif raw is not None:
            set_locale_population(locale, raw)
            locale.population_estimate_source = PopulationSourceCategory.CITED

    def resolve_locale(
        self, locale: Locale, path: frozenset[str] = frozenset(), depth: int = 0
    ) -> float:
        if locale.id in self._locale_memo:
            return self._locale_memo[locale.id]

        if locale.origin == LocaleOrigin.SOURCE:
            self._resolve_cited_locale(locale)
        else:
            contributors = (
                locale.contained_locales
                if locale.origin == LocaleOrigin.REGIONAL
                else locale.family_locales
            )
            path = path | {locale.id}
            total = 0.0
            for contributor in contributors:
                if contributor.id in path:
                    self._guard(locale.id, f"Locale rollup cycle through {contributor.id}")
                    continue
                if depth >= self.max_depth:
                    self._guard(locale.id, f"Locale rollup deeper than {self.max_depth}")
                    continue
                total += self.resolve_locale(contributor, path, depth + 1)
            set_locale_population(locale, total)
            locale.population_estimate_source = locale.population_source

        value = locale.population_speaking or 0
        self._locale_memo[locale.id] = value
        return value

    def resolve_locales(self) -> None:
        for locale in self.graph.locales.values():
            self.resolve_locale(locale)

    # -- languages ---------------------------------------------------------

    @staticmethod
    def _ancestor_territory_ids(territory: Territory) -> set[str]:
        ancestors: set[str] = set()
        parent = territory.parent_region
        while parent is not None and parent.id not in ancestors and parent is not territory:
            ancestors.add(parent.id)
            parent = parent.parent_region
        return ancestors

    def population_from_locales(self, language: Language) -> float | None:
        """Sum plain locales that are not already inside a broader one."""
        plain = [loc for loc in language.locales if loc.is_plain and loc.territory is not None]
        if not plain:
            return None
        territory_ids = {loc.territory.id for loc in plain}
        outermost = [
            loc
            for loc in plain
            if not (self._ancestor_territory_ids(loc.territory) & territory_ids)
        ]
        return sum(loc.population_speaking or 0 for loc in outermost)

    def resolve_language(
        self, language: Language, path: frozenset[str] | None = None, depth: int = 0
    ) -> float:
        if language.id in self._language_memo:
            return self._language_memo[language.id]
        path = (path or frozenset()) | {language.id}

        children = language.child_languages
        descendants: float | None = None
        if children:
            descendants = 0.0
            for child in children:
                if child.id in path:
                    self._guard(language.id, f"Language tree cycle through {child.id}")
                    continue
                if depth >= self.max_depth:
                    self._guard(language.id, f"Language tree deeper than {self.max_depth}")
                    continue
                descendants += self.resolve_language(child, path, depth + 1) + self.tiebreaker
        language.population_of_descendants = descendants
        language.combined.population_of_descendants = descendants
        language.population_from_locales = self.population_from_locales(language)

        if language.population_cited is not None:
            estimate, source = language.population_cited, PopulationSourceCategory.CITED
        elif language.population_from_locales:
            estimate = language.population_from_locales
            source = PopulationSourceCategory.AGGREGATED_FROM_TERRITORIES
        elif descendants:
            estimate, source = descendants, PopulationSourceCategory.AGGREGATED_FROM_LANGUAGES
        elif language.population_from_locales is not None:
            estimate = language.population_from_locales
            source = PopulationSourceCategory.AGGREGATED_FROM_TERRITORIES
        else:
            estimate, source = None, None
        language.population_estimate = estimate
        language.population_estimate_source = source

        value = estimate or 0
        self._language_memo[language.id] = value
        return value

    def resolve_languages(self) -> None:
        languages = self.graph.languages.values()
        for language in languages:
            if language.parent_language is None:
                self.resolve_language(language)
        # Languages only reachable through a cycle have no root.
        for language in languages:
            if language.id not in self._language_memo:
                self.resolve_language(language)

    @staticmethod
    def _own_population(language: Language) -> float:
        """Population that does not depend on any language tree."""
        if language.population_cited is not None:
            return language.population_cited
        return language.population_from_locales or 0

    def resolve_source_descendants(
        self,
        language: Language,
        source: LanguageSource,
        memo: dict[str, float | None],
        path: frozenset[str] | None = None,
        depth: int = 0,
    ) -> float | None:
        """Sum ``max(own, descendants) + tiebreaker`` over *source*'s own tree."""
        if language.id in memo:
            return memo[language.id]
        path = (path or frozenset()) | {language.id}
        sub = in_source(language, source)

        descendants: float | None = None
        if sub.child_languages:
            descendants = 0.0
            for child in sub.child_languages:
                if child.id in path:
                    self._guard(language.id, f"{source.value} tree cycle through {child.id}")
                    continue
                if depth >= self.max_depth:
                    self._guard(language.id, f"{source.value} tree deeper than {self.max_depth}")
                    continue
                child_descendants = self.resolve_source_descendants(
                    child, source, memo, path, depth + 1
                )
                descendants += (
                    max(self._own_population(child), child_descendants or 0) + self.tiebreaker
                )
        sub.population_of_descendants = descendants
        memo[language.id] = descendants
        return descendants

    def compute_source_descendants(self) -> None:
        """Per-source descendant totals, walked from each source's roots."""
        for source, index in self.graph.languages_by_source.items():
            if source == LanguageSource.COMBINED:
                continue
            memo: dict[str, float | None] = {}
            for language in index.values():
                if in_source(language, source).parent_language is None:
                    self.resolve_source_descendants(language, source, memo)
            for language in index.values():
                if language.id not in memo:
                    self.resolve_source_descendants(language, source, memo)

    # -- writing systems ---------------------------------------------------

    def resolve_writing_system(
        self, ws: WritingSystem, path: frozenset[str] | None = None, depth: int = 0
    ) -> float:
        if ws.id in self._ws_memo:
            return self._ws_memo[ws.id]
        path = (path or frozenset()) | {ws.id}
        if not ws.child_writing_systems:
            ws.population_of_descendants = None
        else:
            total = 0.0
            for child in ws.child_writing_systems:
                if child.id in path:
                    self._guard(ws.id, f"Writing system tree cycle through {child.id}")
                    continue
                if depth >= self.max_depth:
                    self._guard(ws.id, f"Writing system tree deeper than {self.max_depth}")
                    continue
                total += (
                    (child.population_upper_bound or 0)
                    + self.resolve_writing_system(child, path, depth + 1)
                    + self.tiebreaker
                )
            ws.population_of_descendants = total
        value = ws.population_of_descendants or 0
        self._ws_memo[ws.id] = value
        return value

    def resolve_writing_systems(self) -> None:
        for ws in self.graph.writing_systems.values():
            self.resolve_writing_system(ws)

    # -- largest descendant ------------------------------------------------

    def largest_descendant(
        self, language: Language, path: frozenset[str] | None = None, depth: int = 0
    ) -> Language | None:
        if language.id in self._largest_memo:
            return self._largest_memo[language.id]
        path = (path or frozenset()) | {language.id}
        best: Language | None = None
        for child in language.child_languages:
            if child.id in path or depth >= self.max_depth:
                continue
            for candidate in (child, self.largest_descendant(child, path, depth + 1)):
                if candidate is None or candidate.population_cited is None:
                    continue
                if best is None or candidate.population_cited > best.population_cited:
                    best = candidate
        language.largest_descendant = best
        self._largest_memo[language.id] = best
        return best

    def compute_largest_descendants(self) -> None:
        for language in self.graph.languages.values():
            self.largest_descendant(language)

    def run(self) -> None:
        self.resolve_locales()
        self.resolve_languages()
        self.compute_source_descendants()
        self.resolve_writing_systems()
        self.compute_largest_descendants()


def compute_largest_descendants(graph: EntityGraph, max_depth: int = 30) -> None:
    PopulationAggregator(graph, max_depth=max_depth).compute_largest_descendants()


def aggregate_populations(
    reconciled: ReconciledGraph, cfg: PipelineConfig | None = None
) -> AggregatedGraph:
    graph = require_stage(reconciled, ReconciledGraph)
    cfg = cfg or PipelineConfig()
    aggregator = PopulationAggregator(
        graph,
        max_depth=cfg.aggregation.max_depth,
        tiebreaker=cfg.aggregation.descendant_tiebreaker,
    )
    aggregator.run()

    estimated = sum(1 for lang in graph.languages.values() if lang.population_estimate is not None)
    graph.trace.add_step(
        "aggregate",
        {
            "languages_estimated": estimated,
            "structural_guards": len(graph.diagnostics.of_kind(DiagnosticKind.STRUCTURAL_GUARD)),
        },
    )
    logger.info("Resolved populations for %d of %d languages", estimated, len(graph.languages))
    return AggregatedGraph(graph)


# -- accessors ---------------------------------------------------------------


def get_population(obj: ObjectData) -> float | None:
    """The resolved population, whatever cascade step produced it."""
    if isinstance(obj, Language):
        return obj.population_estimate
    if isinstance(obj, Locale):
        return obj.population_speaking
    if isinstance(obj, Territory):
        return obj.population
    if isinstance(obj, WritingSystem):
        return obj.population_upper_bound
    if isinstance(obj, Census):
        return obj.eligible_population
    if isinstance(obj, VariantTag):
        return sum(lang.population_estimate or 0 for lang in obj.languages)
    return None


def _broadest_synthesized_locale(language: Language) -> Locale | None:
    candidates = [
        loc
        for loc in language.locales
        if loc.is_synthesized and loc.is_plain and loc.territory is not None
    ]
    if not candidates:
        return None
    return max(candidates, key=lambda loc: (loc.territory.scope, loc.population_speaking or 0))


def get_population_attested(obj: ObjectData) -> float | None:
    """Population backed by a citation, a census, or a deterministic locale rollup.

    Never a descendant-language estimate.
    """
    if isinstance(obj, Language):
        if obj.population_cited is not None:
            return obj.population_cited
        broadest = _broadest_synthesized_locale(obj)
        return broadest.population_speaking if broadest is not None else None
    if isinstance(obj, Locale):
        return obj.population_speaking
    if isinstance(obj, Territory):
        return obj.population_from_source
    if isinstance(obj, Census):
        return obj.eligible_population
    return None


def get_population_of_descendants(
    obj: ObjectData, source: LanguageSource | None = None
) -> float | None:
    if isinstance(obj, Language):
        if source is None:
            return obj.population_of_descendants
        return in_source(obj, source).population_of_descendants
    if isinstance(obj, WritingSystem):
        return obj.population_of_descendants
    if isinstance(obj, Territory):
        # Dependencies are the one population the containment rollup leaves out.
        if not obj.dependent_territories:
            return None
        return sum(t.population for t in obj.dependent_territories)
    return None


def get_largest_descendant_share(obj: ObjectData) -> float | None:
    """Percent of *obj*'s population held by its biggest descendant.

    For a territory that is the percent of its most-spoken locale.
    """
    if isinstance(obj, Language):
        if not obj.population_estimate or obj.largest_descendant is None:
            return None
        return (obj.largest_descendant.population_estimate or 0) * 100 / obj.population_estimate
    if isinstance(obj, Territory):
        spoken = [loc for loc in obj.locales if loc.population_speaking is not None]
        if not spoken:
            return None
        return max(spoken, key=lambda loc: loc.population_speaking).population_speaking_percent
    return None


def get_population_relative_to_territory(obj: ObjectData) -> float | None:
    """Percent of the relevant territory's population."""
    if isinstance(obj, Locale):
        return obj.population_speaking_percent
    if isinstance(obj, Census):
        if obj.territory is None or not obj.territory.population:
            return None
        return obj.eligible_population * 100 / obj.territory.population
    if isinstance(obj, Territory):
        if obj.parent_region is None or not obj.parent_region.population:
            return None
        return obj.population * 100 / obj.parent_region.population
    return None
