"""Roll descendant-language locales up one authority's language tree.

For a family F and territory T, ``F_T`` sums the plain locales in T of
F's children, which in turn already include their own descendants.
"""

from __future__ import annotations

import logging

from atlas_pipeline.graph.locales import get_or_create_synthesized_locale, set_locale_population
from atlas_pipeline.graph.models import (
    Language,
    LanguageSource,
    Locale,
    LocaleOrigin,
    in_source,
)
from atlas_pipeline.provenance.diagnostics import DiagnosticKind, DiagnosticLog

logger = logging.getLogger(__name__)

STAGE = "synthesis"
DEFAULT_MAX_DEPTH = 30


class _FamilyRollup:
    def __init__(
        self,
        locales: dict[str, Locale],
        source: LanguageSource,
        diagnostics: DiagnosticLog | None,
        max_depth: int,
    ) -> None:
        self.locales = locales
        self.source = source
        self.diagnostics = diagnostics
        self.max_depth = max_depth
        self.created = 0

    def _guard(self, language: Language, message: str) -> None:
        if self.diagnostics is not None:
            self.diagnostics.record(DiagnosticKind.STRUCTURAL_GUARD, STAGE, language.id, message)

    def accumulate(self, ancestor: Language, path: frozenset[str], depth: int) -> None:
        children = in_source(ancestor, self.source).child_languages
        if not children:
            return

        aggregates: list[Locale] = []
        for locale in ancestor.locales:
            if locale.origin == LocaleOrigin.FAMILY:
                locale.family_locales = []
                aggregates.append(locale)

        for child in children:
            if child.id in path:
                self._guard(child, f"Cycle in {self.source.value} tree below {ancestor.id}")
                continue
            if depth >= self.max_depth:
                self._guard(child, f"{self.source.value} tree deeper than {self.max_depth}")
                continue
            self.accumulate(child, path | {child.id}, depth + 1)

            for child_locale in child.locales:
                if not child_locale.is_plain or child_locale.territory is None:
                    continue
                before = len(self.locales)
                aggregate = get_or_create_synthesized_locale(
                    self.locales,
                    ancestor.id,
                    child_locale.territory,
                    LocaleOrigin.FAMILY,
                    ancestor,
                )
                if aggregate is None:
                    continue
                if len(self.locales) > before:
                    self.created += 1
                    aggregates.append(aggregate)
                aggregate.family_locales.append(child_locale)

        for aggregate in aggregates:
            total = sum(c.population_speaking or 0 for c in aggregate.family_locales)
            set_locale_population(aggregate, total)


def create_family_locales(
    languages: dict[str, Language],
    locales: dict[str, Locale],
    source: LanguageSource = LanguageSource.ISO,
    diagnostics: DiagnosticLog | None = None,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> int:
    """Create or refresh family locales over *source*'s tree.

    *languages* is that source's index (see ``group_languages_by_source``).
    Returns the number of locales created.
    """
    rollup = _FamilyRollup(locales, source, diagnostics, max_depth)
    for language in languages.values():
        sub = in_source(language, source)
        if sub.parent_language is None and sub.child_languages:
            rollup.accumulate(language, frozenset({language.id}), 0)
    logger.info("Family locales (%s): %d created", source.value, rollup.created)
    return rollup.created
