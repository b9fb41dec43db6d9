"""Connect entities built from flat records into one graph.

Each authority keeps its own parent/child tree over the shared language
nodes. Parent codes are looked up in the authority's own index first and
then in the combined index, since catalogs often name a parent that only
another catalog defines.
"""

from __future__ import annotations

import logging

from atlas_pipeline.graph.locales import locale_display_name, set_locale_population
from atlas_pipeline.graph.models import (
    Language,
    LanguageScope,
    LanguageSource,
    Locale,
    Territory,
    VariantTag,
    WritingSystem,
    in_source,
)
from atlas_pipeline.graph.store import LinkedGraph, RawGraph, require_stage
from atlas_pipeline.provenance.diagnostics import DiagnosticKind, DiagnosticLog

logger = logging.getLogger(__name__)

STAGE = "link"

MAX_ISO_CODE_LENGTH = 3


def _source_key(language: Language, source: LanguageSource) -> str | None:
    sub = in_source(language, source)
    if source == LanguageSource.COMBINED:
        return language.id
    if source in (LanguageSource.ISO, LanguageSource.BCP):
        if sub.code and len(sub.code) <= MAX_ISO_CODE_LENGTH:
            return sub.code
        return None
    if source == LanguageSource.UNESCO:
        confidence = language.viability_confidence
        if not confidence or confidence == "No":
            return None
        return sub.code
    if source == LanguageSource.CLDR:
        if language.scope == LanguageScope.FAMILY:
            return None
        return sub.code
    return sub.code


def group_languages_by_source(
    languages: dict[str, Language],
) -> dict[LanguageSource, dict[str, Language]]:
    """Index the languages each authority knows about by that authority's code."""
    grouped: dict[LanguageSource, dict[str, Language]] = {s: {} for s in LanguageSource}
    for language in languages.values():
        for source in LanguageSource:
            key = _source_key(language, source)
            if key:
                grouped[source].setdefault(key, language)
    return grouped


def link_languages(
    languages_by_source: dict[LanguageSource, dict[str, Language]],
    diagnostics: DiagnosticLog,
) -> None:
    combined = languages_by_source.get(LanguageSource.COMBINED, {})
    for source, index in languages_by_source.items():
        for language in index.values():
            sub = in_source(language, source)
            if not sub.parent_code:
                continue
            parent = index.get(sub.parent_code) or combined.get(sub.parent_code)
            if parent is None:
                diagnostics.record(
                    DiagnosticKind.UNRESOLVED_REFERENCE,
                    STAGE,
                    language.id,
                    f"{source.value} parent {sub.parent_code!r} not found",
                )
                continue
            sub.parent_language = parent
            in_source(parent, source).child_languages.append(language)


def link_territories(territories: dict[str, Territory], diagnostics: DiagnosticLog) -> None:
    for territory in territories.values():
        if territory.parent_region_code:
            parent = territories.get(territory.parent_region_code)
            if parent is None:
                diagnostics.record(
                    DiagnosticKind.UNRESOLVED_REFERENCE,
                    STAGE,
                    territory.id,
                    f"Containing region {territory.parent_region_code!r} not found",
                )
            elif territory.scope > parent.scope:
                diagnostics.record(
                    DiagnosticKind.STRUCTURAL_GUARD,
                    STAGE,
                    territory.id,
                    f"{territory.scope.name} cannot be contained by "
                    f"{parent.scope.name} {parent.id}",
                )
            else:
                territory.parent_region = parent
                parent.contains_territories.append(territory)

        if territory.sovereign_code:
            sovereign = territories.get(territory.sovereign_code)
            if sovereign is None:
                diagnostics.record(
                    DiagnosticKind.UNRESOLVED_REFERENCE,
                    STAGE,
                    territory.id,
                    f"Sovereign {territory.sovereign_code!r} not found",
                )
            else:
                territory.sovereign = sovereign
                sovereign.dependent_territories.append(territory)


def _add_upper_bound(writing_system: WritingSystem, population: float | None) -> None:
    writing_system.population_upper_bound = (
        writing_system.population_upper_bound or 0
    ) + (population or 0)


def link_writing_systems(
    languages: dict[str, Language],
    territories: dict[str, Territory],
    writing_systems: dict[str, WritingSystem],
    diagnostics: DiagnosticLog,
) -> None:
    for ws in writing_systems.values():
        if ws.primary_language_code:
            ws.primary_language = languages.get(ws.primary_language_code)
            if ws.primary_language is None:
                diagnostics.record(
                    DiagnosticKind.UNRESOLVED_REFERENCE,
                    STAGE,
                    ws.id,
                    f"Primary language {ws.primary_language_code!r} not found",
                )
        if ws.territory_of_origin_code:
            ws.territory_of_origin = territories.get(ws.territory_of_origin_code)
            if ws.territory_of_origin is None:
                diagnostics.record(
                    DiagnosticKind.UNRESOLVED_REFERENCE,
                    STAGE,
                    ws.id,
                    f"Territory of origin {ws.territory_of_origin_code!r} not found",
                )
        if ws.parent_writing_system_code:
            parent = writing_systems.get(ws.parent_writing_system_code)
            if parent is None:
                diagnostics.record(
                    DiagnosticKind.UNRESOLVED_REFERENCE,
                    STAGE,
                    ws.id,
                    f"Parent writing system {ws.parent_writing_system_code!r} not found",
                )
            else:
                ws.parent_writing_system = parent
                parent.child_writing_systems.append(ws)
        for code in ws.contains_writing_system_codes:
            contained = writing_systems.get(code)
            if contained is not None:
                ws.contains_writing_systems.append(contained)

    for language in languages.values():
        if not language.primary_script_code:
            continue
        ws = writing_systems.get(language.primary_script_code)
        if ws is None:
            diagnostics.record(
                DiagnosticKind.UNRESOLVED_REFERENCE,
                STAGE,
                language.id,
                f"Primary script {language.primary_script_code!r} not found",
            )
            continue
        language.primary_writing_system = ws
        language.writing_systems[ws.id] = ws
        ws.languages[language.id] = language
        _add_upper_bound(ws, language.population_cited)


def _link_locale(
    locale: Locale,
    languages: dict[str, Language],
    territories: dict[str, Territory],
    writing_systems: dict[str, WritingSystem],
    variant_tags: dict[str, VariantTag],
    diagnostics: DiagnosticLog,
) -> None:
    language = languages.get(locale.language_code)
    if language is None:
        diagnostics.record(
            DiagnosticKind.UNRESOLVED_REFERENCE,
            STAGE,
            locale.id,
            f"Language {locale.language_code!r} not found",
        )
    else:
        locale.language = language
        language.locales.append(locale)

    if locale.territory_code:
        territory = territories.get(locale.territory_code)
        if territory is None:
            diagnostics.record(
                DiagnosticKind.UNRESOLVED_REFERENCE,
                STAGE,
                locale.id,
                f"Territory {locale.territory_code!r} not found",
            )
        else:
            locale.territory = territory
            territory.locales.append(locale)

    if locale.script_code:
        ws = writing_systems.get(locale.script_code)
        if ws is None:
            diagnostics.record(
                DiagnosticKind.UNRESOLVED_REFERENCE,
                STAGE,
                locale.id,
                f"Writing system {locale.script_code!r} not found",
            )
        else:
            locale.writing_system = ws
            ws.locales_where_explicit.append(locale)
            if language is not None:
                language.writing_systems.setdefault(ws.id, ws)
                ws.languages.setdefault(language.id, language)
                if language.primary_script_code != ws.id:
                    _add_upper_bound(ws, locale.population_raw)

    for tag_code in locale.variant_tag_codes:
        tag = variant_tags.get(tag_code)
        if tag is None:
            diagnostics.record(
                DiagnosticKind.UNRESOLVED_REFERENCE,
                STAGE,
                locale.id,
                f"Variant tag {tag_code!r} not found",
            )
            continue
        if tag not in locale.variant_tags:
            locale.variant_tags.append(tag)
        if locale not in tag.locales:
            tag.locales.append(locale)

    if locale.population_raw is not None:
        set_locale_population(locale, locale.population_raw)

    source_name = locale.name_display
    locale.name_display = locale_display_name(locale)
    if source_name and source_name != locale.id and source_name not in locale.names:
        locale.names.append(source_name)
    if locale.name_display not in locale.names:
        locale.names.insert(0, locale.name_display)


def link_locales(
    languages: dict[str, Language],
    territories: dict[str, Territory],
    writing_systems: dict[str, WritingSystem],
    variant_tags: dict[str, VariantTag],
    locales: dict[str, Locale],
    diagnostics: DiagnosticLog,
) -> None:
    for locale in locales.values():
        _link_locale(locale, languages, territories, writing_systems, variant_tags, diagnostics)


def link_variant_tags(
    variant_tags: dict[str, VariantTag],
    languages: dict[str, Language],
    locales: dict[str, Locale],
    diagnostics: DiagnosticLog | None = None,
) -> None:
    for tag in variant_tags.values():
        for code in tag.language_codes:
            language = languages.get(code)
            if language is None:
                if diagnostics is not None:
                    diagnostics.record(
                        DiagnosticKind.UNRESOLVED_REFERENCE,
                        STAGE,
                        tag.id,
                        f"Language {code!r} not found",
                    )
                continue
            if language not in tag.languages:
                tag.languages.append(language)
            if tag not in language.variant_tags:
                language.variant_tags.append(tag)
        for code in tag.locale_codes:
            locale = locales.get(code)
            if locale is None:
                if diagnostics is not None:
                    diagnostics.record(
                        DiagnosticKind.UNRESOLVED_REFERENCE,
                        STAGE,
                        tag.id,
                        f"Locale {code!r} not found",
                    )
                continue
            if locale not in tag.locales:
                tag.locales.append(locale)
            if tag not in locale.variant_tags:
                locale.variant_tags.append(tag)


def link_sources(raw: RawGraph) -> LinkedGraph:
    """Resolve every code reference in a freshly built graph."""
    graph = require_stage(raw, RawGraph)
    diagnostics = graph.diagnostics

    graph.languages_by_source = group_languages_by_source(graph.languages)
    link_languages(graph.languages_by_source, diagnostics)
    link_territories(graph.territories, diagnostics)
    link_writing_systems(graph.languages, graph.territories, graph.writing_systems, diagnostics)
    link_locales(
        graph.languages,
        graph.territories,
        graph.writing_systems,
        graph.variant_tags,
        graph.locales,
        diagnostics,
    )
    link_variant_tags(graph.variant_tags, graph.languages, graph.locales, diagnostics)

    graph.trace.add_step("link", graph.counts())
    logger.info(
        "Linked %d languages across %d sources, %d locales",
        len(graph.languages),
        sum(1 for index in graph.languages_by_source.values() if index),
        len(graph.locales),
    )
    return LinkedGraph(graph)
