"""Locale codes, display names and the population clamp."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from atlas_pipeline.graph.models import (
    Language,
    Locale,
    LocaleOrigin,
    PopulationSourceCategory,
    Territory,
)

# ca_VALENCIA, es_Latn_419_SPANGLIS, taib1242_Hant_TW_tailo
_LOCALE_CODE_RE = re.compile(
    r"^([a-z]{2,3}|[a-z]{4}[0-9]{4})"
    r"(?:[-_]([A-Z][a-z]{3}))?"
    r"(?:[-_]([A-Z]{2}|[0-9]{3}))?"
    r"((?:[-_][A-Za-z0-9]{4,})*)$"
)


@dataclass
class LocaleTags:
    language_code: str
    script_code: str | None = None
    territory_code: str | None = None
    variant_tag_codes: list[str] = field(default_factory=list)


def parse_locale_code(code: str) -> LocaleTags:
    """Split a BCP-47-like locale code into its parts.

    Raises ValueError when the code is not well formed.
    """
    match = _LOCALE_CODE_RE.match(code.strip())
    if match is None:
        raise ValueError(f"Invalid locale code: {code!r}")
    variants = [v.lower() for v in re.split(r"[-_]", match.group(4)) if v]
    return LocaleTags(
        language_code=match.group(1),
        script_code=match.group(2),
        territory_code=match.group(3),
        variant_tag_codes=variants,
    )


def build_locale_id(
    language_code: str,
    territory_code: str | None = None,
    script_code: str | None = None,
    variant_tag_codes: list[str] | None = None,
    separator: str = "_",
) -> str:
    parts = [language_code, script_code, territory_code, *(variant_tag_codes or [])]
    return separator.join(p for p in parts if p)


def locale_display_name(locale: Locale) -> str:
    """Compose ``Language (Territory, Script, variants)`` from resolved parts."""
    language_name = locale.language.name_display if locale.language else locale.language_code
    territory_name = locale.territory.name_display if locale.territory else locale.territory_code
    script_name = (
        locale.writing_system.name_display if locale.writing_system else locale.script_code
    )
    if locale.variant_tags:
        variant_name = ", ".join(v.name_display for v in locale.variant_tags)
    else:
        variant_name = ", ".join(locale.variant_tag_codes)
    qualifiers = [q for q in (territory_name, script_name, variant_name) if q]
    if not qualifiers:
        return language_name
    return f"{language_name} ({', '.join(qualifiers)})"


def set_locale_population(
    locale: Locale, population: float | None, percent: float | None = None
) -> None:
    """Write a locale's population, keeping it within its territory.

    The percent is derived from the territory population unless given.
    Either way it ends up in [0, 100] and the population never exceeds the
    territory's current population.
    """
    territory = locale.territory
    if population is None:
        locale.population_speaking = None
        locale.population_speaking_percent = None
        return
    population = max(population, 0)
    if territory is None or territory.population <= 0:
        locale.population_speaking = population
        locale.population_speaking_percent = (
            min(max(percent, 0.0), 100.0) if percent is not None else None
        )
        return
    if population >= territory.population:
        population = territory.population
        percent = 100.0
    elif percent is None:
        percent = population * 100.0 / territory.population
    locale.population_speaking = population
    locale.population_speaking_percent = min(max(percent, 0.0), 100.0)


def clamp_locale_population(locale: Locale) -> None:
    """Re-apply the territory bound after the territory population moved."""
    if locale.population_speaking is not None:
        set_locale_population(locale, locale.population_speaking)


def get_or_create_synthesized_locale(
    locales: dict[str, Locale],
    language_code: str,
    territory: Territory,
    origin: LocaleOrigin,
    language: Language | None = None,
) -> Locale | None:
    """Return the *origin* aggregate for language x territory, creating it.

    Returns None when a locale of another origin already holds the ID; those
    are never overwritten.
    """
    locale_id = build_locale_id(language_code, territory.id)
    locale = locales.get(locale_id)
    if locale is not None:
        return locale if locale.origin == origin else None
    source = (
        PopulationSourceCategory.AGGREGATED_FROM_TERRITORIES
        if origin == LocaleOrigin.REGIONAL
        else PopulationSourceCategory.AGGREGATED_FROM_LANGUAGES
    )
    locale = Locale(
        id=locale_id,
        language_code=language_code,
        territory_code=territory.id,
        origin=origin,
        population_source=source,
        language=language,
        territory=territory,
    )
    locale.name_display = locale_display_name(locale)
    locale.names = [locale.name_display]
    locales[locale_id] = locale
    territory.locales.append(locale)
    if language is not None:
        language.locales.append(locale)
    return locale
