"""Flat records handed over by the data-loading boundary.

Each record knows how to read itself from one already-split table row and
how to become an entity. Shape problems raise ``ValueError``; the loader
turns those into ``malformed_row`` diagnostics.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import Any

from atlas_pipeline.graph.locales import build_locale_id, parse_locale_code
from atlas_pipeline.graph.models import (
    Census,
    Language,
    LanguageInSource,
    LanguageModality,
    LanguageScope,
    Locale,
    LocaleOrigin,
    PopulationSourceCategory,
    Territory,
    TerritoryScope,
    VariantTag,
    WritingSystem,
)

LANGUAGE_FIELD_COUNT = 16
LOCALE_FIELD_COUNT = 6
TERRITORY_FIELD_COUNT = 8
WRITING_SYSTEM_FIELD_COUNT = 11
VARIANT_TAG_FIELD_COUNT = 5
INDIGENEITY_FIELD_COUNT = 4

MAX_ISO_CODE_LENGTH = 3

_SUBTITLE_RE = re.compile(r"^(.*?)\s*\(([^()]*)\)\s*$")

_MODALITY_LABELS = {m.value.lower(): m for m in LanguageModality}
_MODALITY_LABELS.update({"signed": LanguageModality.SIGN, "sign language": LanguageModality.SIGN})

_TRUE = {"true", "yes", "y", "1"}
_FALSE = {"false", "no", "n", "0"}


def separate_title_and_subtitle(name: str) -> tuple[str, str | None]:
    """``"Chinese (macrolanguage)"`` -> ``("Chinese", "macrolanguage")``."""
    match = _SUBTITLE_RE.match(name.strip())
    if match is None or not match.group(1):
        return name.strip(), None
    return match.group(1), match.group(2) or None


def parse_count(value: str) -> int | None:
    number = parse_float(value.replace(",", ""))
    return int(number) if number is not None else None


def parse_float(value: str) -> float | None:
    """Empty cells are None; ``inf`` and ``nan`` raise ValueError like any other junk."""
    value = value.strip()
    if not value:
        return None
    number = float(value)
    if not math.isfinite(number):
        raise ValueError(f"Not a finite number: {value!r}")
    return number


def parse_flag(value: str) -> bool | None:
    value = value.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    return None


def parse_territory_scope(value: str) -> TerritoryScope:
    value = value.strip()
    if value.isdigit():
        return TerritoryScope(int(value))
    try:
        return TerritoryScope[value.upper()]
    except KeyError:
        raise ValueError(f"Unknown territory scope: {value!r}") from None


def _opt(value: str) -> str | None:
    value = value.strip()
    return value or None


def _codes(value: str) -> list[str]:
    return [c.strip() for c in value.split(",") if c.strip()]


@dataclass
class LanguageRecord:
    code: str
    glottocode: str | None
    name: str
    endonym: str | None = None
    modality: str | None = None
    primary_script_code: str | None = None
    population_cited: int | None = None
    parent_code: str | None = None
    parent_glottocode: str | None = None
    population_adjusted: int | None = None
    digital_support: str | None = None
    vitality_iso: str | None = None
    vitality_ethnologue: str | None = None
    viability_confidence: str | None = None
    viability_explanation: str | None = None
    scope: LanguageScope | None = None

    @classmethod
    def from_row(cls, parts: list[str]) -> LanguageRecord:
        if len(parts) > LANGUAGE_FIELD_COUNT or not parts or not parts[0].strip():
            raise ValueError(f"Language row has {len(parts)} fields")
        parts = parts + [""] * (LANGUAGE_FIELD_COUNT - len(parts))
        return cls(
            code=parts[0].strip(),
            glottocode=_opt(parts[1]),
            name=parts[2].strip(),
            endonym=_opt(parts[3]),
            modality=_opt(parts[4]),
            primary_script_code=_opt(parts[5]),
            population_cited=parse_count(parts[6]),
            parent_code=_opt(parts[7]),
            parent_glottocode=_opt(parts[8]),
            population_adjusted=parse_count(parts[9]),
            digital_support=_opt(parts[10]),
            vitality_iso=_opt(parts[11]),
            vitality_ethnologue=_opt(parts[12]),
            viability_confidence=_opt(parts[13]),
            viability_explanation=_opt(parts[14]),
            scope=LanguageScope(parts[15].strip()) if parts[15].strip() else None,
        )

    def to_entity(self) -> Language:
        name, subtitle = separate_title_and_subtitle(self.name)
        scope = self.scope
        language = Language(
            id=self.code,
            name_display=name,
            names=[n for n in (name, self.endonym) if n],
            name_subtitle=subtitle,
            name_endonym=self.endonym,
            scope=scope,
            modality=_MODALITY_LABELS.get((self.modality or "").lower()),
            primary_script_code=self.primary_script_code,
            vitality_iso=self.vitality_iso,
            vitality_ethnologue=self.vitality_ethnologue,
            digital_support=self.digital_support,
            viability_confidence=self.viability_confidence,
            viability_explanation=self.viability_explanation,
            population_cited=self.population_cited,
            population_adjusted=self.population_adjusted,
            combined=LanguageInSource(
                code=self.code, name=name, scope=scope, parent_code=self.parent_code
            ),
            glottolog=LanguageInSource(
                code=self.glottocode, parent_code=self.parent_glottocode
            ),
        )
        if len(self.code) <= MAX_ISO_CODE_LENGTH:
            iso_parent = (
                self.parent_code
                if self.parent_code and len(self.parent_code) <= MAX_ISO_CODE_LENGTH
                else None
            )
            language.iso = LanguageInSource(
                code=self.code, name=name, scope=scope, parent_code=iso_parent
            )
            language.bcp = LanguageInSource(code=self.code, name=name, parent_code=iso_parent)
            language.unesco = LanguageInSource(code=self.code, name=name, parent_code=iso_parent)
            language.ethnologue = LanguageInSource(code=self.code, parent_code=iso_parent)
            language.cldr = LanguageInSource(code=self.code, name=name)
        return language


@dataclass
class LocaleRecord:
    code: str
    name: str
    endonym: str | None = None
    population_source: str = ""
    population_speaking: int | None = None
    official_status: str | None = None

    @classmethod
    def from_row(cls, parts: list[str]) -> LocaleRecord:
        if len(parts) != LOCALE_FIELD_COUNT:
            raise ValueError(f"Locale row has {len(parts)} fields, expected {LOCALE_FIELD_COUNT}")
        return cls(
            code=parts[0].strip(),
            name=parts[1].strip(),
            endonym=_opt(parts[2]),
            population_source=parts[3].strip(),
            population_speaking=parse_count(parts[4]),
            official_status=_opt(parts[5]),
        )

    def to_entity(self) -> Locale:
        tags = parse_locale_code(self.code)
        locale_id = build_locale_id(
            tags.language_code, tags.territory_code, tags.script_code, tags.variant_tag_codes
        )
        return Locale(
            id=locale_id,
            language_code=tags.language_code,
            territory_code=tags.territory_code,
            script_code=tags.script_code,
            variant_tag_codes=tags.variant_tag_codes,
            origin=LocaleOrigin.SOURCE,
            name_display=self.name or locale_id,
            name_endonym=self.endonym,
            names=[n for n in (self.name, self.endonym) if n],
            official_status=self.official_status,
            population_raw=self.population_speaking,
            population_speaking=self.population_speaking,
            population_source=PopulationSourceCategory.parse(self.population_source),
        )


@dataclass
class TerritoryRecord:
    code: str
    name: str
    endonym: str | None
    scope: TerritoryScope
    population: int
    parent_region_code: str | None = None
    sovereign_code: str | None = None
    literacy_percent: float | None = None

    @classmethod
    def from_row(cls, parts: list[str]) -> TerritoryRecord:
        if len(parts) > TERRITORY_FIELD_COUNT or len(parts) < 5:
            raise ValueError(f"Territory row has {len(parts)} fields")
        parts = parts + [""] * (TERRITORY_FIELD_COUNT - len(parts))
        return cls(
            code=parts[0].strip(),
            name=parts[1].strip(),
            endonym=_opt(parts[2]),
            scope=parse_territory_scope(parts[3]),
            population=parse_count(parts[4]) or 0,
            parent_region_code=_opt(parts[5]),
            sovereign_code=_opt(parts[6]),
            literacy_percent=parse_float(parts[7]),
        )

    def to_entity(self) -> Territory:
        return Territory(
            id=self.code,
            name_display=self.name,
            scope=self.scope,
            population=self.population,
            population_from_source=self.population,
            names=[n for n in (self.name, self.endonym) if n],
            name_endonym=self.endonym,
            literacy_percent=self.literacy_percent,
            parent_region_code=self.parent_region_code,
            sovereign_code=self.sovereign_code,
        )


@dataclass
class WritingSystemRecord:
    code: str
    name: str
    name_full: str | None = None
    endonym: str | None = None
    unicode_version: float | None = None
    sample: str | None = None
    right_to_left: bool | None = None
    primary_language_code: str | None = None
    territory_of_origin_code: str | None = None
    parent_code: str | None = None
    contains_codes: list[str] = field(default_factory=list)

    @classmethod
    def from_row(cls, parts: list[str]) -> WritingSystemRecord:
        if len(parts) > WRITING_SYSTEM_FIELD_COUNT or len(parts) < 2:
            raise ValueError(f"Writing system row has {len(parts)} fields")
        parts = parts + [""] * (WRITING_SYSTEM_FIELD_COUNT - len(parts))
        return cls(
            code=parts[0].strip(),
            name=parts[1].strip(),
            name_full=_opt(parts[2]),
            endonym=_opt(parts[3]),
            unicode_version=parse_float(parts[4]),
            sample=_opt(parts[5]),
            right_to_left=parse_flag(parts[6]),
            primary_language_code=_opt(parts[7]),
            territory_of_origin_code=_opt(parts[8]),
            parent_code=_opt(parts[9]),
            contains_codes=_codes(parts[10]),
        )

    def to_entity(self) -> WritingSystem:
        return WritingSystem(
            id=self.code,
            name_display=self.name,
            name_full=self.name_full,
            name_endonym=self.endonym,
            unicode_version=self.unicode_version,
            sample=self.sample,
            right_to_left=self.right_to_left,
            primary_language_code=self.primary_language_code,
            territory_of_origin_code=self.territory_of_origin_code,
            parent_writing_system_code=self.parent_code,
            contains_writing_system_codes=list(self.contains_codes),
        )


@dataclass
class VariantTagRecord:
    tag: str
    name: str
    description: str | None = None
    language_codes: list[str] = field(default_factory=list)
    locale_codes: list[str] = field(default_factory=list)

    @classmethod
    def from_row(cls, parts: list[str]) -> VariantTagRecord:
        if len(parts) > VARIANT_TAG_FIELD_COUNT or len(parts) < 2:
            raise ValueError(f"Variant tag row has {len(parts)} fields")
        parts = parts + [""] * (VARIANT_TAG_FIELD_COUNT - len(parts))
        return cls(
            tag=parts[0].strip().lower(),
            name=parts[1].strip(),
            description=_opt(parts[2]),
            language_codes=_codes(parts[3]),
            locale_codes=_codes(parts[4]),
        )

    def to_entity(self) -> VariantTag:
        return VariantTag(
            id=self.tag,
            name_display=self.name,
            description=self.description,
            language_codes=list(self.language_codes),
            locale_codes=list(self.locale_codes),
        )


@dataclass
class IndigeneityRecord:
    language_code: str
    territory_code: str
    lang_formed_here: bool | None = None
    historic_presence: bool | None = None

    @classmethod
    def from_row(cls, parts: list[str]) -> IndigeneityRecord:
        if len(parts) != INDIGENEITY_FIELD_COUNT:
            raise ValueError(
                f"Indigeneity row has {len(parts)} fields, expected {INDIGENEITY_FIELD_COUNT}"
            )
        return cls(
            language_code=parts[0].strip(),
            territory_code=parts[1].strip(),
            lang_formed_here=parse_flag(parts[2]),
            historic_presence=parse_flag(parts[3]),
        )

    @property
    def is_empty(self) -> bool:
        return self.lang_formed_here is None and self.historic_presence is None


@dataclass
class CensusBatch:
    """Censuses from one import plus the language names they introduced."""

    censuses: list[Census] = field(default_factory=list)
    language_names: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> CensusBatch:
        return cls(
            censuses=[Census.from_dict(c) for c in d.get("censuses", [])],
            language_names=dict(d.get("language_names", {})),
        )
