"""Entity models shared by every pipeline stage.

Entities are plain mutable dataclasses. Stages attach references and
scalar fields to the same instances, so ``eq=False`` keeps identity
semantics (the graph is cyclic) and reference fields are left out of
``repr``.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Union


class ObjectType(str, Enum):
    LANGUAGE = "Language"
    LOCALE = "Locale"
    TERRITORY = "Territory"
    WRITING_SYSTEM = "WritingSystem"
    CENSUS = "Census"
    VARIANT_TAG = "VariantTag"


class LanguageSource(str, Enum):
    """Authorities whose language trees are tracked side by side."""

    COMBINED = "Combined"      # merged view with preferred values
    ISO = "ISO"                # ISO 639-3 / 639-5 registry
    BCP = "BCP"                # tag registry
    UNESCO = "UNESCO"          # heritage body atlas
    GLOTTOLOG = "Glottolog"    # genealogical catalog
    CLDR = "CLDR"              # locale-data consortium
    ETHNOLOGUE = "Ethnologue"  # living-languages survey


class LanguageScope(str, Enum):
    FAMILY = "Family"
    MACROLANGUAGE = "Macrolanguage"
    LANGUAGE = "Language"
    DIALECT = "Dialect"
    SPECIAL = "Special"


class LanguageModality(str, Enum):
    WRITTEN = "Written"
    MOSTLY_WRITTEN = "Mostly Written (also Spoken)"
    SPOKEN_AND_WRITTEN = "Spoken & Written"
    MOSTLY_SPOKEN = "Mostly Spoken (but also written)"
    SPOKEN = "Spoken"
    SIGN = "Sign"


class TerritoryScope(IntEnum):
    """Larger value = broader scope."""

    DEPENDENCY = 1
    COUNTRY = 2
    SUBCONTINENT = 3
    REGION = 4
    CONTINENT = 5
    WORLD = 6


def is_territory_group(scope: TerritoryScope | None) -> bool:
    return scope is not None and scope >= TerritoryScope.SUBCONTINENT


class PopulationSourceCategory(str, Enum):
    # From inputted data
    OFFICIAL = "Official"
    UNVERIFIED_OFFICIAL = "Unverified Official"
    STUDY = "Study"
    ETHNOLOGUE = "Ethnologue"
    EDL = "EDL"
    CLDR = "CLDR"
    OTHER = "Other"
    NO_SOURCE = ""

    # Chosen by the population cascade
    CITED = "Cited"
    CENSUS = "Census"
    AGGREGATED_FROM_TERRITORIES = "Aggregated from Territories"
    AGGREGATED_FROM_LANGUAGES = "Aggregated from Languages"

    @classmethod
    def parse(cls, value: str) -> PopulationSourceCategory:
        try:
            return cls(value.strip())
        except ValueError:
            return cls.OTHER


class LocaleOrigin(str, Enum):
    """How a locale came to exist."""

    SOURCE = "source"      # loaded verbatim from the locale table
    REGIONAL = "regional"  # rolled up from contained territories
    FAMILY = "family"      # rolled up from descendant languages


class CensusCollectorType(str, Enum):
    GOVERNMENT = "Government"
    STUDY = "Study"
    NGO = "NGO"
    MEDIA = "Media"
    CLDR = "CLDR"


@dataclass(eq=False)
class LanguageInSource:
    """One authority's view of a language: its code, name and tree edges."""

    code: str | None = None
    name: str | None = None
    scope: LanguageScope | None = None
    parent_code: str | None = None
    parent_language: Language | None = field(default=None, repr=False)
    child_languages: list[Language] = field(default_factory=list, repr=False)
    population_of_descendants: float | None = None


@dataclass(eq=False)
class Language:
    id: str
    name_display: str
    names: list[str] = field(default_factory=list)
    name_canonical: str = ""
    name_subtitle: str | None = None
    name_endonym: str | None = None
    scope: LanguageScope | None = None
    modality: LanguageModality | None = None
    primary_script_code: str | None = None

    vitality_iso: str | None = None
    vitality_ethnologue: str | None = None
    digital_support: str | None = None
    viability_confidence: str | None = None
    viability_explanation: str | None = None

    population_cited: int | None = None
    population_adjusted: int | None = None
    population_from_locales: float | None = None
    population_of_descendants: float | None = None
    population_estimate: float | None = None
    population_estimate_source: PopulationSourceCategory | None = None

    locales: list[Locale] = field(default_factory=list, repr=False)
    writing_systems: dict[str, WritingSystem] = field(default_factory=dict, repr=False)
    primary_writing_system: WritingSystem | None = field(default=None, repr=False)
    variant_tags: list[VariantTag] = field(default_factory=list, repr=False)
    largest_descendant: Language | None = field(default=None, repr=False)

    combined: LanguageInSource = field(default_factory=LanguageInSource, repr=False)
    iso: LanguageInSource = field(default_factory=LanguageInSource, repr=False)
    bcp: LanguageInSource = field(default_factory=LanguageInSource, repr=False)
    unesco: LanguageInSource = field(default_factory=LanguageInSource, repr=False)
    glottolog: LanguageInSource = field(default_factory=LanguageInSource, repr=False)
    cldr: LanguageInSource = field(default_factory=LanguageInSource, repr=False)
    ethnologue: LanguageInSource = field(default_factory=LanguageInSource, repr=False)

    type: ObjectType = field(default=ObjectType.LANGUAGE, init=False)

    def __post_init__(self) -> None:
        if not self.name_canonical:
            self.name_canonical = self.name_display
        if not self.names:
            self.names = [self.name_display]
        if self.combined.code is None:
            self.combined.code = self.id

    @property
    def parent_language(self) -> Language | None:
        return self.combined.parent_language

    @property
    def child_languages(self) -> list[Language]:
        return self.combined.child_languages


SOURCE_ACCESSORS: dict[LanguageSource, Callable[[Language], LanguageInSource]] = {
    LanguageSource.COMBINED: lambda lang: lang.combined,
    LanguageSource.ISO: lambda lang: lang.iso,
    LanguageSource.BCP: lambda lang: lang.bcp,
    LanguageSource.UNESCO: lambda lang: lang.unesco,
    LanguageSource.GLOTTOLOG: lambda lang: lang.glottolog,
    LanguageSource.CLDR: lambda lang: lang.cldr,
    LanguageSource.ETHNOLOGUE: lambda lang: lang.ethnologue,
}

_missing = set(LanguageSource) - set(SOURCE_ACCESSORS)
if _missing:
    raise RuntimeError(f"No accessor for language sources: {sorted(s.value for s in _missing)}")


def in_source(language: Language, source: LanguageSource) -> LanguageInSource:
    """Return *language*'s sub-record for *source*."""
    return SOURCE_ACCESSORS[source](language)


@dataclass(eq=False)
class CensusCitation:
    census: Census = field(repr=False)
    population_estimate: int
    population_percent: float


@dataclass(eq=False)
class Locale:
    id: str
    language_code: str
    territory_code: str | None = None
    script_code: str | None = None
    variant_tag_codes: list[str] = field(default_factory=list)
    origin: LocaleOrigin = LocaleOrigin.SOURCE

    name_display: str = ""
    name_endonym: str | None = None
    names: list[str] = field(default_factory=list)
    official_status: str | None = None
    lang_formed_here: bool | None = None
    historic_presence: bool | None = None

    population_raw: int | None = None
    population_speaking: float | None = None
    population_speaking_percent: float | None = None
    population_source: PopulationSourceCategory | None = None
    population_estimate_source: PopulationSourceCategory | None = None
    population_census: Census | None = field(default=None, repr=False)
    census_records: list[CensusCitation] = field(default_factory=list, repr=False)

    # Derived once territory populations are final
    population_adjusted: float | None = None
    literacy_percent: float | None = None
    population_writing: float | None = None
    population_writing_percent: float | None = None

    language: Language | None = field(default=None, repr=False)
    territory: Territory | None = field(default=None, repr=False)
    writing_system: WritingSystem | None = field(default=None, repr=False)
    variant_tags: list[VariantTag] = field(default_factory=list, repr=False)

    contained_locales: list[Locale] = field(default_factory=list, repr=False)
    family_locales: list[Locale] = field(default_factory=list, repr=False)

    type: ObjectType = field(default=ObjectType.LOCALE, init=False)

    def __post_init__(self) -> None:
        if not self.name_display:
            self.name_display = self.id

    @property
    def is_plain(self) -> bool:
        """True when the locale carries neither a script nor variant tags."""
        return not self.script_code and not self.variant_tag_codes

    @property
    def is_synthesized(self) -> bool:
        return self.origin in (LocaleOrigin.REGIONAL, LocaleOrigin.FAMILY)


@dataclass(eq=False)
class Territory:
    id: str
    name_display: str
    scope: TerritoryScope
    population: int = 0
    population_from_source: int = 0
    names: list[str] = field(default_factory=list)
    name_endonym: str | None = None
    literacy_percent: float | None = None
    parent_region_code: str | None = None
    sovereign_code: str | None = None

    parent_region: Territory | None = field(default=None, repr=False)
    sovereign: Territory | None = field(default=None, repr=False)
    contains_territories: list[Territory] = field(default_factory=list, repr=False)
    dependent_territories: list[Territory] = field(default_factory=list, repr=False)
    locales: list[Locale] = field(default_factory=list, repr=False)
    censuses: list[Census] = field(default_factory=list, repr=False)

    type: ObjectType = field(default=ObjectType.TERRITORY, init=False)

    def __post_init__(self) -> None:
        if not self.names:
            self.names = [self.name_display]
        if not self.population_from_source:
            self.population_from_source = self.population


@dataclass(eq=False)
class WritingSystem:
    id: str
    name_display: str
    names: list[str] = field(default_factory=list)
    name_full: str | None = None
    name_endonym: str | None = None
    unicode_version: float | None = None
    sample: str | None = None
    right_to_left: bool | None = None
    primary_language_code: str | None = None
    territory_of_origin_code: str | None = None
    parent_writing_system_code: str | None = None
    contains_writing_system_codes: list[str] = field(default_factory=list)

    population_upper_bound: float | None = None
    population_of_descendants: float | None = None

    primary_language: Language | None = field(default=None, repr=False)
    territory_of_origin: Territory | None = field(default=None, repr=False)
    parent_writing_system: WritingSystem | None = field(default=None, repr=False)
    child_writing_systems: list[WritingSystem] = field(default_factory=list, repr=False)
    contains_writing_systems: list[WritingSystem] = field(default_factory=list, repr=False)
    languages: dict[str, Language] = field(default_factory=dict, repr=False)
    locales_where_explicit: list[Locale] = field(default_factory=list, repr=False)

    type: ObjectType = field(default=ObjectType.WRITING_SYSTEM, init=False)

    def __post_init__(self) -> None:
        if not self.names:
            self.names = [n for n in (self.name_display, self.name_full, self.name_endonym) if n]


@dataclass(eq=False)
class Census:
    id: str
    name_display: str
    territory_code: str
    eligible_population: int
    language_estimates: dict[str, int] = field(default_factory=dict)
    responding_population: int | None = None
    year_collected: int | None = None
    collector_type: CensusCollectorType | None = None
    collector_name: str | None = None
    url: str | None = None
    names: list[str] = field(default_factory=list)

    territory: Territory | None = field(default=None, repr=False)

    type: ObjectType = field(default=ObjectType.CENSUS, init=False)

    def __post_init__(self) -> None:
        if not self.names:
            self.names = [self.name_display]

    @property
    def language_count(self) -> int:
        return len(self.language_estimates)

    @property
    def denominator(self) -> int:
        return self.responding_population or self.eligible_population

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Census:
        """Build a census from its JSON form.

        Raises KeyError, ValueError or TypeError for records that cannot be used.
        """
        collector = d.get("collector_type")
        estimates = d.get("language_estimates", {})
        if not isinstance(estimates, dict):
            raise TypeError(f"language_estimates must be an object, got {type(estimates).__name__}")
        responding = d.get("responding_population")
        year = d.get("year_collected")
        return cls(
            id=str(d["id"]),
            name_display=d.get("name", d["id"]),
            territory_code=str(d["territory_code"]),
            eligible_population=int(d["eligible_population"]),
            language_estimates={k: int(v) for k, v in estimates.items()},
            responding_population=int(responding) if responding is not None else None,
            year_collected=int(year) if year is not None else None,
            collector_type=CensusCollectorType(collector) if collector else None,
            collector_name=d.get("collector_name"),
            url=d.get("url"),
        )


@dataclass(eq=False)
class VariantTag:
    id: str
    name_display: str
    description: str | None = None
    language_codes: list[str] = field(default_factory=list)
    locale_codes: list[str] = field(default_factory=list)
    names: list[str] = field(default_factory=list)

    languages: list[Language] = field(default_factory=list, repr=False)
    locales: list[Locale] = field(default_factory=list, repr=False)

    type: ObjectType = field(default=ObjectType.VARIANT_TAG, init=False)

    def __post_init__(self) -> None:
        if not self.names:
            self.names = [self.name_display]


ObjectData = Union[Language, Locale, Territory, WritingSystem, Census, VariantTag]
