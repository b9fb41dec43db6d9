"""The in-memory entity graph and the stage handles that wrap it.

Stages mutate one shared :class:`EntityGraph`. Each stage accepts the
handle produced by the stage before it and returns its own handle, so the
load order is visible in every signature:

    RawGraph -> LinkedGraph -> SynthesizedGraph -> ReconciledGraph
             -> AggregatedGraph -> CompletedGraph
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TypeVar

from atlas_pipeline.graph.models import (
    Census,
    Language,
    LanguageSource,
    Locale,
    ObjectData,
    Territory,
    VariantTag,
    WritingSystem,
)
from atlas_pipeline.provenance.diagnostics import DiagnosticLog
from atlas_pipeline.provenance.tracker import LoadTrace


@dataclass(eq=False)
class EntityGraph:
    languages: dict[str, Language] = field(default_factory=dict)
    locales: dict[str, Locale] = field(default_factory=dict)
    territories: dict[str, Territory] = field(default_factory=dict)
    writing_systems: dict[str, WritingSystem] = field(default_factory=dict)
    censuses: dict[str, Census] = field(default_factory=dict)
    variant_tags: dict[str, VariantTag] = field(default_factory=dict)
    languages_by_source: dict[LanguageSource, dict[str, Language]] = field(default_factory=dict)
    world_territory_code: str = "001"
    diagnostics: DiagnosticLog = field(default_factory=DiagnosticLog)
    trace: LoadTrace = field(default_factory=LoadTrace)

    def get_language(
        self, code: str, source: LanguageSource = LanguageSource.COMBINED
    ) -> Language | None:
        if source == LanguageSource.COMBINED:
            return self.languages.get(code)
        return self.languages_by_source.get(source, {}).get(code)

    def get_locale(self, locale_id: str) -> Locale | None:
        return self.locales.get(locale_id)

    def get_territory(self, code: str) -> Territory | None:
        return self.territories.get(code)

    def get_writing_system(self, code: str) -> WritingSystem | None:
        return self.writing_systems.get(code)

    def get_census(self, census_id: str) -> Census | None:
        return self.censuses.get(census_id)

    def get_variant_tag(self, tag: str) -> VariantTag | None:
        return self.variant_tags.get(tag)

    def get_object(self, object_id: str) -> ObjectData | None:
        for index in (
            self.languages,
            self.locales,
            self.territories,
            self.writing_systems,
            self.censuses,
            self.variant_tags,
        ):
            obj = index.get(object_id)
            if obj is not None:
                return obj
        return None

    @property
    def world(self) -> Territory | None:
        return self.territories.get(self.world_territory_code)

    def counts(self) -> dict[str, int]:
        return {
            "languages": len(self.languages),
            "locales": len(self.locales),
            "territories": len(self.territories),
            "writing_systems": len(self.writing_systems),
            "censuses": len(self.censuses),
            "variant_tags": len(self.variant_tags),
            "diagnostics": len(self.diagnostics),
        }


@dataclass(frozen=True)
class RawGraph:
    """Entities built from records, not yet connected."""

    graph: EntityGraph


@dataclass(frozen=True)
class LinkedGraph:
    graph: EntityGraph


@dataclass(frozen=True)
class SynthesizedGraph:
    graph: EntityGraph


@dataclass(frozen=True)
class ReconciledGraph:
    graph: EntityGraph


@dataclass(frozen=True)
class AggregatedGraph:
    graph: EntityGraph


@dataclass(frozen=True)
class CompletedGraph:
    """Fully connected and annotated; safe to hand to readers."""

    graph: EntityGraph


H = TypeVar("H")


def require_stage(handle: object, *expected: type[H]) -> EntityGraph:
    """Unwrap *handle*, refusing graphs that skipped an earlier stage."""
    if not isinstance(handle, expected):
        names = " or ".join(t.__name__ for t in expected)
        raise TypeError(f"Expected {names}, got {type(handle).__name__}")
    return handle.graph  # type: ignore[attr-defined]
