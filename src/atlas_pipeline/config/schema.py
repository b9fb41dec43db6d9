"""Pydantic v2 configuration models for the atlas pipeline."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field

from atlas_pipeline.graph.models import LanguageSource


class InputConfig(BaseModel):
    """Locations of the already-extracted catalog tables."""

    languages: Path | None = None
    locales: Path | None = None
    territories: Path | None = None
    writing_systems: Path | None = None
    variant_tags: Path | None = None
    censuses: list[Path] = Field(default_factory=list)
    indigeneity: Path | None = None
    encoding: str = "utf-8"


class SynthesisConfig(BaseModel):
    regional_locales: bool = True
    family_locales: bool = True
    # Family locales multiply quickly, so only one source's tree is used.
    family_locale_source: LanguageSource = LanguageSource.ISO
    world_territory_code: str = "001"


class AggregationConfig(BaseModel):
    max_depth: int = 30
    descendant_tiebreaker: int = 1


class ExportConfig(BaseModel):
    output_dir: Path = Path("export")
    include_diagnostics: bool = True


class PipelineConfig(BaseModel):
    """Top-level pipeline configuration."""

    inputs: InputConfig = Field(default_factory=InputConfig)
    synthesis: SynthesisConfig = Field(default_factory=SynthesisConfig)
    aggregation: AggregationConfig = Field(default_factory=AggregationConfig)
    export: ExportConfig = Field(default_factory=ExportConfig)
    log_level: str = "INFO"
    diagnostics_log_level: str | None = None
