"""Shared test fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from atlas_pipeline.config.loader import load_config
from atlas_pipeline.config.schema import PipelineConfig
from atlas_pipeline.graph.models import Language, LanguageInSource, Territory, TerritoryScope
from atlas_pipeline.graph.store import CompletedGraph, EntityGraph
from atlas_pipeline.pipeline import build_graph

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture
def fixtures_dir() -> Path:
    return FIXTURES_DIR


@pytest.fixture
def config_path() -> Path:
    return FIXTURES_DIR / "config_test.yaml"


@pytest.fixture
def config(config_path: Path) -> PipelineConfig:
    return load_config(config_path)


@pytest.fixture
def completed(config: PipelineConfig) -> CompletedGraph:
    return build_graph(config)


@pytest.fixture
def graph(completed: CompletedGraph) -> EntityGraph:
    return completed.graph


def make_language(code: str, parent: str | None = None, cited: int | None = None) -> Language:
    """A language whose Combined and ISO views share *code* and *parent*."""
    return Language(
        id=code,
        name_display=code.title(),
        population_cited=cited,
        combined=LanguageInSource(code=code, parent_code=parent),
        iso=LanguageInSource(code=code, parent_code=parent),
    )


def make_territory(
    code: str,
    scope: TerritoryScope,
    population: int,
    parent: str | None = None,
    literacy: float | None = None,
) -> Territory:
    return Territory(
        id=code,
        name_display=code,
        scope=scope,
        population=population,
        parent_region_code=parent,
        literacy_percent=literacy,
    )
