"""Turn flat records into unconnected entities."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from atlas_pipeline.config.schema import PipelineConfig
from atlas_pipeline.graph.store import EntityGraph, RawGraph
from atlas_pipeline.ingest.records import (
    LanguageRecord,
    LocaleRecord,
    TerritoryRecord,
    VariantTagRecord,
    WritingSystemRecord,
)
from atlas_pipeline.ingest.tsv_loader import load_table
from atlas_pipeline.provenance.diagnostics import DiagnosticKind, DiagnosticLog

logger = logging.getLogger(__name__)

STAGE = "ingest"


def _register(index: dict, entity, diagnostics: DiagnosticLog, kind: str) -> None:
    if entity.id in index:
        diagnostics.record(
            DiagnosticKind.DUPLICATE_INPUT, STAGE, entity.id, f"Duplicate {kind} row ignored"
        )
        return
    index[entity.id] = entity


def build_raw_graph(
    languages: Iterable[LanguageRecord] = (),
    locales: Iterable[LocaleRecord] = (),
    territories: Iterable[TerritoryRecord] = (),
    writing_systems: Iterable[WritingSystemRecord] = (),
    variant_tags: Iterable[VariantTagRecord] = (),
    world_territory_code: str = "001",
    diagnostics: DiagnosticLog | None = None,
) -> RawGraph:
    graph = EntityGraph(world_territory_code=world_territory_code)
    if diagnostics is not None:
        graph.diagnostics = diagnostics

    for rec in languages:
        _register(graph.languages, rec.to_entity(), graph.diagnostics, "language")
    for rec in territories:
        _register(graph.territories, rec.to_entity(), graph.diagnostics, "territory")
    for rec in writing_systems:
        _register(graph.writing_systems, rec.to_entity(), graph.diagnostics, "writing system")
    for rec in variant_tags:
        _register(graph.variant_tags, rec.to_entity(), graph.diagnostics, "variant tag")
    for rec in locales:
        try:
            locale = rec.to_entity()
        except ValueError as exc:
            graph.diagnostics.record(DiagnosticKind.MALFORMED_ROW, STAGE, rec.code, str(exc))
            continue
        _register(graph.locales, locale, graph.diagnostics, "locale")

    graph.trace.add_step("ingest", graph.counts())
    logger.info(
        "Built raw graph: %d languages, %d locales, %d territories, %d writing systems",
        len(graph.languages),
        len(graph.locales),
        len(graph.territories),
        len(graph.writing_systems),
    )
    return RawGraph(graph)


def load_raw_graph(cfg: PipelineConfig) -> RawGraph:
    """Read every configured table and build the raw graph."""
    inputs = cfg.inputs
    diagnostics = DiagnosticLog()
    enc = inputs.encoding
    return build_raw_graph(
        languages=load_table(inputs.languages, LanguageRecord, diagnostics, enc),
        locales=load_table(inputs.locales, LocaleRecord, diagnostics, enc),
        territories=load_table(inputs.territories, TerritoryRecord, diagnostics, enc),
        writing_systems=load_table(inputs.writing_systems, WritingSystemRecord, diagnostics, enc),
        variant_tags=load_table(inputs.variant_tags, VariantTagRecord, diagnostics, enc),
        world_territory_code=cfg.synthesis.world_territory_code,
        diagnostics=diagnostics,
    )
