"""Run the five stages in order."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from atlas_pipeline.census.reconciler import reconcile_censuses
from atlas_pipeline.config.schema import PipelineConfig
from atlas_pipeline.graph.store import CompletedGraph, RawGraph
from atlas_pipeline.ingest.builder import load_raw_graph
from atlas_pipeline.ingest.records import CensusBatch, IndigeneityRecord
from atlas_pipeline.ingest.tsv_loader import load_census_batches, load_table
from atlas_pipeline.link.source_linker import link_sources
from atlas_pipeline.population.aggregator import aggregate_populations
from atlas_pipeline.supplemental.indigeneity import apply_indigeneity
from atlas_pipeline.synthesis.locale_synthesizer import synthesize_locales
from atlas_pipeline.territory.stats import roll_up_territory_stats

logger = logging.getLogger(__name__)


def run_pipeline(
    raw: RawGraph,
    batches: Iterable[CensusBatch] = (),
    cfg: PipelineConfig | None = None,
) -> CompletedGraph:
    cfg = cfg or PipelineConfig()
    linked = link_sources(raw)
    synthesized = synthesize_locales(linked, cfg)
    reconciled = reconcile_censuses(synthesized, batches)
    aggregated = aggregate_populations(reconciled, cfg)
    completed = roll_up_territory_stats(aggregated)
    graph = completed.graph
    logger.info(
        "Pipeline finished: %s, %d diagnostics",
        " -> ".join(graph.trace.stages),
        len(graph.diagnostics),
    )
    return completed


def build_graph(cfg: PipelineConfig) -> CompletedGraph:
    """Load every configured input, run the pipeline and apply indigeneity."""
    raw = load_raw_graph(cfg)
    batches = load_census_batches(cfg.inputs.censuses, raw.graph.diagnostics)
    completed = run_pipeline(raw, batches, cfg)
    if cfg.inputs.indigeneity is not None:
        rows = load_table(
            cfg.inputs.indigeneity,
            IndigeneityRecord,
            completed.graph.diagnostics,
            cfg.inputs.encoding,
        )
        apply_indigeneity(completed, rows)
    return completed
