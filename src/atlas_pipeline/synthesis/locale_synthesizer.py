"""Stage 2: synthesize regional and family locales."""

from __future__ import annotations

import logging

from atlas_pipeline.config.schema import PipelineConfig
from atlas_pipeline.graph.store import LinkedGraph, SynthesizedGraph, require_stage
from atlas_pipeline.synthesis.family_locales import create_family_locales
from atlas_pipeline.synthesis.regional_locales import create_regional_locales

logger = logging.getLogger(__name__)


def synthesize_locales(
    linked: LinkedGraph | SynthesizedGraph, cfg: PipelineConfig | None = None
) -> SynthesizedGraph:
    """Regional pass first, then family pass.

    Accepts an already-synthesized graph too; both passes reset the
    aggregates they own, so rerunning leaves totals unchanged.
    """
    graph = require_stage(linked, LinkedGraph, SynthesizedGraph)
    cfg = cfg or PipelineConfig()
    synthesis = cfg.synthesis

    regional = family = 0
    if synthesis.regional_locales:
        regional = create_regional_locales(graph.world, graph.locales, graph.diagnostics)
    if synthesis.family_locales:
        source = synthesis.family_locale_source
        family = create_family_locales(
            graph.languages_by_source.get(source, {}),
            graph.locales,
            source,
            graph.diagnostics,
            max_depth=cfg.aggregation.max_depth,
        )

    graph.trace.add_step("synthesis", {"regional_created": regional, "family_created": family})
    logger.info("Synthesized %d regional and %d family locales", regional, family)
    return SynthesizedGraph(graph)
