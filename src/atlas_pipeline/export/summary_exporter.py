"""Export population figures and diagnostics as JSON."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import orjson

from atlas_pipeline.config.schema import ExportConfig
from atlas_pipeline.graph.models import Language, Locale, ObjectData
from atlas_pipeline.graph.store import CompletedGraph, require_stage
from atlas_pipeline.population.aggregator import (
    get_largest_descendant_share,
    get_population,
    get_population_attested,
    get_population_of_descendants,
    get_population_relative_to_territory,
)
from atlas_pipeline.population.hierarchy import (
    count_censuses,
    count_languages,
    count_territories,
    count_writing_systems,
    get_depth,
)

logger = logging.getLogger(__name__)


def summarize_entity(obj: ObjectData) -> dict[str, Any]:
    """Population view of one entity."""
    summary: dict[str, Any] = {
        "id": obj.id,
        "type": obj.type.value,
        "name": obj.name_display,
        "population": get_population(obj),
        "population_attested": get_population_attested(obj),
        "population_of_descendants": get_population_of_descendants(obj),
        "largest_descendant_share": get_largest_descendant_share(obj),
        "percent_of_territory": get_population_relative_to_territory(obj),
        "counts": {
            "languages": count_languages(obj),
            "territories": count_territories(obj),
            "writing_systems": count_writing_systems(obj),
            "censuses": count_censuses(obj),
        },
        "depth": get_depth(obj),
    }
    if isinstance(obj, Language):
        summary["population_source"] = (
            obj.population_estimate_source.value if obj.population_estimate_source else None
        )
        summary["largest_descendant"] = (
            obj.largest_descendant.id if obj.largest_descendant else None
        )
        summary["population_adjusted"] = obj.population_adjusted
    elif isinstance(obj, Locale):
        summary["origin"] = obj.origin.value
        summary["population_percent"] = obj.population_speaking_percent
        summary["population_source"] = (
            obj.population_estimate_source.value if obj.population_estimate_source else None
        )
        summary["census"] = obj.population_census.id if obj.population_census else None
        summary["population_adjusted"] = obj.population_adjusted
        summary["population_writing"] = obj.population_writing
        summary["population_writing_percent"] = obj.population_writing_percent
    return summary


class SummaryExporter:
    """Writes ``summary.json``, ``diagnostics.json`` and ``trace.json``."""

    def __init__(self, config: ExportConfig) -> None:
        self.config = config

    def build_summary(self, completed: CompletedGraph) -> dict[str, Any]:
        graph = require_stage(completed, CompletedGraph)
        return {
            "counts": graph.counts(),
            "languages": [summarize_entity(o) for o in graph.languages.values()],
            "locales": [summarize_entity(o) for o in graph.locales.values()],
            "territories": [summarize_entity(o) for o in graph.territories.values()],
            "writing_systems": [summarize_entity(o) for o in graph.writing_systems.values()],
            "censuses": [summarize_entity(o) for o in graph.censuses.values()],
        }

    def export(self, completed: CompletedGraph, output_dir: Path | None = None) -> Path:
        graph = require_stage(completed, CompletedGraph)
        output_dir = output_dir or self.config.output_dir
        output_dir.mkdir(parents=True, exist_ok=True)

        summary_path = output_dir / "summary.json"
        summary_path.write_bytes(
            orjson.dumps(self.build_summary(completed), option=orjson.OPT_INDENT_2)
        )
        logger.info("Summary written to %s", summary_path)

        if self.config.include_diagnostics:
            diag_path = output_dir / "diagnostics.json"
            diag_path.write_bytes(
                orjson.dumps(graph.diagnostics.to_dict(), option=orjson.OPT_INDENT_2)
            )
            logger.info("%d diagnostics written to %s", len(graph.diagnostics), diag_path)

        trace_path = output_dir / "trace.json"
        trace_path.write_bytes(orjson.dumps(graph.trace.to_dict(), option=orjson.OPT_INDENT_2))
        return summary_path
