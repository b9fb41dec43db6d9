"""CLI handler for the build-graph subcommand."""

from __future__ import annotations

import logging
from pathlib import Path

from atlas_pipeline.config.loader import load_config
from atlas_pipeline.export.summary_exporter import SummaryExporter
from atlas_pipeline.pipeline import build_graph
from atlas_pipeline.utils.logging_setup import setup_logging

logger = logging.getLogger(__name__)


def run_build(config_path: str, output_dir: str | None) -> None:
    cfg = load_config(config_path)
    setup_logging(cfg.log_level, cfg.diagnostics_log_level)

    completed = build_graph(cfg)
    out = Path(output_dir) if output_dir else cfg.export.output_dir
    summary_path = SummaryExporter(cfg.export).export(completed, out)

    counts = completed.graph.diagnostics.counts()
    if counts:
        logger.info("Diagnostics by kind: %s", counts)
    logger.info("Graph summary written to %s", summary_path)
