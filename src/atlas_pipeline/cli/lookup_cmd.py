"""CLI handler for the lookup subcommand."""

from __future__ import annotations

import logging

import orjson
import typer

from atlas_pipeline.config.loader import load_config
from atlas_pipeline.export.summary_exporter import summarize_entity
from atlas_pipeline.pipeline import build_graph
from atlas_pipeline.utils.logging_setup import setup_logging

logger = logging.getLogger(__name__)


def run_lookup(config_path: str, entity_id: str) -> None:
    cfg = load_config(config_path)
    setup_logging(cfg.log_level, cfg.diagnostics_log_level)

    graph = build_graph(cfg).graph
    obj = graph.get_object(entity_id)
    if obj is None:
        logger.error("No entity with ID %s", entity_id)
        raise typer.Exit(code=1)

    summary = summarize_entity(obj)
    summary["diagnostics"] = [d.to_dict() for d in graph.diagnostics.for_entity(entity_id)]
    typer.echo(orjson.dumps(summary, option=orjson.OPT_INDENT_2).decode())
