"""Structured logging configuration."""

from __future__ import annotations

import logging
import sys

DIAGNOSTICS_LOGGER = "atlas_pipeline.provenance.diagnostics"


def setup_logging(level: str = "INFO", diagnostics_level: str | None = None) -> None:
    """Configure root logger with a readable format.

    *diagnostics_level* lets curators surface every skipped row without
    turning on debug output for the whole pipeline.
    """
    numeric = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric,
        format="%(asctime)s [%(levelname)-7s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
        force=True,
    )
    if diagnostics_level is not None:
        logging.getLogger(DIAGNOSTICS_LOGGER).setLevel(
            getattr(logging, diagnostics_level.upper(), logging.DEBUG)
        )
