"""Load and validate pipeline configuration from YAML."""

from __future__ import annotations

from pathlib import Path

import yaml

from .schema import PipelineConfig


def load_config(path: Path | str) -> PipelineConfig:
    """Read a YAML file and return a validated PipelineConfig.

    Relative input paths are resolved against the directory holding the
    YAML file, so a config can travel with its data.
    """
    path = Path(path)
    with path.open("r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh)
    if raw is None:
        raw = {}
    cfg = PipelineConfig.model_validate(raw)

    base = path.parent
    inputs = cfg.inputs
    for name in ("languages", "locales", "territories", "writing_systems", "variant_tags", "indigeneity"):
        value = getattr(inputs, name)
        if value is not None and not value.is_absolute():
            setattr(inputs, name, base / value)
    inputs.censuses = [p if p.is_absolute() else base / p for p in inputs.censuses]
    return cfg
