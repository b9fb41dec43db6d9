"""Main Typer application."""

from __future__ import annotations

import typer

app = typer.Typer(
    name="atlas-pipeline",
    help="Reconcile language, locale and territory catalogs into one graph with population estimates.",
    no_args_is_help=True,
)


@app.command()
def build_graph(
    config: str = typer.Option(..., "--config", "-c", help="Path to config YAML"),
    output_dir: str = typer.Option(
        None, "--output-dir", "-o", help="Override export output directory"
    ),
) -> None:
    """Load inputs, run the pipeline and export the summary."""
    from .build_cmd import run_build

    run_build(config, output_dir)


@app.command()
def lookup(
    entity_id: str = typer.Argument(..., help="Language, locale, territory, script or census ID"),
    config: str = typer.Option(..., "--config", "-c", help="Path to config YAML"),
) -> None:
    """Print one entity's population figures as JSON."""
    from .lookup_cmd import run_lookup

    run_lookup(config, entity_id)


if __name__ == "__main__":
    app()
