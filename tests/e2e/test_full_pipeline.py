"""End-to-end pipeline test over the Middle-earth fixture tables.

Runs every stage: ingest -> link -> synthesis -> census -> aggregate ->
territory, then indigeneity and export, and drives the CLI.
"""

from __future__ import annotations

from pathlib import Path

import orjson
import pytest
from typer.testing import CliRunner

from atlas_pipeline.cli.main import app
from atlas_pipeline.config.schema import PipelineConfig
from atlas_pipeline.export.summary_exporter import SummaryExporter
from atlas_pipeline.graph.models import PopulationSourceCategory
from atlas_pipeline.graph.store import CompletedGraph
from atlas_pipeline.ingest.builder import load_raw_graph
from atlas_pipeline.ingest.tsv_loader import load_census_batches
from atlas_pipeline.pipeline import build_graph, run_pipeline
from atlas_pipeline.population.aggregator import get_population, get_population_attested

runner = CliRunner()


class TestRunPipeline:
    def test_stage_order(self, config: PipelineConfig):
        raw = load_raw_graph(config)
        completed = run_pipeline(raw, load_census_batches(config.inputs.censuses), config)
        assert isinstance(completed, CompletedGraph)
        assert completed.graph.trace.stages == [
            "ingest",
            "link",
            "synthesis",
            "census",
            "aggregate",
            "territory",
        ]

    def test_without_censuses(self, config: PipelineConfig):
        completed = run_pipeline(load_raw_graph(config), [], config)
        sjn_be = completed.graph.locales["sjn_BE"]
        assert sjn_be.population_speaking == 9000
        assert sjn_be.population_estimate_source == PopulationSourceCategory.CITED

    def test_languages(self, completed: CompletedGraph):
        languages = completed.graph.languages
        expected = {
            "sjn": (24000, 24000),
            "dori0123": (2500, 2500),
            "qya": (1500, 1500),
            "elv": (12720, 12720),
            "tel": (301, None),
            "nan": (300, 300),
        }
        for code, (population, attested) in expected.items():
            assert get_population(languages[code]) == population, code
            assert get_population_attested(languages[code]) == attested, code

    def test_diagnostics_collected(self, completed: CompletedGraph):
        counts = completed.graph.diagnostics.counts()
        assert counts["malformed_row"] == 3
        assert counts["duplicate_input"] == 2
        assert counts["unresolved_reference"] >= 4
        assert "structural_guard" not in counts

    def test_build_graph_applies_indigeneity(self, config: PipelineConfig):
        graph = build_graph(config).graph
        assert graph.trace.stages[-1] == "indigeneity"
        assert graph.locales["sjn_BE"].lang_formed_here is True


class TestSummaryExporter:
    def test_export_files(self, completed: CompletedGraph, config: PipelineConfig, tmp_path: Path):
        path = SummaryExporter(config.export).export(completed, tmp_path / "out")
        summary = orjson.loads(path.read_bytes())
        languages = {entry["id"]: entry for entry in summary["languages"]}
        assert languages["tel"]["population"] == 301
        assert languages["tel"]["population_attested"] is None
        assert languages["tel"]["population_source"] == "Aggregated from Languages"
        assert languages["elv"]["largest_descendant"] == "sjn"
        locales = {entry["id"]: entry for entry in summary["locales"]}
        assert locales["sjn_BE"]["census"] == "be0590"
        assert locales["sjn_BE"]["population_percent"] == pytest.approx(77.5)
        assert locales["elv_001"]["origin"] == "family"
        assert locales["sjn_BE"]["population_adjusted"] == 9300
        assert locales["sjn_BE"]["population_writing"] == 8370

        assert languages["elv"]["counts"]["languages"] == 5
        assert languages["elv"]["largest_descendant_share"] == pytest.approx(24000 * 100 / 12720)
        assert languages["dori0123"]["depth"] == 2
        assert locales["sjn_BE"]["percent_of_territory"] == pytest.approx(77.5)
        territories = {entry["id"]: entry for entry in summary["territories"]}
        assert territories["001"]["counts"]["territories"] == 6
        assert territories["123"]["counts"]["censuses"] == 3
        assert territories["BE"]["depth"] == 2
        assert territories["BE"]["largest_descendant_share"] == pytest.approx(77.5)
        assert territories["AM"]["percent_of_territory"] == pytest.approx(40.0)
        censuses = {entry["id"]: entry for entry in summary["censuses"]}
        assert censuses["be0590"]["counts"]["languages"] == 2
        assert censuses["be0590"]["percent_of_territory"] == pytest.approx(100.0)
        writing_systems = {entry["id"]: entry for entry in summary["writing_systems"]}
        assert writing_systems["Teng"]["counts"]["censuses"] is None

        diagnostics = orjson.loads((tmp_path / "out" / "diagnostics.json").read_bytes())
        assert diagnostics["counts"] == completed.graph.diagnostics.counts()
        trace = orjson.loads((tmp_path / "out" / "trace.json").read_bytes())
        assert trace["steps"][0]["stage"] == "ingest"

    def test_diagnostics_optional(self, completed: CompletedGraph, config: PipelineConfig, tmp_path: Path):
        config.export.include_diagnostics = False
        SummaryExporter(config.export).export(completed, tmp_path)
        assert (tmp_path / "summary.json").exists()
        assert not (tmp_path / "diagnostics.json").exists()


class TestCli:
    def test_build_graph(self, config_path: Path, tmp_path: Path):
        out = tmp_path / "export"
        result = runner.invoke(app, ["build-graph", "-c", str(config_path), "-o", str(out)])
        assert result.exit_code == 0, result.output
        summary = orjson.loads((out / "summary.json").read_bytes())
        assert summary["counts"]["languages"] == 6

    def test_lookup(self, config_path: Path):
        result = runner.invoke(app, ["lookup", "sjn_BE", "-c", str(config_path)])
        assert result.exit_code == 0, result.output
        data = orjson.loads(result.stdout)
        assert data["population"] == 9300
        assert data["census"] == "be0590"

    def test_lookup_unknown(self, config_path: Path):
        result = runner.invoke(app, ["lookup", "zzz", "-c", str(config_path)])
        assert result.exit_code == 1
