"""Tests for table loading and raw graph building."""

from __future__ import annotations

from pathlib import Path

from atlas_pipeline.ingest.builder import build_raw_graph, load_raw_graph
from atlas_pipeline.ingest.records import LanguageRecord, LocaleRecord
from atlas_pipeline.ingest.tsv_loader import (
    TableLoader,
    load_census_batch,
    load_census_batches,
    load_table,
    read_rows,
)
from atlas_pipeline.provenance.diagnostics import DiagnosticKind, DiagnosticLog


class TestReadRows:
    def test_skips_header_blank_and_comments(self, tmp_path: Path):
        tsv = tmp_path / "locales.tsv"
        tsv.write_text(
            "code\tname\n"
            "sjn_BE\tSindarin\n"
            "\n"
            "# curated later\n"
            "qya_AM\tQuenya\n"
        )
        rows = list(read_rows(tsv))
        assert [r[1][0] for r in rows] == ["sjn_BE", "qya_AM"]
        assert rows[0][0] == 2

    def test_empty_file(self, tmp_path: Path):
        tsv = tmp_path / "empty.tsv"
        tsv.write_text("")
        assert list(read_rows(tsv)) == []


class TestTableLoader:
    def test_malformed_rows_become_diagnostics(self, tmp_path: Path):
        tsv = tmp_path / "locales.tsv"
        tsv.write_text(
            "code\tname\tendonym\tsource\tpopulation\tstatus\n"
            "sjn_BE\tSindarin\t\tOfficial\t9000\t\n"
            "qya_AM\tQuenya\n"
        )
        diagnostics = DiagnosticLog()
        records = list(TableLoader(tsv, LocaleRecord, diagnostics).load())
        assert len(records) == 1
        assert records[0].population_speaking == 9000
        malformed = diagnostics.of_kind(DiagnosticKind.MALFORMED_ROW)
        assert len(malformed) == 1
        assert malformed[0].entity_id == "locales.tsv:3"

    def test_missing_path_gives_nothing(self):
        assert load_table(None, LanguageRecord, DiagnosticLog()) == []


class TestLoadCensusBatch:
    def test_fixture(self, fixtures_dir: Path):
        batch = load_census_batch(fixtures_dir / "censuses.json")
        assert [c.id for c in batch.censuses] == ["be0590", "be0600"]
        assert batch.censuses[1].responding_population == 10000
        assert "sjn" in batch.language_names

    def test_bare_list(self, tmp_path: Path):
        path = tmp_path / "batch.json"
        path.write_text(
            '[{"id": "c1", "territory_code": "BE", "eligible_population": 10}]'
        )
        batch = load_census_batch(path)
        assert batch.censuses[0].id == "c1"
        assert batch.language_names == {}

    def test_unusable_censuses_skipped(self, tmp_path: Path):
        path = tmp_path / "batch.json"
        path.write_text(
            '{"censuses": ['
            '{"id": "c1", "territory_code": "BE", "eligible_population": 10},'
            '{"id": "c2", "territory_code": "BE", "eligible_population": 10,'
            ' "collector_type": "Survey"},'
            '{"id": "c3", "territory_code": "BE"},'
            '{"id": "c4", "territory_code": "BE", "eligible_population": 10,'
            ' "language_estimates": {"sjn": "many"}},'
            '"c5"'
            '], "language_names": {"sjn": "Sindarin"}}'
        )
        diagnostics = DiagnosticLog()
        batch = load_census_batch(path, diagnostics)
        assert [c.id for c in batch.censuses] == ["c1"]
        assert batch.language_names == {"sjn": "Sindarin"}
        malformed = diagnostics.of_kind(DiagnosticKind.MALFORMED_ROW)
        assert [d.entity_id for d in malformed] == [
            "batch.json:1",
            "batch.json:2",
            "batch.json:3",
            "batch.json:4",
        ]

    def test_unreadable_file(self, tmp_path: Path):
        path = tmp_path / "broken.json"
        path.write_text('{"censuses": [')
        diagnostics = DiagnosticLog()
        batch = load_census_batch(path, diagnostics)
        assert batch.censuses == []
        assert [d.entity_id for d in diagnostics] == ["broken.json"]

    def test_batches_share_one_log(self, tmp_path: Path):
        good = tmp_path / "good.json"
        good.write_text('[{"id": "c1", "territory_code": "BE", "eligible_population": 10}]')
        bad = tmp_path / "bad.json"
        bad.write_text('[{"id": "c2", "territory_code": "BE", "eligible_population": "ten"}]')
        diagnostics = DiagnosticLog()
        batches = load_census_batches([good, bad], diagnostics)
        assert [len(b.censuses) for b in batches] == [1, 0]
        assert [d.entity_id for d in diagnostics] == ["bad.json:0"]


class TestNonFiniteCells:
    def test_infinite_population_is_malformed(self, tmp_path: Path):
        tsv = tmp_path / "locales.tsv"
        tsv.write_text(
            "code\tname\tendonym\tsource\tpopulation\tstatus\n"
            "sjn_BE\tSindarin\t\tOfficial\tinf\t\n"
            "qya_AM\tQuenya\t\tOther\t1500\t\n"
        )
        diagnostics = DiagnosticLog()
        records = load_table(tsv, LocaleRecord, diagnostics)
        assert [r.code for r in records] == ["qya_AM"]
        assert [d.entity_id for d in diagnostics] == ["locales.tsv:2"]


class TestBuildRawGraph:
    def test_invalid_locale_code_dropped(self):
        rec = LocaleRecord.from_row(["Not-A-Code", "", "", "", "5", ""])
        raw = build_raw_graph(locales=[rec])
        assert raw.graph.locales == {}
        assert raw.graph.diagnostics.of_kind(DiagnosticKind.MALFORMED_ROW)

    def test_duplicate_rows_ignored(self):
        first = LanguageRecord.from_row(["sjn", "", "Sindarin"])
        second = LanguageRecord.from_row(["sjn", "", "Grey-elven"])
        raw = build_raw_graph(languages=[first, second])
        assert raw.graph.languages["sjn"].name_display == "Sindarin"
        assert len(raw.graph.diagnostics.of_kind(DiagnosticKind.DUPLICATE_INPUT)) == 1

    def test_trace_records_ingest(self):
        raw = build_raw_graph()
        assert raw.graph.trace.stages == ["ingest"]


class TestLoadRawGraph:
    def test_fixture_tables(self, config):
        graph = load_raw_graph(config).graph
        assert set(graph.languages) == {"elv", "sjn", "dori0123", "qya", "tel", "nan"}
        assert len(graph.territories) == 7
        assert len(graph.writing_systems) == 3
        assert "sjn_Teng_BE" in graph.locales
        assert "Not-A-Code" not in graph.locales
        # short row and invalid code
        assert len(graph.diagnostics.of_kind(DiagnosticKind.MALFORMED_ROW)) == 2
        assert graph.world_territory_code == "001"
