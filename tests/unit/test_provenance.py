"""Tests for diagnostics and the stage trace."""

from __future__ import annotations

import logging

from atlas_pipeline.provenance.diagnostics import Diagnostic, DiagnosticKind, DiagnosticLog
from atlas_pipeline.provenance.tracker import LoadTrace, StageStep


class TestDiagnosticLog:
    def test_record_and_filter(self):
        log = DiagnosticLog()
        log.record(DiagnosticKind.MALFORMED_ROW, "ingest", "locales.tsv:3", "2 fields")
        log.record(DiagnosticKind.UNRESOLVED_REFERENCE, "link", "xx_BE", "Language not found")
        log.record(DiagnosticKind.UNRESOLVED_REFERENCE, "link", "yy_BE", "Language not found")
        assert len(log) == 3
        assert len(log.of_kind(DiagnosticKind.UNRESOLVED_REFERENCE)) == 2
        assert log.for_entity("xx_BE")[0].stage == "link"
        assert log.counts() == {"malformed_row": 1, "unresolved_reference": 2}

    def test_structural_guard_logs_warning(self, caplog):
        log = DiagnosticLog()
        with caplog.at_level(logging.WARNING, logger="atlas_pipeline.provenance.diagnostics"):
            log.record(DiagnosticKind.STRUCTURAL_GUARD, "aggregate", "A", "cycle through B")
        assert "cycle through B" in caplog.text

    def test_to_dict(self):
        log = DiagnosticLog()
        log.record(DiagnosticKind.DUPLICATE_INPUT, "census", "be0590", "Census already loaded")
        d = log.to_dict()
        assert d["counts"] == {"duplicate_input": 1}
        assert d["diagnostics"][0]["entity_id"] == "be0590"


class TestDiagnostic:
    def test_roundtrip(self):
        diag = Diagnostic(DiagnosticKind.MALFORMED_ROW, "ingest", "row 4", "bad")
        restored = Diagnostic.from_dict(diag.to_dict())
        assert restored.kind == DiagnosticKind.MALFORMED_ROW
        assert restored.entity_id == "row 4"


class TestLoadTrace:
    def test_fluent_api(self):
        trace = LoadTrace().add_step("ingest", {"languages": 3}).add_step("link")
        assert trace.stages == ["ingest", "link"]
        assert trace.steps[0].counts == {"languages": 3}

    def test_roundtrip(self):
        trace = LoadTrace().add_step("census", {"citations": 2})
        restored = LoadTrace.from_dict(trace.to_dict())
        assert restored.stages == ["census"]
        assert restored.steps[0].timestamp == trace.steps[0].timestamp

    def test_step_timestamp_set(self):
        assert StageStep(stage="x").timestamp
