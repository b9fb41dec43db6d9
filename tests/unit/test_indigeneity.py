"""Tests for supplemental indigeneity flags."""

from __future__ import annotations

import pytest

from atlas_pipeline.graph.store import AggregatedGraph, EntityGraph
from atlas_pipeline.ingest.records import IndigeneityRecord
from atlas_pipeline.provenance.diagnostics import DiagnosticKind
from atlas_pipeline.supplemental.indigeneity import apply_indigeneity


class TestApplyIndigeneity:
    def test_fixture_rows_applied(self, graph: EntityGraph):
        sjn_be = graph.locales["sjn_BE"]
        assert sjn_be.lang_formed_here is True
        assert sjn_be.historic_presence is True
        qya_am = graph.locales["qya_AM"]
        assert qya_am.lang_formed_here is False
        assert qya_am.historic_presence is True

    def test_script_locale_untouched(self, graph: EntityGraph):
        assert graph.locales["sjn_Teng_BE"].lang_formed_here is None

    def test_unknown_language(self, graph: EntityGraph):
        diags = graph.diagnostics.for_entity("ent_ER")
        assert [d.kind for d in diags] == [DiagnosticKind.UNRESOLVED_REFERENCE]

    def test_no_matching_locale(self, graph: EntityGraph):
        assert graph.diagnostics.for_entity("sjn_HA")

    def test_second_row_for_locale_ignored(self, graph: EntityGraph):
        kinds = [d.kind for d in graph.diagnostics.for_entity("sjn_BE")]
        assert DiagnosticKind.DUPLICATE_INPUT in kinds
        assert graph.locales["sjn_BE"].historic_presence is True

    def test_empty_flags(self, graph: EntityGraph):
        kinds = [d.kind for d in graph.diagnostics.for_entity("dori0123_ER")]
        assert DiagnosticKind.MALFORMED_ROW in kinds
        assert graph.locales["dori0123_ER"].lang_formed_here is None

    def test_count_applied(self, completed):
        rows = [IndigeneityRecord("sjn", "ER", True, None)]
        assert apply_indigeneity(completed, rows) == 1
        assert completed.graph.locales["sjn_ER"].lang_formed_here is True
        assert completed.graph.locales["sjn_ER"].historic_presence is None

    def test_requires_completed_graph(self):
        with pytest.raises(TypeError):
            apply_indigeneity(AggregatedGraph(EntityGraph()), [])
