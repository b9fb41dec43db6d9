"""Tests for descendant counts and depths."""

from __future__ import annotations

from atlas_pipeline.graph.models import Territory, TerritoryScope, WritingSystem
from atlas_pipeline.graph.store import EntityGraph
from atlas_pipeline.population.hierarchy import (
    count_censuses,
    count_languages,
    count_territories,
    count_writing_systems,
    get_depth,
    iter_descendants,
)


class TestCounts:
    def test_count_languages(self, graph: EntityGraph):
        assert count_languages(graph.languages["elv"]) == 5
        assert count_languages(graph.languages["nan"]) == 0
        assert count_languages(graph.censuses["be0590"]) == 2
        assert count_languages(graph.writing_systems["Teng"]) == 3
        assert count_languages(graph.locales["sjn_001"]) == 3

    def test_count_languages_in_territory(self, graph: EntityGraph):
        # sjn, elv, dori0123, khz
        assert count_languages(graph.territories["ER"]) == 4

    def test_count_territories(self, graph: EntityGraph):
        # includes the dependency TE under BE
        assert count_territories(graph.territories["001"]) == 6
        assert count_territories(graph.territories["BE"]) == 1
        assert count_territories(graph.languages["sjn"]) == 2

    def test_count_writing_systems(self, graph: EntityGraph):
        assert count_writing_systems(graph.writing_systems["Sara"]) == 1
        assert count_writing_systems(graph.languages["sjn"]) == 2
        assert count_writing_systems(graph.territories["123"]) == 2

    def test_count_censuses(self, graph: EntityGraph):
        assert count_censuses(graph.territories["123"]) == 3
        assert count_censuses(graph.languages["sjn"]) == 2
        assert count_censuses(graph.locales["dori0123_ER"]) == 1
        assert count_censuses(graph.writing_systems["Teng"]) is None


class TestGetDepth:
    def test_language(self, graph: EntityGraph):
        assert get_depth(graph.languages["elv"]) == 0
        assert get_depth(graph.languages["dori0123"]) == 2

    def test_territory(self, graph: EntityGraph):
        assert get_depth(graph.territories["BE"]) == 2

    def test_writing_system(self, graph: EntityGraph):
        assert get_depth(graph.writing_systems["Teng"]) == 1

    def test_other_types(self, graph: EntityGraph):
        assert get_depth(graph.locales["sjn_BE"]) == 0

    def test_cycle(self):
        a = Territory(id="A", name_display="A", scope=TerritoryScope.REGION)
        b = Territory(id="B", name_display="B", scope=TerritoryScope.REGION)
        a.parent_region = b
        b.parent_region = a
        assert get_depth(a) == 1


class TestIterDescendants:
    def test_shared_descendant_counted_once(self):
        root = WritingSystem(id="Root", name_display="root")
        left = WritingSystem(id="Left", name_display="left")
        right = WritingSystem(id="Rght", name_display="right")
        shared = WritingSystem(id="Shrd", name_display="shared")
        root.child_writing_systems = [left, right]
        left.child_writing_systems = [shared]
        right.child_writing_systems = [shared]
        assert [ws.id for ws in iter_descendants(root, lambda ws: ws.child_writing_systems)] == [
            "Left",
            "Rght",
            "Shrd",
        ]

    def test_depth_bound(self):
        nodes = [WritingSystem(id=f"W{i:03d}", name_display=str(i)) for i in range(50)]
        for parent, child in zip(nodes, nodes[1:]):
            parent.child_writing_systems = [child]
        assert sum(1 for _ in iter_descendants(nodes[0], lambda ws: ws.child_writing_systems, 30)) == 30
