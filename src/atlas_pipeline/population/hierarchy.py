"""Descendant counts and depths over the parent/child references."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import TypeVar

from atlas_pipeline.graph.models import (
    Census,
    Language,
    Locale,
    LocaleOrigin,
    ObjectData,
    Territory,
    TerritoryScope,
    VariantTag,
    WritingSystem,
)

T = TypeVar("T")

DEFAULT_MAX_DEPTH = 30


def iter_descendants(
    root: T, children: Callable[[T], list[T]], max_depth: int = DEFAULT_MAX_DEPTH
) -> Iterator[T]:
    """Yield each node below *root* once, stopping at *max_depth*."""
    visited = {id(root)}
    frontier = [root]
    for _ in range(max_depth):
        next_frontier = []
        for node in frontier:
            for child in children(node):
                if id(child) in visited:
                    continue
                visited.add(id(child))
                next_frontier.append(child)
                yield child
        if not next_frontier:
            return
        frontier = next_frontier


def _territory_children(territory: Territory) -> list[Territory]:
    return territory.contains_territories + territory.dependent_territories


def _territory_subtree(territory: Territory, max_depth: int) -> list[Territory]:
    return [territory, *iter_descendants(territory, _territory_children, max_depth)]


def _locale_children(locale: Locale) -> list[Locale]:
    if locale.origin == LocaleOrigin.FAMILY:
        return locale.family_locales
    return locale.contained_locales


def count_languages(obj: ObjectData, max_depth: int = DEFAULT_MAX_DEPTH) -> int | None:
    if isinstance(obj, Language):
        return sum(1 for _ in iter_descendants(obj, lambda lang: lang.child_languages, max_depth))
    if isinstance(obj, Territory):
        codes = {
            loc.language_code
            for t in _territory_subtree(obj, max_depth)
            for loc in t.locales
        }
        return len(codes)
    if isinstance(obj, Locale):
        return sum(1 for _ in iter_descendants(obj, _locale_children, max_depth))
    if isinstance(obj, WritingSystem):
        return len(obj.languages)
    if isinstance(obj, Census):
        return obj.language_count
    if isinstance(obj, VariantTag):
        return len(obj.languages)
    return None


def count_territories(obj: ObjectData, max_depth: int = DEFAULT_MAX_DEPTH) -> int | None:
    if isinstance(obj, Territory):
        return sum(1 for _ in iter_descendants(obj, _territory_children, max_depth))
    if isinstance(obj, Language):
        countries = {
            loc.territory.id
            for loc in obj.locales
            if loc.territory is not None
            and loc.territory.scope in (TerritoryScope.COUNTRY, TerritoryScope.DEPENDENCY)
        }
        return len(countries)
    if isinstance(obj, WritingSystem):
        return len({loc.territory_code for loc in obj.locales_where_explicit if loc.territory_code})
    return None


def count_writing_systems(obj: ObjectData, max_depth: int = DEFAULT_MAX_DEPTH) -> int | None:
    if isinstance(obj, WritingSystem):
        return sum(
            1 for _ in iter_descendants(obj, lambda ws: ws.child_writing_systems, max_depth)
        )
    if isinstance(obj, Language):
        return len(obj.writing_systems)
    if isinstance(obj, Territory):
        scripts = {
            loc.script_code
            for t in _territory_subtree(obj, max_depth)
            for loc in t.locales
            if loc.script_code
        }
        return len(scripts)
    return None


def count_censuses(obj: ObjectData, max_depth: int = DEFAULT_MAX_DEPTH) -> int | None:
    if isinstance(obj, Territory):
        return len({c.id for t in _territory_subtree(obj, max_depth) for c in t.censuses})
    if isinstance(obj, Language):
        return len({rec.census.id for loc in obj.locales for rec in loc.census_records})
    if isinstance(obj, Locale):
        return len(obj.census_records)
    return None


def get_depth(obj: ObjectData, max_depth: int = DEFAULT_MAX_DEPTH) -> int:
    """Steps from *obj* up to the root of its primary hierarchy."""
    if isinstance(obj, Language):
        parent_of: Callable = lambda o: o.parent_language
    elif isinstance(obj, Territory):
        parent_of = lambda o: o.parent_region
    elif isinstance(obj, WritingSystem):
        parent_of = lambda o: o.parent_writing_system
    else:
        return 0

    depth = 0
    seen = {id(obj)}
    parent = parent_of(obj)
    while parent is not None and id(parent) not in seen and depth < max_depth:
        seen.add(id(parent))
        depth += 1
        parent = parent_of(parent)
    return depth
