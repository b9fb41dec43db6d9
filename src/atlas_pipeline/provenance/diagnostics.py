"""Advisory diagnostics for data curators.

The pipeline never raises for bad data. Each problem it steps around is
recorded here and logged, and the load carries on with a best-effort graph.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class DiagnosticKind(str, Enum):
    UNRESOLVED_REFERENCE = "unresolved_reference"
    DUPLICATE_INPUT = "duplicate_input"
    STRUCTURAL_GUARD = "structural_guard"
    MALFORMED_ROW = "malformed_row"


@dataclass
class Diagnostic:
    kind: DiagnosticKind
    stage: str
    entity_id: str
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "stage": self.stage,
            "entity_id": self.entity_id,
            "message": self.message,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Diagnostic:
        return cls(
            kind=DiagnosticKind(d["kind"]),
            stage=d.get("stage", ""),
            entity_id=d.get("entity_id", ""),
            message=d.get("message", ""),
        )


class DiagnosticLog:
    """Collects diagnostics emitted while a graph is loaded."""

    def __init__(self) -> None:
        self._entries: list[Diagnostic] = []

    def record(
        self, kind: DiagnosticKind, stage: str, entity_id: str, message: str
    ) -> Diagnostic:
        diagnostic = Diagnostic(kind=kind, stage=stage, entity_id=entity_id, message=message)
        self._entries.append(diagnostic)
        if kind == DiagnosticKind.STRUCTURAL_GUARD:
            logger.warning("[%s] %s: %s", stage, entity_id, message)
        else:
            logger.debug("[%s] %s: %s", stage, entity_id, message)
        return diagnostic

    def of_kind(self, kind: DiagnosticKind) -> list[Diagnostic]:
        return [d for d in self._entries if d.kind == kind]

    def for_entity(self, entity_id: str) -> list[Diagnostic]:
        return [d for d in self._entries if d.entity_id == entity_id]

    def counts(self) -> dict[str, int]:
        return dict(Counter(d.kind.value for d in self._entries))

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(self._entries)

    def to_dict(self) -> dict[str, Any]:
        return {
            "counts": self.counts(),
            "diagnostics": [d.to_dict() for d in self._entries],
        }
