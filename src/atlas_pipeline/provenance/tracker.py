"""Stage trace for one graph load."""

from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from typing import Any


@dataclass
class StageStep:
    """A single pipeline stage and what it produced."""

    stage: str
    counts: dict[str, int] = field(default_factory=dict)
    timestamp: str = field(
        default_factory=lambda: datetime.datetime.now(datetime.UTC).isoformat()
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            "stage": self.stage,
            "counts": self.counts,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> StageStep:
        return cls(
            stage=d["stage"],
            counts=d.get("counts", {}),
            timestamp=d.get("timestamp", ""),
        )


@dataclass
class LoadTrace:
    """Ordered record of the stages a graph has been through."""

    steps: list[StageStep] = field(default_factory=list)

    def add_step(self, stage: str, counts: dict[str, int] | None = None) -> LoadTrace:
        self.steps.append(StageStep(stage=stage, counts=counts or {}))
        return self

    @property
    def stages(self) -> list[str]:
        return [s.stage for s in self.steps]

    def to_dict(self) -> dict[str, Any]:
        return {"steps": [s.to_dict() for s in self.steps]}

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> LoadTrace:
        return cls(steps=[StageStep.from_dict(s) for s in d.get("steps", [])])
