"""Header-prefixed TSV tables and JSON census batches."""

from __future__ import annotations

import csv
import logging
from collections.abc import Iterator
from pathlib import Path
from typing import Generic, Protocol, TypeVar

import orjson

from atlas_pipeline.graph.models import Census
from atlas_pipeline.ingest.records import CensusBatch
from atlas_pipeline.provenance.diagnostics import DiagnosticKind, DiagnosticLog

logger = logging.getLogger(__name__)

STAGE = "ingest"


class RowRecord(Protocol):
    @classmethod
    def from_row(cls, parts: list[str]): ...


R = TypeVar("R", bound=RowRecord)


def read_rows(path: Path, encoding: str = "utf-8") -> Iterator[tuple[int, list[str]]]:
    """Yield ``(line_number, fields)`` for every data row after the header.

    Blank lines and ``#`` comment lines are skipped.
    """
    with path.open("r", encoding=encoding, newline="") as fh:
        reader = csv.reader(fh, delimiter="\t", quoting=csv.QUOTE_NONE)
        header = next(reader, None)
        if header is None:
            return
        for row in reader:
            if not any(cell.strip() for cell in row):
                continue
            if row[0].startswith("#"):
                continue
            yield reader.line_num, row


class TableLoader(Generic[R]):
    """Reads one table into records, turning bad rows into diagnostics."""

    def __init__(
        self,
        path: Path,
        record_cls: type[R],
        diagnostics: DiagnosticLog,
        encoding: str = "utf-8",
    ) -> None:
        self.path = path
        self.record_cls = record_cls
        self.diagnostics = diagnostics
        self.encoding = encoding

    def load(self) -> Iterator[R]:
        count = 0
        for line_no, row in read_rows(self.path, self.encoding):
            try:
                record = self.record_cls.from_row(row)
            except ValueError as exc:
                self.diagnostics.record(
                    DiagnosticKind.MALFORMED_ROW, STAGE, f"{self.path.name}:{line_no}", str(exc)
                )
                continue
            count += 1
            yield record
        logger.info("Read %d %s rows from %s", count, self.record_cls.__name__, self.path.name)


def load_table(
    path: Path | None,
    record_cls: type[R],
    diagnostics: DiagnosticLog,
    encoding: str = "utf-8",
) -> list[R]:
    if path is None:
        return []
    return list(TableLoader(path, record_cls, diagnostics, encoding).load())


def load_census_batch(path: Path, diagnostics: DiagnosticLog | None = None) -> CensusBatch:
    """Read one JSON census batch: ``{"censuses": [...], "language_names": {...}}``.

    Unusable censuses are skipped with a ``malformed_row`` diagnostic keyed
    ``file:index``; an unreadable file yields an empty batch.
    """
    diagnostics = diagnostics if diagnostics is not None else DiagnosticLog()
    try:
        data = orjson.loads(path.read_bytes())
    except orjson.JSONDecodeError as exc:
        diagnostics.record(DiagnosticKind.MALFORMED_ROW, STAGE, path.name, str(exc))
        return CensusBatch()
    if isinstance(data, list):
        data = {"censuses": data}
    if not isinstance(data, dict):
        diagnostics.record(
            DiagnosticKind.MALFORMED_ROW, STAGE, path.name, "Census batch is not an object"
        )
        return CensusBatch()

    batch = CensusBatch()
    names = data.get("language_names", {})
    if isinstance(names, dict):
        batch.language_names = {str(k): str(v) for k, v in names.items()}
    else:
        diagnostics.record(
            DiagnosticKind.MALFORMED_ROW, STAGE, path.name, "language_names is not an object"
        )

    censuses = data.get("censuses", [])
    if not isinstance(censuses, list):
        diagnostics.record(
            DiagnosticKind.MALFORMED_ROW, STAGE, path.name, "censuses is not a list"
        )
        censuses = []
    for index, raw in enumerate(censuses):
        try:
            if not isinstance(raw, dict):
                raise TypeError(f"Census entry is {type(raw).__name__}, not an object")
            batch.censuses.append(Census.from_dict(raw))
        except (KeyError, ValueError, TypeError, OverflowError) as exc:
            diagnostics.record(
                DiagnosticKind.MALFORMED_ROW,
                STAGE,
                f"{path.name}:{index}",
                f"{type(exc).__name__}: {exc}",
            )
    logger.info("Read %d censuses from %s", len(batch.censuses), path.name)
    return batch


def load_census_batches(
    paths: list[Path], diagnostics: DiagnosticLog | None = None
) -> list[CensusBatch]:
    return [load_census_batch(p, diagnostics) for p in paths]
