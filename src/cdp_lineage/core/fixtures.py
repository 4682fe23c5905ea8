"""
Fixture providers: where a dashboard session gets rows from when it is not
handed a file.

Every provider returns raw export-shaped rows (column name → value), so the
session runs them through the same validation and normalization as a real
export.
"""

import logging
import random
from pathlib import Path
from typing import Any, Dict, List, Mapping, Protocol, Sequence, Union

from .data_loader import read_rows_from_csv
from .normalizer import (
    COL_CDP_TABLES,
    COL_DOWNSTREAM_APP,
    COL_DOWNSTREAM_EIM_ID,
    COL_GBGF,
    COL_SHARED_TABLES,
    COL_SOURCE_APP,
    COL_SOURCE_EIM_ID,
    COL_SOURCE_SYSTEM,
    COL_SOURCE_TABLES,
    COL_SUB_SYS_CODE,
    COL_SYS_CODE,
)

logger = logging.getLogger(__name__)

SAMPLE_TAGS = ("GBM", "CMB", "WPB", "GF-Risk", "GF-Finance", "GF-Compliance")


class FixtureProvider(Protocol):
    def rows(self) -> List[Dict[str, Any]]:
        ...


class StaticFixtureProvider:
    """Serves a fixed list of rows."""

    def __init__(self, rows: Sequence[Mapping[str, Any]]):
        self._rows = [dict(r) for r in rows]

    def rows(self) -> List[Dict[str, Any]]:
        return [dict(r) for r in self._rows]


class CsvFixtureProvider:
    """Reads rows from a CSV export on every call."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def rows(self) -> List[Dict[str, Any]]:
        return read_rows_from_csv(self.path)


class SampleFixtureProvider:
    """
    Deterministic synthetic dataset.

    The same seed and sizes always give the same rows. Every source EIM ID
    keeps one application name and SYS_CODE, and every downstream application
    keeps one EIM ID, so the sample aggregates without conflict warnings.
    """

    def __init__(self, seed: int = 42, source_count: int = 40, downstream_count: int = 45, row_count: int = 400):
        if min(source_count, downstream_count, row_count) < 1:
            raise ValueError("source_count, downstream_count and row_count must all be positive")
        self.seed = seed
        self.source_count = source_count
        self.downstream_count = downstream_count
        self.row_count = row_count

    def rows(self) -> List[Dict[str, Any]]:
        rng = random.Random(self.seed)

        source_apps = []
        for i in range(self.source_count):
            system = f"SRC{i + 1:03d}"
            for j in range(rng.randint(1, 3)):
                source_apps.append({
                    COL_SOURCE_SYSTEM: system,
                    COL_SOURCE_EIM_ID: str(100000 + i * 10 + j),
                    COL_SOURCE_APP: f"{system} App {j + 1}",
                    COL_SYS_CODE: f"S{i + 1:03d}",
                    COL_SUB_SYS_CODE: f"{j + 1:02d}",
                    COL_GBGF: ", ".join(sorted(rng.sample(SAMPLE_TAGS, rng.randint(1, 2)))),
                })

        downstream_apps = [
            {COL_DOWNSTREAM_APP: f"Downstream App {k + 1:03d}", COL_DOWNSTREAM_EIM_ID: str(900000 + k)}
            for k in range(self.downstream_count)
        ]

        rows = []
        for _ in range(self.row_count):
            source = rng.choice(source_apps)
            target = rng.choice(downstream_apps)
            source_tables = rng.randint(1, 500)
            cdp_tables = rng.randint(0, source_tables)
            shared_tables = rng.randint(0, cdp_tables)
            rows.append({
                **source,
                **target,
                COL_SOURCE_TABLES: str(source_tables),
                COL_CDP_TABLES: str(cdp_tables),
                COL_SHARED_TABLES: str(shared_tables),
            })

        logger.info(
            f"Generated {len(rows)} sample rows (seed={self.seed}, {self.source_count} systems, "
            f"{self.downstream_count} downstream applications)"
        )
        return rows
