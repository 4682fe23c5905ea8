"""
Pytest configuration and fixtures for test suite.

This module provides shared fixtures used across multiple test files.
"""

import json
import logging
import sys
from pathlib import Path
from typing import Any

import pandas as pd
import pytest

# Add src to the Python path so tests run without an editable install
_project_root = Path(__file__).parent.parent
sys.path.insert(0, str(_project_root / "src"))

from cdp_lineage.core.data_loader import REQUIRED_COLUMNS, load_records  # noqa: E402
from cdp_lineage.core.settings import ENV_OVERRIDES  # noqa: E402


def make_row(
    source: str = "SRC",
    downstream: str = "DST",
    *,
    source_eim: str = None,
    source_app: str = None,
    downstream_eim: str = None,
    gbgf: str = "GBM",
    source_tables: Any = 10,
    cdp_tables: Any = 10,
    shared_tables: Any = 10,
    sys_code: str = "S01",
    sub_sys_code: str = "01",
) -> dict[str, Any]:
    """One export-shaped row; identifiers default to values derived from the names."""
    return {
        "Source system": source,
        "Source EIM ID": source_eim or f"{source}-EIM",
        "Source Application Name": source_app or f"{source} App",
        "SYS_CODE": sys_code,
        "SUB_SYS_CODE": sub_sys_code,
        "Downstream Application Name": downstream,
        "Downstream EIM ID": downstream_eim or f"{downstream}-EIM",
        "GB/GF": gbgf,
        "Source File/Table Count": source_tables,
        "Total CDP Table Count": cdp_tables,
        "Share to Downstream Table Count": shared_tables,
    }


@pytest.fixture
def row_factory():
    """Expose ``make_row`` to tests."""
    return make_row


# =============================================================================
# SAMPLE DATA FIXTURES
# =============================================================================


@pytest.fixture
def scenario_a_rows() -> list[dict[str, Any]]:
    """Two sources feeding one downstream application."""
    return [
        make_row("A", "X", source_tables=90, cdp_tables=80, shared_tables=100),
        make_row("B", "X", source_tables=45, cdp_tables=40, shared_tables=50),
    ]


@pytest.fixture
def sample_rows() -> list[dict[str, Any]]:
    """A small multi-tag dataset with shared applications and one zero-share row."""
    return [
        make_row("CRM", "Risk Hub", source_eim="1001", source_app="CRM Core", downstream_eim="9001",
                 gbgf="GBM, CMB", source_tables=120, cdp_tables=100, shared_tables=60),
        make_row("CRM", "Finance Mart", source_eim="1002", source_app="CRM Sales", downstream_eim="9002",
                 gbgf="GBM", source_tables=30, cdp_tables=25, shared_tables=20),
        make_row("Payments", "Risk Hub", source_eim="2001", source_app="Payments Engine", downstream_eim="9001",
                 gbgf="WPB", source_tables=80, cdp_tables=70, shared_tables=40),
        make_row("Payments", "Compliance Lake", source_eim="2001", source_app="Payments Engine",
                 downstream_eim="9003", gbgf="WPB", source_tables="1,000", cdp_tables="900", shared_tables="n/a"),
        make_row("Ledger", "Finance Mart", source_eim="3001", source_app="GL Ledger", downstream_eim="9002",
                 gbgf="GF-Finance", source_tables=50, cdp_tables=50, shared_tables=45),
    ]


@pytest.fixture
def sample_records(sample_rows):
    """Sample rows normalized into flow records."""
    return load_records(sample_rows)


@pytest.fixture
def sample_csv(tmp_path, sample_rows) -> Path:
    """Sample rows written as a CSV export."""
    path = tmp_path / "cdp_lineage.csv"
    pd.DataFrame(sample_rows, columns=REQUIRED_COLUMNS).to_csv(path, index=False)
    return path


# =============================================================================
# TEMPORARY CONFIG FIXTURES
# =============================================================================


@pytest.fixture
def temp_config_dir(tmp_path) -> Path:
    """Create a temporary config directory with a valid settings file."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()

    settings = {
        "description": "Test settings",
        "overflow_limit": 5,
        "detail_overflow_limit": 3,
        "hub_name": "Test Hub",
        "include_info_tier": False,
    }
    (config_dir / "dashboard_settings.json").write_text(json.dumps(settings))
    return config_dir


@pytest.fixture
def invalid_config_file(tmp_path) -> Path:
    """Create an invalid settings file for error testing."""
    filepath = tmp_path / "dashboard_settings.json"
    filepath.write_text(json.dumps({"overflow_limit": 0, "unknown_key": True}))
    return filepath


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every settings override from the environment."""
    for name in ENV_OVERRIDES:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture(autouse=True)
def restore_package_logger():
    """Undo ``setup_logging`` / ``route_server_logs`` side effects between tests."""
    yield
    package_logger = logging.getLogger("cdp_lineage")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()
    package_logger.propagate = True
    package_logger.setLevel(logging.NOTSET)
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        server_logger = logging.getLogger(name)
        server_logger.handlers = []
        server_logger.propagate = True
        server_logger.setLevel(logging.NOTSET)
