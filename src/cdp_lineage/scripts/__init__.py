"""
CDP Lineage Dashboard - CLI Scripts Package

Command-line entry points:
- Direct execution: python -m cdp_lineage.scripts.<script_name>
- Entry points: cdp-<command> (after pip install)
"""

from . import validate_config

__all__ = [
    "validate_config",
]
