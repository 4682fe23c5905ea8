"""
Type Safety Utilities for lineage rows.

Defensive coercion helpers used when turning loosely-typed spreadsheet rows
into typed records. Spreadsheet exports routinely contain:
- Blank cells and pandas NaN where a count is expected
- Counts rendered as "1,234" or "12.0"
- Identifiers padded with whitespace

Usage:
    from cdp_lineage.core.type_safety import (
        safe_count,
        safe_string,
        split_tags,
    )
"""

from __future__ import annotations

import logging
import re
from typing import Any, FrozenSet, Optional

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

TAG_SEPARATORS = re.compile(r"[,;]")


# =============================================================================
# NUMERIC COERCION
# =============================================================================

def safe_int(value: Any) -> Optional[int]:
    """
    Safely convert a value to int, handling NaN/None and formatted strings.

    Args:
        value: Any value to convert (int, float, str, None, NaN)

    Returns:
        Integer value (floats truncate) or None if conversion fails

    Examples:
        >>> safe_int("1,234")
        1234
        >>> safe_int(42.9)
        42
        >>> safe_int("abc")
        None
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (float, np.floating)):
        if np.isnan(value) or np.isinf(value):
            return None
        return int(value)
    if isinstance(value, (int, np.integer)):
        return int(value)
    if not isinstance(value, str) and _is_blank(value):
        return None

    text = str(value).strip().replace(",", "")
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        pass
    try:
        number = float(text)
    except ValueError:
        return None
    if np.isnan(number) or np.isinf(number):
        return None
    return int(number)


def safe_count(value: Any, field_name: str = "value") -> int:
    """
    Coerce a table count to a non-negative int, defaulting to 0.

    Unparsable and negative values are non-fatal: they are logged at DEBUG
    and replaced by 0.
    """
    result = safe_int(value)
    if result is None:
        if value is not None and not _is_blank(value):
            logger.debug(f"Unparsable {field_name} {value!r} coerced to 0")
        return 0
    if result < 0:
        logger.debug(f"Negative {field_name} {value!r} clamped to 0")
        return 0
    return result


# =============================================================================
# STRING HANDLING
# =============================================================================

def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def safe_string(value: Any, default: str = "") -> str:
    """
    Safely convert a value to string, handling None/NaN and blank text.

    Any other text is kept verbatim: "NA" or "None" may be a real code.

    Args:
        value: Any value to convert
        default: Default value for None/NaN/blank

    Returns:
        Stripped string value or default
    """
    if _is_blank(value):
        return default
    return str(value).strip()


def split_tags(value: Any) -> FrozenSet[str]:
    """
    Split a multi-valued cell ("GBM, WPB;CMB") into an immutable tag set.

    Blank entries are dropped; an empty or null cell yields an empty set.
    """
    if _is_blank(value):
        return frozenset()
    if isinstance(value, (list, tuple, set, frozenset)):
        parts = [safe_string(v) for v in value]
    else:
        parts = [p.strip() for p in TAG_SEPARATORS.split(str(value))]
    return frozenset(p for p in parts if p)
