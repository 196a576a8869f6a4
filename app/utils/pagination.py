# app/utils/pagination.py
import math
from typing import Optional, Union

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100
# Keeps (page - 1) * limit inside a signed 64-bit OFFSET
MAX_PAGE = (2**63 - 1) // MAX_LIMIT


def coerce_positive_int(
    raw: Union[str, int, None],
    default: int,
    maximum: Optional[int] = None,
) -> int:
    """
    Turn a raw query value into a positive integer.

    Missing, non-numeric and non-positive values fall back to ``default``;
    values above ``maximum`` are clamped to it.
    """
    if raw is None or isinstance(raw, bool):
        return default
    if isinstance(raw, int):
        value = raw
    else:
        text = raw.strip()
        if not text.isdecimal():
            return default
        value = int(text)

    if value < 1:
        return default
    if maximum is not None and value > maximum:
        return maximum
    return value


def page_count(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit > 0 else 0
