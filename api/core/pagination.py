"""
Page/limit handling shared by the listing endpoints.
"""

from __future__ import annotations

import math


def parse_page_param(raw: str | None, default: int) -> int:
    """
    Lenient integer parse of a query value.

    Absent, non-numeric, zero and negative values all fall back to `default`.
    """
    text = (raw or "").strip()
    if not text:
        return default
    try:
        value = int(text)
    except ValueError:
        return default
    return value if value > 0 else default


def page_offset(page: int, limit: int) -> int:
    return (page - 1) * limit


def total_pages(total: int, limit: int) -> int:
    if limit <= 0:
        return 0
    return math.ceil(total / limit)
