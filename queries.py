"""Cached backend queries (fixed freshness window, cleared on writes)."""

from __future__ import annotations

import datetime
import logging

import streamlit as st

from analytics import page_range, time_window_bounds, window_is_paginated
from schemas import ExpenseRecord, ValidationResult, validate_records

logger = logging.getLogger(__name__)

STALE_TIME = datetime.timedelta(minutes=5)
DEFAULT_PAGE_SIZE = 20


@st.cache_data(ttl=STALE_TIME, show_spinner=False)
def fetch_expenses_by_window(
    _repository,
    user_id: str,
    window: str,
    page: int = 1,
    page_size: int = DEFAULT_PAGE_SIZE,
    tz: str = "UTC",
) -> ValidationResult:
    """Expenses in a time window, newest first, validated row by row.

    The daily window is never paginated.
    """
    start, end = time_window_bounds(window, tz=tz)
    offset = limit = None
    if window_is_paginated(window):
        first, last = page_range(page, page_size)
        offset, limit = first, last - first + 1

    rows = _repository.fetch_expenses(user_id, start, end, offset=offset, limit=limit)
    result = validate_records(rows, ExpenseRecord)
    logger.info(
        "Loaded %d %s expenses for %s (%d rejected)",
        len(result.valid),
        window,
        user_id,
        len(result.rejected),
    )
    return result


@st.cache_data(ttl=STALE_TIME, show_spinner=False)
def fetch_categories(_repository) -> list[dict]:
    return _repository.fetch_categories()


def invalidate_expense_queries() -> None:
    fetch_expenses_by_window.clear()
