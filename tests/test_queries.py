from unittest.mock import MagicMock

import pytest

from queries import fetch_categories, fetch_expenses_by_window, invalidate_expense_queries


@pytest.fixture(autouse=True)
def _clear_caches():
    fetch_expenses_by_window.clear()
    fetch_categories.clear()
    yield
    fetch_expenses_by_window.clear()
    fetch_categories.clear()


def _repository() -> MagicMock:
    repository = MagicMock()
    repository.fetch_expenses.return_value = [
        {"id": "1", "amount": 9.5, "description": "Tea", "category_id": "food", "created_at": "2026-03-01T08:00:00Z"},
        {"id": "2", "amount": "oops", "description": "Broken", "created_at": "2026-03-01T09:00:00Z"},
    ]
    return repository


def test_window_query_validates_rows() -> None:
    result = fetch_expenses_by_window(_repository(), "u1", "daily")

    assert [record.id for record in result.valid] == ["1"]
    assert len(result.rejected) == 1


def test_daily_window_is_not_paginated() -> None:
    repository = _repository()

    fetch_expenses_by_window(repository, "u1", "daily", page=3)

    kwargs = repository.fetch_expenses.call_args.kwargs
    assert kwargs["offset"] is None
    assert kwargs["limit"] is None


def test_paginated_window_requests_page_slice() -> None:
    repository = _repository()

    fetch_expenses_by_window(repository, "u1", "weekly", page=2, page_size=10)

    kwargs = repository.fetch_expenses.call_args.kwargs
    assert kwargs["offset"] == 10
    assert kwargs["limit"] == 10


def test_repeated_query_is_served_from_cache_until_invalidated() -> None:
    repository = _repository()

    fetch_expenses_by_window(repository, "u1", "daily")
    fetch_expenses_by_window(repository, "u1", "daily")
    assert repository.fetch_expenses.call_count == 1

    fetch_expenses_by_window(repository, "u2", "daily")
    assert repository.fetch_expenses.call_count == 2

    invalidate_expense_queries()
    fetch_expenses_by_window(repository, "u1", "daily")
    assert repository.fetch_expenses.call_count == 3
