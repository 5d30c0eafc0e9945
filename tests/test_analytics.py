import datetime

import pandas as pd

from analytics import (
    UNCATEGORIZED,
    category_totals,
    category_trends,
    category_weekly_series,
    classify_trend,
    daily_total,
    expense_stats,
    expenses_frame,
    filter_by_time_window,
    generate_insights,
    insights_table,
    page_range,
    remaining_budget,
    same_day_distribution,
    spending_patterns,
    time_window_bounds,
    weekly_series,
    window_is_paginated,
)
from schemas import ExpenseRecord

NOW = datetime.datetime(2026, 3, 18, 15, 30, tzinfo=datetime.timezone.utc)


def _expense(expense_id: str, amount: float, category: str | None, created_at: datetime.datetime) -> dict:
    return {
        "id": expense_id,
        "amount": amount,
        "description": f"expense {expense_id}",
        "category_id": category,
        "created_at": created_at.isoformat(),
    }


def _sample_df() -> pd.DataFrame:
    day0 = NOW - datetime.timedelta(hours=2)
    return expenses_frame(
        [
            _expense("1", 100.0, "catA", day0),
            _expense("2", 50.0, "catA", day0),
            _expense("3", 30.0, "catB", day0),
        ]
    )


def test_expenses_frame_accepts_models_and_rows() -> None:
    record = ExpenseRecord(id="x", amount=12.5, description="Lunch", category_id="food", created_at=NOW)
    out = expenses_frame([record, _expense("y", 3.0, None, NOW)])

    assert list(out.columns) == ["Id", "Amount", "Description", "CategoryId", "CreatedAt"]
    assert out["Amount"].sum() == 15.5
    assert str(out["CreatedAt"].dt.tz) == "UTC"


def test_expenses_frame_empty_has_columns() -> None:
    out = expenses_frame([])
    assert out.empty
    assert "CreatedAt" in out.columns


def test_end_to_end_category_and_daily_totals() -> None:
    df = _sample_df()

    assert category_totals(df) == {"catA": 150.0, "catB": 30.0}
    assert daily_total(df, now=NOW) == 180.0


def test_category_totals_buckets_missing_categories() -> None:
    df = expenses_frame(
        [
            _expense("1", 10.0, None, NOW),
            _expense("2", 5.0, "", NOW),
            _expense("3", 7.5, "food", NOW),
        ]
    )

    totals = category_totals(df)

    assert totals[UNCATEGORIZED] == 15.0
    assert sum(totals.values()) == df["Amount"].sum()


def test_time_window_bounds_are_half_open_days() -> None:
    start, end = time_window_bounds("daily", now=NOW)
    assert start == pd.Timestamp("2026-03-18", tz="UTC")
    assert end == pd.Timestamp("2026-03-19", tz="UTC")

    start, _ = time_window_bounds("weekly", now=NOW)
    assert start == pd.Timestamp("2026-03-11", tz="UTC")

    start, _ = time_window_bounds("monthly", now=NOW)
    assert start == pd.Timestamp("2026-02-18", tz="UTC")

    start, _ = time_window_bounds("recent", now=NOW)
    assert start == pd.Timestamp("2025-12-18", tz="UTC")


def test_unknown_window_falls_back_to_daily() -> None:
    assert time_window_bounds("fortnightly", now=NOW) == time_window_bounds("daily", now=NOW)


def test_time_window_uses_configured_zone() -> None:
    late_evening = datetime.datetime(2026, 3, 18, 23, 30, tzinfo=datetime.timezone.utc)
    start, _ = time_window_bounds("daily", now=late_evening, tz="Europe/Zurich")
    assert start == pd.Timestamp("2026-03-19", tz="Europe/Zurich")


def test_page_range_and_pagination() -> None:
    assert page_range(1, 20) == (0, 19)
    assert page_range(3, 10) == (20, 29)
    assert not window_is_paginated("daily")
    assert window_is_paginated("weekly")


def test_filter_by_time_window_excludes_yesterday() -> None:
    df = expenses_frame(
        [
            _expense("1", 10.0, "a", NOW),
            _expense("2", 20.0, "a", NOW - datetime.timedelta(days=1)),
        ]
    )
    out = filter_by_time_window(df, "daily", now=NOW)
    assert list(out["Id"]) == ["1"]


def test_remaining_budget_never_negative() -> None:
    assert remaining_budget(40.0, 100.0) == 60.0
    assert remaining_budget(140.0, 100.0) == 0.0
    assert remaining_budget(40.0, None) == 0.0


def test_weekly_series_is_zero_filled_and_ends_today() -> None:
    df = expenses_frame([_expense("1", 25.0, "a", NOW - datetime.timedelta(days=2))])

    out = weekly_series(df, now=NOW)

    assert len(out) == 7
    assert out["Date"].iloc[-1] == "2026-03-18"
    assert out["Date"].iloc[0] == "2026-03-12"
    assert out["Amount"].tolist() == [0.0, 0.0, 0.0, 0.0, 25.0, 0.0, 0.0]


def test_weekly_series_empty_frame() -> None:
    out = weekly_series(expenses_frame([]), now=NOW)
    assert len(out) == 7
    assert out["Amount"].sum() == 0.0


def test_expense_stats_uses_active_days() -> None:
    df = expenses_frame(
        [
            _expense("1", 30.0, "a", NOW),
            _expense("2", 10.0, "a", NOW - datetime.timedelta(days=3)),
        ]
    )

    stats = expense_stats(df)

    assert stats["total_spent"] == 40.0
    assert stats["avg_per_day"] == 20.0
    assert stats["highest_day"] == {"date": "2026-03-18", "amount": 30.0}
    assert stats["lowest_day"] == {"date": "2026-03-15", "amount": 10.0}
    assert stats["monthly_projection"] == 600.0


def test_expense_stats_empty() -> None:
    stats = expense_stats(expenses_frame([]))
    assert stats["total_spent"] == 0.0
    assert stats["highest_day"]["date"] == ""


def test_classify_trend_boundaries_are_strict() -> None:
    assert classify_trend(10.0) == "stable"
    assert classify_trend(10.0001) == "increasing"
    assert classify_trend(-10.0) == "stable"
    assert classify_trend(-10.0001) == "decreasing"


def test_category_trends_new_category_scales_by_hundred() -> None:
    df = expenses_frame(
        [
            _expense("1", 40.0, "new", NOW - datetime.timedelta(days=1)),
            _expense("2", 100.0, "old", NOW - datetime.timedelta(days=45)),
            _expense("3", 50.0, "old", NOW - datetime.timedelta(days=2)),
        ]
    )

    out = category_trends(df, now=NOW).set_index("CategoryId")

    assert out.loc["new", "PercentageChange"] == 4000.0
    assert out.loc["new", "Trend"] == "increasing"
    assert out.loc["old", "PreviousAmount"] == 100.0
    assert out.loc["old", "PercentageChange"] == -50.0
    assert out.loc["old", "Trend"] == "decreasing"


def test_spending_patterns_sorted_by_frequency_stable() -> None:
    monday = datetime.datetime(2026, 3, 16, 12, tzinfo=datetime.timezone.utc)
    tuesday = monday + datetime.timedelta(days=1)
    wednesday = monday + datetime.timedelta(days=2)
    df = expenses_frame(
        [
            _expense("1", 10.0, "a", monday),
            _expense("2", 20.0, "a", tuesday),
            _expense("3", 30.0, "a", tuesday),
            _expense("4", 5.0, "a", wednesday),
        ]
    )

    out = spending_patterns(df)

    assert out["Weekday"].tolist() == ["Tuesday", "Monday", "Wednesday"]
    assert out.loc[0, "AverageSpending"] == 25.0
    assert out.loc[0, "Frequency"] == 2


def test_generate_insights_rules_and_priorities() -> None:
    trends = pd.DataFrame(
        [
            {"CategoryId": "food", "PreviousAmount": 100.0, "CurrentAmount": 130.0, "PercentageChange": 30.0, "Trend": "increasing"},
            {"CategoryId": "fun", "PreviousAmount": 100.0, "CurrentAmount": 20.0, "PercentageChange": -80.0, "Trend": "decreasing"},
            {"CategoryId": "bills", "PreviousAmount": 100.0, "CurrentAmount": 105.0, "PercentageChange": 5.0, "Trend": "stable"},
        ]
    )
    patterns = pd.DataFrame([{"Weekday": "Friday", "AverageSpending": 12.0, "Frequency": 6}])

    insights = generate_insights(trends, patterns, now=NOW)

    assert [insight.id for insight in insights] == [
        "cat-trend-fun",
        "achievement-spending-decrease",
        "cat-trend-food",
        "pattern-Friday",
    ]
    assert insights[0].type == "trend"
    assert insights[0].priority == 5
    assert insights[2].type == "warning"
    assert insights[2].metadata["comparison_period"] == "last month"
    assert insights[3].description == "You tend to spend more on Fridays"


def test_generate_insights_ties_keep_input_order() -> None:
    trends = pd.DataFrame(
        [
            {"CategoryId": "b", "PreviousAmount": 10.0, "CurrentAmount": 13.0, "PercentageChange": 30.0, "Trend": "increasing"},
            {"CategoryId": "a", "PreviousAmount": 10.0, "CurrentAmount": 13.0, "PercentageChange": 25.0, "Trend": "increasing"},
        ]
    )

    insights = generate_insights(trends, pd.DataFrame(columns=["Weekday", "AverageSpending", "Frequency"]), now=NOW)

    assert [insight.id for insight in insights] == ["cat-trend-b", "cat-trend-a"]


def test_generate_insights_pattern_needs_more_than_five_visits() -> None:
    patterns = pd.DataFrame([{"Weekday": "Sunday", "AverageSpending": 9.0, "Frequency": 5}])
    trends = pd.DataFrame(columns=["CategoryId", "PreviousAmount", "CurrentAmount", "PercentageChange", "Trend"])

    assert generate_insights(trends, patterns, now=NOW) == []
    assert insights_table([]).empty


def test_expense_stats_with_unparseable_dates_is_empty() -> None:
    df = expenses_frame([{"id": "1", "amount": 5.0, "description": "x", "created_at": "garbage"}])

    stats = expense_stats(df)

    assert stats["total_spent"] == 0.0
    assert stats["avg_per_day"] == 0.0


def test_same_day_distribution_shares_sum_to_hundred() -> None:
    df = expenses_frame(
        [
            _expense("1", 30.0, "food", NOW),
            _expense("2", 10.0, None, NOW - datetime.timedelta(hours=3)),
            _expense("3", 60.0, "food", NOW - datetime.timedelta(hours=1)),
            _expense("4", 99.0, "food", NOW - datetime.timedelta(days=1)),
        ]
    )

    out = same_day_distribution(df, NOW).set_index("CategoryId")

    assert out.loc["food", "Amount"] == 90.0
    assert out.loc["food", "Percentage"] == 90.0
    assert out.loc[UNCATEGORIZED, "Percentage"] == 10.0
    assert same_day_distribution(expenses_frame([]), NOW).empty


def test_category_weekly_series_keeps_one_category() -> None:
    df = expenses_frame(
        [
            _expense("1", 30.0, "food", NOW),
            _expense("2", 12.0, "food", NOW - datetime.timedelta(days=3)),
            _expense("3", 50.0, "fun", NOW),
            _expense("4", 70.0, "food", NOW - datetime.timedelta(days=9)),
        ]
    )

    out = category_weekly_series(df, "food", now=NOW)

    assert len(out) == 7
    assert out["Date"].iloc[-1] == "2026-03-18"
    assert out["Amount"].tolist() == [0.0, 0.0, 0.0, 12.0, 0.0, 0.0, 30.0]
    assert category_weekly_series(df, "missing", now=NOW)["Amount"].sum() == 0.0
