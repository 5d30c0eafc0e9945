"""Analytics helpers for spending windows, trends, patterns and insights."""

from __future__ import annotations

import datetime
import logging
from typing import Any, Iterable

import pandas as pd

from schemas import SpendingInsight

logger = logging.getLogger(__name__)

UNCATEGORIZED = "uncategorized"
TIME_WINDOWS = ("daily", "weekly", "monthly", "recent")
EXPENSE_COLUMNS = ["Id", "Amount", "Description", "CategoryId", "CreatedAt"]
TREND_COLUMNS = ["CategoryId", "PreviousAmount", "CurrentAmount", "PercentageChange", "Trend"]
PATTERN_COLUMNS = ["Weekday", "AverageSpending", "Frequency"]

TREND_THRESHOLD_PCT = 10.0
INSIGHT_CHANGE_PCT = 20.0
INSIGHT_HIGH_CHANGE_PCT = 50.0
PATTERN_MIN_FREQUENCY = 5


def _record_dict(record: Any) -> dict[str, Any]:
    if hasattr(record, "model_dump"):
        return record.model_dump()
    return dict(record)


def expenses_frame(records: Iterable[Any]) -> pd.DataFrame:
    """Build the analytics frame from expense records or raw rows."""
    rows = [_record_dict(record) for record in records or []]
    if not rows:
        out = pd.DataFrame(columns=EXPENSE_COLUMNS)
        out["Amount"] = out["Amount"].astype(float)
        out["CreatedAt"] = pd.to_datetime(out["CreatedAt"], utc=True)
        return out

    out = pd.DataFrame(
        {
            "Id": [str(row.get("id", "")) for row in rows],
            "Amount": [row.get("amount") for row in rows],
            "Description": [row.get("description", "") for row in rows],
            "CategoryId": [row.get("category_id") for row in rows],
            "CreatedAt": [row.get("created_at") for row in rows],
        }
    )
    out["Amount"] = pd.to_numeric(out["Amount"], errors="coerce").fillna(0.0).astype(float)
    out["CreatedAt"] = pd.to_datetime(out["CreatedAt"], utc=True, errors="coerce")
    return out


def _now(now=None, tz: str = "UTC") -> pd.Timestamp:
    stamp = pd.Timestamp.now(tz="UTC") if now is None else pd.Timestamp(now)
    if stamp.tzinfo is None:
        stamp = stamp.tz_localize("UTC")
    return stamp.tz_convert(tz)


def _local_days(df: pd.DataFrame, tz: str) -> pd.Series:
    return df["CreatedAt"].dt.tz_convert(tz).dt.date


def time_window_bounds(window: str, now=None, tz: str = "UTC") -> tuple[pd.Timestamp, pd.Timestamp]:
    """Half-open [start, end) bounds for a named time window.

    Unknown keywords fall back to the daily window.
    """
    today = _now(now, tz).normalize()
    tomorrow = today + pd.DateOffset(days=1)

    if window == "weekly":
        start = today - pd.DateOffset(days=7)
    elif window == "monthly":
        start = today - pd.DateOffset(months=1)
    elif window == "recent":
        start = today - pd.DateOffset(days=90)
    else:
        if window != "daily":
            logger.debug("Unknown time window %r, using daily", window)
        start = today
    return start, tomorrow


def window_is_paginated(window: str) -> bool:
    return window in TIME_WINDOWS and window != "daily"


def page_range(page: int = 1, page_size: int = 20) -> tuple[int, int]:
    """Inclusive (first, last) row indices for a 1-based page."""
    page = max(int(page), 1)
    page_size = max(int(page_size), 1)
    return (page - 1) * page_size, page * page_size - 1


def filter_by_time_window(df: pd.DataFrame, window: str, now=None, tz: str = "UTC") -> pd.DataFrame:
    """Keep rows whose CreatedAt falls inside the window."""
    start, end = time_window_bounds(window, now=now, tz=tz)
    mask = (df["CreatedAt"] >= start) & (df["CreatedAt"] < end)
    return df.loc[mask].copy()


def _category_key(value: Any) -> str:
    if value is None or pd.isna(value):
        return UNCATEGORIZED
    return str(value).strip() or UNCATEGORIZED


def _category_keys(df: pd.DataFrame) -> pd.Series:
    return df["CategoryId"].map(_category_key)


def category_totals(df: pd.DataFrame) -> dict[str, float]:
    """Sum amounts per category; missing categories go to the uncategorized bucket."""
    if df.empty:
        return {}
    totals = df.groupby(_category_keys(df), sort=False)["Amount"].sum()
    return {str(key): float(value) for key, value in totals.items()}


def daily_total(df: pd.DataFrame, now=None, tz: str = "UTC") -> float:
    return float(filter_by_time_window(df, "daily", now=now, tz=tz)["Amount"].sum())


def remaining_budget(spent_today: float, daily_limit: float | None) -> float:
    if not daily_limit:
        return 0.0
    return max(0.0, float(daily_limit) - float(spent_today))


def weekly_series(df: pd.DataFrame, now=None, tz: str = "UTC") -> pd.DataFrame:
    """Seven daily totals ending today, oldest first, zero-filled."""
    today = _now(now, tz).date()
    days = [today - datetime.timedelta(days=offset) for offset in range(6, -1, -1)]

    if df.empty:
        per_day = pd.Series(dtype=float)
    else:
        per_day = df.groupby(_local_days(df, tz))["Amount"].sum()
    amounts = per_day.reindex(days, fill_value=0.0).astype(float)

    return pd.DataFrame(
        {
            "Date": [day.isoformat() for day in days],
            "Amount": amounts.values,
        }
    )


def same_day_distribution(df: pd.DataFrame, created_at, tz: str = "UTC") -> pd.DataFrame:
    """Category split of every expense on the same local day as `created_at`."""
    columns = ["CategoryId", "Amount", "Percentage"]
    if df.empty:
        return pd.DataFrame(columns=columns)

    day = _now(created_at, tz).date()
    totals = category_totals(df.loc[_local_days(df, tz) == day])
    grand_total = sum(totals.values())
    if not totals or not grand_total:
        return pd.DataFrame(columns=columns)

    out = pd.DataFrame({"CategoryId": list(totals), "Amount": list(totals.values())})
    out["Percentage"] = out["Amount"] / grand_total * 100.0
    return out


def category_weekly_series(df: pd.DataFrame, category_id, now=None, tz: str = "UTC") -> pd.DataFrame:
    """`weekly_series` restricted to one category (missing ids share the uncategorized bucket)."""
    if df.empty:
        return weekly_series(df, now=now, tz=tz)
    return weekly_series(df.loc[_category_keys(df) == _category_key(category_id)], now=now, tz=tz)


def _empty_stats() -> dict[str, object]:
    return {
        "total_spent": 0.0,
        "avg_per_day": 0.0,
        "highest_day": {"date": "", "amount": 0.0},
        "lowest_day": {"date": "", "amount": 0.0},
        "monthly_projection": 0.0,
    }


def expense_stats(df: pd.DataFrame, tz: str = "UTC") -> dict[str, object]:
    """Totals, active-day average, best/worst day and a 30-day projection."""
    if df.empty:
        return _empty_stats()

    per_day = df.groupby(_local_days(df, tz))["Amount"].sum().sort_index()
    if per_day.empty:
        return _empty_stats()
    total = float(per_day.sum())
    avg = total / len(per_day)
    highest_date = per_day.idxmax()
    lowest_date = per_day.idxmin()

    return {
        "total_spent": total,
        "avg_per_day": avg,
        "highest_day": {"date": highest_date.isoformat(), "amount": float(per_day[highest_date])},
        "lowest_day": {"date": lowest_date.isoformat(), "amount": float(per_day[lowest_date])},
        "monthly_projection": avg * 30,
    }


def classify_trend(percentage_change: float, threshold: float = TREND_THRESHOLD_PCT) -> str:
    if percentage_change > threshold:
        return "increasing"
    if percentage_change < -threshold:
        return "decreasing"
    return "stable"


def category_trends(df: pd.DataFrame, now=None, window_days: int = 30) -> pd.DataFrame:
    """Trailing-window spend per category against everything older.

    A category with no previous spend divides by 1, so new spending shows up
    as current * 100 percent.
    """
    if df.empty:
        return pd.DataFrame(columns=TREND_COLUMNS)

    cutoff = _now(now) - pd.Timedelta(days=window_days)
    work = df.copy()
    work["Key"] = _category_keys(work)
    is_current = work["CreatedAt"] >= cutoff
    work["Current"] = work["Amount"].where(is_current, 0.0)
    work["Previous"] = work["Amount"].where(~is_current, 0.0)

    grouped = work.groupby("Key", sort=False)[["Previous", "Current"]].sum()
    out = pd.DataFrame(
        {
            "CategoryId": grouped.index.astype(str),
            "PreviousAmount": grouped["Previous"].astype(float).values,
            "CurrentAmount": grouped["Current"].astype(float).values,
        }
    )
    denominator = out["PreviousAmount"].where(out["PreviousAmount"] != 0, 1.0)
    out["PercentageChange"] = (out["CurrentAmount"] - out["PreviousAmount"]) / denominator * 100.0
    out["Trend"] = out["PercentageChange"].map(classify_trend)
    return out.reset_index(drop=True)


def spending_patterns(df: pd.DataFrame, tz: str = "UTC") -> pd.DataFrame:
    """Average spend and frequency per weekday, most frequent first."""
    if df.empty:
        return pd.DataFrame(columns=PATTERN_COLUMNS)

    weekday = df["CreatedAt"].dt.tz_convert(tz).dt.day_name()
    grouped = df.groupby(weekday, sort=False)["Amount"].agg(["sum", "count"])
    out = pd.DataFrame(
        {
            "Weekday": grouped.index.astype(str),
            "AverageSpending": (grouped["sum"] / grouped["count"]).astype(float).values,
            "Frequency": grouped["count"].astype(int).values,
        }
    )
    return out.sort_values("Frequency", ascending=False, kind="stable").reset_index(drop=True)


def generate_insights(trends: pd.DataFrame, patterns: pd.DataFrame, now=None) -> list[SpendingInsight]:
    """Advisory messages from trends and weekday patterns, highest priority first."""
    created_at = _now(now).to_pydatetime()
    insights: list[SpendingInsight] = []

    for row in trends.itertuples(index=False):
        change = float(row.PercentageChange)
        if abs(change) <= INSIGHT_CHANGE_PCT:
            continue
        increased = change > 0
        insights.append(
            SpendingInsight(
                id=f"cat-trend-{row.CategoryId}",
                type="warning" if increased else "trend",
                title="Spending Increase Alert" if increased else "Spending Decrease Noticed",
                description=(
                    f"Spending in this category has {'increased' if increased else 'decreased'} "
                    f"by {abs(change):.1f}% compared to last month"
                ),
                priority=5 if abs(change) > INSIGHT_HIGH_CHANGE_PCT else 3,
                category_id=str(row.CategoryId),
                metadata={
                    "percentage_change": change,
                    "comparison_period": "last month",
                    "current_value": float(row.CurrentAmount),
                },
                created_at=created_at,
            )
        )

    for row in patterns.itertuples(index=False):
        if int(row.Frequency) > PATTERN_MIN_FREQUENCY and float(row.AverageSpending) > 0:
            insights.append(
                SpendingInsight(
                    id=f"pattern-{row.Weekday}",
                    type="trend",
                    title="Spending Pattern Detected",
                    description=f"You tend to spend more on {row.Weekday}s",
                    priority=2,
                    metadata={"current_value": float(row.AverageSpending)},
                    created_at=created_at,
                )
            )

    total_current = float(trends["CurrentAmount"].sum()) if not trends.empty else 0.0
    total_previous = float(trends["PreviousAmount"].sum()) if not trends.empty else 0.0
    if total_current < total_previous and total_previous > 0:
        insights.append(
            SpendingInsight(
                id="achievement-spending-decrease",
                type="achievement",
                title="Spending Reduction Achievement",
                description="Your overall spending has decreased compared to last month!",
                priority=4,
                metadata={"percentage_change": (total_previous - total_current) / total_previous * 100.0},
                created_at=created_at,
            )
        )

    # sorted() is stable, ties keep rule order.
    return sorted(insights, key=lambda insight: -insight.priority)


def insights_table(insights: list[SpendingInsight]) -> pd.DataFrame:
    """Flatten insights for tabular display."""
    if not insights:
        return pd.DataFrame(columns=["Priority", "Type", "Title", "Description", "CategoryId"])
    return pd.DataFrame(
        [
            {
                "Priority": insight.priority,
                "Type": insight.type,
                "Title": insight.title,
                "Description": insight.description,
                "CategoryId": insight.category_id or "",
            }
            for insight in insights
        ]
    )
