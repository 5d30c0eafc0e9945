"""Savings goal progress and completion helpers."""

from __future__ import annotations

import datetime
import math

import pandas as pd
from pydantic import BaseModel

from schemas import Achievement, GoalProgress, SavingsGoal, SavingsTransaction, utc_now

SECONDS_PER_DAY = 24 * 60 * 60


class SavingsUpdate(BaseModel):
    goal: SavingsGoal
    achievement: Achievement | None = None


def _as_datetime(now: datetime.datetime | None) -> datetime.datetime:
    if now is None:
        return utc_now()
    if now.tzinfo is None:
        return now.replace(tzinfo=datetime.timezone.utc)
    return now


def _ceil_days(delta: datetime.timedelta) -> int:
    return math.ceil(delta.total_seconds() / SECONDS_PER_DAY)


def empty_progress(now: datetime.datetime | None = None) -> GoalProgress:
    return GoalProgress(
        percentage_complete=0.0,
        days_remaining=0,
        is_on_track=False,
        projected_completion=_as_datetime(now),
        required_daily_savings=0.0,
        current_daily_savings=0.0,
    )


def goal_progress(goal: SavingsGoal, now: datetime.datetime | None = None) -> GoalProgress:
    """Linear progress projection for a savings goal.

    Past-due goals are reported through `days_remaining <= 0` and
    `is_past_due`; the required daily rate is 0 for them.
    """
    now = _as_datetime(now)
    target = float(goal.target_amount)
    current = float(goal.current_amount)

    total_days = _ceil_days(goal.target_date - goal.start_date)
    days_remaining = _ceil_days(goal.target_date - now)
    percentage_complete = current / target * 100.0 if target else 0.0

    days_passed = total_days - days_remaining
    current_daily = current / days_passed if days_passed > 0 else 0.0
    required_daily = (target - current) / days_remaining if days_remaining > 0 else 0.0

    if current_daily > 0:
        projected_days = math.ceil((target - current) / current_daily)
    else:
        projected_days = total_days

    return GoalProgress(
        percentage_complete=percentage_complete,
        days_remaining=days_remaining,
        is_on_track=current_daily >= required_daily,
        projected_completion=now + datetime.timedelta(days=projected_days),
        required_daily_savings=required_daily,
        current_daily_savings=current_daily,
        is_past_due=days_remaining <= 0 and current < target,
    )


def completion_achievement(goal: SavingsGoal, now: datetime.datetime | None = None) -> Achievement:
    return Achievement(
        type="completion",
        title="Goal Achieved!",
        description=f"Congratulations! You've reached your savings goal: {goal.title}",
        icon="🏆",
        achieved_at=_as_datetime(now),
    )


def check_completion(goal: SavingsGoal, now: datetime.datetime | None = None) -> SavingsUpdate:
    """Move an active goal that reached its target to completed."""
    if goal.status == "active" and goal.current_amount >= goal.target_amount:
        completed = goal.model_copy(update={"status": "completed"})
        return SavingsUpdate(goal=completed, achievement=completion_achievement(completed, now))
    return SavingsUpdate(goal=goal)


def apply_savings_transaction(
    goal: SavingsGoal,
    transaction: SavingsTransaction,
    now: datetime.datetime | None = None,
) -> SavingsUpdate:
    """Add a transaction to the goal and re-evaluate completion."""
    if transaction.goal_id != goal.id:
        raise ValueError(f"Transaction belongs to goal {transaction.goal_id}, not {goal.id}")
    updated = goal.model_copy(update={"current_amount": goal.current_amount + transaction.amount})
    return check_completion(updated, now)


def goals_table(goals: list[SavingsGoal], now: datetime.datetime | None = None) -> pd.DataFrame:
    """Goals with progress columns for display (percentage clamped to 100)."""
    columns = [
        "Goal",
        "Status",
        "Target",
        "Saved",
        "ProgressPct",
        "DaysRemaining",
        "RequiredDaily",
        "CurrentDaily",
        "OnTrack",
        "PastDue",
    ]
    if not goals:
        return pd.DataFrame(columns=columns)

    rows = []
    for goal in goals:
        progress = goal_progress(goal, now)
        rows.append(
            {
                "Goal": goal.title,
                "Status": goal.status,
                "Target": float(goal.target_amount),
                "Saved": float(goal.current_amount),
                "ProgressPct": min(progress.percentage_complete, 100.0),
                "DaysRemaining": progress.days_remaining,
                "RequiredDaily": round(progress.required_daily_savings, 2),
                "CurrentDaily": round(progress.current_daily_savings, 2),
                "OnTrack": progress.is_on_track,
                "PastDue": progress.is_past_due,
            }
        )
    return pd.DataFrame(rows, columns=columns)
