"""Expense and savings-goal services on top of a repository.

Local state only changes after the repository confirms a write; repository
failures surface as BackendError for the UI to report.
"""

from __future__ import annotations

import datetime
import logging
from typing import Any

from backend import BackendError
from goals import SavingsUpdate, apply_savings_transaction, check_completion, empty_progress, goal_progress
from analytics import window_is_paginated
from queries import DEFAULT_PAGE_SIZE, fetch_categories, fetch_expenses_by_window, invalidate_expense_queries
from schemas import (
    Achievement,
    Category,
    ExpenseRecord,
    GoalProgress,
    SavingsGoal,
    SavingsTransaction,
    validate_expense_form,
    validate_goal_form,
    validate_records,
    validate_savings_form,
    utc_now,
)

logger = logging.getLogger(__name__)


class FormError(ValueError):
    """Input rejected by form validation; `messages` are user-facing."""

    def __init__(self, messages: list[str]) -> None:
        super().__init__("; ".join(messages))
        self.messages = messages


class ExpenseService:
    def __init__(self, repository, user_id: str, tz: str = "UTC") -> None:
        self.repository = repository
        self.user_id = user_id
        self.tz = tz

    def expenses(self, window: str, page: int = 1) -> list[ExpenseRecord]:
        result = fetch_expenses_by_window(self.repository, self.user_id, window, page=page, tz=self.tz)
        return list(result.valid)

    def history(self, window: str = "recent", max_pages: int = 50) -> list[ExpenseRecord]:
        """Every expense in a paginated window, walking cached pages until a short one."""
        if not window_is_paginated(window):
            return self.expenses(window)
        rows: list[ExpenseRecord] = []
        for page in range(1, max_pages + 1):
            result = fetch_expenses_by_window(self.repository, self.user_id, window, page=page, tz=self.tz)
            rows.extend(result.valid)
            if len(result.valid) + len(result.rejected) < DEFAULT_PAGE_SIZE:
                break
        return rows

    def add_expense(self, amount: Any, description: str, category_id: str | None) -> ExpenseRecord:
        errors = validate_expense_form(amount, description, category_id)
        if errors:
            raise FormError(errors)

        row = self.repository.insert_expense(
            self.user_id,
            {
                "amount": float(str(amount).replace(",", ".")),
                "description": description.strip(),
                "category_id": category_id,
                "created_at": utc_now().isoformat(),
            },
        )
        expense = ExpenseRecord.model_validate(row)
        invalidate_expense_queries()
        logger.info("Added expense %s for %s", expense.id, self.user_id)
        return expense

    def categories(self) -> list[Category]:
        return list(validate_records(fetch_categories(self.repository), Category).valid)


class GoalsService:
    def __init__(self, repository, user_id: str) -> None:
        self.repository = repository
        self.user_id = user_id
        self._goals: list[SavingsGoal] = []

    def goals(self, refresh: bool = True) -> list[SavingsGoal]:
        if refresh or not self._goals:
            rows = self.repository.fetch_goals(self.user_id)
            self._goals = list(validate_records(rows, SavingsGoal).valid)
        return list(self._goals)

    def _find(self, goal_id: str) -> SavingsGoal | None:
        for goal in self._goals:
            if goal.id == goal_id:
                return goal
        return None

    def _replace(self, goal: SavingsGoal) -> None:
        self._goals = [goal if item.id == goal.id else item for item in self._goals]

    def add_goal(
        self,
        title: str,
        target_amount: Any,
        start_date: datetime.date,
        target_date: datetime.date,
        category_id: str | None = None,
    ) -> SavingsGoal:
        errors = validate_goal_form(title, target_amount, start_date, target_date)
        if errors:
            raise FormError(errors)

        now = utc_now().isoformat()
        row = self.repository.insert_goal(
            {
                "user_id": self.user_id,
                "title": title.strip(),
                "target_amount": float(str(target_amount).replace(",", ".")),
                "current_amount": 0.0,
                "category_id": category_id,
                "start_date": start_date.isoformat(),
                "target_date": target_date.isoformat(),
                "status": "active",
                "created_at": now,
                "updated_at": now,
            }
        )
        goal = SavingsGoal.model_validate(row)
        self._goals.insert(0, goal)
        return goal

    def update_goal(self, goal_id: str, updates: dict[str, Any], now: datetime.datetime | None = None) -> SavingsUpdate:
        """Persist changes, then complete the goal if it reached its target."""
        row = self.repository.update_goal(goal_id, {**updates, "updated_at": utc_now().isoformat()})
        goal = SavingsGoal.model_validate(row)
        self._replace(goal)

        outcome = check_completion(goal, now)
        if outcome.achievement is None:
            return SavingsUpdate(goal=goal)
        return self._complete(outcome)

    def _complete(self, outcome: SavingsUpdate) -> SavingsUpdate:
        row = self.repository.update_goal(outcome.goal.id, {"status": "completed"})
        goal = SavingsGoal.model_validate(row)
        self._replace(goal)
        stored = self.repository.insert_achievement(
            self.user_id, outcome.achievement.model_dump(mode="json", exclude_none=True)
        )
        achievement = Achievement.model_validate(stored)
        logger.info("Goal %s completed", goal.id)
        return SavingsUpdate(goal=goal, achievement=achievement)

    def delete_goal(self, goal_id: str) -> None:
        self.repository.delete_goal(goal_id)
        self._goals = [goal for goal in self._goals if goal.id != goal_id]

    def progress(self, goal_id: str, now: datetime.datetime | None = None) -> GoalProgress:
        goal = self._find(goal_id)
        if goal is None:
            return empty_progress(now)
        return goal_progress(goal, now)

    def record_savings(
        self,
        goal_id: str,
        amount: Any,
        description: str = "",
        transaction_date: datetime.datetime | None = None,
        now: datetime.datetime | None = None,
    ) -> SavingsUpdate:
        """Append a savings transaction and move the goal forward."""
        errors = validate_savings_form(amount)
        if errors:
            raise FormError(errors)
        goal = self._find(goal_id)
        if goal is None:
            self.goals()
            goal = self._find(goal_id)
        if goal is None:
            raise BackendError(f"Goal {goal_id} not found")

        transaction = SavingsTransaction(
            goal_id=goal_id,
            user_id=self.user_id,
            amount=float(str(amount).replace(",", ".")),
            description=description.strip(),
            transaction_date=transaction_date or utc_now(),
        )
        stored = self.repository.insert_savings_transaction(
            transaction.model_dump(mode="json", exclude_none=True)
        )
        transaction = SavingsTransaction.model_validate(stored)

        outcome = apply_savings_transaction(goal, transaction, now)
        row = self.repository.update_goal(
            goal_id,
            {"current_amount": outcome.goal.current_amount, "updated_at": utc_now().isoformat()},
        )
        self._replace(SavingsGoal.model_validate(row))
        if outcome.achievement is None:
            return SavingsUpdate(goal=self._find(goal_id))
        return self._complete(outcome)

    def transactions(self, goal_id: str) -> list[SavingsTransaction]:
        rows = self.repository.fetch_savings_transactions(goal_id)
        return list(validate_records(rows, SavingsTransaction).valid)

    def achievements(self) -> list[Achievement]:
        rows = self.repository.fetch_achievements(self.user_id)
        return list(validate_records(rows, Achievement).valid)
