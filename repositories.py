"""Supabase table access returning raw rows."""

from __future__ import annotations

import datetime
from typing import Any

from backend import NO_ROWS_CODE, BackendError, SupabaseClient


def _iso(value: datetime.datetime) -> str:
    return value.isoformat()


class SupabaseRepository:
    """Maps the app tables onto plain methods; validation happens in services."""

    def __init__(self, client: SupabaseClient) -> None:
        self.client = client

    def fetch_expenses(
        self,
        user_id: str,
        start: datetime.datetime,
        end: datetime.datetime,
        offset: int | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        return self.client.select(
            "expenses",
            filters={
                "user_id": f"eq.{user_id}",
                "created_at": [f"gte.{_iso(start)}", f"lt.{_iso(end)}"],
            },
            order="created_at.desc",
            offset=offset,
            limit=limit,
        )

    def insert_expense(self, user_id: str, values: dict[str, Any]) -> dict[str, Any]:
        return self.client.insert("expenses", {**values, "user_id": user_id})

    def fetch_categories(self) -> list[dict[str, Any]]:
        return self.client.select("categories", order="name")

    def fetch_user_settings(self, user_id: str) -> dict[str, Any] | None:
        try:
            return self.client.select("user_settings", filters={"user_id": user_id}, single=True)
        except BackendError as exc:
            if exc.code == NO_ROWS_CODE:
                return None
            raise

    def insert_user_settings(self, values: dict[str, Any]) -> dict[str, Any]:
        return self.client.insert("user_settings", values)

    def update_user_settings(self, user_id: str, values: dict[str, Any]) -> dict[str, Any]:
        rows = self.client.update("user_settings", values, filters={"user_id": user_id})
        if not rows:
            raise BackendError("User settings not found", code=NO_ROWS_CODE)
        return rows[0]

    def fetch_goals(self, user_id: str) -> list[dict[str, Any]]:
        return self.client.select("savings_goals", filters={"user_id": user_id}, order="created_at.desc")

    def insert_goal(self, values: dict[str, Any]) -> dict[str, Any]:
        return self.client.insert("savings_goals", values)

    def update_goal(self, goal_id: str, values: dict[str, Any]) -> dict[str, Any]:
        rows = self.client.update("savings_goals", values, filters={"id": goal_id})
        if not rows:
            raise BackendError(f"Goal {goal_id} not found", code=NO_ROWS_CODE)
        return rows[0]

    def delete_goal(self, goal_id: str) -> None:
        self.client.delete("savings_goals", filters={"id": goal_id})

    def insert_savings_transaction(self, values: dict[str, Any]) -> dict[str, Any]:
        return self.client.insert("savings_transactions", values)

    def fetch_savings_transactions(self, goal_id: str) -> list[dict[str, Any]]:
        return self.client.select(
            "savings_transactions",
            filters={"goal_id": goal_id},
            order="transaction_date.desc",
        )

    def insert_achievement(self, user_id: str, values: dict[str, Any]) -> dict[str, Any]:
        # Rows are scoped to the signed-in user by row-level security.
        return self.client.insert("achievements", values)

    def fetch_achievements(self, user_id: str) -> list[dict[str, Any]]:
        return self.client.select("achievements", order="achieved_at.desc")
