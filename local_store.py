"""JSON-file persistence used when no Supabase project is configured."""

from __future__ import annotations

import datetime
import json
import logging
import uuid
from pathlib import Path
from typing import Any

import pandas as pd

from backend import SIGNED_IN, SIGNED_OUT, BackendError, Subscription

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES = [
    {"id": "food-dining", "name": "Food & Dining", "icon": "🍽️", "color": "#f97316"},
    {"id": "transportation", "name": "Transportation", "icon": "🚗", "color": "#3b82f6"},
    {"id": "shopping", "name": "Shopping", "icon": "🛍️", "color": "#ec4899"},
    {"id": "entertainment", "name": "Entertainment", "icon": "🎬", "color": "#8b5cf6"},
    {"id": "bills-utilities", "name": "Bills & Utilities", "icon": "💡", "color": "#eab308"},
    {"id": "other", "name": "Other", "icon": "📦", "color": "#6b7280"},
]

SESSION_KEY = "session"


def _load_payload(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    payload = json.loads(path.read_text(encoding="utf-8") or "{}")
    if not isinstance(payload, dict):
        return {}
    return payload


def _save_payload(path: Path, payload: dict[str, Any]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2, ensure_ascii=True, default=str), encoding="utf-8")
    return path


def _timestamp(value: Any) -> pd.Timestamp:
    """UTC timestamp for a stored value; NaT when it cannot be parsed."""
    stamp = pd.to_datetime(value, utc=True, errors="coerce")
    return pd.NaT if stamp is None else stamp


def _sort_key(value: Any) -> float:
    stamp = _timestamp(value)
    return float("-inf") if pd.isna(stamp) else stamp.timestamp()


def _new_id() -> str:
    return str(uuid.uuid4())


def _now_iso() -> str:
    return datetime.datetime.now(datetime.timezone.utc).isoformat()


def save_local_session(path: str, session: dict[str, Any]) -> Path:
    target = Path(path).expanduser()
    payload = _load_payload(target)
    payload[SESSION_KEY] = session
    return _save_payload(target, payload)


def load_local_session(path: str) -> dict[str, Any] | None:
    session = _load_payload(Path(path).expanduser()).get(SESSION_KEY)
    return session if isinstance(session, dict) else None


def clear_local_session(path: str) -> None:
    target = Path(path).expanduser()
    payload = _load_payload(target)
    if payload.pop(SESSION_KEY, None) is not None:
        _save_payload(target, payload)


class LocalRepository:
    """Same surface as SupabaseRepository, keyed by user id inside one JSON file."""

    def __init__(self, path: str) -> None:
        self.path = Path(path).expanduser()

    def _rows(self, key: str) -> list[dict[str, Any]]:
        rows = _load_payload(self.path).get(key, [])
        return [row for row in rows if isinstance(row, dict)] if isinstance(rows, list) else []

    def _append(self, key: str, row: dict[str, Any]) -> dict[str, Any]:
        payload = _load_payload(self.path)
        payload.setdefault(key, []).insert(0, row)
        _save_payload(self.path, payload)
        return row

    def _update_where(self, prefix: str, row_id: str, values: dict[str, Any]) -> dict[str, Any]:
        payload = _load_payload(self.path)
        for key, rows in payload.items():
            if not key.startswith(prefix) or not isinstance(rows, list):
                continue
            for row in rows:
                if isinstance(row, dict) and row.get("id") == row_id:
                    row.update(values)
                    _save_payload(self.path, payload)
                    return row
        raise BackendError(f"Row {row_id} not found", code="PGRST116")

    def fetch_expenses(
        self,
        user_id: str,
        start: datetime.datetime,
        end: datetime.datetime,
        offset: int | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        lower, upper = _timestamp(start), _timestamp(end)
        rows = []
        for row in self._rows(f"expenses_{user_id}"):
            created = _timestamp(row.get("created_at"))
            if pd.isna(created):
                logger.warning("Skipping expense %s with unreadable created_at %r", row.get("id"), row.get("created_at"))
            elif lower <= created < upper:
                rows.append(row)
        rows.sort(key=lambda row: _sort_key(row.get("created_at")), reverse=True)
        if offset is not None:
            rows = rows[int(offset):]
        if limit is not None:
            rows = rows[: int(limit)]
        return rows

    def insert_expense(self, user_id: str, values: dict[str, Any]) -> dict[str, Any]:
        row = {"id": _new_id(), "created_at": _now_iso(), **values, "user_id": user_id}
        return self._append(f"expenses_{user_id}", row)

    def clear_old_expenses(self, user_id: str, now: datetime.datetime | None = None, tz: str = "UTC") -> int:
        """Drop expenses created before today; returns how many were removed."""
        today = _timestamp(now or datetime.datetime.now(datetime.timezone.utc)).tz_convert(tz).normalize()
        key = f"expenses_{user_id}"
        payload = _load_payload(self.path)
        rows = payload.get(key, [])
        kept = [row for row in rows if _timestamp(row.get("created_at")) >= today]
        payload[key] = kept
        _save_payload(self.path, payload)
        return len(rows) - len(kept)

    def fetch_categories(self) -> list[dict[str, Any]]:
        rows = self._rows("categories") or DEFAULT_CATEGORIES
        return sorted(rows, key=lambda row: str(row.get("name", "")))

    def fetch_user_settings(self, user_id: str) -> dict[str, Any] | None:
        settings = _load_payload(self.path).get(f"settings_{user_id}")
        return settings if isinstance(settings, dict) else None

    def insert_user_settings(self, values: dict[str, Any]) -> dict[str, Any]:
        payload = _load_payload(self.path)
        payload[f"settings_{values['user_id']}"] = dict(values)
        _save_payload(self.path, payload)
        return dict(values)

    def update_user_settings(self, user_id: str, values: dict[str, Any]) -> dict[str, Any]:
        payload = _load_payload(self.path)
        key = f"settings_{user_id}"
        if not isinstance(payload.get(key), dict):
            raise BackendError("User settings not found", code="PGRST116")
        payload[key].update(values)
        _save_payload(self.path, payload)
        return payload[key]

    def fetch_goals(self, user_id: str) -> list[dict[str, Any]]:
        return self._rows(f"goals_{user_id}")

    def insert_goal(self, values: dict[str, Any]) -> dict[str, Any]:
        row = {"id": _new_id(), "created_at": _now_iso(), **values}
        return self._append(f"goals_{values.get('user_id', '')}", row)

    def update_goal(self, goal_id: str, values: dict[str, Any]) -> dict[str, Any]:
        return self._update_where("goals_", goal_id, values)

    def delete_goal(self, goal_id: str) -> None:
        payload = _load_payload(self.path)
        for key, rows in payload.items():
            if key.startswith("goals_") and isinstance(rows, list):
                payload[key] = [row for row in rows if row.get("id") != goal_id]
        _save_payload(self.path, payload)

    def insert_savings_transaction(self, values: dict[str, Any]) -> dict[str, Any]:
        row = {"id": _new_id(), "created_at": _now_iso(), **values}
        return self._append(f"savings_transactions_{values.get('user_id', '')}", row)

    def fetch_savings_transactions(self, goal_id: str) -> list[dict[str, Any]]:
        payload = _load_payload(self.path)
        rows = [
            row
            for key, items in payload.items()
            if key.startswith("savings_transactions_") and isinstance(items, list)
            for row in items
            if row.get("goal_id") == goal_id
        ]
        return sorted(rows, key=lambda row: _sort_key(row.get("transaction_date")), reverse=True)

    def insert_achievement(self, user_id: str, values: dict[str, Any]) -> dict[str, Any]:
        row = {"id": _new_id(), **values}
        return self._append(f"achievements_{user_id}", row)

    def fetch_achievements(self, user_id: str) -> list[dict[str, Any]]:
        return self._rows(f"achievements_{user_id}")


class LocalAuthClient:
    """Username-only sign-in for the local build; the session lives in the JSON file."""

    def __init__(self, path: str) -> None:
        self.path = path
        self.session: dict[str, Any] | None = None
        self._listeners: list = []

    def on_auth_state_change(self, callback) -> Subscription:
        self._listeners.append(callback)

        def _remove() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return Subscription(_remove)

    def _emit(self, event: str) -> None:
        for callback in list(self._listeners):
            callback(event, self.session)

    def sign_in(self, username: str) -> dict[str, Any]:
        name = str(username or "").strip()
        if not name:
            raise BackendError("Username is required")
        self.session = {"access_token": "", "user": {"id": name, "user_metadata": {"username": name}}}
        save_local_session(self.path, self.session)
        self._emit(SIGNED_IN)
        return self.session

    def restore(self) -> dict[str, Any] | None:
        """Re-emit SIGNED_IN for a session saved by an earlier run."""
        self.session = load_local_session(self.path)
        if self.session:
            self._emit(SIGNED_IN)
        return self.session

    def sign_out(self) -> None:
        self.session = None
        clear_local_session(self.path)
        self._emit(SIGNED_OUT)
