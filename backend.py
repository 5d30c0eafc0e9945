"""Thin Supabase client: PostgREST table access and GoTrue auth over requests."""

from __future__ import annotations

import logging
from typing import Any, Callable

import requests

logger = logging.getLogger(__name__)

SIGNED_IN = "SIGNED_IN"
SIGNED_OUT = "SIGNED_OUT"
TOKEN_REFRESHED = "TOKEN_REFRESHED"
USER_UPDATED = "USER_UPDATED"
USER_DELETED = "USER_DELETED"
PASSWORD_RECOVERY = "PASSWORD_RECOVERY"

NO_ROWS_CODE = "PGRST116"

AuthCallback = Callable[[str, Any], None]

POSTGREST_OPERATORS = {"eq", "neq", "gt", "gte", "lt", "lte", "like", "ilike", "is", "in", "not"}


class BackendError(Exception):
    """A failed backend request (HTTP error, network failure or bad payload)."""

    def __init__(self, message: str, code: str = "", status: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.status = status

    def __str__(self) -> str:
        if self.code:
            return f"{self.message} ({self.code})"
        return self.message


class Subscription:
    def __init__(self, unsubscribe: Callable[[], None]) -> None:
        self._unsubscribe = unsubscribe

    def unsubscribe(self) -> None:
        self._unsubscribe()


def _safe_json_response(response: requests.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return {}


def _error_from_response(response: requests.Response) -> BackendError:
    payload = _safe_json_response(response)
    if not isinstance(payload, dict):
        payload = {}
    message = (
        payload.get("message")
        or payload.get("msg")
        or payload.get("error_description")
        or payload.get("error")
        or f"HTTP {response.status_code}"
    )
    code = str(payload.get("code") or payload.get("error_code") or "")
    return BackendError(str(message), code=code, status=response.status_code)


class SupabaseClient:
    def __init__(
        self,
        url: str,
        anon_key: str,
        timeout: float = 8.0,
        session: requests.Session | None = None,
    ) -> None:
        self.url = url.rstrip("/")
        self.anon_key = anon_key
        self.timeout = timeout
        self.http = session or requests.Session()
        self.session: dict[str, Any] | None = None
        self._listeners: list[AuthCallback] = []

    def on_auth_state_change(self, callback: AuthCallback) -> Subscription:
        self._listeners.append(callback)

        def _remove() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return Subscription(_remove)

    def _emit(self, event: str) -> None:
        logger.info("Auth event %s", event)
        for callback in list(self._listeners):
            callback(event, self.session)

    def _headers(self, extra: dict[str, str] | None = None) -> dict[str, str]:
        token = (self.session or {}).get("access_token") or self.anon_key
        headers = {
            "apikey": self.anon_key,
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }
        if extra:
            headers.update(extra)
        return headers

    def _request(
        self,
        method: str,
        path: str,
        params: Any = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        try:
            response = self.http.request(
                method,
                f"{self.url}{path}",
                params=params,
                json=json,
                headers=self._headers(headers),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.error("%s %s failed: %s", method, path, exc)
            raise BackendError(f"Network error: {exc}") from exc

        if not response.ok:
            error = _error_from_response(response)
            logger.error("%s %s returned %s: %s", method, path, response.status_code, error)
            raise error
        if response.status_code == 204 or not response.content:
            return None
        return _safe_json_response(response)

    @staticmethod
    def _filter_params(filters: dict[str, Any] | None) -> list[tuple[str, str]]:
        params: list[tuple[str, str]] = []
        for column, conditions in (filters or {}).items():
            if not isinstance(conditions, (list, tuple)):
                conditions = [conditions]
            for condition in conditions:
                text = str(condition)
                operator = text.split(".", 1)[0] if "." in text else ""
                params.append((column, text if operator in POSTGREST_OPERATORS else f"eq.{text}"))
        return params

    def select(
        self,
        table: str,
        filters: dict[str, Any] | None = None,
        order: str | None = None,
        offset: int | None = None,
        limit: int | None = None,
        single: bool = False,
    ) -> Any:
        """Read rows.

        Filters map a column to a PostgREST condition ('gte.2024-01-01') or a
        list of them; bare values mean equality.
        """
        params = [("select", "*")] + self._filter_params(filters)
        if order:
            params.append(("order", order))
        if offset is not None:
            params.append(("offset", str(int(offset))))
        if limit is not None:
            params.append(("limit", str(int(limit))))
        headers = {"Accept": "application/vnd.pgrst.object+json"} if single else None
        data = self._request("GET", f"/rest/v1/{table}", params=params, headers=headers)
        if single:
            return data
        return data or []

    def insert(self, table: str, rows: dict[str, Any] | list[dict[str, Any]], single: bool = True) -> Any:
        payload = [rows] if isinstance(rows, dict) else list(rows)
        data = self._request(
            "POST",
            f"/rest/v1/{table}",
            json=payload,
            headers={"Prefer": "return=representation"},
        )
        data = data or []
        if single:
            if not data:
                raise BackendError(f"Insert into {table} returned no rows", code=NO_ROWS_CODE)
            return data[0]
        return data

    def update(self, table: str, values: dict[str, Any], filters: dict[str, Any]) -> Any:
        data = self._request(
            "PATCH",
            f"/rest/v1/{table}",
            params=self._filter_params(filters),
            json=values,
            headers={"Prefer": "return=representation"},
        )
        return data or []

    def delete(self, table: str, filters: dict[str, Any]) -> None:
        self._request("DELETE", f"/rest/v1/{table}", params=self._filter_params(filters))

    def _store_session(self, payload: Any) -> dict[str, Any]:
        if not isinstance(payload, dict) or not payload.get("access_token"):
            raise BackendError("Auth response did not contain a session")
        self.session = {
            "access_token": payload["access_token"],
            "refresh_token": payload.get("refresh_token", ""),
            "expires_in": payload.get("expires_in"),
            "user": payload.get("user") or {},
        }
        return self.session

    def sign_up(self, email: str, password: str, data: dict[str, Any] | None = None) -> dict[str, Any]:
        payload = self._request(
            "POST",
            "/auth/v1/signup",
            json={"email": email, "password": password, "data": data or {}},
        )
        # With email confirmation enabled no session comes back yet.
        if isinstance(payload, dict) and payload.get("access_token"):
            self._store_session(payload)
            self._emit(SIGNED_IN)
        return payload or {}

    def sign_in_with_password(self, email: str, password: str) -> dict[str, Any]:
        payload = self._request(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        session = self._store_session(payload)
        self._emit(SIGNED_IN)
        return session

    def refresh_session(self) -> dict[str, Any]:
        refresh_token = (self.session or {}).get("refresh_token")
        if not refresh_token:
            raise BackendError("No session to refresh")
        payload = self._request(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "refresh_token"},
            json={"refresh_token": refresh_token},
        )
        session = self._store_session(payload)
        self._emit(TOKEN_REFRESHED)
        return session

    def get_user(self) -> dict[str, Any] | None:
        if not self.session:
            return None
        return self._request("GET", "/auth/v1/user")

    def update_user(self, attributes: dict[str, Any]) -> dict[str, Any]:
        if not self.session:
            raise BackendError("Not signed in")
        user = self._request("PUT", "/auth/v1/user", json=attributes) or {}
        self.session["user"] = user
        self._emit(USER_UPDATED)
        return user

    def reset_password_for_email(self, email: str) -> None:
        self._request("POST", "/auth/v1/recover", json={"email": email})

    def sign_out(self) -> None:
        try:
            if self.session:
                self._request("POST", "/auth/v1/logout")
        finally:
            self.session = None
            self._emit(SIGNED_OUT)
