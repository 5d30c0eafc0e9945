"""Auth event handling: user/session/settings state plus the route to show."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from backend import (
    PASSWORD_RECOVERY,
    SIGNED_IN,
    SIGNED_OUT,
    TOKEN_REFRESHED,
    USER_UPDATED,
    BackendError,
)
from schemas import UserSettings

logger = logging.getLogger(__name__)

HOME_ROUTE = "/"
LOGIN_ROUTE = "/login"


@dataclass
class AuthState:
    user: dict[str, Any] | None = None
    session: dict[str, Any] | None = None
    settings: UserSettings | None = None
    route: str = LOGIN_ROUTE
    error: str = ""

    @property
    def user_id(self) -> str:
        return str((self.user or {}).get("id", ""))

    @property
    def signed_in(self) -> bool:
        return bool(self.user_id)


class AuthController:
    def __init__(
        self,
        client,
        repository,
        default_daily_limit: float = 100.0,
        default_currency: str = "USD",
    ) -> None:
        self.client = client
        self.repository = repository
        self.default_daily_limit = default_daily_limit
        self.default_currency = default_currency
        self.state = AuthState()
        self._subscription = client.on_auth_state_change(self.handle_event)

    def load_settings(self, user_id: str) -> UserSettings:
        """Fetch the user's settings, creating defaults on first sign-in."""
        row = self.repository.fetch_user_settings(user_id)
        if row is None:
            logger.info("No settings for %s, creating defaults", user_id)
            row = self.repository.insert_user_settings(
                {
                    "user_id": user_id,
                    "daily_limit": self.default_daily_limit,
                    "currency": self.default_currency,
                }
            )
        settings = UserSettings.model_validate(row)
        self.state.settings = settings
        return settings

    def handle_event(self, event: str, session: dict[str, Any] | None) -> None:
        user = (session or {}).get("user") or None
        self.state.error = ""
        try:
            if event == SIGNED_IN:
                if user:
                    self.state.user = user
                    self.state.session = session
                    self.load_settings(self.state.user_id)
                    self.state.route = HOME_ROUTE
            elif event == SIGNED_OUT:
                self.state.user = None
                self.state.session = None
                self.state.settings = None
                self.state.route = LOGIN_ROUTE
            elif event == TOKEN_REFRESHED:
                if user:
                    self.state.user = user
                    self.state.session = session
                    self.load_settings(self.state.user_id)
            elif event == USER_UPDATED:
                if user:
                    self.state.user = user
            elif event == PASSWORD_RECOVERY:
                logger.info("Password recovery event received")
            else:
                logger.info("Unhandled auth event: %s", event)
        except (BackendError, ValueError):
            logger.exception("Auth state change error (%s)", event)
            self.state.error = "Failed to handle auth state change"

    def update_settings(self, **values: Any) -> UserSettings:
        if not self.state.signed_in:
            raise BackendError("Not signed in")
        row = self.repository.update_user_settings(self.state.user_id, values)
        self.state.settings = UserSettings.model_validate(row)
        return self.state.settings

    def dispose(self) -> None:
        self._subscription.unsubscribe()
