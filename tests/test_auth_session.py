from unittest.mock import MagicMock

from auth_session import HOME_ROUTE, LOGIN_ROUTE, AuthController
from backend import PASSWORD_RECOVERY, SIGNED_IN, SIGNED_OUT, TOKEN_REFRESHED, USER_UPDATED, BackendError


def _controller(settings_row=None) -> tuple[AuthController, MagicMock, MagicMock]:
    client = MagicMock()
    repository = MagicMock()
    repository.fetch_user_settings.return_value = settings_row
    repository.insert_user_settings.side_effect = lambda values: dict(values)
    return AuthController(client, repository), client, repository


def _session(user_id: str = "u1") -> dict:
    return {"access_token": "tok", "user": {"id": user_id, "email": f"{user_id}@example.com"}}


def test_controller_subscribes_and_disposes() -> None:
    controller, client, _ = _controller()

    client.on_auth_state_change.assert_called_once_with(controller.handle_event)
    controller.dispose()
    client.on_auth_state_change.return_value.unsubscribe.assert_called_once()


def test_sign_in_creates_default_settings_and_routes_home() -> None:
    controller, _, repository = _controller()

    controller.handle_event(SIGNED_IN, _session())

    assert controller.state.signed_in
    assert controller.state.route == HOME_ROUTE
    assert controller.state.settings.daily_limit == 100.0
    assert controller.state.settings.currency == "USD"
    repository.insert_user_settings.assert_called_once_with({"user_id": "u1", "daily_limit": 100.0, "currency": "USD"})


def test_sign_in_uses_existing_settings() -> None:
    controller, _, repository = _controller({"user_id": "u1", "daily_limit": 35.0, "currency": "CHF"})

    controller.handle_event(SIGNED_IN, _session())

    assert controller.state.settings.currency == "CHF"
    repository.insert_user_settings.assert_not_called()


def test_sign_out_clears_state() -> None:
    controller, _, _ = _controller()
    controller.handle_event(SIGNED_IN, _session())

    controller.handle_event(SIGNED_OUT, None)

    assert not controller.state.signed_in
    assert controller.state.settings is None
    assert controller.state.route == LOGIN_ROUTE


def test_token_refresh_and_user_update() -> None:
    controller, _, repository = _controller({"user_id": "u1", "daily_limit": 35.0, "currency": "CHF"})
    controller.handle_event(SIGNED_IN, _session())

    controller.handle_event(TOKEN_REFRESHED, _session())
    assert repository.fetch_user_settings.call_count == 2

    updated = {"access_token": "tok", "user": {"id": "u1", "email": "new@example.com"}}
    controller.handle_event(USER_UPDATED, updated)
    assert controller.state.user["email"] == "new@example.com"


def test_password_recovery_changes_nothing() -> None:
    controller, _, _ = _controller()

    controller.handle_event(PASSWORD_RECOVERY, _session())

    assert not controller.state.signed_in
    assert controller.state.route == LOGIN_ROUTE


def test_backend_failure_sets_error() -> None:
    controller, _, repository = _controller()
    repository.fetch_user_settings.side_effect = BackendError("Network error: offline")

    controller.handle_event(SIGNED_IN, _session())

    assert controller.state.error == "Failed to handle auth state change"
    assert controller.state.route == LOGIN_ROUTE


def test_update_settings_persists() -> None:
    controller, _, repository = _controller()
    controller.handle_event(SIGNED_IN, _session())
    repository.update_user_settings.return_value = {"user_id": "u1", "daily_limit": 60.0, "currency": "EUR"}

    settings = controller.update_settings(daily_limit=60.0, currency="EUR")

    repository.update_user_settings.assert_called_once_with("u1", {"daily_limit": 60.0, "currency": "EUR"})
    assert settings.daily_limit == 60.0
