import datetime
import logging

from schemas import (
    ExpenseRecord,
    SavingsGoal,
    UserSettings,
    validate_expense_form,
    validate_goal_form,
    validate_records,
    validate_savings_form,
)


def test_validate_records_splits_valid_and_rejected(caplog) -> None:
    rows = [
        {"id": "1", "amount": 12.0, "description": "Coffee", "category_id": "food", "created_at": "2026-03-01T08:00:00Z"},
        {"id": "2", "amount": -5, "description": "Refund", "created_at": "2026-03-01T09:00:00Z"},
        {"id": "3", "amount": 4.0, "description": "", "created_at": "2026-03-01T10:00:00Z"},
        {"amount": 4.0, "description": "No id", "created_at": "2026-03-01T10:00:00Z"},
    ]

    with caplog.at_level(logging.WARNING, logger="schemas"):
        result = validate_records(rows, ExpenseRecord)

    assert [record.id for record in result.valid] == ["1"]
    assert len(result.rejected) == 3
    assert "amount" in result.rejected[0].reason
    assert result.rejected[2].record == rows[3]
    assert sum("Rejected ExpenseRecord" in message for message in caplog.messages) == 3


def test_naive_timestamps_are_read_as_utc() -> None:
    record = ExpenseRecord(
        id="1",
        amount=1.0,
        description="Bus",
        created_at=datetime.datetime(2026, 3, 1, 8, 0),
    )
    assert record.created_at.tzinfo == datetime.timezone.utc


def test_unknown_columns_are_ignored() -> None:
    settings = UserSettings.model_validate({"user_id": "u1", "daily_limit": 50, "created_at": "x"})
    assert settings.daily_limit == 50.0
    assert settings.currency == "USD"


def test_goal_status_must_be_known() -> None:
    row = {
        "id": "g",
        "title": "Bike",
        "target_amount": 300,
        "start_date": "2026-01-01",
        "target_date": "2026-06-01",
        "status": "paused",
    }
    result = validate_records([row], SavingsGoal)
    assert result.valid == []
    assert "status" in result.rejected[0].reason


def test_validate_expense_form_messages() -> None:
    assert validate_expense_form("12,50", "Lunch", "food") == []
    assert validate_expense_form("abc", " ", None) == [
        "Please enter a valid amount",
        "Please enter a description",
        "Please select a category",
    ]
    assert validate_expense_form("0", "Lunch", "food") == ["Please enter a valid amount"]


def test_validate_goal_form_checks_date_order() -> None:
    start = datetime.date(2026, 1, 1)

    assert validate_goal_form("Trip", "500", start, datetime.date(2026, 7, 1)) == []
    assert validate_goal_form("", "x", start, start) == [
        "Please enter a goal title",
        "Please enter a valid target amount",
        "Target date must be after the start date",
    ]


def test_validate_savings_form() -> None:
    assert validate_savings_form("25") == []
    assert validate_savings_form("nan") == ["Please enter a valid amount"]
    assert validate_savings_form(None) == ["Please enter a valid amount"]
