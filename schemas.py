"""Record schemas, validate-or-reject helpers and form validation."""

from __future__ import annotations

import datetime
import logging
import math
from typing import Any, Iterable, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

GoalStatus = Literal["active", "completed", "failed"]
InsightType = Literal["warning", "tip", "achievement", "trend"]
AchievementType = Literal["milestone", "completion", "streak"]


def utc_now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def _as_aware(value: datetime.datetime) -> datetime.datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.timezone.utc)
    return value


class _Record(BaseModel):
    model_config = ConfigDict(extra="ignore")


class ExpenseRecord(_Record):
    id: str
    user_id: Optional[str] = None
    amount: float = Field(gt=0)
    description: str = Field(min_length=1)
    category_id: Optional[str] = None
    created_at: datetime.datetime

    aware_created_at = field_validator("created_at")(_as_aware)


class Category(_Record):
    id: str
    name: str
    icon: Optional[str] = None
    color: Optional[str] = None


class UserSettings(_Record):
    user_id: str
    daily_limit: float = Field(default=100.0, ge=0)
    currency: str = "USD"


class SavingsGoal(_Record):
    id: str
    user_id: Optional[str] = None
    title: str = Field(min_length=1)
    target_amount: float = Field(gt=0)
    current_amount: float = Field(default=0.0, ge=0)
    category_id: Optional[str] = None
    start_date: datetime.datetime
    target_date: datetime.datetime
    status: GoalStatus = "active"

    aware_goal_dates = field_validator("start_date", "target_date")(_as_aware)


class SavingsTransaction(_Record):
    id: Optional[str] = None
    user_id: Optional[str] = None
    goal_id: str
    amount: float = Field(gt=0)
    description: str = ""
    transaction_date: datetime.datetime = Field(default_factory=utc_now)

    aware_transaction_date = field_validator("transaction_date")(_as_aware)


class Achievement(_Record):
    id: Optional[str] = None
    type: AchievementType
    title: str
    description: str
    icon: str = ""
    achieved_at: datetime.datetime = Field(default_factory=utc_now)

    aware_achieved_at = field_validator("achieved_at")(_as_aware)


class SpendingInsight(_Record):
    id: str
    type: InsightType
    title: str
    description: str
    priority: int = Field(ge=1, le=5)
    category_id: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime.datetime = Field(default_factory=utc_now)


class GoalProgress(_Record):
    percentage_complete: float
    days_remaining: int
    is_on_track: bool
    projected_completion: datetime.datetime
    required_daily_savings: float
    current_daily_savings: float
    is_past_due: bool = False


class RejectedRecord(BaseModel):
    record: Any
    reason: str


class ValidationResult(BaseModel):
    valid: list[Any] = Field(default_factory=list)
    rejected: list[RejectedRecord] = Field(default_factory=list)


def _error_reason(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(item) for item in err.get("loc", ())) or "record"
        parts.append(f"{loc}: {err.get('msg', 'invalid')}")
    return "; ".join(parts)


def validate_records(rows: Iterable[Any], model: type[BaseModel]) -> ValidationResult:
    """Split raw rows into parsed records and rejected rows with reasons.

    A bad row never aborts the batch; each rejection is logged.
    """
    result = ValidationResult()
    for row in rows or []:
        try:
            result.valid.append(model.model_validate(row))
        except ValidationError as exc:
            reason = _error_reason(exc)
            logger.warning("Rejected %s record: %s", model.__name__, reason)
            result.rejected.append(RejectedRecord(record=row, reason=reason))
    return result


def _parse_amount(value: Any) -> float | None:
    try:
        amount = float(str(value).strip().replace(",", "."))
    except (TypeError, ValueError):
        return None
    if not math.isfinite(amount) or amount <= 0:
        return None
    return amount


def validate_expense_form(amount: Any, description: str, category_id: Optional[str]) -> list[str]:
    errors = []
    if _parse_amount(amount) is None:
        errors.append("Please enter a valid amount")
    if not str(description or "").strip():
        errors.append("Please enter a description")
    if not str(category_id or "").strip():
        errors.append("Please select a category")
    return errors


def validate_goal_form(
    title: str,
    target_amount: Any,
    start_date: datetime.date,
    target_date: datetime.date,
) -> list[str]:
    errors = []
    if not str(title or "").strip():
        errors.append("Please enter a goal title")
    if _parse_amount(target_amount) is None:
        errors.append("Please enter a valid target amount")
    if start_date is None or target_date is None or target_date <= start_date:
        errors.append("Target date must be after the start date")
    return errors


def validate_savings_form(amount: Any) -> list[str]:
    if _parse_amount(amount) is None:
        return ["Please enter a valid amount"]
    return []
