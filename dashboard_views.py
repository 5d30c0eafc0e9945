"""Modular Streamlit page renderers."""

from __future__ import annotations

import datetime

import pandas as pd
import streamlit as st

from analytics import insights_table
from schemas import Achievement, Category, ExpenseRecord, SavingsGoal, SavingsTransaction, SpendingInsight

INSIGHT_ICONS = {"warning": "⚠️", "tip": "💡", "achievement": "🏆", "trend": "📈"}


def _fmt_money(value: float, currency: str = "USD") -> str:
    return f"{value:,.2f} {currency}"


def _fmt_delta(value: float) -> str:
    if value > 0:
        return f"+{value:,.1f}%"
    return f"{value:,.1f}%"


def _category_names(categories: list[Category]) -> dict[str, str]:
    return {category.id: f"{category.icon or ''} {category.name}".strip() for category in categories}


def _category_table(totals: dict[str, float], categories: list[Category]) -> pd.DataFrame:
    names = _category_names(categories)
    if not totals:
        return pd.DataFrame(columns=["Amount"])
    out = pd.DataFrame(
        {
            "Category": [names.get(key, key.title()) for key in totals],
            "Amount": list(totals.values()),
        }
    )
    return out.set_index("Category").sort_values("Amount", ascending=False)


def expenses_table(expenses: list[ExpenseRecord], categories: list[Category], tz: str = "UTC") -> pd.DataFrame:
    names = _category_names(categories)
    if not expenses:
        return pd.DataFrame(columns=["When", "Description", "Category", "Amount"])
    return pd.DataFrame(
        [
            {
                "When": pd.Timestamp(expense.created_at).tz_convert(tz).strftime("%Y-%m-%d %H:%M"),
                "Description": expense.description,
                "Category": names.get(expense.category_id or "", "Uncategorized"),
                "Amount": expense.amount,
            }
            for expense in expenses
        ]
    )


def render_login(local_mode: bool) -> dict[str, str] | None:
    """Sign-in / sign-up forms; returns the submitted action and fields."""
    st.header("Welcome")
    if local_mode:
        st.caption("Local mode: data is stored in a JSON file on this machine.")
        with st.form(key="local_login"):
            username = st.text_input("Username")
            if st.form_submit_button("Continue"):
                return {"action": "local", "username": username}
        return None

    sign_in, sign_up = st.tabs(["Sign in", "Create account"])
    with sign_in:
        with st.form(key="sign_in"):
            email = st.text_input("Email")
            password = st.text_input("Password", type="password")
            if st.form_submit_button("Sign in"):
                return {"action": "sign_in", "email": email, "password": password}
    with sign_up:
        with st.form(key="sign_up"):
            username = st.text_input("Username", key="signup_username")
            email = st.text_input("Email", key="signup_email")
            password = st.text_input("Password", type="password", key="signup_password")
            if st.form_submit_button("Create account"):
                return {"action": "sign_up", "username": username, "email": email, "password": password}
    return None


def render_expense_form(categories: list[Category]) -> dict[str, object] | None:
    names = _category_names(categories)
    with st.form(key="expense_form", clear_on_submit=True):
        st.markdown("### Add expense")
        amount = st.text_input("Amount")
        description = st.text_input("Description")
        category_id = st.selectbox(
            "Category",
            [""] + list(names),
            format_func=lambda key: names.get(key, "Select a category"),
        )
        if st.form_submit_button("Add expense"):
            return {"amount": amount, "description": description, "category_id": category_id or None}
    return None


def render_dashboard(
    spent_today: float,
    remaining: float,
    daily_limit: float,
    currency: str,
    weekly: pd.DataFrame,
    totals: dict[str, float],
    categories: list[Category],
    expenses: list[ExpenseRecord],
    tz: str = "UTC",
) -> None:
    st.header("Dashboard")

    c1, c2, c3 = st.columns(3)
    c1.metric("Spent today", _fmt_money(spent_today, currency))
    c2.metric("Remaining budget", _fmt_money(remaining, currency))
    c3.metric("Daily limit", _fmt_money(daily_limit, currency))
    if daily_limit:
        st.progress(min(spent_today / daily_limit, 1.0))

    left, right = st.columns(2)
    with left:
        st.markdown("### Last 7 days")
        st.bar_chart(weekly.set_index("Date")[["Amount"]])
    with right:
        st.markdown("### Today by category")
        table = _category_table(totals, categories)
        if table.empty:
            st.info("No expenses recorded today.")
        else:
            st.bar_chart(table[["Amount"]])

    st.markdown("### Today's expenses")
    st.dataframe(expenses_table(expenses, categories, tz), use_container_width=True, hide_index=True)


def render_expense_detail(
    expense: ExpenseRecord,
    distribution: pd.DataFrame,
    category_week: pd.DataFrame,
    categories: list[Category],
    currency: str,
    tz: str = "UTC",
) -> None:
    names = _category_names(categories)
    st.markdown(f"### {expense.description}")

    c1, c2, c3 = st.columns(3)
    c1.metric("Amount", _fmt_money(expense.amount, currency))
    c2.metric("Category", names.get(expense.category_id or "", "Uncategorized"))
    c3.metric("When", pd.Timestamp(expense.created_at).tz_convert(tz).strftime("%Y-%m-%d %H:%M"))

    left, right = st.columns(2)
    with left:
        st.markdown("#### Same-day category split")
        if distribution.empty:
            st.info("No other expenses on this day.")
        else:
            shown = distribution.copy()
            shown["Category"] = shown["CategoryId"].map(lambda key: names.get(key, "Other"))
            shown["Percentage"] = shown["Percentage"].round(1)
            st.dataframe(shown[["Category", "Amount", "Percentage"]], use_container_width=True, hide_index=True)
    with right:
        st.markdown("#### Category, last 7 days")
        st.line_chart(category_week.set_index("Date")[["Amount"]])


def render_analytics(
    stats: dict[str, object],
    weekly: pd.DataFrame,
    totals: dict[str, float],
    categories: list[Category],
    currency: str,
) -> None:
    st.header("Spending analytics")

    highest = stats["highest_day"]
    lowest = stats["lowest_day"]
    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Total spent", _fmt_money(float(stats["total_spent"]), currency))
    c2.metric("Avg per active day", _fmt_money(float(stats["avg_per_day"]), currency))
    c3.metric("Highest day", _fmt_money(float(highest["amount"]), currency), highest["date"] or None)
    c4.metric("Lowest day", _fmt_money(float(lowest["amount"]), currency), lowest["date"] or None)
    st.caption(f"30-day projection at the current pace: {_fmt_money(float(stats['monthly_projection']), currency)}")

    a, b = st.columns(2)
    with a:
        st.markdown("### Weekly spending")
        st.line_chart(weekly.set_index("Date")[["Amount"]])
    with b:
        st.markdown("### Spending by category")
        table = _category_table(totals, categories)
        if table.empty:
            st.info("No expenses in this window.")
        else:
            st.bar_chart(table[["Amount"]])
            st.dataframe(table, use_container_width=True)


def render_insights(
    insights: list[SpendingInsight],
    trends: pd.DataFrame,
    patterns: pd.DataFrame,
    categories: list[Category],
) -> None:
    st.header("Smart insights")
    names = _category_names(categories)

    if not insights:
        st.info("No insights yet. Keep logging expenses to unlock trends.")
    for insight in insights:
        icon = INSIGHT_ICONS.get(insight.type, "")
        label = names.get(insight.category_id or "", insight.category_id or "")
        body = f"**{icon} {insight.title}**  \n{insight.description}"
        if label:
            body += f"  \n_{label}_"
        if insight.type == "warning":
            st.warning(body)
        elif insight.type == "achievement":
            st.success(body)
        else:
            st.info(body)

    a, b = st.columns(2)
    with a:
        st.markdown("### Category trends (30 days)")
        if trends.empty:
            st.info("Not enough history for trends.")
        else:
            shown = trends.copy()
            shown["CategoryId"] = shown["CategoryId"].map(lambda key: names.get(key, key))
            shown["PercentageChange"] = shown["PercentageChange"].map(_fmt_delta)
            st.dataframe(shown, use_container_width=True, hide_index=True)
    with b:
        st.markdown("### Weekday patterns")
        if patterns.empty:
            st.info("No spending patterns yet.")
        else:
            st.bar_chart(patterns.set_index("Weekday")[["AverageSpending"]])

    with st.expander("All insights", expanded=False):
        st.dataframe(insights_table(insights), use_container_width=True, hide_index=True)


def render_goals(goals_overview: pd.DataFrame, achievements: list[Achievement], currency: str) -> None:
    st.header("Savings goals")
    if goals_overview.empty:
        st.info("No savings goals yet. Create one below.")
    else:
        for row in goals_overview.itertuples(index=False):
            status = "past due" if row.PastDue else row.Status
            st.markdown(f"**{row.Goal}** ({status})")
            st.progress(float(row.ProgressPct) / 100.0)
            st.caption(
                f"{_fmt_money(row.Saved, currency)} of {_fmt_money(row.Target, currency)} · "
                f"{row.DaysRemaining} days left · need {_fmt_money(row.RequiredDaily, currency)}/day, "
                f"saving {_fmt_money(row.CurrentDaily, currency)}/day"
                + (" · on track" if row.OnTrack else " · behind")
            )

    if achievements:
        st.markdown("### Achievements")
        for achievement in achievements:
            st.success(f"{achievement.icon} **{achievement.title}**  \n{achievement.description}")


def render_goal_form() -> dict[str, object] | None:
    today = datetime.date.today()
    with st.form(key="goal_form", clear_on_submit=True):
        st.markdown("### Create goal")
        title = st.text_input("Title")
        target_amount = st.text_input("Target amount")
        start_date = st.date_input("Start date", value=today)
        target_date = st.date_input("Target date", value=today + datetime.timedelta(days=90))
        if st.form_submit_button("Create goal"):
            return {
                "title": title,
                "target_amount": target_amount,
                "start_date": start_date,
                "target_date": target_date,
            }
    return None


def render_savings_form(goals: list[SavingsGoal]) -> dict[str, object] | None:
    active = {goal.id: goal.title for goal in goals if goal.status == "active"}
    if not active:
        return None
    with st.form(key="savings_form", clear_on_submit=True):
        st.markdown("### Add savings")
        goal_id = st.selectbox("Goal", list(active), format_func=lambda key: active[key])
        amount = st.text_input("Amount")
        description = st.text_input("Note")
        if st.form_submit_button("Record savings"):
            return {"goal_id": goal_id, "amount": amount, "description": description}
    return None


def render_goal_history(transactions: list[SavingsTransaction], currency: str) -> None:
    if not transactions:
        st.caption("No savings recorded for this goal yet.")
        return
    st.dataframe(
        pd.DataFrame(
            [
                {
                    "Date": transaction.transaction_date.date().isoformat(),
                    "Amount": _fmt_money(transaction.amount, currency),
                    "Note": transaction.description,
                }
                for transaction in transactions
            ]
        ),
        use_container_width=True,
        hide_index=True,
    )


def render_settings_form(daily_limit: float, currency: str) -> dict[str, object] | None:
    st.header("Settings")
    with st.form(key="settings_form"):
        limit = st.number_input("Daily limit", min_value=0.0, value=float(daily_limit), step=5.0)
        code = st.text_input("Currency", value=currency)
        if st.form_submit_button("Save"):
            return {"daily_limit": float(limit), "currency": code.strip().upper() or currency}
    return None
