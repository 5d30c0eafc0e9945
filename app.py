"""SpendSense Streamlit entrypoint with modular page navigation."""

from __future__ import annotations

import logging

import streamlit as st

from analytics import (
    category_totals,
    category_trends,
    category_weekly_series,
    daily_total,
    expense_stats,
    expenses_frame,
    filter_by_time_window,
    generate_insights,
    remaining_budget,
    same_day_distribution,
    spending_patterns,
    weekly_series,
)
from auth_session import AuthController
from backend import BackendError, SupabaseClient
from config import Settings, load_settings
from dashboard_views import (
    render_analytics,
    render_dashboard,
    render_expense_detail,
    render_expense_form,
    render_goal_form,
    render_goal_history,
    render_goals,
    render_insights,
    render_login,
    render_savings_form,
    render_settings_form,
)
from goals import goals_table
from local_store import LocalAuthClient, LocalRepository
from queries import invalidate_expense_queries
from repositories import SupabaseRepository
from services import ExpenseService, FormError, GoalsService

st.set_page_config(page_title="SpendSense", page_icon="\U0001f4b8", layout="wide")

logger = logging.getLogger(__name__)

WINDOW_LABELS = {"weekly": "Last 7 days", "monthly": "Last month", "recent": "Last 90 days"}


def _inject_styles() -> None:
    st.markdown(
        """
        <style>
        @import url('https://fonts.googleapis.com/css2?family=Outfit:wght@400;500;700&display=swap');

        html, body, [class*="css"] {
            font-family: 'Outfit', sans-serif;
        }
        .stApp {
            background:
              radial-gradient(1100px 420px at 10% 0%, rgba(16, 185, 129, 0.14), transparent 58%),
              linear-gradient(180deg, #f7fbf9 0%, #eef7f3 100%);
        }
        .hero {
            margin-bottom: 0.6rem;
            padding: 1rem 1.2rem;
            border: 1px solid rgba(16, 120, 90, 0.23);
            border-radius: 14px;
            background: rgba(255,255,255,0.85);
        }
        .hero h1 {
            margin: 0;
        }
        .hero p {
            margin: 0.35rem 0 0 0;
            color: #1f5a48;
        }
        [data-testid="stMetric"] {
            background: rgba(255,255,255,0.90);
            border: 1px solid rgba(16, 120, 90, 0.25);
            border-radius: 12px;
            padding: 0.45rem 0.6rem;
        }
        </style>
        """,
        unsafe_allow_html=True,
    )


def _render_header(backend_label: str) -> None:
    st.markdown(
        f"""
        <div class="hero">
          <h1>SpendSense</h1>
          <p>Daily budget, spending insights and savings goals. Storage: {backend_label}.</p>
        </div>
        """,
        unsafe_allow_html=True,
    )


def _get_controller(settings: Settings) -> AuthController:
    """One auth client, repository and controller per browser session."""
    if "auth" not in st.session_state:
        if settings.use_supabase:
            client = SupabaseClient(settings.supabase_url, settings.supabase_anon_key, timeout=settings.http_timeout)
            repository = SupabaseRepository(client)
        else:
            client = LocalAuthClient(settings.data_path)
            repository = LocalRepository(settings.data_path)
        controller = AuthController(
            client,
            repository,
            default_daily_limit=settings.default_daily_limit,
            default_currency=settings.default_currency,
        )
        if isinstance(client, LocalAuthClient):
            client.restore()
        st.session_state["auth"] = controller
    return st.session_state["auth"]


def _show_form_errors(exc: FormError) -> None:
    for message in exc.messages:
        st.warning(message)


def _render_auth(controller: AuthController, settings: Settings) -> None:
    submitted = render_login(local_mode=not settings.use_supabase)
    if submitted is None:
        return
    client = controller.client
    try:
        if submitted["action"] == "local":
            client.sign_in(submitted["username"])
        elif submitted["action"] == "sign_in":
            client.sign_in_with_password(submitted["email"], submitted["password"])
        else:
            client.sign_up(
                submitted["email"],
                submitted["password"],
                data={"username": submitted.get("username", "")},
            )
            if not client.session:
                st.success("Check your inbox to confirm the account, then sign in.")
                return
    except BackendError as exc:
        logger.error("Authentication failed: %s", exc)
        st.error(f"Authentication failed: {exc.message}")
        return
    st.rerun()


def _page_dashboard(expenses: ExpenseService, controller: AuthController, tz: str) -> None:
    user_settings = controller.state.settings
    categories = expenses.categories()

    submitted = render_expense_form(categories)
    if submitted is not None:
        try:
            expenses.add_expense(**submitted)
            st.success("Expense added")
        except FormError as exc:
            _show_form_errors(exc)

    todays = expenses.expenses("daily")
    today = expenses_frame(todays)
    week = expenses_frame(expenses.history("weekly"))
    spent = daily_total(today, tz=tz)
    render_dashboard(
        spent_today=spent,
        remaining=remaining_budget(spent, user_settings.daily_limit),
        daily_limit=user_settings.daily_limit,
        currency=user_settings.currency,
        weekly=weekly_series(week, tz=tz),
        totals=category_totals(today),
        categories=categories,
        expenses=todays,
        tz=tz,
    )

    if todays:
        labels = {expense.id: f"{expense.description} ({expense.amount:,.2f})" for expense in todays}
        selected = st.selectbox("Expense details", list(labels), format_func=lambda key: labels[key])
        expense = next(item for item in todays if item.id == selected)
        render_expense_detail(
            expense,
            same_day_distribution(week, expense.created_at, tz=tz),
            category_weekly_series(week, expense.category_id, tz=tz),
            categories,
            user_settings.currency,
            tz=tz,
        )


def _page_analytics(expenses: ExpenseService, controller: AuthController, tz: str) -> None:
    window = st.sidebar.selectbox(
        "Time window",
        list(WINDOW_LABELS),
        index=1,
        format_func=lambda key: WINDOW_LABELS[key],
    )
    df = filter_by_time_window(expenses_frame(expenses.history("recent")), window, tz=tz)
    render_analytics(
        expense_stats(df, tz=tz),
        weekly_series(df, tz=tz),
        category_totals(df),
        expenses.categories(),
        controller.state.settings.currency,
    )


def _page_insights(expenses: ExpenseService, tz: str) -> None:
    df = expenses_frame(expenses.history("recent"))
    trends = category_trends(df)
    patterns = spending_patterns(df, tz=tz)
    render_insights(generate_insights(trends, patterns), trends, patterns, expenses.categories())


def _page_goals(goals: GoalsService, currency: str) -> None:
    created = render_goal_form()
    if created is not None:
        try:
            goals.add_goal(**created)
            st.success("Goal created")
        except FormError as exc:
            _show_form_errors(exc)

    current = goals.goals()
    saved = render_savings_form(current)
    if saved is not None:
        try:
            outcome = goals.record_savings(**saved)
            if outcome.achievement is not None:
                st.balloons()
                st.success(outcome.achievement.description)
            else:
                st.success("Savings recorded")
        except FormError as exc:
            _show_form_errors(exc)
        current = goals.goals(refresh=False)

    render_goals(goals_table(current), goals.achievements(), currency)

    if current:
        titles = {goal.id: goal.title for goal in current}
        goal_id = st.selectbox("Goal history", list(titles), format_func=lambda key: titles[key])
        render_goal_history(goals.transactions(goal_id), currency)
        if st.button("Delete goal"):
            goals.delete_goal(goal_id)
            st.rerun()


def _page_settings(controller: AuthController, settings: Settings, tz: str) -> None:
    user_settings = controller.state.settings
    submitted = render_settings_form(user_settings.daily_limit, user_settings.currency)
    if submitted is not None:
        controller.update_settings(**submitted)
        st.success("Settings saved")

    repository = controller.repository
    if isinstance(repository, LocalRepository) and st.button("Clear expenses before today"):
        removed = repository.clear_old_expenses(controller.state.user_id, tz=tz)
        invalidate_expense_queries()
        st.info(f"Removed {removed} old expense(s)")

    if settings.use_supabase:
        st.caption(f"Signed in as {controller.state.user.get('email', controller.state.user_id)}")


def main() -> None:
    settings = load_settings()
    logging.basicConfig(level=settings.log_level)

    _inject_styles()
    _render_header("Supabase" if settings.use_supabase else settings.data_path)

    controller = _get_controller(settings)
    if controller.state.error:
        st.error(controller.state.error)
    if not controller.state.signed_in:
        _render_auth(controller, settings)
        return

    view = st.sidebar.radio("Navigate", ["Dashboard", "Analytics", "Insights", "Goals", "Settings"])
    if st.sidebar.button("Sign out"):
        try:
            controller.client.sign_out()
        except BackendError as exc:
            st.error(f"Sign out failed: {exc.message}")
        st.rerun()

    tz = settings.timezone
    user_id = controller.state.user_id
    expenses = ExpenseService(controller.repository, user_id, tz=tz)
    goals = GoalsService(controller.repository, user_id)

    try:
        if view == "Dashboard":
            _page_dashboard(expenses, controller, tz)
        elif view == "Analytics":
            _page_analytics(expenses, controller, tz)
        elif view == "Insights":
            _page_insights(expenses, tz)
        elif view == "Goals":
            _page_goals(goals, controller.state.settings.currency)
        elif view == "Settings":
            _page_settings(controller, settings, tz)
    except BackendError as exc:
        logger.exception("Backend request failed on %s", view)
        st.error(f"Something went wrong: {exc.message}")


if __name__ == "__main__":
    main()
