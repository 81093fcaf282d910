"""
Streamlit Frontend for MoneyMate

Presentation only: every action goes through the FinanceTracker facade,
and every number shown is derived from the ledger on each rerun.

DESIGN PRINCIPLES:
1. Simple, clear interface
2. Clear error messages in simple language
3. Visual feedback for all operations
4. No hidden actions
"""

import asyncio
from datetime import date
from typing import Optional

import streamlit as st

from moneymate.auth import AuthError
from moneymate.config import get_settings, validate_all_settings
from moneymate.models.budget import BudgetStatus
from moneymate.models.session import Session
from moneymate.models.transaction import (
    EXPENSE_CATEGORIES,
    INCOME_CATEGORIES,
    TransactionType,
    categories_for,
)
from moneymate.orchestrator import (
    FinanceTracker,
    build_store,
    create_app_components,
    create_auth_service,
)
from moneymate.queries import SortOrder, ViewQuery
from moneymate.services.storage import StorageError
from moneymate.validation import ImportValidationError, TransactionValidationError


# Page configuration
st.set_page_config(
    page_title="MoneyMate",
    page_icon="💰",
    layout="wide",
    initial_sidebar_state="expanded",
)

# Custom CSS for better UX
st.markdown("""
<style>
    .stButton>button {
        width: 100%;
        margin-top: 10px;
    }
    .success-box {
        padding: 20px;
        background-color: #d4edda;
        border-radius: 10px;
        border-left: 5px solid #28a745;
        margin: 10px 0;
    }
    .warning-box {
        padding: 20px;
        background-color: #fff3cd;
        border-radius: 10px;
        border-left: 5px solid #ffc107;
        margin: 10px 0;
    }
    .error-box {
        padding: 20px;
        background-color: #f8d7da;
        border-radius: 10px;
        border-left: 5px solid #dc3545;
        margin: 10px 0;
    }
    .big-number {
        font-size: 2.5em;
        font-weight: bold;
    }
</style>
""", unsafe_allow_html=True)


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_store():
    """The raw storage backend, shared by every session of this server."""
    return build_store(get_settings().app)


def get_auth():
    return create_auth_service(get_settings().app, get_store())


def get_tracker(session: Session) -> FinanceTracker:
    """One tracker per signed-in session, loaded once."""
    if st.session_state.get("tracker_user") != session.user_id:
        tracker, _ = create_app_components(session, get_settings().app, get_store())
        run_async(tracker.load())
        run_async(tracker.process_recurring_if_due())
        st.session_state.tracker = tracker
        st.session_state.tracker_user = session.user_id
    return st.session_state.tracker


def money(value) -> str:
    return f"₹{float(value):,.2f}"


def label(category: str) -> str:
    return category.replace("-", " ").title()


def show_persisted_warning(result) -> None:
    if not result.persisted:
        st.warning("Saved on screen, but the storage write failed. It may not survive a reload.")


def restore_session(auth) -> Optional[Session]:
    """Bring back this browser's remembered login or guest namespace."""
    params = st.query_params
    if "sid" in params:
        session = run_async(auth.restore(params["sid"]))
        if session is None:
            del params["sid"]
        return session
    if "guest" in params:
        session = auth.guest(params["guest"])
        params["guest"] = session.user_id
        return session
    return None


def main():
    """Main application entry point."""
    session = st.session_state.get("session")
    if session is None:
        session = restore_session(get_auth())
        st.session_state.session = session
    if session is None:
        render_login_page()
        return

    try:
        tracker = get_tracker(session)
    except StorageError as e:
        st.error(f"Your saved data could not be read: {e}")
        return

    # Sidebar navigation
    st.sidebar.title("💰 MoneyMate")
    st.sidebar.markdown(f"Signed in as **{session.display_name}**")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["📊 Dashboard", "📋 Transactions", "🎯 Budgets", "❤️ Health", "🔁 Import / Export"],
        index=0,
    )

    st.sidebar.markdown("---")
    col1, col2 = st.sidebar.columns(2)
    with col1:
        if st.button("↩️ Undo", disabled=not tracker.ledger.can_undo()):
            show_persisted_warning(run_async(tracker.undo()))
            st.rerun()
    with col2:
        if st.button("↪️ Redo", disabled=not tracker.ledger.can_redo()):
            show_persisted_warning(run_async(tracker.redo()))
            st.rerun()
    if st.sidebar.button("🚪 Log out"):
        run_async(get_auth().logout(session))
        for key in ("session", "tracker", "tracker_user"):
            st.session_state.pop(key, None)
        st.query_params.clear()
        st.rerun()

    # Route to appropriate page
    if page == "📊 Dashboard":
        render_dashboard_page(tracker)
    elif page == "📋 Transactions":
        render_transactions_page(tracker)
    elif page == "🎯 Budgets":
        render_budgets_page(tracker)
    elif page == "❤️ Health":
        render_health_page(tracker)
    elif page == "🔁 Import / Export":
        render_exchange_page(tracker)


def render_login_page():
    """Sign in, register or continue as guest."""
    st.title("💰 MoneyMate")
    st.markdown("Track income, expenses and budgets in one place.")

    auth = get_auth()
    login_tab, register_tab = st.tabs(["Sign in", "Create account"])

    with login_tab:
        email = st.text_input("Email", key="login_email")
        password = st.text_input("Password", type="password", key="login_password")
        remember = st.checkbox("Remember me for 30 days")
        if st.button("Sign in", type="primary"):
            try:
                session = run_async(auth.login(email, password, remember))
                if remember:
                    st.query_params["sid"] = session.token
                st.session_state.session = session
                st.rerun()
            except AuthError as e:
                st.error(str(e))

    with register_tab:
        first_name = st.text_input("First name")
        last_name = st.text_input("Last name")
        new_email = st.text_input("Email", key="register_email")
        new_password = st.text_input("Password", type="password", key="register_password")
        if st.button("Create account"):
            try:
                run_async(auth.register(new_email, new_password, first_name, last_name))
                st.success("Account created. You can sign in now.")
            except AuthError as e:
                st.error(str(e))

    st.markdown("---")
    if st.button("Continue as guest"):
        session = auth.guest()
        st.query_params["guest"] = session.user_id
        st.session_state.session = session
        st.rerun()


def render_dashboard_page(tracker: FinanceTracker):
    """Totals, category breakdown and the 7-day trend."""
    st.title("📊 Dashboard")

    stats = tracker.ledger.get_stats()
    col1, col2, col3 = st.columns(3)
    col1.metric("Income", money(stats.income))
    col2.metric("Expenses", money(stats.expense))
    col3.metric("Balance", money(stats.balance))

    report = tracker.budget_report()
    for alert in report.alerts:
        box = "error-box" if alert.severity.value == "danger" else "warning-box"
        st.markdown(f'<div class="{box}">{alert.message}</div>', unsafe_allow_html=True)

    st.markdown("---")
    col1, col2 = st.columns(2)
    with col1:
        st.subheader("Spending by category")
        spending = tracker.ledger.get_spending_by_category()
        if spending:
            st.bar_chart({"Spent": {label(k): float(v) for k, v in spending.items()}})
        else:
            st.info("No expenses recorded yet.")
    with col2:
        st.subheader("Last 7 days")
        trend = tracker.ledger.get_spending_trend()
        st.line_chart({"Expenses": {point.date.strftime("%d %b"): float(point.amount) for point in trend}})

    render_add_form(tracker)


def render_add_form(tracker: FinanceTracker):
    st.markdown("---")
    st.subheader("➕ Add transaction")

    tx_type = st.radio(
        "Type",
        list(TransactionType),
        format_func=lambda t: t.value.title(),
        horizontal=True,
    )
    with st.form("add_transaction", clear_on_submit=True):
        col1, col2 = st.columns(2)
        with col1:
            amount = st.number_input("Amount (₹)", min_value=0.0, step=0.01, format="%.2f")
            category = st.selectbox(
                "Category",
                sorted(categories_for(tx_type)),
                format_func=label,
            )
        with col2:
            tx_date = st.date_input("Date", value=date.today(), max_value=date.today())
            recurring = st.checkbox("Repeats monthly")
        description = st.text_input("Description", max_chars=200)

        if st.form_submit_button("Add", type="primary"):
            try:
                result = run_async(tracker.add_transaction(
                    tx_type=tx_type,
                    amount=str(amount),
                    category=category,
                    tx_date=tx_date,
                    description=description,
                    recurring=recurring,
                ))
                st.success(result.message)
                show_persisted_warning(result)
            except TransactionValidationError as e:
                st.error(tracker.validator.get_user_friendly_summary(e.result))


def render_transactions_page(tracker: FinanceTracker):
    """Filtered, sorted and paginated transaction list."""
    st.title("📋 Transactions")

    col1, col2, col3, col4 = st.columns(4)
    with col1:
        search = st.text_input("Search")
    with col2:
        tx_type = st.selectbox(
            "Type",
            [None] + list(TransactionType),
            format_func=lambda t: "All types" if t is None else t.value.title(),
        )
    with col3:
        all_categories = sorted(INCOME_CATEGORIES | EXPENSE_CATEGORIES)
        category = st.selectbox(
            "Category",
            [None] + all_categories,
            format_func=lambda c: "All categories" if c is None else label(c),
        )
    with col4:
        sort = st.selectbox(
            "Sort",
            list(SortOrder),
            format_func=lambda s: s.value.replace("-", " ").title(),
        )

    page_number = st.session_state.get("page_number", 1)
    page = tracker.view(ViewQuery(
        search=search,
        type=tx_type,
        category=category,
        sort=sort,
        page=page_number,
        page_size=tracker.settings.page_size,
    ))

    if not page.total_items:
        st.info("No transactions match these filters.")
        return

    for tx in page.items:
        col1, col2, col3, col4 = st.columns([2, 3, 2, 1])
        sign = "+" if tx.is_income else "-"
        col1.markdown(f"**{tx.date.strftime('%d %b %Y')}**")
        col2.markdown(f"{label(tx.category)} {'🔁' if tx.recurring else ''}  \n{tx.description}")
        col3.markdown(f"**{sign}{money(tx.amount)}**")
        if col4.button("🗑️", key=f"delete_{tx.timestamp}"):
            show_persisted_warning(run_async(tracker.delete_transaction(tx.timestamp)))
            st.rerun()

    st.markdown("---")
    col1, col2, col3 = st.columns([1, 2, 1])
    with col1:
        if st.button("← Previous", disabled=not page.has_previous):
            st.session_state.page_number = page_number - 1
            st.rerun()
    col2.markdown(f"Page {page.page} of {page.total_pages} ({page.total_items} transactions)")
    with col3:
        if st.button("Next →", disabled=not page.has_next):
            st.session_state.page_number = page_number + 1
            st.rerun()


def render_budgets_page(tracker: FinanceTracker):
    """Set budgets and compare them with spending."""
    st.title("🎯 Budgets")

    with st.form("set_budget"):
        col1, col2 = st.columns(2)
        category = col1.selectbox("Category", sorted(EXPENSE_CATEGORIES), format_func=label)
        limit = col2.number_input("Monthly limit (₹)", min_value=0.0, step=100.0)
        if st.form_submit_button("Save budget", type="primary"):
            try:
                show_persisted_warning(run_async(tracker.set_budget(category, str(limit))))
                st.rerun()
            except TransactionValidationError as e:
                st.error(tracker.validator.get_user_friendly_summary(e.result))

    report = tracker.budget_report()
    if not report.items:
        st.info("No budgets yet. Set one above.")
        return

    for item in report.items:
        col1, col2 = st.columns([4, 1])
        with col1:
            icon = {BudgetStatus.OK: "🟢", BudgetStatus.WARNING: "🟡", BudgetStatus.EXCEEDED: "🔴"}[item.status]
            st.markdown(
                f"{icon} **{label(item.category)}**: {money(item.spent)} of {money(item.limit)} "
                f"({item.percentage:.0f}%), {money(item.remaining)} left"
            )
            st.progress(min(item.percentage, 100.0) / 100)
        with col2:
            if st.button("Remove", key=f"budget_{item.category}"):
                show_persisted_warning(run_async(tracker.delete_budget(item.category)))
                st.rerun()

    st.markdown("---")
    if st.button("Clear all budgets"):
        show_persisted_warning(run_async(tracker.clear_budgets()))
        st.rerun()


def render_health_page(tracker: FinanceTracker):
    """Financial health score and how it was reached."""
    st.title("❤️ Financial Health")

    result = tracker.health_score()
    color = tracker.scorer.score_color(result.score)
    st.markdown(
        f'<div class="big-number" style="color: {color}">{result.score} / 100 ({result.grade})</div>',
        unsafe_allow_html=True,
    )
    st.markdown(result.message)

    st.markdown("---")
    for detail in tracker.scorer.breakdown_details(result.breakdown):
        st.markdown(f"**{detail.name}**: {detail.score} / {detail.max_score}")
        st.progress(detail.score / detail.max_score)
        st.caption(detail.tip)


def render_exchange_page(tracker: FinanceTracker):
    """Download exports and upload imports."""
    st.title("🔁 Import / Export")

    col1, col2 = st.columns(2)
    with col1:
        st.download_button(
            "⬇️ Export JSON",
            data=run_async(tracker.export_json()),
            file_name=f"moneymate-{date.today().isoformat()}.json",
            mime="application/json",
        )
    with col2:
        st.download_button(
            "⬇️ Export CSV",
            data=run_async(tracker.export_csv()),
            file_name=f"moneymate-{date.today().isoformat()}.csv",
            mime="text/csv",
        )

    st.markdown("---")
    st.subheader("Import")
    uploaded = st.file_uploader("Choose an export file", type=["json", "csv"])
    mode = st.radio(
        "Mode",
        ["merge", "replace"],
        format_func=lambda m: "Add to my data" if m == "merge" else "Replace my data",
        horizontal=True,
    )
    if uploaded and st.button("Import", type="primary"):
        text = uploaded.read().decode("utf-8")
        try:
            if uploaded.name.lower().endswith(".csv"):
                result = run_async(tracker.import_csv(text, mode=mode))
            else:
                result = run_async(tracker.import_data(text, mode=mode))
            st.success(result.message)
            show_persisted_warning(result)
        except ImportValidationError as e:
            st.markdown(
                '<div class="error-box"><h4>❌ Nothing was imported</h4>'
                + "".join(f"<p>{problem}</p>" for problem in e.problems[:20])
                + "</div>",
                unsafe_allow_html=True,
            )

    st.markdown("---")
    st.subheader("Recent activity")
    for event in run_async(tracker.recent_activity(limit=10)):
        st.caption(f"{event.timestamp.strftime('%d %b %H:%M')} · {event.description}")

    with st.expander("⚙️ Connection status"):
        status = validate_all_settings()
        st.markdown(f"Storage backend: **{tracker.settings.storage_backend}**")
        if status.get("google_sheets"):
            st.success("✅ Google Sheets - Configured")
        else:
            st.caption(f"Google Sheets: {status.get('google_sheets_error', 'Not configured')}")


if __name__ == "__main__":
    main()
