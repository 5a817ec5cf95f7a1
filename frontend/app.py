import sys
from pathlib import Path

APP_DIR = Path(__file__).resolve().parent
if str(APP_DIR) not in sys.path:
    sys.path.insert(0, str(APP_DIR))

import streamlit as st
from utils.api_client import ApiClient, cached_daily_count, cached_daily_revenue
from utils.theme import (
    apply_theme,
    error_message,
    get_colors,
    kpi_tile,
    money,
    render_sidebar_profile,
)

st.set_page_config(
    page_title="Pathology Billing",
    page_icon="🧪",
    layout="wide",
    initial_sidebar_state="expanded",
)
apply_theme()
COLORS = get_colors()

# ── Session defaults ──────────────────────────────────────────────────────
if "token" not in st.session_state:
    st.session_state.token = None
if "user" not in st.session_state:
    st.session_state.user = None

client = ApiClient(token=st.session_state.token)

# ── Logged-in view ────────────────────────────────────────────────────────
if st.session_state.token:
    render_sidebar_profile()

    user = st.session_state.get("user") or {}
    name = user.get("name") or user.get("email", "").split("@")[0]

    st.markdown(
        f"""
        <div style="margin-bottom:8px;">
            <span style="font-size:1.8rem;font-weight:800;color:{COLORS['text']};">
                Welcome back, {name}
            </span>
        </div>
        <p style="color:{COLORS['text_muted']};margin-top:0;">
            Today's billing desk at a glance.
        </p>
        """,
        unsafe_allow_html=True,
    )

    token = st.session_state.token
    c_ok, count = cached_daily_count(token)
    d_ok, days = cached_daily_revenue(token, None, None)

    today_revenue = 0.0
    today_collected = 0.0
    if d_ok and days and c_ok and days[-1].get("date") == count.get("date"):
        today_revenue = days[-1].get("revenue", 0)
        today_collected = days[-1].get("collected", 0)

    cols = st.columns(4)
    tiles = [
        ("Receipts Today", count.get("count", 0) if c_ok else "—", COLORS["primary"]),
        ("Last Receipt No", count.get("lastReceiptNumber", "—") if c_ok else "—", COLORS["info"]),
        ("Billed Today", money(today_revenue), COLORS["text"]),
        ("Collected Today", money(today_collected), COLORS["success"]),
    ]
    for col, (label, value, color) in zip(cols, tiles):
        col.markdown(kpi_tile(label, value, color), unsafe_allow_html=True)

    st.markdown("<div style='height:24px'></div>", unsafe_allow_html=True)
    st.page_link("pages/1_cash_receipt.py", label="New cash receipt", icon="🧾")
    st.page_link("pages/2_invoice_desk.py", label="Invoice desk", icon="🗂️")
    st.page_link("pages/3_revenue.py", label="Revenue", icon="📈")

# ── Auth view ─────────────────────────────────────────────────────────────
else:
    _spacer_l, center, _spacer_r = st.columns([1, 2, 1])
    with center:
        st.markdown(
            f"""
            <h1 style="text-align:center;color:{COLORS['text']};margin:40px 0 4px 0;">
                Pathology Billing
            </h1>
            <p style="text-align:center;color:{COLORS['text_muted']};margin-bottom:32px;">
                Cash receipts, payments and test bookings for your lab.
            </p>
            """,
            unsafe_allow_html=True,
        )

        tab_login, tab_register = st.tabs(["Login", "Register"])

        with tab_login:
            with st.form("login_form"):
                email = st.text_input("Email", placeholder="you@example.com")
                pwd = st.text_input("Password", type="password", placeholder="••••••••")
                submitted = st.form_submit_button("Sign in", use_container_width=True, type="primary")
            if submitted:
                if not email or not pwd:
                    st.error("Please enter both email and password.")
                else:
                    res = client.login(email, pwd)
                    if res.ok:
                        data = res.json()["data"]
                        st.session_state.token = data["token"]
                        st.session_state.user = data["user"]
                        st.rerun()
                    else:
                        st.error("Invalid credentials. Please try again.")

        with tab_register:
            with st.form("register_form"):
                name = st.text_input("Full name", placeholder="Jane Doe")
                email_r = st.text_input("Email", placeholder="you@example.com", key="reg_em")
                pwd_r = st.text_input("Password", type="password", placeholder="Min 6 characters", key="reg_pw")
                lab_id = st.number_input("Lab ID (leave 0 for the first account)", min_value=0, step=1)
                submitted_r = st.form_submit_button("Create account", use_container_width=True, type="primary")
            if submitted_r:
                if not email_r or not pwd_r:
                    st.error("Email and password are required.")
                elif len(pwd_r) < 6:
                    st.error("Password must be at least 6 characters.")
                else:
                    res = client.register(email=email_r, password=pwd_r, full_name=name, lab_id=int(lab_id) or None)
                    if res.ok:
                        data = res.json()["data"]
                        st.session_state.token = data["token"]
                        st.session_state.user = data["user"]
                        st.rerun()
                    else:
                        st.error(f"Registration failed: {error_message(res)}")
