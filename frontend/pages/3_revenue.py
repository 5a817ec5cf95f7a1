import sys
from pathlib import Path

APP_DIR = Path(__file__).resolve().parent.parent
if str(APP_DIR) not in sys.path:
    sys.path.insert(0, str(APP_DIR))

from datetime import date, timedelta

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go
import streamlit as st

from utils.api_client import cached_category_revenue, cached_daily_revenue
from utils.theme import (
    PLOTLY_COLORS,
    apply_theme,
    auth_guard,
    get_colors,
    kpi_tile,
    money,
    plotly_layout_defaults,
    render_sidebar_profile,
    section_title,
)

st.set_page_config(page_title="Revenue", page_icon="📈", layout="wide")
apply_theme()
auth_guard()
render_sidebar_profile()
COLORS = get_colors()

token = st.session_state.token

st.markdown(
    f"""
    <div style="margin-bottom:4px;">
        <span style="font-size:1.6rem;font-weight:800;color:{COLORS['text']};">📈 Revenue</span>
    </div>
    """,
    unsafe_allow_html=True,
)

c1, c2 = st.columns(2)
start = c1.date_input("From", value=date.today() - timedelta(days=30))
end = c2.date_input("To", value=date.today())

d_ok, days = cached_daily_revenue(token, start.isoformat(), end.isoformat())
c_ok, cats = cached_category_revenue(token, start.isoformat(), end.isoformat())

if not d_ok or not c_ok:
    st.error("Could not load revenue data.")
    st.stop()

daily = pd.DataFrame(days)
by_cat = pd.DataFrame(cats)

billed = float(daily["revenue"].sum()) if not daily.empty else 0.0
collected = float(daily["collected"].sum()) if not daily.empty else 0.0
receipts = int(daily["invoiceCount"].sum()) if not daily.empty else 0
k1, k2, k3 = st.columns(3)
k1.markdown(kpi_tile("Billed", money(billed), COLORS["primary"]), unsafe_allow_html=True)
k2.markdown(kpi_tile("Collected", money(collected), COLORS["success"]), unsafe_allow_html=True)
k3.markdown(kpi_tile("Receipts", receipts, COLORS["info"]), unsafe_allow_html=True)

section_title("By day")
if daily.empty:
    st.info("No receipts in this period.")
else:
    fig = go.Figure()
    fig.add_trace(go.Bar(x=daily["date"], y=daily["revenue"], name="Billed", marker_color=COLORS["primary"]))
    fig.add_trace(go.Scatter(x=daily["date"], y=daily["collected"], name="Collected", mode="lines+markers",
                             line=dict(color=COLORS["accent"], width=2)))
    fig.update_layout(**plotly_layout_defaults("Daily billing", height=380))
    st.plotly_chart(fig, use_container_width=True)

section_title("By category")
if not by_cat.empty:
    fig = px.pie(by_cat, names="category", values="revenue", hole=0.55, color_discrete_sequence=PLOTLY_COLORS)
    fig.update_layout(**plotly_layout_defaults("Revenue share", height=360))
    st.plotly_chart(fig, use_container_width=True)
    st.dataframe(by_cat, use_container_width=True)
