"""
Palette, page CSS and small HTML helpers for the billing console.
"""

from __future__ import annotations

import streamlit as st

# Desk palette: indigo for billing, green for money received, rose for dues.
COLORS_LIGHT: dict[str, str] = {
    "primary": "#4F46E5",
    "accent": "#D97706",
    "success": "#059669",
    "info": "#0284C7",
    "danger": "#E11D48",
    "text": "#111827",
    "muted": "#6B7280",
    "card": "#FFFFFF",
    "border": "#E5E7EB",
}

COLORS_DARK: dict[str, str] = {
    "primary": "#818CF8",
    "accent": "#FBBF24",
    "success": "#34D399",
    "info": "#38BDF8",
    "danger": "#FB7185",
    "text": "#F9FAFB",
    "muted": "#9CA3AF",
    "card": "#1F2937",
    "border": "#374151",
}

PLOTLY_COLORS = [
    COLORS_LIGHT["primary"], COLORS_LIGHT["success"], COLORS_LIGHT["accent"],
    COLORS_LIGHT["info"], COLORS_LIGHT["danger"], "#7C3AED",
]

# Payment status -> palette key for its badge.
_BADGE_COLOR = {"Paid": "success", "Partial Paid": "accent"}


def get_colors() -> dict[str, str]:
    if st.session_state.get("dark_mode", False):
        return COLORS_DARK
    return COLORS_LIGHT


def plotly_layout_defaults(title: str = "", height: int = 380) -> dict:
    """Common Plotly layout kwargs for the revenue charts."""
    c = get_colors()
    dark = st.session_state.get("dark_mode", False)
    axis = dict(tickfont=dict(color=c["muted"]), gridcolor=c["border"], zeroline=False)
    return dict(
        title=dict(text=title, font=dict(size=15, color=c["text"])),
        template="plotly_dark" if dark else "plotly_white",
        height=height,
        margin=dict(l=30, r=10, t=45, b=30),
        paper_bgcolor="rgba(0,0,0,0)",
        plot_bgcolor="rgba(0,0,0,0)",
        xaxis=axis,
        yaxis=axis,
        legend=dict(orientation="h", y=1.08, x=0),
    )


_CSS_TEMPLATE = """
<style>
.kpi-tile {
    background: %(card)s;
    border: 1px solid %(border)s;
    border-left: 4px solid %(primary)s;
    border-radius: 8px;
    padding: 12px 16px;
}
.kpi-value { font-size: 1.5rem; font-weight: 700; }
.kpi-label { color: %(muted)s; font-size: 0.8rem; }
.section-title {
    font-weight: 600;
    color: %(text)s;
    border-bottom: 1px solid %(border)s;
    margin: 16px 0 8px 0;
    padding-bottom: 4px;
}
.badge { padding: 1px 8px; border-radius: 6px; font-size: 0.75rem; font-weight: 600; color: #FFFFFF; }
</style>
"""


def apply_theme() -> None:
    """Inject the console CSS. Call once at the top of every page."""
    st.session_state.setdefault("dark_mode", False)
    st.markdown(_CSS_TEMPLATE % get_colors(), unsafe_allow_html=True)


def auth_guard() -> None:
    if not st.session_state.get("token"):
        st.warning("Please log in from the **Home** page to continue.")
        st.stop()


def render_sidebar_profile() -> None:
    """Signed-in user, dark-mode toggle and logout in the sidebar."""
    if not st.session_state.get("token"):
        return
    user = st.session_state.get("user") or {}
    email = user.get("email", "")

    with st.sidebar:
        st.markdown(f"**{user.get('name') or email}**")
        st.caption(f"{user.get('role') or 'Staff'} · {email}")

        dark = st.toggle("Dark mode", value=st.session_state.get("dark_mode", False), key="dark_mode_toggle")
        if dark != st.session_state.get("dark_mode", False):
            st.session_state.dark_mode = dark
            st.rerun()

        if st.button("Logout", use_container_width=True):
            st.session_state.token = None
            st.session_state.user = None
            st.rerun()
        st.divider()


def _badge(text: str, color: str) -> str:
    return f'<span class="badge" style="background:{color};">{text}</span>'


def payment_badge(status: str | None) -> str:
    key = (status or "Due").strip()
    return _badge(key, get_colors()[_BADGE_COLOR.get(key, "danger")])


def lock_badge(state: str | None) -> str:
    return _badge(state or "Unknown", get_colors()["info"])


def kpi_tile(label: str, value: str | int | float, color: str) -> str:
    return (
        f'<div class="kpi-tile" style="border-left-color:{color};">'
        f'<div class="kpi-value" style="color:{color};">{value}</div>'
        f'<div class="kpi-label">{label}</div>'
        f'</div>'
    )


def section_title(text: str) -> None:
    st.markdown(f'<div class="section-title">{text}</div>', unsafe_allow_html=True)


def money(value, symbol: str = "₹") -> str:
    try:
        amount = float(value or 0)
    except (TypeError, ValueError):
        return f"{symbol}0"
    if amount.is_integer():
        return f"{symbol}{int(amount)}"
    return f"{symbol}{amount:.2f}"


def error_message(res) -> str:
    """Pull the envelope message out of a failed API response."""
    try:
        payload = res.json()
    except ValueError:
        return res.text
    return payload.get("message") or res.text
