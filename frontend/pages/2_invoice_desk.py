import sys
from pathlib import Path

APP_DIR = Path(__file__).resolve().parent.parent
if str(APP_DIR) not in sys.path:
    sys.path.insert(0, str(APP_DIR))

import pandas as pd
import streamlit as st

from utils.api_client import ApiClient
from utils.theme import (
    apply_theme,
    auth_guard,
    error_message,
    get_colors,
    lock_badge,
    money,
    payment_badge,
    render_sidebar_profile,
    section_title,
)

st.set_page_config(page_title="Invoice Desk", page_icon="🗂️", layout="wide")
apply_theme()
auth_guard()
render_sidebar_profile()
COLORS = get_colors()

client = ApiClient(token=st.session_state.token)

NEXT_STATUS = {
    "Booked": ["Sample Collected", "Cancelled"],
    "Sample Collected": ["In Progress", "Cancelled"],
    "In Progress": ["Completed", "Cancelled"],
}

st.markdown(
    f"""
    <div style="margin-bottom:4px;">
        <span style="font-size:1.6rem;font-weight:800;color:{COLORS['text']};">🗂️ Invoice Desk</span>
    </div>
    """,
    unsafe_allow_html=True,
)

receipt_no = st.number_input("Receipt number", min_value=1, step=1)
if st.button("Open", type="primary"):
    res = client.invoice_by_receipt(int(receipt_no))
    if res.ok:
        st.session_state.desk_invoice = res.json()["data"]
    else:
        st.session_state.desk_invoice = None
        st.error(error_message(res))

invoice = st.session_state.get("desk_invoice")
if not invoice:
    st.stop()

payment = invoice["payment"]
lock_res = client.lock_state(invoice["id"])
lock = lock_res.json()["data"] if lock_res.ok else {}

st.markdown(
    f"**Receipt {invoice['receiptNumber']}** · {invoice['invoiceNumber']} · {invoice['patient']['name']} · "
    f"{invoice['status']} &nbsp; {payment_badge(payment['paymentStatus'])} &nbsp; {lock_badge(lock.get('state'))}",
    unsafe_allow_html=True,
)
c1, c2, c3 = st.columns(3)
c1.metric("Total", money(payment["totalAmount"]))
c2.metric("Paid", money(payment["paidAmount"]))
c3.metric("Due", money(payment["dueAmount"]))

section_title("Tests")
lines = pd.DataFrame(invoice["tests"])
if not lines.empty:
    st.dataframe(lines[["testName", "category", "price", "quantity", "discount", "netAmount", "status"]], use_container_width=True)
    target = st.selectbox("Remove test", ["—"] + [f"{row['id']}: {row['testName']}" for row in invoice["tests"]])
    if target != "—" and st.button("Remove test"):
        res = client.remove_test(invoice["id"], int(target.split(":")[0]))
        if res.ok:
            st.session_state.desk_invoice = res.json()["data"]
            st.rerun()
        st.error(error_message(res))

section_title("Payment")
with st.form("desk_payment"):
    c1, c2 = st.columns(2)
    amount = c1.number_input("Amount", min_value=0.0, step=10.0)
    method = c2.selectbox("Method", ["Cash", "Card", "UPI", "Bank Transfer", "Cheque"])
    pay = st.form_submit_button("Record payment")
if pay:
    res = client.add_payment(invoice["id"], {"amount": round(amount, 2), "method": method})
    if res.ok:
        st.session_state.desk_invoice = res.json()["data"]
        st.rerun()
    st.error(error_message(res))

if payment["paymentHistory"]:
    st.dataframe(pd.DataFrame(payment["paymentHistory"]), use_container_width=True)

section_title("Status")
options = NEXT_STATUS.get(invoice["status"], [])
if options:
    new_status = st.selectbox("Move to", options)
    if st.button("Update status"):
        res = client.change_status(invoice["id"], new_status)
        if res.ok:
            st.session_state.desk_invoice = res.json()["data"]
            st.rerun()
        st.error(error_message(res))
else:
    st.caption(f"{invoice['status']} is final.")

section_title("Edit history")
hist_res = client.history(invoice["id"])
if hist_res.ok:
    hist = hist_res.json()["data"]
    if hist["lastEditedAt"]:
        st.caption(f"Last edited {hist['lastEditedAt']} by {hist['lastEditedBy']}")
    for entry in reversed(hist["entries"]):
        added = ", ".join(t["name"] for t in entry["addedTests"]) or "none"
        removed = ", ".join(t["name"] for t in entry["removedTests"]) or "none"
        st.markdown(f"- {entry['at']} · {entry['by']} · added: {added} · removed: {removed} · Δ {money(entry['delta'])}")
    if not hist["entries"]:
        st.caption("No edits yet.")
