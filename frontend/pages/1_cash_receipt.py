import sys
from pathlib import Path

APP_DIR = Path(__file__).resolve().parent.parent
if str(APP_DIR) not in sys.path:
    sys.path.insert(0, str(APP_DIR))

import pandas as pd
import streamlit as st
import streamlit.components.v1 as components

from utils.api_client import ApiClient, cached_categories, cached_daily_count
from utils.theme import (
    apply_theme,
    auth_guard,
    error_message,
    get_colors,
    kpi_tile,
    money,
    render_sidebar_profile,
    section_title,
)

st.set_page_config(page_title="Cash Receipt", page_icon="🧾", layout="wide")
apply_theme()
auth_guard()
render_sidebar_profile()
COLORS = get_colors()

token = st.session_state.token
client = ApiClient(token=token)

if "cart" not in st.session_state:
    st.session_state.cart = []
if "patient" not in st.session_state:
    st.session_state.patient = None

st.markdown(
    f"""
    <div style="margin-bottom:4px;">
        <span style="font-size:1.6rem;font-weight:800;color:{COLORS['text']};">🧾 New Cash Receipt</span>
    </div>
    <p style="color:{COLORS['text_muted']};margin-top:0;">
        Pick a patient, add tests, take payment and print.
    </p>
    """,
    unsafe_allow_html=True,
)

# ── Patient ───────────────────────────────────────────────────────────────
section_title("Patient")
tab_find, tab_new = st.tabs(["Find patient", "Register patient"])

with tab_find:
    query = st.text_input("Search by UHID, name or phone")
    if query:
        res = client.search_patients(query)
        if res.ok:
            matches = res.json()["data"]["items"]
            if not matches:
                st.info("No patients found.")
            for p in matches[:10]:
                label = f"{p['patientId']} · {p['name']} · {p['ageDisplay']} / {p['gender'][:1]} · {p.get('phone') or ''}"
                if st.button(label, key=f"pick_{p['patientId']}_{p['registrationYear']}"):
                    st.session_state.patient = p
                    st.rerun()
        else:
            st.error(error_message(res))

with tab_new:
    with st.form("new_patient"):
        c1, c2 = st.columns(2)
        first = c1.text_input("First name")
        last = c2.text_input("Last name")
        c3, c4, c5 = st.columns(3)
        age = c3.number_input("Age", min_value=0, max_value=150, step=1)
        unit = c4.selectbox("Age in", ["Years", "Months", "Days"])
        gender = c5.selectbox("Gender", ["Male", "Female", "Other"])
        phone = st.text_input("Phone")
        address = st.text_input("Address (comma separated)")
        created = st.form_submit_button("Register", type="primary")
    if created:
        res = client.register_patient(
            {
                "firstName": first,
                "lastName": last or None,
                "phone": phone or None,
                "gender": gender,
                "age": {"value": int(age), "unit": unit},
                "address": address or None,
            }
        )
        if res.ok:
            st.session_state.patient = res.json()["data"]
            st.success(f"Registered {st.session_state.patient['patientId']}")
            st.rerun()
        else:
            st.error(error_message(res))

patient = st.session_state.patient
if patient:
    st.markdown(
        f"**{patient['name']}** · UHID {patient['patientId']} · Reg {patient['registrationNumber']} · "
        f"{patient['ageDisplay']} / {patient['gender'][:1]} · {patient.get('addressDisplay') or ''}"
    )

# ── Tests ─────────────────────────────────────────────────────────────────
section_title("Tests")
cat_ok, categories = cached_categories(token)
c1, c2 = st.columns([3, 1])
search = c1.text_input("Search tests")
category = c2.selectbox("Category", ["All"] + (categories if cat_ok else []))
res = client.search_tests(search or None, None if category == "All" else category)
found = res.json()["data"] if res.ok else []

for test in found[:15]:
    cols = st.columns([5, 2, 1])
    cols[0].write(f"{test['name']} ({test['category']})")
    cols[1].write(money(test["price"]))
    if cols[2].button("Add", key=f"add_{test['id']}"):
        names = {item["name"].strip().lower().replace(".", "") for item in st.session_state.cart}
        if test["name"].strip().lower().replace(".", "") in names:
            st.warning(f"{test['name']} is already in the list")
        else:
            st.session_state.cart.append(
                {"testId": test["id"], "name": test["name"], "category": test["category"],
                 "price": float(test["price"]), "quantity": 1, "discount": 0.0}
            )
            st.rerun()

if st.session_state.cart:
    df = pd.DataFrame(st.session_state.cart)
    edited = st.data_editor(
        df[["name", "category", "price", "quantity", "discount"]],
        disabled=["name", "category", "price"],
        use_container_width=True,
        key="cart_editor",
    )
    for item, (_, row) in zip(st.session_state.cart, edited.iterrows()):
        item["quantity"] = max(1, int(row["quantity"]))
        item["discount"] = min(max(0.0, float(row["discount"])), item["price"] * item["quantity"])

    remove = st.selectbox("Remove a test", ["—"] + [item["name"] for item in st.session_state.cart])
    if remove != "—" and st.button("Remove"):
        st.session_state.cart = [item for item in st.session_state.cart if item["name"] != remove]
        st.rerun()

    total = sum(item["price"] * item["quantity"] - item["discount"] for item in st.session_state.cart)
    discount = sum(item["discount"] for item in st.session_state.cart)
    k1, k2 = st.columns(2)
    k1.markdown(kpi_tile("Net Payable", money(total), COLORS["primary"]), unsafe_allow_html=True)
    k2.markdown(kpi_tile("Discount", money(discount), COLORS["accent"]), unsafe_allow_html=True)

# ── Payment and save ──────────────────────────────────────────────────────
section_title("Payment")
with st.form("payment"):
    c1, c2, c3 = st.columns(3)
    amount = c1.number_input("Amount received", min_value=0.0, step=10.0)
    method = c2.selectbox("Method", ["Cash", "Card", "UPI", "Bank Transfer", "Cheque"])
    txn = c3.text_input("Transaction ID")
    c4, c5 = st.columns(2)
    mode = c4.selectbox("Mode", ["OPD", "IPD", "Emergency", "Home Collection"])
    doctor_ref = c5.text_input("Doctor Ref No")
    save = st.form_submit_button("Save receipt", type="primary", disabled=not (patient and st.session_state.cart))

if save:
    res = client.create_invoice(
        {
            "patientId": patient["patientId"],
            "tests": [
                {"testId": item["testId"], "quantity": item["quantity"], "discount": round(item["discount"], 2)}
                for item in st.session_state.cart
            ],
            "payment": {"amount": round(amount, 2), "method": method, "transactionId": txn or None},
            "mode": mode,
            "doctorRefNo": doctor_ref or None,
        }
    )
    if res.ok:
        invoice = res.json()["data"]
        st.session_state.cart = []
        st.session_state.last_invoice = invoice
        cached_daily_count.clear()
        st.success(f"Receipt {invoice['receiptNumber']} saved ({invoice['payment']['paymentStatus']})")
    else:
        st.error(error_message(res))

last = st.session_state.get("last_invoice")
if last:
    html_res = client.receipt_html(last["id"])
    if html_res.ok:
        components.html(html_res.text, height=900, scrolling=True)
        if st.button("Mark as printed"):
            client.mark_printed(last["id"])
            st.toast("Marked as printed")
