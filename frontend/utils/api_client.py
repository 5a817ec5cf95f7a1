import os

import requests
import streamlit as st

BASE_URL = os.getenv("API_BASE_URL", "http://localhost:8000")


class ApiClient:
    def __init__(self, token: str | None = None):
        self.token = token

    @property
    def headers(self):
        h = {}
        if self.token:
            h["Authorization"] = f"Bearer {self.token}"
        return h

    def register(self, email: str, password: str, full_name: str | None = None, lab_id: int | None = None):
        body = {"email": email, "password": password, "fullName": full_name, "labId": lab_id}
        return requests.post(f"{BASE_URL}/api/auth/register", json=body, timeout=120)

    def login(self, email: str, password: str):
        return requests.post(f"{BASE_URL}/api/auth/login", json={"email": email, "password": password}, timeout=120)

    def search_patients(self, search: str):
        return requests.get(f"{BASE_URL}/api/patients", params={"search": search}, headers=self.headers, timeout=120)

    def register_patient(self, body: dict):
        return requests.post(f"{BASE_URL}/api/patients", json=body, headers=self.headers, timeout=120)

    def search_tests(self, search: str | None = None, category: str | None = None):
        params = {"search": search, "category": category}
        return requests.get(f"{BASE_URL}/api/catalog/tests", params=params, headers=self.headers, timeout=120)

    def create_invoice(self, body: dict):
        return requests.post(f"{BASE_URL}/api/invoices", json=body, headers=self.headers, timeout=120)

    def invoices(self, **filters):
        return requests.get(f"{BASE_URL}/api/invoices", params=filters, headers=self.headers, timeout=120)

    def invoice_by_receipt(self, receipt_number: int):
        return requests.get(f"{BASE_URL}/api/invoices/receipt/{receipt_number}", headers=self.headers, timeout=120)

    def update_invoice(self, invoice_id: str, body: dict):
        return requests.put(f"{BASE_URL}/api/invoices/{invoice_id}", json=body, headers=self.headers, timeout=120)

    def remove_test(self, invoice_id: str, line_id: int):
        return requests.delete(f"{BASE_URL}/api/invoices/{invoice_id}/tests/{line_id}", headers=self.headers, timeout=120)

    def add_payment(self, invoice_id: str, body: dict):
        return requests.post(f"{BASE_URL}/api/invoices/{invoice_id}/payments", json=body, headers=self.headers, timeout=120)

    def change_status(self, invoice_id: str, status: str):
        return requests.put(f"{BASE_URL}/api/invoices/{invoice_id}/status", json={"status": status}, headers=self.headers, timeout=120)

    def lock_state(self, invoice_id: str):
        return requests.get(f"{BASE_URL}/api/invoices/{invoice_id}/lock", headers=self.headers, timeout=120)

    def history(self, invoice_id: str):
        return requests.get(f"{BASE_URL}/api/invoices/{invoice_id}/history", headers=self.headers, timeout=120)

    def receipt_html(self, invoice_id: str):
        return requests.get(f"{BASE_URL}/api/invoices/{invoice_id}/receipt", headers=self.headers, timeout=120)

    def mark_printed(self, invoice_id: str):
        return requests.patch(f"{BASE_URL}/api/invoices/{invoice_id}/print", headers=self.headers, timeout=120)


# ---------------------------------------------------------------------------
# Cached data fetchers: return parsed envelope data, cached for 60 seconds.
# These are standalone functions so @st.cache_data can hash the arguments.
# ---------------------------------------------------------------------------

@st.cache_data(ttl=60, show_spinner=False)
def cached_categories(token: str) -> tuple[bool, list]:
    res = requests.get(f"{BASE_URL}/api/catalog/categories", headers={"Authorization": f"Bearer {token}"}, timeout=120)
    return res.ok, res.json()["data"] if res.ok else []


@st.cache_data(ttl=60, show_spinner=False)
def cached_category_revenue(token: str, start: str | None, end: str | None) -> tuple[bool, list]:
    res = requests.get(
        f"{BASE_URL}/api/invoices/reports/category",
        params={"start": start, "end": end},
        headers={"Authorization": f"Bearer {token}"},
        timeout=120,
    )
    return res.ok, res.json()["data"] if res.ok else []


@st.cache_data(ttl=60, show_spinner=False)
def cached_daily_revenue(token: str, start: str | None, end: str | None) -> tuple[bool, list]:
    res = requests.get(
        f"{BASE_URL}/api/invoices/reports/daily",
        params={"start": start, "end": end},
        headers={"Authorization": f"Bearer {token}"},
        timeout=120,
    )
    return res.ok, res.json()["data"] if res.ok else []


@st.cache_data(ttl=60, show_spinner=False)
def cached_daily_count(token: str) -> tuple[bool, dict]:
    res = requests.get(f"{BASE_URL}/api/invoices/daily-count", headers={"Authorization": f"Bearer {token}"}, timeout=120)
    return res.ok, res.json()["data"] if res.ok else {}
