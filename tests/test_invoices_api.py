from datetime import datetime


def lines_total(invoice: dict) -> float:
    return sum(float(line["netAmount"]) for line in invoice["tests"])


def test_paid_in_full_booking(book, patient):
    response = book(["CBC", "Blood Sugar"], paid=450, doctorRefNo="R-1", mode="OPD")
    assert response.status_code == 201
    invoice = response.json()["data"]

    assert invoice["receiptNumber"] == 1
    assert invoice["receiptYear"] == datetime.utcnow().year
    assert invoice["invoiceNumber"] == "INV1"
    assert invoice["bookingId"] == "PB1"
    assert invoice["bill"]["subtotal"] == 450
    assert invoice["bill"]["netPayable"] == 450
    assert invoice["payment"]["totalAmount"] == 450
    assert invoice["payment"]["paymentStatus"] == "Paid"
    assert invoice["payment"]["dueAmount"] == 0
    assert invoice["payment"]["balance"] == 0
    assert invoice["patient"]["name"] == "Asha Verma"
    assert invoice["patient"]["age"] == {"value": 34, "unit": "Years"}
    assert [line["status"] for line in invoice["tests"]] == ["Pending", "Pending"]


def test_partial_payment_and_overpayment(client, book, lab_admin_headers):
    invoice = book(["Lipid Profile"], paid=100).json()["data"]
    assert invoice["payment"]["paymentStatus"] == "Partial Paid"
    assert invoice["payment"]["dueAmount"] == 100

    rejected = client.post(
        f"/api/invoices/{invoice['id']}/payments", json={"amount": 150, "method": "UPI"}, headers=lab_admin_headers
    )
    assert rejected.status_code == 409
    assert rejected.json()["error"] == "PaymentExceedsTotal"

    accepted = client.post(
        f"/api/invoices/{invoice['id']}/payments", json={"amount": 100, "method": "UPI", "transactionId": "T1"}, headers=lab_admin_headers
    )
    payment = accepted.json()["data"]["payment"]
    assert payment["paymentStatus"] == "Paid"
    assert payment["paidAmount"] == 200
    assert [entry["method"] for entry in payment["paymentHistory"]] == ["Cash", "UPI"]


def test_initial_payment_above_total_rejected(book):
    response = book(["Urine Routine"], paid=150)
    assert response.status_code == 409


def test_case_insensitive_duplicate_rejected(client, book, add_test_definition, lab_admin_headers):
    lowercase = add_test_definition("cbc", "Haematology", "300")
    invoice = book(["CBC"]).json()["data"]

    response = client.post(f"/api/invoices/{invoice['id']}/tests", json={"testId": lowercase}, headers=lab_admin_headers)
    assert response.status_code == 409
    assert response.json()["error"] == "DuplicateTest"
    assert len(client.get(f"/api/invoices/{invoice['id']}", headers=lab_admin_headers).json()["data"]["tests"]) == 1


def test_rejected_booking_consumes_no_receipt(client, catalog, patient, book, add_test_definition, lab_admin_headers):
    lowercase = add_test_definition("cbc", "Haematology", "300")
    rejected = client.post(
        "/api/invoices",
        json={"patientId": patient["patientId"], "tests": [{"testId": catalog["CBC"]}, {"testId": lowercase}]},
        headers=lab_admin_headers,
    )
    assert rejected.status_code == 409

    unknown = client.post(
        "/api/invoices",
        json={"patientId": patient["patientId"], "tests": [{"testId": 9999}]},
        headers=lab_admin_headers,
    )
    assert unknown.status_code == 404

    assert book(["CBC"]).json()["data"]["receiptNumber"] == 1


def test_unknown_patient(client, catalog, lab_admin_headers):
    response = client.post(
        "/api/invoices", json={"patientId": "PAT424242", "tests": [{"testId": catalog["CBC"]}]}, headers=lab_admin_headers
    )
    assert response.status_code == 404


def test_report_hard_locks_line_removal(client, book, lab_admin_headers):
    invoice = book(["CBC", "Blood Sugar"]).json()["data"]
    client.post("/api/registrations", json={"receiptNumber": invoice["receiptNumber"], "editAllowed": True}, headers=lab_admin_headers)
    report = client.post("/api/reports", json={"receiptNumber": invoice["receiptNumber"]}, headers=lab_admin_headers)
    assert report.status_code == 201

    line_id = invoice["tests"][0]["id"]
    response = client.delete(f"/api/invoices/{invoice['id']}/tests/{line_id}", headers=lab_admin_headers)
    assert response.status_code == 403
    assert response.json()["error"] == "HardLocked"

    edit = client.put(f"/api/invoices/{invoice['id']}", json={"tests": [{"testId": invoice["tests"][0]["testId"]}]}, headers=lab_admin_headers)
    assert edit.json()["error"] == "HardLocked"

    lock = client.get(f"/api/invoices/{invoice['id']}/lock", headers=lab_admin_headers).json()["data"]
    assert lock["state"] == "HardLocked"
    assert lock["editAllowed"] is True

    # Payments do not touch billed lines.
    paid = client.post(f"/api/invoices/{invoice['id']}/payments", json={"amount": 50}, headers=lab_admin_headers)
    assert paid.status_code == 200


def test_soft_lock_allows_additions_only(client, book, catalog, lab_admin_headers):
    invoice = book(["CBC"]).json()["data"]
    client.post("/api/registrations", json={"receiptNumber": invoice["receiptNumber"]}, headers=lab_admin_headers)

    added = client.post(f"/api/invoices/{invoice['id']}/tests", json={"testId": catalog["Urine Routine"]}, headers=lab_admin_headers)
    assert added.status_code == 201
    data = added.json()["data"]
    assert data["payment"]["totalAmount"] == 400

    cbc_line = data["tests"][0]["id"]
    removed = client.delete(f"/api/invoices/{invoice['id']}/tests/{cbc_line}", headers=lab_admin_headers)
    assert removed.status_code == 403
    assert removed.json()["error"] == "SoftLocked"

    replaced = client.put(
        f"/api/invoices/{invoice['id']}",
        json={"tests": [{"testId": catalog["Lipid Profile"]}]},
        headers=lab_admin_headers,
    )
    assert replaced.json()["error"] == "SoftLocked"

    client.put(f"/api/registrations/{invoice['receiptNumber']}/cash-edit", json={"allow": True}, headers=lab_admin_headers)
    removed = client.delete(f"/api/invoices/{invoice['id']}/tests/{cbc_line}", headers=lab_admin_headers)
    assert removed.status_code == 200
    assert [line["testName"] for line in removed.json()["data"]["tests"]] == ["Urine Routine"]


def test_edit_refunds_excess_payment(client, book, catalog, lab_admin_headers):
    invoice = book(["CBC", "Blood Sugar"], paid=450).json()["data"]
    response = client.put(
        f"/api/invoices/{invoice['id']}",
        json={"tests": [{"testId": catalog["CBC"]}], "note": "patient declined sugar"},
        headers=lab_admin_headers,
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["adjustment"]["action"] == "REFUND"
    assert data["adjustment"]["delta"] == -150
    assert data["adjustment"]["refund"] == 150
    assert data["payment"]["totalAmount"] == 300
    assert data["payment"]["paidAmount"] == 300
    assert data["payment"]["paymentStatus"] == "Paid"
    assert data["lastEditedBy"] == "Lab Admin"

    ledger = data["payment"]["paymentHistory"]
    assert [entry["amount"] for entry in ledger] == [450, -150]
    assert ledger[-1]["transactionId"] == "REFUND"
    assert ledger[-1]["method"] == "Cash"
    assert sum(entry["amount"] for entry in ledger) == data["payment"]["paidAmount"]

    history = client.get(f"/api/invoices/{invoice['id']}/history", headers=lab_admin_headers).json()["data"]
    assert history["editCount"] == 1
    entry = history["entries"][0]
    assert [test["name"] for test in entry["removedTests"]] == ["Blood Sugar"]
    assert entry["addedTests"] == []
    assert entry["delta"] == -150
    assert entry["changes"]["totalAmount"] == {"before": "450.00", "after": "300.00"}
    assert [adj["action"] for adj in history["adjustments"]] == ["REFUND"]


def test_edit_collects_increase(client, book, catalog, lab_admin_headers):
    invoice = book(["CBC"], paid=300).json()["data"]
    response = client.put(
        f"/api/invoices/{invoice['id']}",
        json={"tests": [{"testId": catalog["CBC"]}, {"testId": catalog["Blood Sugar"], "discount": 50}]},
        headers=lab_admin_headers,
    )
    data = response.json()["data"]
    assert data["adjustment"] == {"delta": 100, "action": "COLLECT"}
    assert data["payment"]["paymentStatus"] == "Partial Paid"
    assert data["payment"]["dueAmount"] == 100
    assert data["payment"]["totalAmount"] == lines_total(data)


def test_edit_without_change_in_total(client, book, catalog, lab_admin_headers):
    invoice = book(["CBC", "Blood Sugar"]).json()["data"]
    response = client.put(
        f"/api/invoices/{invoice['id']}",
        json={"tests": [{"testId": catalog["Blood Sugar"]}, {"testId": catalog["CBC"]}], "mode": "IPD"},
        headers=lab_admin_headers,
    )
    data = response.json()["data"]
    assert data["adjustment"]["action"] == "NONE"
    assert data["mode"] == "IPD"
    assert [line["testName"] for line in data["tests"]] == ["Blood Sugar", "CBC"]


def test_total_tracks_lines_through_mutations(client, book, catalog, lab_admin_headers):
    invoice = book(["CBC"]).json()["data"]
    url = f"/api/invoices/{invoice['id']}"

    added = client.post(f"{url}/tests", json={"testId": catalog["Lipid Profile"], "discount": 25}, headers=lab_admin_headers).json()["data"]
    assert added["payment"]["totalAmount"] == lines_total(added) == 475

    line_id = added["tests"][0]["id"]
    removed = client.delete(f"{url}/tests/{line_id}", headers=lab_admin_headers).json()["data"]
    assert removed["payment"]["totalAmount"] == lines_total(removed) == 175

    last = removed["tests"][0]["id"]
    refused = client.delete(f"{url}/tests/{last}", headers=lab_admin_headers)
    assert refused.status_code == 400

    history = client.get(f"{url}/history", headers=lab_admin_headers).json()["data"]
    assert history["editCount"] == 2


def test_status_moves_forward_only(client, book, lab_admin_headers):
    invoice = book(["CBC"]).json()["data"]
    url = f"/api/invoices/{invoice['id']}/status"

    skipped = client.put(url, json={"status": "Completed"}, headers=lab_admin_headers)
    assert skipped.status_code == 409
    assert skipped.json()["error"] == "InvalidStatusTransition"

    for status in ("Sample Collected", "In Progress", "Completed"):
        response = client.put(url, json={"status": status}, headers=lab_admin_headers)
        assert response.status_code == 200
    data = response.json()["data"]
    assert data["status"] == "Completed"
    assert [line["status"] for line in data["tests"]] == ["Completed"]

    assert client.put(url, json={"status": "Cancelled"}, headers=lab_admin_headers).status_code == 409
    assert client.put(url, json={"status": "Booked"}, headers=lab_admin_headers).status_code == 409


def test_cancelled_invoice_takes_no_payment(client, book, lab_admin_headers):
    invoice = book(["CBC"]).json()["data"]
    client.put(f"/api/invoices/{invoice['id']}/status", json={"status": "Cancelled"}, headers=lab_admin_headers)
    response = client.post(f"/api/invoices/{invoice['id']}/payments", json={"amount": 10}, headers=lab_admin_headers)
    assert response.status_code == 409


def test_only_latest_receipt_can_be_deleted(client, book, lab_admin_headers):
    first = book(["CBC"]).json()["data"]
    second = book(["Blood Sugar"]).json()["data"]

    refused = client.delete(f"/api/invoices/receipt/{first['receiptNumber']}", headers=lab_admin_headers)
    assert refused.status_code == 409
    assert refused.json()["details"]["latestReceiptNumber"] == 2

    deleted = client.delete(
        f"/api/invoices/receipt/{second['receiptNumber']}", params={"reason": "wrong patient"}, headers=lab_admin_headers
    )
    assert deleted.status_code == 200
    assert deleted.json()["data"]["invoiceId"] == second["id"]
    assert client.get(f"/api/invoices/{second['id']}", headers=lab_admin_headers).status_code == 404

    # Counters never go backwards.
    assert book(["Blood Sugar"]).json()["data"]["receiptNumber"] == 3


def test_registered_receipt_cannot_be_deleted(client, book, lab_admin_headers):
    invoice = book(["CBC"]).json()["data"]
    client.post("/api/registrations", json={"receiptNumber": invoice["receiptNumber"], "editAllowed": True}, headers=lab_admin_headers)
    response = client.delete(f"/api/invoices/receipt/{invoice['receiptNumber']}", headers=lab_admin_headers)
    assert response.status_code == 409


def test_receipt_html_and_print(client, book, lab_admin_headers):
    invoice = book(["CBC", "Blood Sugar"], paid=200).json()["data"]
    html = client.get(f"/api/invoices/{invoice['id']}/receipt", headers=lab_admin_headers)
    assert html.status_code == 200
    assert html.headers["content-type"].startswith("text/html")
    assert "CASH RECEIPT" in html.text
    assert "City Diagnostics" in html.text
    assert "HAEMATOLOGY SUBTOTAL" in html.text

    printed = client.patch(f"/api/invoices/{invoice['id']}/print", headers=lab_admin_headers).json()["data"]
    assert printed["isPrinted"] is True
    assert printed["printedAt"]


def test_lookup_and_listing(client, book, lab_admin_headers):
    paid = book(["CBC"], paid=300).json()["data"]
    book(["Blood Sugar"])

    by_receipt = client.get(f"/api/invoices/receipt/{paid['receiptNumber']}", headers=lab_admin_headers)
    assert by_receipt.json()["data"]["id"] == paid["id"]

    listed = client.get("/api/invoices", params={"paymentStatus": "Paid"}, headers=lab_admin_headers).json()["data"]
    assert listed["total"] == 1
    assert listed["items"][0]["id"] == paid["id"]

    categories = client.get("/api/invoices/reports/category", headers=lab_admin_headers).json()["data"]
    assert {row["category"]: row["revenue"] for row in categories} == {"Biochemistry": 150, "Haematology": 300}

    daily = client.get("/api/invoices/reports/daily", headers=lab_admin_headers).json()["data"]
    assert daily[-1]["invoiceCount"] == 2
    assert daily[-1]["revenue"] == 450
    assert daily[-1]["collected"] == 300

    count = client.get("/api/invoices/daily-count", headers=lab_admin_headers).json()["data"]
    assert count["count"] == 2
    assert count["lastReceiptNumber"] == 2


def test_invoices_are_lab_scoped(client, book, make_lab, register_lab_user):
    invoice = book(["CBC"]).json()["data"]
    other = make_lab(code="south", name="South Lab")
    headers = register_lab_user(other["id"], "south@example.com")
    assert client.get(f"/api/invoices/{invoice['id']}", headers=headers).status_code == 404
    assert client.get(f"/api/invoices/receipt/{invoice['receiptNumber']}", headers=headers).status_code == 404
