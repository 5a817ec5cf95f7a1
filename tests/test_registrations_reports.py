def lock_state(client, invoice, headers) -> str:
    return client.get(f"/api/invoices/{invoice['id']}/lock", headers=headers).json()["data"]["state"]


def test_lock_follows_registration_and_report(client, book, lab_admin_headers):
    invoice = book(["CBC"]).json()["data"]
    receipt = invoice["receiptNumber"]
    assert lock_state(client, invoice, lab_admin_headers) == "Unlocked"

    registered = client.post("/api/registrations", json={"receiptNumber": receipt}, headers=lab_admin_headers)
    assert registered.status_code == 201
    assert registered.json()["data"]["editAllowed"] is False
    assert lock_state(client, invoice, lab_admin_headers) == "SoftLocked"

    allowed = client.put(f"/api/registrations/{receipt}/cash-edit", json={"allow": True}, headers=lab_admin_headers)
    assert allowed.json()["data"]["editAllowed"] is True
    assert lock_state(client, invoice, lab_admin_headers) == "Unlocked"

    client.post("/api/reports", json={"receiptNumber": receipt}, headers=lab_admin_headers)
    assert lock_state(client, invoice, lab_admin_headers) == "HardLocked"

    # No way back out of a hard lock.
    toggled = client.put(f"/api/registrations/{receipt}/cash-edit", json={"allow": True}, headers=lab_admin_headers)
    assert toggled.status_code == 403
    assert toggled.json()["error"] == "HardLocked"


def test_one_registration_per_receipt(client, book, lab_admin_headers):
    receipt = book(["CBC"]).json()["data"]["receiptNumber"]
    assert client.post("/api/registrations", json={"receiptNumber": receipt}, headers=lab_admin_headers).status_code == 201
    again = client.post("/api/registrations", json={"receiptNumber": receipt}, headers=lab_admin_headers)
    assert again.status_code == 409


def test_first_report_wins(client, book, lab_admin_headers):
    invoice = book(["CBC", "Blood Sugar"]).json()["data"]
    receipt = invoice["receiptNumber"]
    first = client.post("/api/reports", json={"receiptNumber": receipt}, headers=lab_admin_headers)
    assert first.status_code == 201
    assert first.json()["data"]["generatedBy"] == "Lab Admin"

    tests = client.get(f"/api/invoices/{invoice['id']}", headers=lab_admin_headers).json()["data"]["tests"]
    assert [line["status"] for line in tests] == ["Reported", "Reported"]

    second = client.post("/api/reports", json={"receiptNumber": receipt}, headers=lab_admin_headers)
    assert second.status_code == 409
    assert second.json()["error"] == "Conflict"


def test_cash_edit_requires_registration(client, book, lab_admin_headers):
    receipt = book(["CBC"]).json()["data"]["receiptNumber"]
    response = client.put(f"/api/registrations/{receipt}/cash-edit", json={"allow": True}, headers=lab_admin_headers)
    assert response.status_code == 409


def test_cash_edit_requires_admin(client, book, lab, register_lab_user, lab_admin_headers):
    receipt = book(["CBC"]).json()["data"]["receiptNumber"]
    client.post("/api/registrations", json={"receiptNumber": receipt}, headers=lab_admin_headers)
    clerk = register_lab_user(lab["id"], "clerk@example.com", "Desk Clerk")
    response = client.put(f"/api/registrations/{receipt}/cash-edit", json={"allow": True}, headers=clerk)
    assert response.status_code == 403
    assert response.json()["error"] == "Forbidden"


def test_unknown_receipt(client, lab_admin_headers):
    response = client.post("/api/registrations", json={"receiptNumber": 404}, headers=lab_admin_headers)
    assert response.status_code == 404
    response = client.post("/api/reports", json={"receiptNumber": 404, "year": 2001}, headers=lab_admin_headers)
    assert response.status_code == 404
