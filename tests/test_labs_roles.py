import pytest

from pathlab.errors import ValidationFailed
from pathlab.services.roles import validate_custom_role_name


@pytest.mark.parametrize("name", ["Admin", "superadmin", "Lab Admin", "ROOT", "patient"])
def test_reserved_role_names_rejected(name):
    with pytest.raises(ValidationFailed):
        validate_custom_role_name(name)


def test_role_name_shape():
    assert validate_custom_role_name("  Phlebotomist ") == "Phlebotomist"
    with pytest.raises(ValidationFailed):
        validate_custom_role_name("bad/name")
    with pytest.raises(ValidationFailed):
        validate_custom_role_name("x" * 51)


def test_super_admin_creates_and_lists_labs(client, super_admin_headers, make_lab):
    lab = make_lab(code="north", name="North Lab")
    assert lab["code"] == "NORTH"

    duplicate = client.post("/api/labs", json={"name": "Again", "code": "North"}, headers=super_admin_headers)
    assert duplicate.status_code == 409

    listed = client.get("/api/labs", headers=super_admin_headers).json()["data"]
    assert [item["code"] for item in listed] == ["NORTH"]


def test_lab_admin_cannot_list_labs(client, lab_admin_headers):
    response = client.get("/api/labs", headers=lab_admin_headers)
    assert response.status_code == 403


def test_custom_role_lifecycle(client, lab, lab_admin_headers):
    base = f"/api/labs/{lab['id']}/roles"
    created = client.post(base, json={"name": "Phlebotomist", "permissions": ["collect", "collect"]}, headers=lab_admin_headers)
    assert created.status_code == 201
    role = created.json()["data"]
    assert role["permissions"] == ["collect"]

    again = client.post(base, json={"name": "phlebotomist"}, headers=lab_admin_headers)
    assert again.status_code == 409

    reserved = client.post(base, json={"name": "Admin"}, headers=lab_admin_headers)
    assert reserved.status_code == 400
    assert reserved.json()["error"] == "ValidationError"

    deleted = client.delete(f"{base}/{role['id']}", headers=lab_admin_headers)
    assert deleted.json()["data"]["isActive"] is False
    listed = client.get(base, headers=lab_admin_headers).json()["data"]
    assert listed["customRoles"] == []
    assert "SuperAdmin" in listed["systemRoles"]

    revived = client.post(base, json={"name": "Phlebotomist"}, headers=lab_admin_headers)
    assert revived.json()["data"]["id"] == role["id"]


def test_lab_user_with_custom_role(client, lab, lab_admin_headers):
    client.post(f"/api/labs/{lab['id']}/roles", json={"name": "Cashier", "permissions": ["billing"]}, headers=lab_admin_headers)
    response = client.post(
        f"/api/labs/{lab['id']}/users",
        json={"email": "cashier@example.com", "password": "secret123", "fullName": "Cash Desk", "role": "Cashier"},
        headers=lab_admin_headers,
    )
    assert response.status_code == 201
    user = response.json()["data"]
    assert user["role"] == "Cashier"
    assert user["isCustomRole"] is True
    assert user["permissions"] == ["billing"]


def test_lab_user_cannot_be_super_admin(client, lab, lab_admin_headers):
    response = client.post(
        f"/api/labs/{lab['id']}/users",
        json={"email": "boss@example.com", "password": "secret123", "role": "SuperAdmin"},
        headers=lab_admin_headers,
    )
    assert response.status_code == 403


def test_unknown_role_rejected(client, lab, lab_admin_headers):
    response = client.post(
        f"/api/labs/{lab['id']}/users",
        json={"email": "who@example.com", "password": "secret123", "role": "Ghost"},
        headers=lab_admin_headers,
    )
    assert response.status_code == 400


def test_lab_admin_cannot_manage_other_lab(client, make_lab, lab_admin_headers):
    other = make_lab(code="south", name="South Lab")
    response = client.get(f"/api/labs/{other['id']}/roles", headers=lab_admin_headers)
    assert response.status_code == 404
