def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_register_and_login(client):
    register_response = client.post(
        "/api/auth/register",
        json={"email": "test@example.com", "password": "secret123", "fullName": "Test User"},
    )
    assert register_response.status_code == 201
    register_payload = register_response.json()["data"]
    assert "token" in register_payload
    assert register_payload["user"]["email"] == "test@example.com"
    # The first account on a fresh install runs the platform.
    assert register_payload["user"]["role"] == "SuperAdmin"

    login_response = client.post("/api/auth/login", json={"email": "test@example.com", "password": "secret123"})
    assert login_response.status_code == 200
    assert "token" in login_response.json()["data"]


def test_me_returns_actor(client, lab_admin_headers, lab):
    response = client.get("/api/auth/me", headers=lab_admin_headers)
    assert response.status_code == 200
    actor = response.json()["data"]
    assert actor["role"] == "LabAdmin"
    assert actor["labId"] == lab["id"]


def test_later_registration_requires_lab(client, super_admin_headers):
    response = client.post("/api/auth/register", json={"email": "second@example.com", "password": "secret123"})
    assert response.status_code == 400
    assert response.json()["message"] == "labId is required"


def test_second_lab_user_has_no_system_role(client, lab, lab_admin_headers, register_lab_user):
    headers = register_lab_user(lab["id"], "clerk@example.com", "Desk Clerk")
    actor = client.get("/api/auth/me", headers=headers).json()["data"]
    assert actor["role"] is None
    assert actor["labId"] == lab["id"]


def test_duplicate_email_rejected(client, super_admin_headers):
    response = client.post("/api/auth/register", json={"email": "root@example.com", "password": "secret123"})
    assert response.status_code == 400


def test_error_envelope_on_invalid_login(client):
    response = client.post("/api/auth/login", json={"email": "missing@example.com", "password": "bad"})
    assert response.status_code == 401
    payload = response.json()
    assert payload["statusCode"] == 401
    assert payload["error"] == "Unauthorized"
    assert payload["message"] == "Invalid credentials"


def test_missing_token_is_unauthorized(client):
    response = client.get("/api/invoices")
    assert response.status_code == 401
    assert response.json()["error"] == "Unauthorized"


def test_unknown_token_is_unauthorized(client):
    response = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-session"})
    assert response.status_code == 401


def test_validation_error_envelope(client):
    response = client.post("/api/auth/login", json={"email": "not-an-email", "password": "x"})
    assert response.status_code == 422
    payload = response.json()
    assert payload["error"] == "ValidationError"
    assert payload["details"]["errors"]
