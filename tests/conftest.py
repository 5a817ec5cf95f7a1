from collections.abc import Generator
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from pathlab.database import Base, get_db
from pathlab.main import app
from pathlab.models.catalog import TestDefinition

CATALOG = [
    ("CBC", "Haematology", "300"),
    ("Blood Sugar", "Biochemistry", "150"),
    ("Lipid Profile", "Biochemistry", "200"),
    ("Urine Routine", "Clinical Pathology", "100"),
]


def auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def db_session() -> Generator:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def client(db_session) -> Generator[TestClient, None, None]:
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    # Tests use an in-memory DB via dependency override; skip app startup side effects.
    original_startup = list(app.router.on_startup)
    app.router.on_startup.clear()
    with TestClient(app) as test_client:
        yield test_client
    app.router.on_startup[:] = original_startup
    app.dependency_overrides.clear()


@pytest.fixture()
def catalog(db_session) -> dict[str, int]:
    """Shared test definitions, keyed by name."""
    rows = [TestDefinition(name=name, category=category, price=Decimal(price)) for name, category, price in CATALOG]
    db_session.add_all(rows)
    db_session.commit()
    return {row.name: row.id for row in rows}


@pytest.fixture()
def add_test_definition(db_session):
    def _add(name: str, category: str, price: str, lab_id: int | None = None) -> int:
        row = TestDefinition(name=name, category=category, price=Decimal(price), lab_id=lab_id)
        db_session.add(row)
        db_session.commit()
        return row.id

    return _add


@pytest.fixture()
def super_admin_headers(client) -> dict:
    response = client.post(
        "/api/auth/register",
        json={"email": "root@example.com", "password": "secret123", "fullName": "Root User"},
    )
    assert response.status_code == 201
    return auth(response.json()["data"]["token"])


@pytest.fixture()
def make_lab(client, super_admin_headers):
    def _make(code: str = "city", name: str = "City Diagnostics") -> dict:
        response = client.post(
            "/api/labs",
            json={"name": name, "code": code, "address": "1 Station Road, Pune"},
            headers=super_admin_headers,
        )
        assert response.status_code == 201
        return response.json()["data"]

    return _make


@pytest.fixture()
def lab(make_lab) -> dict:
    return make_lab()


@pytest.fixture()
def register_lab_user(client):
    def _register(lab_id: int, email: str, full_name: str = "Lab Admin") -> dict:
        response = client.post(
            "/api/auth/register",
            json={"email": email, "password": "secret123", "fullName": full_name, "labId": lab_id},
        )
        assert response.status_code == 201
        return auth(response.json()["data"]["token"])

    return _register


@pytest.fixture()
def lab_admin_headers(lab, register_lab_user) -> dict:
    return register_lab_user(lab["id"], "admin@example.com")


@pytest.fixture()
def patient(client, lab_admin_headers) -> dict:
    response = client.post(
        "/api/patients",
        json={
            "firstName": "Asha",
            "lastName": "Verma",
            "phone": "9876543210",
            "gender": "Female",
            "age": {"value": 34, "unit": "Years"},
            "address": {"street": "12 MG Road", "city": "Pune", "state": "Maharashtra", "zipCode": "411001"},
        },
        headers=lab_admin_headers,
    )
    assert response.status_code == 201
    return response.json()["data"]


@pytest.fixture()
def book(client, catalog, patient, lab_admin_headers):
    """Create an invoice for the default patient from catalog test names."""

    def _book(names: list[str], paid=None, headers: dict | None = None, **extra):
        body = {"patientId": patient["patientId"], "tests": [{"testId": catalog[name]} for name in names], **extra}
        if paid is not None:
            body["payment"] = {"amount": paid, "method": "Cash"}
        return client.post("/api/invoices", json=body, headers=headers or lab_admin_headers)

    return _book
