import threading
from datetime import datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

from pathlab.database import Base
from pathlab.errors import CounterAllocationError, NotFoundError, ValidationFailed
from pathlab.models.invoice import Invoice
from pathlab.models.patient import Patient
from pathlab.services import counters


def test_first_allocation_starts_at_one(db_session):
    assert counters.current_value(db_session, "receipt_2025") == 0
    assert counters.allocate_next(db_session, "receipt_2025") == 1
    assert counters.allocate_next(db_session, "receipt_2025") == 2
    db_session.commit()
    assert counters.current_value(db_session, "receipt_2025") == 2


def test_sequences_are_independent(db_session):
    counters.allocate_next(db_session, counters.receipt_sequence(2025))
    counters.allocate_next(db_session, counters.receipt_sequence(2025))
    assert counters.allocate_next(db_session, counters.receipt_sequence(2026)) == 1
    assert counters.allocate_next(db_session, counters.GLOBAL_CRN) == 1


def test_rollback_returns_the_number(db_session):
    assert counters.allocate_next(db_session, "receipt_2025") == 1
    db_session.rollback()
    assert counters.allocate_next(db_session, "receipt_2025") == 1


def test_storage_failure_aborts_allocation(db_session, monkeypatch):
    def broken(*args, **kwargs):
        raise OperationalError("UPDATE counters", {}, Exception("database is unavailable"))

    monkeypatch.setattr(db_session, "execute", broken)
    with pytest.raises(CounterAllocationError) as exc_info:
        counters.allocate_next(db_session, "receipt_2025")
    assert exc_info.value.status_code == 503


def test_formatting():
    assert counters.format_patient_id(42) == "PAT000042"
    assert counters.format_id("INV", 7) == "INV7"
    assert counters.patient_sequence(2025) == "patientId_2025"
    assert counters.registration_sequence(2025) == "registrationNumber_2025"


def test_invalid_sequence_name():
    with pytest.raises(ValidationFailed):
        counters.validate_name("receipt 2025; drop")


def test_resync_only_raises(db_session):
    assert counters.resync(db_session, "receipt_2025", minimum=10) == (0, 10)
    assert counters.resync(db_session, "receipt_2025", minimum=5) == (10, 10)
    assert counters.allocate_next(db_session, "receipt_2025") == 11


def test_resync_from_issued_patient_ids(db_session):
    db_session.add_all(
        [
            Patient(
                patient_id="PAT000007",
                registration_year=2024,
                registration_number=3,
                first_name="Ravi",
                gender="Male",
                age_value=40,
                age_unit="Years",
                created_at=datetime(2024, 5, 1),
            ),
            Patient(
                patient_id="PAT000002",
                registration_year=2024,
                registration_number=9,
                first_name="Meena",
                gender="Female",
                age_value=8,
                age_unit="Months",
                created_at=datetime(2024, 6, 1),
            ),
        ]
    )
    db_session.commit()

    assert counters.resync(db_session, "patientId_2024") == (0, 7)
    assert counters.resync(db_session, "registrationNumber_2024") == (0, 9)
    assert counters.allocate_next(db_session, "patientId_2024") == 8


def test_resync_minimum_never_undercuts_issued_receipts(db_session):
    db_session.add_all(
        [
            Invoice(
                receipt_number=number,
                receipt_year=2031,
                db_crn=number,
                invoice_number=f"INV{number}",
                booking_id=f"PB{number}",
                patient_code="PAT000001",
                patient_snapshot={"patientId": "PAT000001", "name": "Asha Verma"},
            )
            for number in range(1, 6)
        ]
    )
    db_session.commit()

    assert counters.resync(db_session, "receipt_2031", minimum=2) == (0, 5)
    assert counters.allocate_next(db_session, "receipt_2031") == 6
    assert counters.resync(db_session, "db_crn", minimum=9) == (0, 9)


def test_resync_unknown_sequence(db_session):
    with pytest.raises(NotFoundError):
        counters.resync(db_session, "somethingElse")


def test_concurrent_allocation_is_gap_free(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'counters.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    workers, per_worker = 8, 5
    issued: list[int] = []
    failures: list[BaseException] = []
    guard = threading.Lock()
    start = threading.Barrier(workers)

    def worker():
        start.wait()
        for _ in range(per_worker):
            with Session() as session:
                try:
                    value = counters.allocate_next(session, "receipt_2025")
                    session.commit()
                except Exception as exc:
                    with guard:
                        failures.append(exc)
                    return
            with guard:
                issued.append(value)

    threads = [threading.Thread(target=worker) for _ in range(workers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    try:
        assert failures == []
        assert sorted(issued) == list(range(1, workers * per_worker + 1))
    finally:
        engine.dispose()


def test_counter_admin_endpoints(client, super_admin_headers, lab_admin_headers):
    synced = client.post("/api/counters/receipt_2030/sync", json={"minimum": 50}, headers=super_admin_headers)
    assert synced.json()["data"] == {"name": "receipt_2030", "before": 0, "after": 50, "changed": True}

    lower = client.post("/api/counters/receipt_2030/sync", json={"minimum": 10}, headers=super_admin_headers)
    assert lower.json()["data"]["after"] == 50
    assert lower.json()["data"]["changed"] is False

    allocated = client.post("/api/counters/receipt_2030/next", headers=super_admin_headers)
    assert allocated.json()["data"]["value"] == 51

    single = client.get("/api/counters/receipt_2030", headers=lab_admin_headers).json()["data"]
    assert single["value"] == 51
    names = [row["name"] for row in client.get("/api/counters", headers=lab_admin_headers).json()["data"]]
    assert "receipt_2030" in names

    missing = client.get("/api/counters/neverUsed", headers=lab_admin_headers).json()["data"]
    assert missing["value"] == 0


def test_shared_sequences_are_changed_by_super_admin_only(client, lab_admin_headers):
    for path in ("/api/counters/receipt_2030/next", "/api/counters/db_crn/sync"):
        response = client.post(path, headers=lab_admin_headers)
        assert response.status_code == 403
        assert response.json()["error"] == "Forbidden"
    assert client.get("/api/counters/receipt_2030", headers=lab_admin_headers).json()["data"]["value"] == 0


def test_counter_admin_requires_admin_role(client, lab, lab_admin_headers, register_lab_user):
    clerk = register_lab_user(lab["id"], "clerk@example.com", "Desk Clerk")
    response = client.get("/api/counters", headers=clerk)
    assert response.status_code == 403
