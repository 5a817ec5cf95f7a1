import logging
from datetime import datetime

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from pathlab.errors import ConflictError, NotFoundError
from pathlab.models.patient import Patient
from pathlab.schemas.patient import PatientCreate
from pathlab.services import counters
from pathlab.services.auth import Actor
from pathlab.services.demographics import format_address

logger = logging.getLogger(__name__)


def scoped(db: Session, actor: Actor):
    query = db.query(Patient)
    if not actor.is_super_admin:
        query = query.filter(Patient.lab_id == actor.lab_id)
    return query


def register_patient(db: Session, actor: Actor, payload: PatientCreate) -> Patient:
    phone = payload.phone.strip() if payload.phone else None
    if phone:
        duplicate = scoped(db, actor).filter(Patient.phone == phone).first()
        if duplicate:
            raise ConflictError(
                f"A patient with phone {phone} is already registered",
                {"patientId": duplicate.patient_id},
            )

    year = datetime.utcnow().year
    patient_seq = counters.allocate_next(db, counters.patient_sequence(year))
    registration_number = counters.allocate_next(db, counters.registration_sequence(year))

    address = payload.address
    if address is not None and not isinstance(address, str):
        address = address.model_dump(by_alias=True, exclude_none=True)

    patient = Patient(
        lab_id=actor.lab_id,
        patient_id=counters.format_patient_id(patient_seq),
        registration_year=year,
        registration_number=registration_number,
        first_name=payload.first_name.strip(),
        last_name=payload.last_name.strip() if payload.last_name else None,
        phone=phone,
        gender=payload.gender.value,
        age_value=payload.age.value,
        age_unit=payload.age.unit.value,
        address=address,
    )
    db.add(patient)
    db.commit()
    db.refresh(patient)
    logger.info("Registered patient %s (reg %s)", patient.patient_id, registration_number)
    return patient


def find_patient(db: Session, actor: Actor, patient_id: str) -> Patient:
    # Ids restart every year; the newest registration wins.
    patient = (
        scoped(db, actor)
        .filter(Patient.patient_id == patient_id)
        .order_by(Patient.registration_year.desc())
        .first()
    )
    if not patient:
        raise NotFoundError(f"Patient {patient_id} not found")
    return patient


def search_patients(db: Session, actor: Actor, search: str | None, page: int, limit: int) -> tuple[int, list[Patient]]:
    query = scoped(db, actor)
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(
            or_(
                Patient.patient_id.ilike(like),
                Patient.first_name.ilike(like),
                Patient.last_name.ilike(like),
                Patient.phone.ilike(like),
            )
        )
    total = query.with_entities(func.count(Patient.id)).scalar() or 0
    rows = query.order_by(Patient.created_at.desc(), Patient.id.desc()).offset((page - 1) * limit).limit(limit).all()
    return total, rows


def patient_to_dict(patient: Patient) -> dict:
    return {
        "patientId": patient.patient_id,
        "registrationNumber": patient.registration_number,
        "registrationYear": patient.registration_year,
        "firstName": patient.first_name,
        "lastName": patient.last_name,
        "name": patient.full_name,
        "phone": patient.phone,
        "gender": patient.gender,
        "age": patient.age.to_dict(),
        "ageDisplay": patient.age.display(),
        "address": patient.address,
        "addressDisplay": format_address(patient.address),
        "labId": patient.lab_id,
        "createdAt": patient.created_at.isoformat(),
    }
