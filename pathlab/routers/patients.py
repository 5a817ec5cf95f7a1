from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from pathlab.database import get_db
from pathlab.routers.deps import get_current_actor
from pathlab.schemas.patient import PatientCreate
from pathlab.services import patients
from pathlab.services.auth import Actor

router = APIRouter(prefix="/api/patients", tags=["patients"])


@router.post("", status_code=201)
def register_patient(payload: PatientCreate, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    patient = patients.register_patient(db, actor, payload)
    return {"statusCode": 201, "message": "Patient registered", "data": patients.patient_to_dict(patient)}


@router.get("")
def list_patients(
    search: str | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    total, rows = patients.search_patients(db, actor, search, page, limit)
    return {
        "statusCode": 200,
        "message": "Success",
        "data": {
            "items": [patients.patient_to_dict(row) for row in rows],
            "page": page,
            "limit": limit,
            "total": total,
        },
    }


@router.get("/{patient_id}")
def get_patient(patient_id: str, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    patient = patients.find_patient(db, actor, patient_id)
    return {"statusCode": 200, "message": "Success", "data": patients.patient_to_dict(patient)}
