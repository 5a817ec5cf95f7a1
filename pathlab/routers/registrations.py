import logging
from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from pathlab.database import get_db
from pathlab.errors import ConflictError, HardLockedError
from pathlab.models.registration import PathologyRegistration
from pathlab.routers.deps import ADMIN_ROLES, get_current_actor, require_roles
from pathlab.schemas.registration import CashEditToggle, RegistrationCreate
from pathlab.services import invoices
from pathlab.services.auth import Actor

router = APIRouter(prefix="/api/registrations", tags=["registrations"])
logger = logging.getLogger(__name__)


def _registration_to_dict(registration: PathologyRegistration) -> dict:
    return {
        "id": registration.id,
        "invoiceId": registration.invoice_id,
        "receiptNumber": registration.receipt_number,
        "editAllowed": registration.edit_allowed,
        "createdBy": registration.created_by,
        "createdAt": registration.created_at,
        "updatedAt": registration.updated_at,
    }


@router.post("", status_code=201)
def register_sample(
    payload: RegistrationCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    invoice, registration, _ = invoices.require_registration_target(db, actor, payload.receipt_number, payload.year)
    if registration is not None:
        raise ConflictError(f"Receipt {invoice.receipt_number} is already registered")

    registration = PathologyRegistration(
        lab_id=invoice.lab_id,
        invoice_id=invoice.id,
        receipt_number=invoice.receipt_number,
        edit_allowed=payload.edit_allowed,
        created_by=actor.name,
    )
    db.add(registration)
    db.commit()
    db.refresh(registration)
    logger.info("Registered receipt %s for pathology", invoice.receipt_number)
    return {"statusCode": 201, "message": "Registration created", "data": _registration_to_dict(registration)}


@router.put("/{receipt_number}/cash-edit")
def toggle_cash_edit(
    receipt_number: int,
    payload: CashEditToggle,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_roles(*ADMIN_ROLES)),
):
    invoice, registration, report = invoices.require_registration_target(db, actor, receipt_number, payload.year)
    if report is not None:
        raise HardLockedError(invoice.receipt_number)
    if registration is None:
        raise ConflictError(f"Receipt {invoice.receipt_number} has no pathology registration")

    registration.edit_allowed = payload.allow
    registration.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(registration)
    logger.info("Cash edit on receipt %s set to %s by %s", receipt_number, payload.allow, actor.id)
    return {"statusCode": 200, "message": "Edit permission updated", "data": _registration_to_dict(registration)}
