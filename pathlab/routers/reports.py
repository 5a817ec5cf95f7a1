import logging

from fastapi import APIRouter, Depends
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from pathlab.database import get_db
from pathlab.enums import LineStatus
from pathlab.errors import ConflictError
from pathlab.models.registration import PathologyReport
from pathlab.routers.deps import get_current_actor
from pathlab.schemas.registration import ReportCreate
from pathlab.services import invoices
from pathlab.services.auth import Actor

router = APIRouter(prefix="/api/reports", tags=["reports"])
logger = logging.getLogger(__name__)


@router.post("", status_code=201)
def generate_report(payload: ReportCreate, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    invoice, _, existing = invoices.require_registration_target(db, actor, payload.receipt_number, payload.year)
    if existing is not None:
        raise ConflictError(f"A report already exists for receipt {invoice.receipt_number}")

    report = PathologyReport(
        lab_id=invoice.lab_id,
        invoice_id=invoice.id,
        receipt_number=invoice.receipt_number,
        generated_by=actor.name,
    )
    db.add(report)
    for line in invoice.lines:
        line.status = LineStatus.REPORTED.value
    try:
        db.commit()
    except IntegrityError as exc:
        # A concurrent request generated it first.
        db.rollback()
        raise ConflictError(f"A report already exists for receipt {invoice.receipt_number}") from exc
    db.refresh(report)
    logger.info("Report generated for receipt %s; invoice is now locked", invoice.receipt_number)
    return {
        "statusCode": 201,
        "message": "Report generated",
        "data": {
            "id": report.id,
            "invoiceId": report.invoice_id,
            "receiptNumber": report.receipt_number,
            "generatedBy": report.generated_by,
            "generatedAt": report.generated_at,
        },
    }
