from datetime import date

from fastapi import APIRouter, Depends, Query
from fastapi.responses import HTMLResponse
from sqlalchemy.orm import Session

from pathlab.database import get_db
from pathlab.enums import InvoiceStatus, PaymentStatus
from pathlab.routers.deps import ADMIN_ROLES, get_current_actor, require_roles
from pathlab.schemas.invoice import InvoiceCreate, InvoiceUpdate, PaymentIn, StatusUpdate, TestLineIn
from pathlab.services import invoices
from pathlab.services.auth import Actor
from pathlab.services.edit_lock import evaluate_lock
from pathlab.services.receipt import build_receipt_view, render_receipt_html

router = APIRouter(prefix="/api/invoices", tags=["invoices"])


def _ok(data, message: str = "Success", status_code: int = 200) -> dict:
    return {"statusCode": status_code, "message": message, "data": data}


@router.post("", status_code=201)
def create_invoice(payload: InvoiceCreate, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    invoice = invoices.create_invoice(db, actor, payload)
    return _ok(invoices.invoice_to_dict(invoice), "Invoice created", 201)


@router.get("")
def list_invoices(
    status: InvoiceStatus | None = None,
    payment_status: PaymentStatus | None = Query(default=None, alias="paymentStatus"),
    patient_id: str | None = Query(default=None, alias="patientId"),
    start: date | None = None,
    end: date | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    total, rows = invoices.list_invoices(
        db,
        actor,
        page,
        limit,
        status=status.value if status else None,
        payment_status=payment_status.value if payment_status else None,
        patient_id=patient_id,
        start=start,
        end=end,
    )
    return _ok(
        {
            "items": [invoices.invoice_to_dict(row) for row in rows],
            "page": page,
            "limit": limit,
            "total": total,
        }
    )


@router.get("/reports/category")
def category_report(
    start: date | None = None,
    end: date | None = None,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return _ok(invoices.revenue_by_category(db, actor, start, end))


@router.get("/reports/daily")
def daily_report(
    start: date | None = None,
    end: date | None = None,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return _ok(invoices.revenue_by_day(db, actor, start, end))


@router.get("/daily-count")
def daily_count(on: date | None = Query(default=None, alias="date"), db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    return _ok(invoices.daily_count(db, actor, on))


@router.get("/receipt/{receipt_number}")
def get_by_receipt(
    receipt_number: int,
    year: int | None = None,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    invoice = invoices.get_by_receipt(db, actor, receipt_number, year)
    return _ok(invoices.invoice_to_dict(invoice))


@router.delete("/receipt/{receipt_number}")
def delete_receipt(
    receipt_number: int,
    year: int | None = None,
    reason: str | None = Query(default=None, max_length=500),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_roles(*ADMIN_ROLES)),
):
    record = invoices.delete_latest_receipt(db, actor, receipt_number, year, reason)
    return _ok(
        {"deletedRecordId": record.id, "receiptNumber": record.receipt_number, "invoiceId": record.original_id},
        "Receipt deleted",
    )


@router.get("/{invoice_id}")
def get_invoice(invoice_id: str, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    return _ok(invoices.invoice_to_dict(invoices.get_invoice(db, actor, invoice_id)))


@router.put("/{invoice_id}")
def update_invoice(
    invoice_id: str,
    payload: InvoiceUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    invoice, adjustment = invoices.update_invoice(db, actor, invoice_id, payload)
    data = invoices.invoice_to_dict(invoice)
    data["adjustment"] = adjustment
    return _ok(data, "Invoice updated")


@router.post("/{invoice_id}/tests", status_code=201)
def add_test(
    invoice_id: str,
    payload: TestLineIn,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    invoice = invoices.add_line(db, actor, invoice_id, payload)
    return _ok(invoices.invoice_to_dict(invoice), "Test added", 201)


@router.delete("/{invoice_id}/tests/{line_id}")
def remove_test(invoice_id: str, line_id: int, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    invoice = invoices.remove_line(db, actor, invoice_id, line_id)
    return _ok(invoices.invoice_to_dict(invoice), "Test removed")


@router.post("/{invoice_id}/payments")
def record_payment(
    invoice_id: str,
    payload: PaymentIn,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    invoice = invoices.record_payment(db, actor, invoice_id, payload)
    return _ok(invoices.invoice_to_dict(invoice), "Payment recorded")


@router.put("/{invoice_id}/status")
def change_status(
    invoice_id: str,
    payload: StatusUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    invoice = invoices.change_status(db, actor, invoice_id, payload.status)
    return _ok(invoices.invoice_to_dict(invoice), "Status updated")


@router.get("/{invoice_id}/lock")
def lock_state(invoice_id: str, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    invoice = invoices.get_invoice(db, actor, invoice_id)
    data = evaluate_lock(db, invoice.id).as_dict()
    data["receiptNumber"] = invoice.receipt_number
    return _ok(data)


@router.get("/{invoice_id}/history")
def edit_history(invoice_id: str, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    return _ok(invoices.history(db, actor, invoice_id))


@router.get("/{invoice_id}/receipt", response_class=HTMLResponse)
def receipt_html(invoice_id: str, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    invoice = invoices.get_invoice(db, actor, invoice_id)
    view = build_receipt_view(invoice, invoices.lab_for(db, invoice))
    return HTMLResponse(render_receipt_html(view))


@router.patch("/{invoice_id}/print")
def mark_printed(invoice_id: str, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    invoice = invoices.mark_printed(db, actor, invoice_id)
    return _ok({"id": invoice.id, "isPrinted": invoice.is_printed, "printedAt": invoice.printed_at}, "Marked as printed")
