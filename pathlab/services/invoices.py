"""Invoice lifecycle: booking, edits, payments, status, deletion and summaries.

Every operation validates and checks locks before it writes anything. Sequence
numbers are allocated last, inside the same transaction as the invoice rows.
"""
import logging
from datetime import date, datetime, timedelta
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.orm import Session

from pathlab.config import settings
from pathlab.enums import InvoiceStatus, LineStatus
from pathlab.errors import ConflictError, InvalidTransitionError, NotFoundError, ValidationFailed
from pathlab.models.deleted_record import DeletedRecord
from pathlab.models.invoice import Invoice, InvoiceAdjustment, InvoiceEdit, InvoiceLine, PaymentEntry
from pathlab.models.lab import Lab
from pathlab.models.registration import PathologyRegistration, PathologyReport
from pathlab.schemas.invoice import InvoiceCreate, InvoiceUpdate, PaymentIn, TestLineIn
from pathlab.services import audit, billing, counters
from pathlab.services.auth import Actor
from pathlab.services.catalog import get_tests_by_ids
from pathlab.services.demographics import PatientSnapshot
from pathlab.services.edit_lock import ensure_editable, evaluate_lock
from pathlab.services.edit_session import EditSession
from pathlab.services.patients import find_patient

logger = logging.getLogger(__name__)

FORWARD = {
    InvoiceStatus.BOOKED: InvoiceStatus.SAMPLE_COLLECTED,
    InvoiceStatus.SAMPLE_COLLECTED: InvoiceStatus.IN_PROGRESS,
    InvoiceStatus.IN_PROGRESS: InvoiceStatus.COMPLETED,
}
TERMINAL = {InvoiceStatus.COMPLETED, InvoiceStatus.CANCELLED}
LINE_STATUS_FOR = {
    InvoiceStatus.SAMPLE_COLLECTED: LineStatus.SAMPLE_COLLECTED,
    InvoiceStatus.IN_PROGRESS: LineStatus.IN_PROGRESS,
    InvoiceStatus.COMPLETED: LineStatus.COMPLETED,
}


def scoped(db: Session, actor: Actor):
    query = db.query(Invoice)
    if not actor.is_super_admin:
        query = query.filter(Invoice.lab_id == actor.lab_id)
    return query


def get_invoice(db: Session, actor: Actor, invoice_id: str) -> Invoice:
    invoice = scoped(db, actor).filter(Invoice.id == invoice_id).first()
    if not invoice:
        raise NotFoundError(f"Invoice {invoice_id} not found")
    return invoice


def get_by_receipt(db: Session, actor: Actor, receipt_number: int, year: int | None = None) -> Invoice:
    query = scoped(db, actor).filter(Invoice.receipt_number == receipt_number)
    if year is not None:
        query = query.filter(Invoice.receipt_year == year)
    invoice = query.order_by(Invoice.receipt_year.desc()).first()
    if not invoice:
        raise NotFoundError(f"Receipt {receipt_number} not found")
    return invoice


def _line_item(line: InvoiceLine) -> billing.LineItem:
    return billing.LineItem(
        name=line.test_name,
        category=line.category,
        price=line.price,
        quantity=line.quantity,
        discount=line.discount,
        test_id=line.test_id,
        line_id=line.id,
    )


def _resolve_lines(db: Session, actor: Actor, requested: list[TestLineIn]) -> list[billing.LineItem]:
    tests = get_tests_by_ids(db, actor.lab_id, [item.test_id for item in requested])
    missing = sorted({item.test_id for item in requested} - set(tests))
    if missing:
        raise NotFoundError("Unknown test(s) requested", {"testIds": missing})

    items = [
        billing.LineItem(
            name=tests[item.test_id].name,
            category=tests[item.test_id].category,
            price=tests[item.test_id].price,
            quantity=item.quantity,
            discount=item.discount,
            test_id=item.test_id,
        )
        for item in requested
    ]
    billing.ensure_unique_lines(items)
    return items


def _to_row(item: billing.LineItem, position: int) -> InvoiceLine:
    return InvoiceLine(
        position=position,
        test_id=item.test_id,
        test_name=item.name,
        category=item.category,
        price=item.price,
        quantity=item.quantity,
        discount=item.discount,
        net_amount=item.net_amount,
        status=LineStatus.PENDING.value,
    )


def _apply_totals(invoice: Invoice, items: list[billing.LineItem]) -> billing.BillSummary:
    summary = billing.summarize(items)
    invoice.gross_amount = summary.gross_amount
    invoice.total_discount = summary.total_discount
    invoice.total_amount = summary.subtotal
    _refresh_payment_state(invoice)
    return summary


def _refresh_payment_state(invoice: Invoice) -> None:
    total = billing.to_money(invoice.total_amount)
    paid = billing.to_money(invoice.paid_amount or 0)
    invoice.due_amount = total - paid
    invoice.payment_status = billing.payment_status(paid, total).value
    invoice.updated_at = datetime.utcnow()


def _audit_rows(items: list[billing.LineItem]) -> list[dict]:
    return [item.audit_view() for item in items]


def _ensure_open(invoice: Invoice) -> None:
    if invoice.status == InvoiceStatus.CANCELLED.value:
        raise ConflictError(f"Receipt {invoice.receipt_number} is cancelled")


def create_invoice(db: Session, actor: Actor, payload: InvoiceCreate) -> Invoice:
    patient = find_patient(db, actor, payload.patient_id)
    items = _resolve_lines(db, actor, payload.tests)
    summary = billing.summarize(items)

    initial = payload.payment
    paid = Decimal("0")
    if initial is not None and initial.amount > 0:
        paid = billing.check_payment(Decimal("0"), summary.subtotal, initial.amount)

    year = datetime.utcnow().year
    try:
        receipt_number = counters.allocate_next(db, counters.receipt_sequence(year))
        crn = counters.allocate_next(db, counters.GLOBAL_CRN)

        invoice = Invoice(
            lab_id=actor.lab_id,
            receipt_number=receipt_number,
            receipt_year=year,
            db_crn=crn,
            invoice_number=counters.format_id(settings.invoice_prefix, crn),
            booking_id=counters.format_id(settings.booking_prefix, crn),
            patient_code=patient.patient_id,
            patient_snapshot=PatientSnapshot.from_patient(patient).to_dict(),
            mode=payload.mode.value if payload.mode else None,
            doctor_ref_no=payload.doctor_ref_no,
            doctor=payload.doctor.model_dump(by_alias=True) if payload.doctor else None,
            department=payload.department.model_dump(by_alias=True) if payload.department else None,
            status=InvoiceStatus.BOOKED.value,
            paid_amount=paid,
            payment_method=initial.method.value if initial is not None and paid > 0 else None,
            created_by=actor.name,
        )
        invoice.lines = [_to_row(item, position) for position, item in enumerate(items)]
        if paid > 0:
            invoice.payments.append(
                PaymentEntry(
                    amount=paid,
                    method=initial.method.value,
                    transaction_id=initial.transaction_id,
                    received_by=actor.name,
                )
            )
        _apply_totals(invoice, items)
        db.add(invoice)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(invoice)
    logger.info("Created invoice %s receipt %s/%s", invoice.invoice_number, year, receipt_number)
    return invoice


def add_line(db: Session, actor: Actor, invoice_id: str, requested: TestLineIn) -> Invoice:
    invoice = get_invoice(db, actor, invoice_id)
    _ensure_open(invoice)
    session = EditSession(
        [_line_item(line) for line in invoice.lines], evaluate_lock(db, invoice.id), invoice.receipt_number
    )
    (item,) = _resolve_lines(db, actor, [requested])
    session.add(item)

    total_before = invoice.total_amount
    position = max((line.position for line in invoice.lines), default=-1) + 1
    invoice.lines.append(_to_row(item, position))
    _apply_totals(invoice, session.lines)
    _record_edit(invoice, actor, session.committed, session.lines, total_before)
    db.commit()
    db.refresh(invoice)
    logger.info("Added %s to receipt %s", item.name, invoice.receipt_number)
    return invoice


def remove_line(db: Session, actor: Actor, invoice_id: str, line_id: int) -> Invoice:
    invoice = get_invoice(db, actor, invoice_id)
    _ensure_open(invoice)
    target = next((line for line in invoice.lines if line.id == line_id), None)
    if target is None:
        raise NotFoundError(f"Line {line_id} not found on this invoice")
    session = EditSession(
        [_line_item(line) for line in invoice.lines], evaluate_lock(db, invoice.id), invoice.receipt_number
    )
    session.remove(line_id=line_id)
    if not session.lines:
        raise ValidationFailed("An invoice must keep at least one test")

    total_before = invoice.total_amount
    invoice.lines.remove(target)
    _apply_totals(invoice, session.lines)
    adjustment = _settle_refund(invoice, actor, total_before)
    _record_edit(invoice, actor, session.committed, session.lines, total_before, adjustment=adjustment)
    db.commit()
    db.refresh(invoice)
    logger.info("Removed line %s from receipt %s", line_id, invoice.receipt_number)
    return invoice


def apply_requested_lines(session: EditSession, requested: list[billing.LineItem]) -> None:
    """Turn the saved lines into ``requested``: drop, then modify, then add."""
    wanted = {item.test_id: item for item in requested}
    for line in list(session.lines):
        if line.test_id not in wanted:
            session.remove(line_id=line.line_id)

    saved = {line.test_id: line for line in session.lines}
    for item in requested:
        line = saved.get(item.test_id)
        if line is None:
            session.add(item)
        elif (line.quantity, line.discount) != (item.quantity, item.discount):
            session.modify(line.line_id, item.quantity, item.discount)
    session.reorder([item.test_id for item in requested])


def update_invoice(db: Session, actor: Actor, invoice_id: str, payload: InvoiceUpdate) -> tuple[Invoice, dict]:
    invoice = get_invoice(db, actor, invoice_id)
    _ensure_open(invoice)
    lock = evaluate_lock(db, invoice.id)
    ensure_editable(lock, invoice.receipt_number)
    session = EditSession([_line_item(line) for line in invoice.lines], lock, invoice.receipt_number)
    apply_requested_lines(session, _resolve_lines(db, actor, payload.tests))

    total_before = billing.to_money(invoice.total_amount)
    rows = {line.id: line for line in invoice.lines}
    new_rows = []
    for position, item in enumerate(session.lines):
        row = rows.get(item.line_id) if item.line_id is not None else None
        if row is None:
            new_rows.append(_to_row(item, position))
            continue
        row.position = position
        row.quantity = item.quantity
        row.discount = item.discount
        row.net_amount = item.net_amount
        new_rows.append(row)
    invoice.lines = new_rows

    if payload.mode is not None:
        invoice.mode = payload.mode.value
    if payload.doctor_ref_no is not None:
        invoice.doctor_ref_no = payload.doctor_ref_no

    _apply_totals(invoice, session.lines)
    adjustment = _settle_refund(invoice, actor, total_before, note=payload.note)
    if adjustment is None:
        delta = billing.to_money(invoice.total_amount) - total_before
        action = "COLLECT" if delta > 0 else "NONE"
        adjustment = {"delta": delta, "action": action}
        if action == "COLLECT":
            invoice.adjustments.append(
                InvoiceAdjustment(delta=delta, action=action, note=payload.note, created_by=actor.name)
            )

    _record_edit(invoice, actor, session.committed, session.lines, total_before, adjustment=adjustment, note=payload.note)
    db.commit()
    db.refresh(invoice)
    logger.info("Edited receipt %s: %s %s", invoice.receipt_number, adjustment["action"], adjustment["delta"])
    return invoice, adjustment


def _settle_refund(invoice: Invoice, actor: Actor, total_before, note: str | None = None) -> dict | None:
    """When the new total drops below what was paid, refund the excess."""
    total = billing.to_money(invoice.total_amount)
    paid = billing.to_money(invoice.paid_amount)
    if paid <= total:
        return None
    refund = paid - total
    invoice.paid_amount = total
    # Refunds go into the payment history as negative entries so it sums to paid_amount.
    method = invoice.payment_method or (invoice.payments[-1].method if invoice.payments else "Cash")
    invoice.payments.append(
        PaymentEntry(amount=-refund, method=method, transaction_id="REFUND", received_by=actor.name)
    )
    _refresh_payment_state(invoice)
    delta = total - billing.to_money(total_before)
    invoice.adjustments.append(
        InvoiceAdjustment(delta=delta, action="REFUND", note=note or f"Refunded {refund}", created_by=actor.name)
    )
    return {"delta": delta, "action": "REFUND", "refund": refund}


def _record_edit(invoice, actor, before, after, total_before, adjustment=None, note=None) -> None:
    changes = audit.build_changes(
        _audit_rows(before),
        _audit_rows(after),
        total_before,
        invoice.total_amount,
        adjustment=(
            {key: str(value) if isinstance(value, Decimal) else value for key, value in adjustment.items()}
            if adjustment
            else None
        ),
        note=note,
    )
    invoice.edits.append(InvoiceEdit(edited_by=actor.name, changes=changes))


def record_payment(db: Session, actor: Actor, invoice_id: str, payload: PaymentIn) -> Invoice:
    invoice = get_invoice(db, actor, invoice_id)
    _ensure_open(invoice)
    new_paid = billing.check_payment(invoice.paid_amount, invoice.total_amount, payload.amount)

    invoice.payments.append(
        PaymentEntry(
            amount=billing.to_money(payload.amount),
            method=payload.method.value,
            transaction_id=payload.transaction_id,
            received_by=payload.received_by or actor.name,
        )
    )
    invoice.paid_amount = new_paid
    invoice.payment_method = payload.method.value
    _refresh_payment_state(invoice)
    db.commit()
    db.refresh(invoice)
    logger.info("Payment of %s on receipt %s", payload.amount, invoice.receipt_number)
    return invoice


def change_status(db: Session, actor: Actor, invoice_id: str, status: InvoiceStatus) -> Invoice:
    invoice = get_invoice(db, actor, invoice_id)
    current = InvoiceStatus(invoice.status)
    allowed = status is InvoiceStatus.CANCELLED and current not in TERMINAL
    if not allowed and FORWARD.get(current) is not status:
        raise InvalidTransitionError(
            f"Cannot move from {current.value} to {status.value}",
            {"from": current.value, "to": status.value},
        )

    invoice.status = status.value
    line_status = LINE_STATUS_FOR.get(status)
    if line_status is not None:
        for line in invoice.lines:
            line.status = line_status.value
    invoice.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(invoice)
    logger.info("Receipt %s moved %s -> %s", invoice.receipt_number, current.value, status.value)
    return invoice


def mark_printed(db: Session, actor: Actor, invoice_id: str) -> Invoice:
    invoice = get_invoice(db, actor, invoice_id)
    invoice.is_printed = True
    invoice.printed_at = datetime.utcnow()
    db.commit()
    db.refresh(invoice)
    return invoice


def history(db: Session, actor: Actor, invoice_id: str) -> dict:
    invoice = get_invoice(db, actor, invoice_id)
    entries = [audit.describe_entry(edit.edited_at, edit.edited_by, edit.changes) for edit in invoice.edits]
    last_at, last_by = audit.last_edit(invoice.edits)
    return {
        "invoiceId": invoice.id,
        "receiptNumber": invoice.receipt_number,
        "entries": entries,
        "editCount": len(entries),
        "lastEditedAt": last_at,
        "lastEditedBy": last_by,
        "adjustments": [
            {"delta": adj.delta, "action": adj.action, "note": adj.note, "at": adj.created_at, "by": adj.created_by}
            for adj in invoice.adjustments
        ],
    }


def delete_latest_receipt(
    db: Session,
    actor: Actor,
    receipt_number: int,
    year: int | None = None,
    reason: str | None = None,
) -> DeletedRecord:
    """Archive and delete a receipt. Only the most recent one may go, and counters stay put."""
    year = year or datetime.utcnow().year
    invoice = get_by_receipt(db, actor, receipt_number, year)
    latest = db.query(func.max(Invoice.receipt_number)).filter(Invoice.receipt_year == year).scalar()
    if receipt_number != latest:
        raise ConflictError(
            f"Only the latest receipt ({latest}) can be deleted",
            {"latestReceiptNumber": latest},
        )
    lock = evaluate_lock(db, invoice.id)
    ensure_editable(lock, receipt_number)
    if lock.registration_exists:
        raise ConflictError(f"Receipt {receipt_number} has a pathology registration and cannot be deleted")

    record = DeletedRecord(
        lab_id=invoice.lab_id,
        entity_type="invoice",
        original_id=invoice.id,
        receipt_number=receipt_number,
        reason=reason,
        deleted_by=actor.name,
        data=_archive_payload(invoice),
    )
    db.add(record)
    db.delete(invoice)
    db.commit()
    db.refresh(record)
    logger.warning("Deleted receipt %s/%s by %s", year, receipt_number, actor.id)
    return record


def _archive_payload(invoice: Invoice) -> dict:
    payload = invoice_to_dict(invoice)
    payload["history"] = [
        {"at": edit.edited_at.isoformat(), "by": edit.edited_by, "changes": edit.changes} for edit in invoice.edits
    ]
    return _stringify(payload)


def _stringify(value):
    if isinstance(value, dict):
        return {key: _stringify(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_stringify(item) for item in value]
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def list_invoices(
    db: Session,
    actor: Actor,
    page: int,
    limit: int,
    status: str | None = None,
    payment_status: str | None = None,
    patient_id: str | None = None,
    start: date | None = None,
    end: date | None = None,
) -> tuple[int, list[Invoice]]:
    query = scoped(db, actor)
    if status:
        query = query.filter(Invoice.status == status)
    if payment_status:
        query = query.filter(Invoice.payment_status == payment_status)
    if patient_id:
        query = query.filter(Invoice.patient_code == patient_id)
    if start:
        query = query.filter(Invoice.created_at >= datetime.combine(start, datetime.min.time()))
    if end:
        query = query.filter(Invoice.created_at < datetime.combine(end + timedelta(days=1), datetime.min.time()))
    total = query.with_entities(func.count(Invoice.id)).scalar() or 0
    rows = (
        query.order_by(Invoice.created_at.desc(), Invoice.receipt_number.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return total, rows


def _date_window(query, column, start: date | None, end: date | None):
    if start:
        query = query.filter(column >= datetime.combine(start, datetime.min.time()))
    if end:
        query = query.filter(column < datetime.combine(end + timedelta(days=1), datetime.min.time()))
    return query


def revenue_by_category(db: Session, actor: Actor, start: date | None = None, end: date | None = None) -> list[dict]:
    query = (
        db.query(
            InvoiceLine.category,
            func.count(InvoiceLine.id),
            func.coalesce(func.sum(InvoiceLine.net_amount), 0),
        )
        .join(Invoice, Invoice.id == InvoiceLine.invoice_id)
        .filter(Invoice.status != InvoiceStatus.CANCELLED.value)
    )
    if not actor.is_super_admin:
        query = query.filter(Invoice.lab_id == actor.lab_id)
    query = _date_window(query, Invoice.created_at, start, end)
    rows = query.group_by(InvoiceLine.category).order_by(InvoiceLine.category).all()
    return [
        {"category": category, "testCount": count, "revenue": billing.to_money(revenue)}
        for category, count, revenue in rows
    ]


def revenue_by_day(db: Session, actor: Actor, start: date | None = None, end: date | None = None) -> list[dict]:
    day = func.date(Invoice.created_at)
    query = db.query(
        day,
        func.count(Invoice.id),
        func.coalesce(func.sum(Invoice.total_amount), 0),
        func.coalesce(func.sum(Invoice.paid_amount), 0),
    ).filter(Invoice.status != InvoiceStatus.CANCELLED.value)
    if not actor.is_super_admin:
        query = query.filter(Invoice.lab_id == actor.lab_id)
    query = _date_window(query, Invoice.created_at, start, end)
    rows = query.group_by(day).order_by(day).all()
    return [
        {
            "date": str(row_day),
            "invoiceCount": count,
            "revenue": billing.to_money(revenue),
            "collected": billing.to_money(collected),
        }
        for row_day, count, revenue, collected in rows
    ]


def daily_count(db: Session, actor: Actor, on: date | None = None) -> dict:
    on = on or datetime.utcnow().date()
    query = _date_window(scoped(db, actor), Invoice.created_at, on, on)
    count = query.with_entities(func.count(Invoice.id)).scalar() or 0
    return {
        "date": on.isoformat(),
        "count": count,
        "lastReceiptNumber": counters.current_value(db, counters.receipt_sequence(on.year)),
    }


def lab_for(db: Session, invoice: Invoice) -> Lab | None:
    if invoice.lab_id is None:
        return None
    return db.get(Lab, invoice.lab_id)


def line_to_dict(line: InvoiceLine) -> dict:
    return {
        "id": line.id,
        "testId": line.test_id,
        "testName": line.test_name,
        "category": line.category,
        "price": line.price,
        "quantity": line.quantity,
        "discount": line.discount,
        "netAmount": line.net_amount,
        "status": line.status,
    }


def invoice_to_dict(invoice: Invoice) -> dict:
    items = [_line_item(line) for line in invoice.lines]
    summary = billing.summarize(items)
    last_at, last_by = audit.last_edit(invoice.edits)
    return {
        "id": invoice.id,
        "labId": invoice.lab_id,
        "receiptNumber": invoice.receipt_number,
        "receiptYear": invoice.receipt_year,
        "invoiceNumber": invoice.invoice_number,
        "bookingId": invoice.booking_id,
        "patient": invoice.patient.to_dict(),
        "mode": invoice.mode,
        "doctorRefNo": invoice.doctor_ref_no,
        "doctor": invoice.doctor,
        "department": invoice.department,
        "status": invoice.status,
        "tests": [line_to_dict(line) for line in invoice.lines],
        "bill": summary.as_dict(),
        "payment": {
            "totalAmount": invoice.total_amount,
            "paidAmount": invoice.paid_amount,
            "dueAmount": invoice.due_amount,
            "balance": billing.balance(summary.net_payable, invoice.paid_amount),
            "paymentStatus": invoice.payment_status,
            "paymentMethod": invoice.payment_method,
            "paymentHistory": [
                {
                    "amount": entry.amount,
                    "method": entry.method,
                    "transactionId": entry.transaction_id,
                    "receivedBy": entry.received_by,
                    "at": entry.paid_at,
                }
                for entry in invoice.payments
            ],
        },
        "isPrinted": invoice.is_printed,
        "printedAt": invoice.printed_at,
        "createdBy": invoice.created_by,
        "createdAt": invoice.created_at,
        "updatedAt": invoice.updated_at,
        "lastEditedAt": last_at,
        "lastEditedBy": last_by,
    }


def require_registration_target(db: Session, actor: Actor, receipt_number: int, year: int | None):
    invoice = get_by_receipt(db, actor, receipt_number, year)
    registration = (
        db.query(PathologyRegistration).filter(PathologyRegistration.invoice_id == invoice.id).first()
    )
    report = db.query(PathologyReport).filter(PathologyReport.invoice_id == invoice.id).first()
    return invoice, registration, report
