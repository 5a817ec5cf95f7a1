"""Printable cash receipt.

``build_receipt_view`` projects an invoice into plain data and
``render_receipt_html`` turns that into an A4 page. Rendering does no I/O and
is deterministic: the same view always gives the same markup.
"""
import html
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pathlab.config import settings
from pathlab.services.billing import ZERO, LineItem, balance, summarize, to_money
from pathlab.services.demographics import PatientSnapshot, gender_initial

DEFAULT_CATEGORY = "PATHOLOGY"


@dataclass(frozen=True)
class ReceiptLine:
    name: str
    category: str
    amount: Decimal


@dataclass(frozen=True)
class CategoryGroup:
    category: str
    lines: list[ReceiptLine]

    @property
    def subtotal(self) -> Decimal:
        return sum((line.amount for line in self.lines), ZERO)


@dataclass(frozen=True)
class ReceiptView:
    lab_name: str
    lab_address: str
    receipt_number: int
    invoice_number: str
    booking_id: str
    issued_at: datetime
    patient: PatientSnapshot
    groups: list[CategoryGroup]
    gross_amount: Decimal
    total_discount: Decimal
    net_payable: Decimal
    paid_amount: Decimal
    balance: Decimal
    payment_status: str
    payment_method: Optional[str] = None
    mode: Optional[str] = None
    doctor_name: Optional[str] = None
    doctor_ref_no: Optional[str] = None
    currency: str = field(default="₹")


def group_by_category(lines: list[ReceiptLine]) -> list[CategoryGroup]:
    """Group lines by upper-cased category, keeping first-seen order."""
    buckets: dict[str, list[ReceiptLine]] = {}
    for line in lines:
        category = (line.category or DEFAULT_CATEGORY).strip().upper() or DEFAULT_CATEGORY
        buckets.setdefault(category, []).append(line)
    return [CategoryGroup(category, items) for category, items in buckets.items()]


def build_receipt_view(invoice, lab=None) -> ReceiptView:
    items = [
        LineItem(
            name=line.test_name,
            category=line.category,
            price=line.price,
            quantity=line.quantity,
            discount=line.discount,
        )
        for line in invoice.lines
    ]
    summary = summarize(items)
    lines = [ReceiptLine(item.name, item.category, item.net_amount) for item in items]
    doctor = invoice.doctor or {}
    return ReceiptView(
        lab_name=lab.name if lab else settings.lab_name,
        lab_address=(lab.address if lab else settings.lab_address) or "",
        receipt_number=invoice.receipt_number,
        invoice_number=invoice.invoice_number,
        booking_id=invoice.booking_id,
        issued_at=invoice.created_at,
        patient=invoice.patient,
        groups=group_by_category(lines),
        gross_amount=summary.gross_amount,
        total_discount=summary.total_discount,
        net_payable=summary.net_payable,
        paid_amount=to_money(invoice.paid_amount),
        balance=balance(summary.net_payable, invoice.paid_amount),
        payment_status=invoice.payment_status,
        payment_method=invoice.payment_method,
        mode=invoice.mode,
        doctor_name=doctor.get("name"),
        doctor_ref_no=invoice.doctor_ref_no,
        currency=settings.currency_symbol,
    )


def _esc(text) -> str:
    if text is None:
        return ""
    return html.escape(str(text))


def _money(currency: str, amount: Decimal) -> str:
    amount = to_money(amount)
    # Whole rupees print without paise.
    if amount == amount.to_integral_value():
        return f"{_esc(currency)}{int(amount)}"
    return f"{_esc(currency)}{amount}"


def _row(label: str, value) -> str:
    return f'<div class="receipt-row"><span class="label">{_esc(label)}:</span> <span class="value">{_esc(value)}</span></div>'


def _groups_html(view: ReceiptView) -> str:
    parts = []
    for index, group in enumerate(view.groups, start=1):
        parts.append(
            f'<tr><th colspan="2" class="category">{index}) {_esc(group.category)}</th></tr>'
        )
        for line in group.lines:
            parts.append(
                f'<tr><td>{_esc(line.name)}</td><td class="amount">{_money(view.currency, line.amount)}</td></tr>'
            )
        parts.append(
            f'<tr class="subtotal"><td>{_esc(group.category)} SUBTOTAL</td>'
            f'<td class="amount">{_money(view.currency, group.subtotal)}</td></tr>'
        )
    return "\n".join(parts)


def render_receipt_html(view: ReceiptView) -> str:
    patient = view.patient
    details = [
        _row("Receipt No", view.receipt_number),
        _row("Invoice No", view.invoice_number),
        _row("Booking ID", view.booking_id),
        _row("Patient Name", patient.name),
        _row("UHID", patient.patient_id),
        _row("Reg. No", patient.registration_number),
        _row("Age", patient.age.display()),
        _row("Gender", gender_initial(patient.gender)),
        _row("Address", patient.address),
    ]
    if view.mode:
        details.append(_row("Mode", view.mode))
    if view.doctor_name:
        details.append(_row("Doctor", view.doctor_name))
    if view.doctor_ref_no:
        details.append(_row("Doctor Ref No", view.doctor_ref_no))

    totals = [
        ("Gross Amount", view.gross_amount),
        ("Discount", view.total_discount),
        ("Net Payable", view.net_payable),
        ("Paid", view.paid_amount),
        ("Balance", view.balance),
    ]
    totals_html = "\n".join(
        f'<div class="total-row"><span class="total-label">{_esc(label)}</span>'
        f'<span class="total-amount">{_money(view.currency, amount)}</span></div>'
        for label, amount in totals
    )
    payment_line = _esc(view.payment_status)
    if view.payment_method:
        payment_line += f" ({_esc(view.payment_method)})"

    return f"""<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>Receipt {_esc(view.receipt_number)}</title>
<style>
@media print {{ @page {{ size: A4; margin: 0; }} .no-print {{ display: none !important; }} }}
body {{ font-family: Arial, sans-serif; margin: 0; padding: 0; }}
.invoice-container {{ width: 210mm; padding: 8mm; box-sizing: border-box; }}
.hospital-info {{ text-align: center; }}
.hospital-name {{ font-size: 20px; margin: 0 0 4px 0; font-weight: 600; }}
.hospital-address {{ font-size: 14px; margin: 0; }}
.receipt-title {{ text-align: center; font-size: 14px; font-weight: bold; margin: 8px 0; }}
.receipt-row {{ margin-bottom: 4px; font-size: 13px; }}
.label {{ font-weight: bold; }}
.bill-table {{ width: 100%; border-collapse: collapse; }}
.bill-table th, .bill-table td {{ border: 1px solid #000; padding: 5px 8px; text-align: left; font-size: 13px; }}
.bill-table .category {{ background: #e9ecef; }}
.bill-table .amount {{ text-align: center; font-weight: bold; }}
.bill-table .subtotal td:first-child {{ text-align: right; font-weight: bold; }}
.total-section {{ border: 1px solid #000; margin: 10px 0; }}
.total-row {{ display: flex; justify-content: space-between; padding: 6px 16px; border-top: 1px solid #000; }}
.total-label, .total-amount {{ font-weight: bold; font-size: 15px; }}
</style>
</head>
<body>
<div class="invoice-container">
<div class="hospital-info">
<p class="hospital-name">{_esc(view.lab_name)}</p>
<p class="hospital-address">{_esc(view.lab_address)}</p>
</div>
<p class="receipt-title">CASH RECEIPT</p>
<p class="receipt-date">Date: {view.issued_at.strftime("%d-%m-%Y %H:%M")}</p>
<div class="receipt-details">
{chr(10).join(details)}
</div>
<table class="bill-table">
<tr><th>Test</th><th>Amount</th></tr>
{_groups_html(view)}
</table>
<div class="total-section">
{totals_html}
</div>
<p class="payment-status">Payment: {payment_line}</p>
</div>
</body>
</html>
"""
