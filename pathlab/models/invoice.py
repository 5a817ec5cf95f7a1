from datetime import datetime
from decimal import Decimal
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    event,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pathlab.database import Base
from pathlab.services.demographics import PatientSnapshot


class Invoice(Base):
    __tablename__ = "invoices"
    __table_args__ = (UniqueConstraint("receipt_year", "receipt_number", name="uq_invoices_receipt"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    lab_id: Mapped[int | None] = mapped_column(ForeignKey("labs.id"), index=True, nullable=True)

    # Issued once at creation, never reassigned.
    receipt_number: Mapped[int] = mapped_column(Integer, index=True, nullable=False)
    receipt_year: Mapped[int] = mapped_column(Integer, nullable=False)
    db_crn: Mapped[int] = mapped_column(Integer, unique=True, nullable=False)
    invoice_number: Mapped[str] = mapped_column(String(30), unique=True, nullable=False)
    booking_id: Mapped[str] = mapped_column(String(30), unique=True, nullable=False)

    # Copy of the patient at booking time; not kept in sync with patients.
    patient_code: Mapped[str] = mapped_column(String(30), index=True, nullable=False)
    patient_snapshot: Mapped[dict] = mapped_column(JSON, nullable=False)

    mode: Mapped[str | None] = mapped_column(String(30), nullable=True)
    doctor_ref_no: Mapped[str | None] = mapped_column(String(50), nullable=True)
    doctor: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    department: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    status: Mapped[str] = mapped_column(String(30), nullable=False, default="Booked")

    gross_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    total_discount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    paid_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    due_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    payment_status: Mapped[str] = mapped_column(String(20), nullable=False, default="Due")
    payment_method: Mapped[str | None] = mapped_column(String(30), nullable=True)

    is_printed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    printed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    lines = relationship(
        "InvoiceLine",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceLine.position",
    )
    payments = relationship(
        "PaymentEntry",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="PaymentEntry.id",
    )
    adjustments = relationship(
        "InvoiceAdjustment",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceAdjustment.id",
    )
    edits = relationship(
        "InvoiceEdit",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceEdit.id",
    )

    @property
    def patient(self) -> PatientSnapshot:
        return PatientSnapshot.from_dict(self.patient_snapshot)


class InvoiceLine(Base):
    __tablename__ = "invoice_lines"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    invoice_id: Mapped[str] = mapped_column(ForeignKey("invoices.id", ondelete="CASCADE"), index=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    test_id: Mapped[int | None] = mapped_column(ForeignKey("test_definitions.id"), nullable=True)
    test_name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    discount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    net_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="Pending")

    invoice = relationship("Invoice", back_populates="lines")


class PaymentEntry(Base):
    __tablename__ = "invoice_payments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    invoice_id: Mapped[str] = mapped_column(ForeignKey("invoices.id", ondelete="CASCADE"), index=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    method: Mapped[str] = mapped_column(String(30), nullable=False)
    transaction_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    received_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    paid_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    invoice = relationship("Invoice", back_populates="payments")


class InvoiceAdjustment(Base):
    __tablename__ = "invoice_adjustments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    invoice_id: Mapped[str] = mapped_column(ForeignKey("invoices.id", ondelete="CASCADE"), index=True)
    delta: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    action: Mapped[str] = mapped_column(String(10), nullable=False)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    invoice = relationship("Invoice", back_populates="adjustments")


class InvoiceEdit(Base):
    """One audit entry per committed edit. Rows are written once."""

    __tablename__ = "invoice_edits"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    invoice_id: Mapped[str] = mapped_column(ForeignKey("invoices.id", ondelete="CASCADE"), index=True)
    edited_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    edited_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    changes: Mapped[dict] = mapped_column(JSON, nullable=False)

    invoice = relationship("Invoice", back_populates="edits")


@event.listens_for(InvoiceEdit, "before_update")
def _reject_audit_rewrite(mapper, connection, target):
    raise ValueError("invoice edit history is append-only")
