from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from pathlab.database import Base


class PathologyRegistration(Base):
    """Sample registration against a receipt; soft-locks the invoice unless ``edit_allowed``."""

    __tablename__ = "pathology_registrations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    lab_id: Mapped[int | None] = mapped_column(ForeignKey("labs.id"), index=True, nullable=True)
    invoice_id: Mapped[str] = mapped_column(ForeignKey("invoices.id"), unique=True, nullable=False)
    receipt_number: Mapped[int] = mapped_column(Integer, index=True, nullable=False)
    edit_allowed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)


class PathologyReport(Base):
    """Generated report. Its existence hard-locks the invoice for good."""

    __tablename__ = "pathology_reports"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    lab_id: Mapped[int | None] = mapped_column(ForeignKey("labs.id"), index=True, nullable=True)
    # Unique: the first report for a receipt wins.
    invoice_id: Mapped[str] = mapped_column(ForeignKey("invoices.id"), unique=True, nullable=False)
    receipt_number: Mapped[int] = mapped_column(Integer, index=True, nullable=False)
    generated_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    generated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
