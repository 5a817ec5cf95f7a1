from datetime import datetime

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from pathlab.database import Base


class DeletedRecord(Base):
    __tablename__ = "deleted_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    lab_id: Mapped[int | None] = mapped_column(ForeignKey("labs.id"), index=True, nullable=True)
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    original_id: Mapped[str] = mapped_column(String(36), index=True, nullable=False)
    receipt_number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    deleted_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    deleted_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    data: Mapped[dict] = mapped_column(JSON, nullable=False)
