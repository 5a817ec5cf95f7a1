from datetime import datetime

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from pathlab.database import Base
from pathlab.services.demographics import Age


class Patient(Base):
    __tablename__ = "patients"
    __table_args__ = (UniqueConstraint("registration_year", "patient_id", name="uq_patients_year_patient_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    lab_id: Mapped[int | None] = mapped_column(ForeignKey("labs.id"), index=True, nullable=True)
    # Assigned once from the patientId_<year> sequence, which restarts every year.
    patient_id: Mapped[str] = mapped_column(String(30), index=True, nullable=False)
    registration_year: Mapped[int] = mapped_column(Integer, nullable=False)
    registration_number: Mapped[int] = mapped_column(Integer, index=True, nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(30), index=True, nullable=True)
    gender: Mapped[str] = mapped_column(String(10), nullable=False)
    age_value: Mapped[int] = mapped_column(Integer, nullable=False)
    age_unit: Mapped[str] = mapped_column(String(10), nullable=False, default="Years")
    address: Mapped[dict | str | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)

    @property
    def age(self) -> Age:
        return Age(self.age_value, self.age_unit)
