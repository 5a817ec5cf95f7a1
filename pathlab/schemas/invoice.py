from decimal import Decimal

from pydantic import Field

from pathlab.enums import InvoiceStatus, PaymentMethod, VisitMode
from pathlab.schemas.common import CamelModel


class TestLineIn(CamelModel):
    test_id: int
    quantity: int = Field(default=1, ge=1, le=100)
    discount: Decimal = Field(default=Decimal("0"), ge=0, max_digits=12, decimal_places=2)


class PaymentIn(CamelModel):
    amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    method: PaymentMethod = PaymentMethod.CASH
    transaction_id: str | None = Field(default=None, max_length=100)
    received_by: str | None = Field(default=None, max_length=255)


class InitialPaymentIn(CamelModel):
    amount: Decimal = Field(default=Decimal("0"), ge=0, max_digits=12, decimal_places=2)
    method: PaymentMethod = PaymentMethod.CASH
    transaction_id: str | None = Field(default=None, max_length=100)


class DoctorIn(CamelModel):
    name: str | None = None
    specialization: str | None = None
    room_number: str | None = None


class DepartmentIn(CamelModel):
    name: str | None = None
    code: str | None = None


class InvoiceCreate(CamelModel):
    patient_id: str = Field(min_length=1)
    tests: list[TestLineIn] = Field(min_length=1)
    payment: InitialPaymentIn | None = None
    mode: VisitMode | None = None
    doctor_ref_no: str | None = Field(default=None, max_length=50)
    doctor: DoctorIn | None = None
    department: DepartmentIn | None = None


class InvoiceUpdate(CamelModel):
    tests: list[TestLineIn] = Field(min_length=1)
    mode: VisitMode | None = None
    doctor_ref_no: str | None = Field(default=None, max_length=50)
    note: str | None = Field(default=None, max_length=500)


class StatusUpdate(CamelModel):
    status: InvoiceStatus

