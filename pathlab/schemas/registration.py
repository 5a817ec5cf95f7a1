from pydantic import Field

from pathlab.schemas.common import CamelModel


class RegistrationCreate(CamelModel):
    receipt_number: int = Field(ge=1)
    year: int | None = None
    edit_allowed: bool = False


class CashEditToggle(CamelModel):
    allow: bool
    year: int | None = None


class ReportCreate(CamelModel):
    receipt_number: int = Field(ge=1)
    year: int | None = None


class CounterSync(CamelModel):
    minimum: int | None = Field(default=None, ge=0)
