from pydantic import Field

from pathlab.enums import AgeUnit, Gender
from pathlab.schemas.common import CamelModel


class AgeIn(CamelModel):
    value: int = Field(ge=0, le=150)
    unit: AgeUnit = AgeUnit.YEARS


class AddressIn(CamelModel):
    street: str | None = None
    area: str | None = None
    post: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None
    country: str | None = None


class PatientCreate(CamelModel):
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)
    phone: str | None = Field(default=None, max_length=30)
    gender: Gender
    age: AgeIn
    address: AddressIn | str | None = None
