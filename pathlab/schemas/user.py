from pydantic import BaseModel, EmailStr, Field

from pathlab.schemas.common import CamelModel


class RegisterRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=6)
    full_name: str | None = None
    lab_id: int | None = None


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class LabCreate(CamelModel):
    name: str = Field(min_length=1, max_length=255)
    code: str = Field(min_length=2, max_length=20)
    address: str | None = None
    phone: str | None = None


class LabUserCreate(CamelModel):
    email: EmailStr
    password: str = Field(min_length=6)
    full_name: str | None = None
    role: str = Field(min_length=1, max_length=50)


class CustomRoleCreate(CamelModel):
    name: str
    permissions: list[str] = Field(default_factory=list)
