"""Patient demographics as value types.

Age is always a ``(value, unit)`` pair and the invoice carries a frozen copy of
the patient taken at booking time. Nothing here touches the database.
"""
from dataclasses import asdict, dataclass, field
from typing import Any

from pathlab.enums import AgeUnit

ADDRESS_PARTS = ("street", "area", "post", "city", "state", "zipCode", "country")


@dataclass(frozen=True)
class Age:
    value: int
    unit: AgeUnit = AgeUnit.YEARS

    def __post_init__(self):
        # Columns hand back plain strings.
        if not isinstance(self.unit, AgeUnit):
            object.__setattr__(self, "unit", AgeUnit(self.unit))
        if self.value < 0:
            raise ValueError("age cannot be negative")

    def display(self) -> str:
        return f"{self.value} {self.unit.letter}"

    def to_dict(self) -> dict[str, Any]:
        return {"value": self.value, "unit": self.unit.value}


def gender_initial(gender: str | None) -> str:
    if not gender:
        return ""
    return gender.strip()[:1].upper()


def format_address(address: dict | str | None) -> str:
    """Join address parts in postal order, dropping blanks and repeats.

    A free-text address is split on commas and cleaned the same way.
    """
    if not address:
        return ""
    if isinstance(address, str):
        parts = address.split(",")
    else:
        parts = [address.get(key) for key in ADDRESS_PARTS]

    seen: set[str] = set()
    cleaned: list[str] = []
    for part in parts:
        text = str(part).strip() if part is not None else ""
        if not text or text.lower() in seen:
            continue
        seen.add(text.lower())
        cleaned.append(text)
    return ", ".join(cleaned)


@dataclass(frozen=True)
class PatientSnapshot:
    patient_id: str
    registration_number: int
    name: str
    gender: str
    age: Age
    phone: str | None = None
    address: str = ""
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_patient(cls, patient) -> "PatientSnapshot":
        return cls(
            patient_id=patient.patient_id,
            registration_number=patient.registration_number,
            name=patient.full_name,
            gender=patient.gender,
            age=patient.age,
            phone=patient.phone,
            address=format_address(patient.address),
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PatientSnapshot":
        return cls(
            patient_id=data["patientId"],
            registration_number=data["registrationNumber"],
            name=data["name"],
            gender=data["gender"],
            age=Age(data["age"]["value"], data["age"]["unit"]),
            phone=data.get("phone"),
            address=data.get("address") or "",
            extra=data.get("extra") or {},
        )

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        return {
            "patientId": payload["patient_id"],
            "registrationNumber": payload["registration_number"],
            "name": payload["name"],
            "gender": payload["gender"],
            "age": self.age.to_dict(),
            "phone": payload["phone"],
            "address": payload["address"],
            "extra": payload["extra"],
        }
