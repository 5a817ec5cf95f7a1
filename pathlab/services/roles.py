import re

from sqlalchemy import func
from sqlalchemy.orm import Session

from pathlab.enums import SystemRole
from pathlab.errors import ConflictError, NotFoundError, ValidationFailed
from pathlab.models.lab import CustomRole

RESERVED_ROLE_NAMES = frozenset({"superadmin", "labadmin", "admin", "system", "patient", "root"})
_ROLE_NAME = re.compile(r"^[A-Za-z0-9 _-]{1,50}$")


def validate_custom_role_name(name: str) -> str:
    cleaned = (name or "").strip()
    if not _ROLE_NAME.match(cleaned):
        raise ValidationFailed("Role name must be 1-50 letters, digits, spaces, '-' or '_'")
    if cleaned.lower().replace(" ", "") in RESERVED_ROLE_NAMES:
        raise ValidationFailed(f"'{cleaned}' is a reserved role name")
    return cleaned


def create_custom_role(db: Session, lab_id: int, name: str, permissions: list[str]) -> CustomRole:
    cleaned = validate_custom_role_name(name)
    existing = (
        db.query(CustomRole)
        .filter(CustomRole.lab_id == lab_id, func.lower(CustomRole.name) == cleaned.lower())
        .first()
    )
    if existing and existing.is_active:
        raise ConflictError(f"Role '{cleaned}' already exists in this lab")
    if existing:
        # Re-activate a soft-deleted role of the same name.
        existing.is_active = True
        existing.name = cleaned
        existing.permissions = sorted(set(permissions))
        return existing
    role = CustomRole(lab_id=lab_id, name=cleaned, permissions=sorted(set(permissions)))
    db.add(role)
    return role


def deactivate_custom_role(db: Session, lab_id: int, role_id: int) -> CustomRole:
    role = db.query(CustomRole).filter(CustomRole.id == role_id, CustomRole.lab_id == lab_id).first()
    if not role or not role.is_active:
        raise NotFoundError("Role not found")
    role.is_active = False
    return role


def resolve_role(db: Session, lab_id: int | None, role: str) -> tuple[SystemRole | None, CustomRole | None]:
    """Map a requested role string to either a system role or one of the lab's custom roles."""
    for system_role in SystemRole:
        if role == system_role.value:
            return system_role, None
    if lab_id is None:
        raise ValidationFailed("Custom roles require a lab")
    custom = (
        db.query(CustomRole)
        .filter(
            CustomRole.lab_id == lab_id,
            func.lower(CustomRole.name) == role.strip().lower(),
            CustomRole.is_active.is_(True),
        )
        .first()
    )
    if not custom:
        raise ValidationFailed(f"Unknown role '{role}'")
    return None, custom
