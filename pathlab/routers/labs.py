import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from pathlab.database import get_db
from pathlab.enums import SystemRole
from pathlab.models.lab import CustomRole, Lab
from pathlab.models.user import User
from pathlab.routers.deps import require_roles
from pathlab.schemas.user import CustomRoleCreate, LabCreate, LabUserCreate
from pathlab.services import roles
from pathlab.services.auth import Actor, actor_for, hash_password

router = APIRouter(prefix="/api/labs", tags=["labs"])
logger = logging.getLogger(__name__)

lab_admin = require_roles(SystemRole.SUPER_ADMIN, SystemRole.LAB_ADMIN, SystemRole.ADMIN)


def _lab_to_dict(lab: Lab) -> dict:
    return {
        "id": lab.id,
        "name": lab.name,
        "code": lab.code,
        "address": lab.address,
        "phone": lab.phone,
        "isActive": lab.is_active,
        "createdAt": lab.created_at.isoformat(),
    }


def _role_to_dict(role: CustomRole) -> dict:
    return {"id": role.id, "name": role.name, "permissions": role.permissions, "isActive": role.is_active}


def _managed_lab(db: Session, actor: Actor, lab_id: int) -> Lab:
    if not actor.is_super_admin and actor.lab_id != lab_id:
        raise HTTPException(status_code=404, detail="Lab not found")
    lab = db.query(Lab).filter(Lab.id == lab_id).first()
    if not lab:
        raise HTTPException(status_code=404, detail="Lab not found")
    return lab


@router.post("", status_code=201)
def create_lab(
    payload: LabCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_roles(SystemRole.SUPER_ADMIN)),
):
    code = payload.code.strip().upper()
    if db.query(Lab.id).filter(Lab.code == code).first():
        raise HTTPException(status_code=409, detail=f"Lab code {code} is already in use")
    lab = Lab(name=payload.name.strip(), code=code, address=payload.address, phone=payload.phone)
    db.add(lab)
    db.commit()
    db.refresh(lab)
    logger.info("Lab %s created by %s", lab.code, actor.id)
    return {"statusCode": 201, "message": "Lab created", "data": _lab_to_dict(lab)}


@router.get("")
def list_labs(db: Session = Depends(get_db), _: Actor = Depends(require_roles(SystemRole.SUPER_ADMIN))):
    labs = db.query(Lab).order_by(Lab.name).all()
    return {"statusCode": 200, "message": "Success", "data": [_lab_to_dict(lab) for lab in labs]}


@router.post("/{lab_id}/users", status_code=201)
def create_lab_user(
    lab_id: int,
    payload: LabUserCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(lab_admin),
):
    lab = _managed_lab(db, actor, lab_id)
    if db.query(User.id).filter(User.email == payload.email).first():
        raise HTTPException(status_code=400, detail="Email already registered")
    system_role, custom_role = roles.resolve_role(db, lab.id, payload.role)
    if system_role is SystemRole.SUPER_ADMIN:
        raise HTTPException(status_code=403, detail="SuperAdmin accounts cannot be created for a lab")
    if system_role is SystemRole.LAB_ADMIN and not actor.has_role(SystemRole.SUPER_ADMIN, SystemRole.LAB_ADMIN):
        raise HTTPException(status_code=403, detail="Only a LabAdmin can appoint another LabAdmin")

    user = User(
        email=payload.email,
        password_hash=hash_password(payload.password),
        full_name=payload.full_name,
        lab_id=lab.id,
        system_role=system_role.value if system_role else None,
        custom_role_id=custom_role.id if custom_role else None,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return {"statusCode": 201, "message": "User created", "data": actor_for(user).as_dict()}


@router.get("/{lab_id}/roles")
def list_roles(lab_id: int, db: Session = Depends(get_db), actor: Actor = Depends(lab_admin)):
    lab = _managed_lab(db, actor, lab_id)
    rows = (
        db.query(CustomRole)
        .filter(CustomRole.lab_id == lab.id, CustomRole.is_active.is_(True))
        .order_by(CustomRole.name)
        .all()
    )
    return {
        "statusCode": 200,
        "message": "Success",
        "data": {
            "systemRoles": [role.value for role in SystemRole],
            "customRoles": [_role_to_dict(role) for role in rows],
        },
    }


@router.post("/{lab_id}/roles", status_code=201)
def create_role(
    lab_id: int,
    payload: CustomRoleCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(lab_admin),
):
    lab = _managed_lab(db, actor, lab_id)
    role = roles.create_custom_role(db, lab.id, payload.name, payload.permissions)
    db.commit()
    db.refresh(role)
    return {"statusCode": 201, "message": "Role created", "data": _role_to_dict(role)}


@router.delete("/{lab_id}/roles/{role_id}")
def delete_role(lab_id: int, role_id: int, db: Session = Depends(get_db), actor: Actor = Depends(lab_admin)):
    lab = _managed_lab(db, actor, lab_id)
    role = roles.deactivate_custom_role(db, lab.id, role_id)
    db.commit()
    return {"statusCode": 200, "message": "Role deactivated", "data": _role_to_dict(role)}
