from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from pathlab.database import get_db
from pathlab.enums import SystemRole
from pathlab.routers.deps import ADMIN_ROLES, require_roles
from pathlab.schemas.registration import CounterSync
from pathlab.services import counters
from pathlab.services.auth import Actor

router = APIRouter(prefix="/api/counters", tags=["counters"])
admin = require_roles(*ADMIN_ROLES)
# Receipt and CRN sequences are shared by every lab.
super_admin = require_roles(SystemRole.SUPER_ADMIN)


@router.get("")
def list_counters(db: Session = Depends(get_db), _: Actor = Depends(admin)):
    rows = counters.list_counters(db)
    return {
        "statusCode": 200,
        "message": "Success",
        "data": [{"name": row.name, "value": row.value, "updatedAt": row.updated_at} for row in rows],
    }


@router.get("/{name}")
def get_counter(name: str, db: Session = Depends(get_db), _: Actor = Depends(admin)):
    counters.validate_name(name)
    return {"statusCode": 200, "message": "Success", "data": {"name": name, "value": counters.current_value(db, name)}}


@router.post("/{name}/next")
def next_value(name: str, db: Session = Depends(get_db), _: Actor = Depends(super_admin)):
    counters.validate_name(name)
    value = counters.allocate_next(db, name)
    db.commit()
    return {"statusCode": 200, "message": "Allocated", "data": {"name": name, "value": value}}


@router.post("/{name}/sync")
def sync_counter(
    name: str,
    payload: CounterSync | None = None,
    db: Session = Depends(get_db),
    _: Actor = Depends(super_admin),
):
    counters.validate_name(name)
    before, after = counters.resync(db, name, payload.minimum if payload else None)
    db.commit()
    return {
        "statusCode": 200,
        "message": "Counter synchronized",
        "data": {"name": name, "before": before, "after": after, "changed": after != before},
    }
