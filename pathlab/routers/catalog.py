from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from pathlab.database import get_db
from pathlab.enums import SystemRole
from pathlab.models.catalog import TestDefinition
from pathlab.routers.deps import ADMIN_ROLES, get_current_actor, require_roles
from pathlab.schemas.catalog import TestDefinitionCreate
from pathlab.services import catalog
from pathlab.services.auth import Actor

router = APIRouter(prefix="/api/catalog", tags=["catalog"])


def _test_to_dict(test: TestDefinition) -> dict:
    return {
        "id": test.id,
        "name": test.name,
        "category": test.category,
        "price": test.price,
        "labId": test.lab_id,
        "shared": test.lab_id is None,
    }


@router.get("/tests")
def search_tests(
    search: str | None = None,
    category: str | None = None,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    rows = catalog.search_tests(db, actor.lab_id, search=search, category=category)
    return {"statusCode": 200, "message": "Success", "data": [_test_to_dict(row) for row in rows]}


@router.get("/categories")
def list_categories(db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    return {"statusCode": 200, "message": "Success", "data": catalog.list_categories(db, actor.lab_id)}


@router.post("/tests", status_code=201)
def create_test(
    payload: TestDefinitionCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_roles(*ADMIN_ROLES)),
):
    shared = payload.shared and actor.has_role(SystemRole.SUPER_ADMIN)
    test = TestDefinition(
        name=payload.name.strip(),
        category=payload.category.strip(),
        price=payload.price,
        lab_id=None if shared or actor.lab_id is None else actor.lab_id,
    )
    db.add(test)
    db.commit()
    db.refresh(test)
    return {"statusCode": 201, "message": "Test created", "data": _test_to_dict(test)}
