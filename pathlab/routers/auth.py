from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from pathlab.database import get_db
from pathlab.enums import SystemRole
from pathlab.models.lab import Lab
from pathlab.models.user import User
from pathlab.routers.deps import get_current_actor
from pathlab.schemas.user import LoginRequest, RegisterRequest
from pathlab.services.auth import Actor, actor_for, create_session, hash_password, verify_password

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _auth_payload(user: User, token: str) -> dict:
    return {"token": token, "user": actor_for(user).as_dict()}


@router.post("/register", status_code=201)
def register(payload: RegisterRequest, db: Session = Depends(get_db)):
    existing = db.query(User).filter(User.email == payload.email).first()
    if existing:
        raise HTTPException(status_code=400, detail="Email already registered")

    user = User(email=payload.email, password_hash=hash_password(payload.password), full_name=payload.full_name)
    if db.query(User.id).first() is None:
        user.system_role = SystemRole.SUPER_ADMIN.value
    else:
        if payload.lab_id is None:
            raise HTTPException(status_code=400, detail="labId is required")
        lab = db.query(Lab).filter(Lab.id == payload.lab_id, Lab.is_active.is_(True)).first()
        if not lab:
            raise HTTPException(status_code=404, detail="Lab not found")
        user.lab_id = lab.id
        # The first account in a lab administers it; later ones wait for a role.
        if db.query(User.id).filter(User.lab_id == lab.id).first() is None:
            user.system_role = SystemRole.LAB_ADMIN.value
    db.add(user)
    db.commit()
    db.refresh(user)

    session = create_session(db, user.id)
    return {"statusCode": 201, "message": "Registered", "data": _auth_payload(user, session.id)}


@router.post("/login")
def login(payload: LoginRequest, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == payload.email).first()
    if not user or not user.is_active or not verify_password(payload.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid credentials")

    session = create_session(db, user.id)
    return {"statusCode": 200, "message": "Logged in", "data": _auth_payload(user, session.id)}


@router.get("/me")
def me(actor: Actor = Depends(get_current_actor)):
    return {"statusCode": 200, "message": "Success", "data": actor.as_dict()}
