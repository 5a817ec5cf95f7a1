from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from pathlab.database import get_db
from pathlab.enums import SystemRole
from pathlab.models.user import User
from pathlab.services.auth import Actor, actor_for, get_user_from_token

ADMIN_ROLES = (SystemRole.SUPER_ADMIN, SystemRole.LAB_ADMIN, SystemRole.ADMIN)


def get_current_user(
    authorization: str | None = Header(default=None),
    db: Session = Depends(get_db),
) -> User:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Missing or invalid Authorization header")
    token = authorization.replace("Bearer ", "", 1)
    user = get_user_from_token(db, token)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid or expired session")
    return user


def get_current_actor(user: User = Depends(get_current_user)) -> Actor:
    actor = actor_for(user)
    if not actor.is_super_admin and actor.lab_id is None:
        raise HTTPException(status_code=403, detail="Your account is not attached to a lab")
    return actor


def require_roles(*roles: SystemRole):
    def dependency(actor: Actor = Depends(get_current_actor)) -> Actor:
        if not actor.has_role(*roles):
            raise HTTPException(status_code=403, detail="You do not have permission to perform this action")
        return actor

    return dependency
