import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta

from passlib.context import CryptContext
from sqlalchemy.orm import Session

from pathlab.config import settings
from pathlab.enums import SystemRole
from pathlab.models.user import User, UserSession

# pbkdf2_sha256 avoids native bcrypt backend incompatibilities across environments.
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


@dataclass(frozen=True)
class Actor:
    """Who is making the request, resolved once per request."""

    id: str
    email: str
    name: str
    system_role: SystemRole | None
    custom_role: str | None
    permissions: tuple[str, ...]
    lab_id: int | None

    @property
    def role(self) -> str | None:
        if self.system_role is not None:
            return self.system_role.value
        return self.custom_role

    @property
    def is_super_admin(self) -> bool:
        return self.system_role is SystemRole.SUPER_ADMIN

    def has_role(self, *roles: SystemRole) -> bool:
        return self.system_role in roles

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "isCustomRole": self.custom_role is not None,
            "permissions": list(self.permissions),
            "labId": self.lab_id,
        }


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)


def create_session(db: Session, user_id: str) -> UserSession:
    token = secrets.token_urlsafe(32)
    now = datetime.utcnow()
    session = UserSession(
        id=token,
        user_id=user_id,
        created_at=now,
        expires_at=now + timedelta(hours=settings.session_ttl_hours),
    )
    db.add(session)
    db.commit()
    db.refresh(session)
    return session


def get_user_from_token(db: Session, token: str) -> User | None:
    session = db.query(UserSession).filter(UserSession.id == token).first()
    if not session:
        return None
    if session.expires_at < datetime.utcnow():
        db.delete(session)
        db.commit()
        return None
    return db.query(User).filter(User.id == session.user_id, User.is_active.is_(True)).first()


def actor_for(user: User) -> Actor:
    custom = user.custom_role if user.custom_role is not None and user.custom_role.is_active else None
    return Actor(
        id=user.id,
        email=user.email,
        name=user.full_name or user.email,
        system_role=SystemRole(user.system_role) if user.system_role else None,
        custom_role=custom.name if custom else None,
        permissions=tuple(custom.permissions or ()) if custom else (),
        lab_id=user.lab_id,
    )
