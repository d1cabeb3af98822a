# khe_api/data_client/user_client.py
"""Users: password hashing, auth tokens, lookups and JSON shaping."""

from __future__ import annotations

import secrets
from typing import Any, Dict, Optional

import bcrypt
from sqlalchemy import select
from sqlalchemy.orm import Session

from khe_api.data_client.application_client import application_to_dict
from khe_api.data_client.tables import ROLE_ATTENDEE, User


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


def new_token() -> str:
    return secrets.token_hex(32)


def random_password() -> str:
    return secrets.token_urlsafe(12)


def create_user(
    session: Session,
    email: str,
    password: str,
    role: str = ROLE_ATTENDEE,
    with_token: bool = True,
    application_id: Optional[str] = None,
) -> User:
    """Add (not commit) a new user. The caller commits and handles IntegrityError."""
    user = User(
        email=email,
        password=hash_password(password),
        token=new_token() if with_token else None,
        role=role,
        application_id=application_id,
    )
    session.add(user)
    return user


def get_user(session: Session, user_id: str) -> Optional[User]:
    return session.get(User, user_id)


def get_user_by_email(session: Session, email: str) -> Optional[User]:
    return session.scalars(select(User).where(User.email == email.strip().lower())).first()


def authenticate_token(session: Session, key: str, token: str) -> Optional[User]:
    """Resolve a (key, token) pair to a user. Tokens are compared in constant time."""
    user = get_user(session, key)
    if user is None or not user.token:
        return None
    if not secrets.compare_digest(user.token, token):
        return None
    return user


def credentials(user: User) -> Dict[str, Any]:
    return {"key": user.id, "token": user.token, "role": user.role}


def user_to_dict(user: User) -> Dict[str, Any]:
    return {
        "_id": user.id,
        "email": user.email,
        "role": user.role,
        "created": user.created.isoformat() if user.created else None,
    }


def user_with_application(user: User) -> Dict[str, Any]:
    out = user_to_dict(user)
    out["application"] = application_to_dict(user.application) if user.application else None
    return out
