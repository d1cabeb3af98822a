# khe_api/routes/user_routes.py
"""
Users + tokens.

Write routes emit create/update/delete on the "/users" namespace so staff
dashboards stay live.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from khe_api.auth import require_user
from khe_api.config import IS_PRODUCTION
from khe_api.data_client.application_client import application_to_dict
from khe_api.data_client.models import (
    AdminUserPatch,
    QuickRegisterRequest,
    RegisterRequest,
    TokenRequest,
    UserPatch,
)
from khe_api.data_client.tables import (
    ROLE_ADMIN,
    ROLE_ATTENDEE,
    ROLE_STAFF,
    STATUS_APPROVED,
    Application,
    User,
)
from khe_api.data_client.user_client import (
    create_user,
    credentials,
    get_user,
    get_user_by_email,
    hash_password,
    new_token,
    random_password,
    user_to_dict,
    verify_password,
)
from khe_api.db import get_session
from khe_api.notify_client import mail_quietly, templates
from khe_api.realtime import hub

logger = logging.getLogger("khe-api")

router = APIRouter(tags=["users"])

_EMAIL_TAKEN = {"message": "That email is already in use"}
_BAD_LOGIN = {"message": "Email or password incorrect"}


def _user_or_404(session: Session, user_id: str) -> User:
    user = get_user(session, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail={"message": "User not found", "_id": user_id})
    return user


@router.post("/users")
def register(req: RegisterRequest, background: BackgroundTasks, session: Session = Depends(get_session)):
    user = create_user(session, req.email, req.password)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise HTTPException(status_code=409, detail=_EMAIL_TAKEN)

    logger.info(f"[Users] Registered {user.id}")
    if IS_PRODUCTION:
        background.add_task(mail_quietly, *templates.REGISTRATION, [user.email])

    hub.emit("/users", "create", {"_id": user.id, "email": user.email})
    return credentials(user)


@router.post("/users/quick")
def quick_register(
    req: QuickRegisterRequest,
    background: BackgroundTasks,
    staff: User = Depends(require_user(ROLE_ADMIN, ROLE_STAFF)),
    session: Session = Depends(get_session),
):
    """
    Register someone at the door: an approved, checked-in application plus an
    attendee account with a throwaway password (they can reset it later).
    """
    application = Application(
        name=req.name,
        phone=req.phone,
        door=True,
        going=True,
        checked=True,
        status=STATUS_APPROVED,
    )
    session.add(application)
    session.flush()

    user = create_user(
        session,
        req.email,
        random_password(),
        role=ROLE_ATTENDEE,
        with_token=False,
        application_id=application.id,
    )
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise HTTPException(status_code=409, detail=_EMAIL_TAKEN)

    if IS_PRODUCTION:
        background.add_task(mail_quietly, *templates.REGISTRATION, [user.email])

    response = user_to_dict(user)
    response["application"] = application_to_dict(application)
    hub.emit("/users", "create", response)
    return response


@router.post("/users/token")
def get_token(req: TokenRequest, session: Session = Depends(get_session)):
    user = get_user_by_email(session, req.email)
    if user is None or not verify_password(req.password, user.password):
        raise HTTPException(status_code=401, detail=_BAD_LOGIN)

    if not user.token:
        user.token = new_token()
        session.commit()
    return credentials(user)


@router.delete("/users/token")
def remove_token(user: User = Depends(require_user()), session: Session = Depends(get_session)):
    user.token = None
    session.commit()
    return {}


@router.get("/users")
def list_users(
    staff: User = Depends(require_user(ROLE_ADMIN, ROLE_STAFF)),
    session: Session = Depends(get_session),
):
    users = session.scalars(select(User).order_by(User.created)).all()
    return {"users": [user_to_dict(u) for u in users]}


@router.get("/users/{user_id}")
def get_user_by_id(
    user_id: str,
    staff: User = Depends(require_user(ROLE_ADMIN, ROLE_STAFF)),
    session: Session = Depends(get_session),
):
    return user_to_dict(_user_or_404(session, user_id))


@router.patch("/users")
def patch_me(req: UserPatch, user: User = Depends(require_user()), session: Session = Depends(get_session)):
    if req.email:
        user.email = req.email
    if req.password:
        user.password = hash_password(req.password)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise HTTPException(status_code=409, detail={"message": "That email is already taken"})

    response = {"_id": user.id, "email": user.email}
    hub.emit("/users", "update", response)
    return response


@router.patch("/users/{user_id}")
def patch_user(
    user_id: str,
    req: AdminUserPatch,
    admin: User = Depends(require_user(ROLE_ADMIN)),
    session: Session = Depends(get_session),
):
    user = _user_or_404(session, user_id)
    if req.email:
        user.email = req.email
    if req.role:
        user.role = req.role
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise HTTPException(status_code=409, detail={"message": "That email is already taken"})

    response = user_to_dict(user)
    hub.emit("/users", "update", response)
    return response


@router.delete("/users/{user_id}")
def delete_user(
    user_id: str,
    admin: User = Depends(require_user(ROLE_ADMIN)),
    session: Session = Depends(get_session),
):
    user = _user_or_404(session, user_id)
    application = user.application
    session.delete(user)
    if application is not None:
        session.delete(application)
    session.commit()

    response = {"_id": user_id}
    hub.emit("/users", "delete", response)
    return response
