# khe_api/routes/application_routes.py
"""
Applications: one per user, linked through users.application_id.

Must be mounted BEFORE user_routes: "/users/application" would otherwise be
captured by "/users/{user_id}".
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, BackgroundTasks, Depends, File, HTTPException, UploadFile
from fastapi.responses import FileResponse
from sqlalchemy import select
from sqlalchemy.orm import Session

from khe_api.auth import require_user
from khe_api.config import IS_PRODUCTION
from khe_api.data_client.application_client import apply_changes, null_fields, resume_path, store_resume
from khe_api.data_client.models import ApplicationAdminPatch, ApplicationIn
from khe_api.data_client.tables import ROLE_ADMIN, ROLE_STAFF, STATUS_PENDING, Application, User
from khe_api.data_client.user_client import get_user, user_with_application
from khe_api.db import get_session
from khe_api.notify_client import mail_quietly, templates
from khe_api.realtime import hub

logger = logging.getLogger("khe-api")

router = APIRouter(tags=["applications"])

NAMESPACE = "/users/application"


def _user_or_404(session: Session, user_id: str) -> User:
    user = get_user(session, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail={"message": "User not found", "_id": user_id})
    return user


def _application_or_404(user: User) -> Application:
    if user.application is None:
        raise HTTPException(status_code=404, detail={"message": "No application submitted", "_id": user.id})
    return user.application


def _delete_application(session: Session, user: User) -> None:
    application = _application_or_404(user)
    user.application_id = None
    user.application = None
    session.delete(application)
    session.commit()


# ─────────────────────────────────────────────────────────────
# Applicant side
# ─────────────────────────────────────────────────────────────

@router.post("/users/application")
def create_application(
    req: ApplicationIn,
    background: BackgroundTasks,
    user: User = Depends(require_user()),
    session: Session = Depends(get_session),
):
    if user.application_id:
        raise HTTPException(status_code=409, detail={"message": "You have already submitted an application"})

    application = Application(**req.model_dump(), status=STATUS_PENDING, going=False, checked=False, door=False)
    session.add(application)
    session.flush()
    user.application = application
    session.commit()

    logger.info(f"[Applications] {user.id} applied")
    if IS_PRODUCTION:
        background.add_task(mail_quietly, *templates.APPLICATION_RECEIVED, [user.email])

    response = user_with_application(user)
    hub.emit(NAMESPACE, "create", response)
    return response


@router.get("/users/me/application")
def get_my_application(user: User = Depends(require_user())):
    return user_with_application(user)


@router.patch("/users/me/application")
def patch_my_application(
    req: ApplicationIn,
    user: User = Depends(require_user()),
    session: Session = Depends(get_session),
):
    """Full re-submission of the applicant's own fields (review flags untouched)."""
    application = _application_or_404(user)
    apply_changes(application, req.model_dump())
    session.commit()

    response = user_with_application(user)
    hub.emit(NAMESPACE, "update", response)
    return response


@router.delete("/users/me/application")
def delete_my_application(user: User = Depends(require_user()), session: Session = Depends(get_session)):
    _delete_application(session, user)
    response = {"_id": user.id}
    hub.emit(NAMESPACE, "delete", response)
    return response


# ─────────────────────────────────────────────────────────────
# Resumes
# ─────────────────────────────────────────────────────────────

@router.post("/users/application/resume")
async def upload_resume(resume: UploadFile = File(None), user: User = Depends(require_user())):
    if resume is None or not resume.filename:
        raise HTTPException(status_code=400, detail={"message": "Resume file required"})
    data = await resume.read()
    filename = store_resume(data, resume.filename)
    logger.info(f"[Applications] Stored resume {filename} for {user.id}")
    return {"filename": filename}


@router.get("/users/application/resume/{filename}")
def get_resume(filename: str, user: User = Depends(require_user())):
    path = resume_path(filename)
    if path is None:
        raise HTTPException(status_code=404, detail={"message": "Resume not found", "filename": filename})
    return FileResponse(path, filename=filename)


# ─────────────────────────────────────────────────────────────
# Staff side
# ─────────────────────────────────────────────────────────────

@router.get("/users/application")
def list_applications(
    staff: User = Depends(require_user(ROLE_ADMIN, ROLE_STAFF)),
    session: Session = Depends(get_session),
):
    users = session.scalars(select(User).order_by(User.created)).unique().all()
    return {"users": [user_with_application(u) for u in users]}


@router.get("/users/{user_id}/application")
def get_application(
    user_id: str,
    staff: User = Depends(require_user(ROLE_ADMIN, ROLE_STAFF)),
    session: Session = Depends(get_session),
):
    return user_with_application(_user_or_404(session, user_id))


@router.patch("/users/{user_id}/application")
def patch_application(
    user_id: str,
    req: ApplicationAdminPatch,
    background: BackgroundTasks,
    staff: User = Depends(require_user(ROLE_ADMIN, ROLE_STAFF)),
    session: Session = Depends(get_session),
):
    """
    Partial update by staff. Creates the application when the user has none.
    Moving to approved / waitlisted / denied emails the applicant.
    """
    user = _user_or_404(session, user_id)
    changes: Dict[str, Any] = req.model_dump(exclude_unset=True)
    nulls = null_fields(changes)
    if nulls:
        raise HTTPException(status_code=400, detail={"message": "Fields cannot be null", "fields": nulls})

    if user.application is None:
        missing = [f for f in ("name", "phone") if not changes.get(f)]
        if missing:
            raise HTTPException(status_code=400, detail={"message": "Missing required fields", "fields": missing})
        application = apply_changes(Application(), changes)
        session.add(application)
        session.flush()
        user.application = application
        previous_status = None
    else:
        application = user.application
        previous_status = application.status
        apply_changes(application, changes)

    session.commit()

    status = changes.get("status")
    mail = templates.for_status(status)
    if mail and status != previous_status:
        background.add_task(mail_quietly, *mail, [user.email])

    response = user_with_application(user)
    hub.emit(NAMESPACE, "update", response)
    return response


@router.delete("/users/{user_id}/application")
def delete_application(
    user_id: str,
    staff: User = Depends(require_user(ROLE_ADMIN, ROLE_STAFF)),
    session: Session = Depends(get_session),
):
    user = _user_or_404(session, user_id)
    _delete_application(session, user)
    response = {"_id": user_id}
    hub.emit(NAMESPACE, "delete", response)
    return response
