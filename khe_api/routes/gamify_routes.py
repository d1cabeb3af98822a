# khe_api/routes/gamify_routes.py
import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from khe_api.auth import require_user
from khe_api.data_client.ledger_client import (
    GrantOutcome,
    email_local_part,
    grant_points,
    grant_to_dict,
    grants_for_user,
    leaderboard,
)
from khe_api.data_client.tables import User
from khe_api.db import get_session
from khe_api.realtime import hub

logger = logging.getLogger("khe-api")

router = APIRouter(prefix="/gamify", tags=["gamify"])


@router.get("/leaderboard")
def get_leaderboard(session: Session = Depends(get_session)):
    """
    Every user with at least one grant, highest total first:
    [{"_id": <userID>, "email": ..., "points": ...}]
    """
    return [entry.model_dump(by_alias=True) for entry in leaderboard(session)]


@router.post("/points")
def add_points(
    payload: Dict[str, Any] = Body(...),
    user: User = Depends(require_user()),
    session: Session = Depends(get_session),
):
    """
    Grant points to the caller for one awarding action.

    Body: {"points": int, "src": sponsor id, "reason": str, "pid": point id}
    Re-submitting the same `pid` is absorbed: status "duplicate", no new row.
    """
    candidate = {
        "userID": user.id,
        "points": payload.get("points"),
        "sponsorerID": payload.get("src"),
        "reason": payload.get("reason"),
        "pointID": payload.get("pid"),
        "email": email_local_part(user.email),
    }
    result = grant_points(session, candidate)

    if result.outcome is GrantOutcome.VALIDATION_FAILED:
        return JSONResponse(status_code=400, content={"error": "invalid_input", "fields": result.fields})

    if result.outcome is GrantOutcome.STORAGE_FAILED:
        return JSONResponse(
            status_code=503,
            content={"error": "storage_unavailable", "detail": "Could not record the grant."},
        )

    grant = grant_to_dict(result.grant)
    if result.outcome is GrantOutcome.OK:
        hub.emit("/gamify", "create", grant)
    return {"status": result.outcome.value, "grant": grant}


@router.get("/points/me")
def my_points(user: User = Depends(require_user()), session: Session = Depends(get_session)):
    grants = grants_for_user(session, user.id)
    return {
        "_id": user.id,
        "points": sum(g.points for g in grants),
        "grants": [grant_to_dict(g) for g in grants],
    }
