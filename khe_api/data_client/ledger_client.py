# khe_api/data_client/ledger_client.py
"""
Point ledger + leaderboard.

Write path:  validate -> insert-if-absent on (user_id, point_id)
Read path:   group by user -> sum points -> sort descending

The ledger is append-only: nothing here updates or deletes a grant.

Duplicates:
- The (user_id, point_id) pair is UNIQUE in the database. A lookup runs first
  so the common re-submission doesn't hit an IntegrityError, and a concurrent
  duplicate that slips past the lookup is caught at insert time.
- A duplicate is reported as such (GrantOutcome.DUPLICATE) together with the
  row that was already there; it is never an error.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, aliased

from khe_api.data_client.models import LeaderboardEntry, PointGrantIn
from khe_api.data_client.tables import PointGrant
from khe_api.errors import StorageError, ValidationError
from khe_api.metrics import LEADERBOARD_LATENCY, POINT_GRANTS

logger = logging.getLogger("khe-api.ledger")

_REQUIRED_FIELDS = ["userID", "points", "sponsorerID", "reason", "pointID", "email"]
_LOCAL_PART_RE = re.compile(r"^[^@]*")


class GrantOutcome(str, Enum):
    OK = "ok"
    DUPLICATE = "duplicate"
    VALIDATION_FAILED = "validation_failed"
    STORAGE_FAILED = "storage_failed"


@dataclass
class GrantResult:
    outcome: GrantOutcome
    grant: Optional[PointGrant] = None
    fields: List[str] = field(default_factory=list)
    cause: Optional[BaseException] = None


# ----------------------------------------------------------------------
# Helpers
# ----------------------------------------------------------------------
def email_local_part(email: str) -> str:
    """'jane.doe@kent.edu' -> 'jane.doe' (the ledger only keeps the local part)."""
    return _LOCAL_PART_RE.match(email or "").group(0)


def grant_to_dict(grant: PointGrant) -> Dict[str, Any]:
    return {
        "_id": grant.id,
        "userID": grant.user_id,
        "points": grant.points,
        "sponsorerID": grant.sponsorer_id,
        "reason": grant.reason,
        "pointID": grant.point_id,
        "email": grant.email,
        "created": grant.created.isoformat() if grant.created else None,
    }


# ----------------------------------------------------------------------
# Grant validator (pure)
# ----------------------------------------------------------------------
def validate_grant(candidate: Any) -> PointGrantIn:
    """
    Raise ValidationError unless every required field is present and well typed.
    `points` may be an int or a numeric string; booleans are rejected.
    """
    if not isinstance(candidate, dict):
        raise ValidationError(list(_REQUIRED_FIELDS))
    try:
        return PointGrantIn.model_validate(candidate)
    except PydanticValidationError as exc:
        fields = sorted({str(err["loc"][0]) for err in exc.errors() if err.get("loc")})
        raise ValidationError(fields or list(_REQUIRED_FIELDS)) from exc


# ----------------------------------------------------------------------
# Duplicate guard (insert-if-absent)
# ----------------------------------------------------------------------
def find_grant(session: Session, user_id: str, point_id: str) -> Optional[PointGrant]:
    stmt = select(PointGrant).where(PointGrant.user_id == user_id, PointGrant.point_id == point_id)
    return session.scalars(stmt).first()


def insert_if_absent(session: Session, grant: PointGrantIn) -> Tuple[PointGrant, bool]:
    """
    Return (row, created). `created` is False when the pair was already granted,
    in which case `row` is the existing grant.
    """
    existing = find_grant(session, grant.user_id, grant.point_id)
    if existing is not None:
        return existing, False

    row = PointGrant(**grant.model_dump())
    session.add(row)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        existing = find_grant(session, grant.user_id, grant.point_id)
        if existing is None:
            # Not the uniqueness constraint: let the caller see a storage failure.
            raise
        logger.info(f"[Ledger] Concurrent duplicate grant absorbed {grant.user_id}/{grant.point_id}")
        return existing, False
    return row, True


def grant_points(session: Session, candidate: Any) -> GrantResult:
    """Validate and record a grant. Never raises for bad input or storage failures."""
    try:
        grant = validate_grant(candidate)
    except ValidationError as exc:
        logger.info(f"[Ledger] Rejected point grant: missing/invalid {exc.fields}")
        POINT_GRANTS.labels(outcome=GrantOutcome.VALIDATION_FAILED.value).inc()
        return GrantResult(GrantOutcome.VALIDATION_FAILED, fields=exc.fields)

    try:
        row, created = insert_if_absent(session, grant)
    except SQLAlchemyError as exc:
        session.rollback()
        logger.error(f"[Ledger] Failed to record grant {grant.user_id}/{grant.point_id}: {exc}")
        POINT_GRANTS.labels(outcome=GrantOutcome.STORAGE_FAILED.value).inc()
        return GrantResult(GrantOutcome.STORAGE_FAILED, cause=exc)

    outcome = GrantOutcome.OK if created else GrantOutcome.DUPLICATE
    POINT_GRANTS.labels(outcome=outcome.value).inc()
    logger.info(f"[Ledger] Point grant {outcome.value} {row.user_id}/{row.point_id} points={row.points}")
    return GrantResult(outcome, grant=row)


def grants_for_user(session: Session, user_id: str) -> List[PointGrant]:
    try:
        stmt = select(PointGrant).where(PointGrant.user_id == user_id).order_by(PointGrant.id)
        return list(session.scalars(stmt))
    except SQLAlchemyError as exc:
        raise StorageError("Failed to read point grants.", cause=exc) from exc


# ----------------------------------------------------------------------
# Leaderboard aggregator
# ----------------------------------------------------------------------
def leaderboard(session: Session) -> List[LeaderboardEntry]:
    """
    One entry per user with at least one grant, highest total first.

    The email shown is the one snapshotted on the user's earliest grant.
    Equal totals are ordered by user id.
    """
    earliest = aliased(PointGrant)
    first_email = (
        select(earliest.email)
        .where(earliest.user_id == PointGrant.user_id)
        .order_by(earliest.id)
        .limit(1)
        .correlate(PointGrant)
        .scalar_subquery()
    )
    total = func.sum(PointGrant.points).label("points")
    stmt = (
        select(PointGrant.user_id, first_email.label("email"), total)
        .group_by(PointGrant.user_id)
        .order_by(total.desc(), PointGrant.user_id.asc())
    )

    with LEADERBOARD_LATENCY.time():
        try:
            rows = session.execute(stmt).all()
        except SQLAlchemyError as exc:
            logger.error(f"[Ledger] Leaderboard aggregation failed: {exc}")
            raise StorageError("Leaderboard aggregation failed.", cause=exc) from exc

    return [
        LeaderboardEntry(user_id=user_id, email=email or "", points=int(points or 0))
        for user_id, email, points in rows
    ]
