# khe_api/data_client/tables.py
"""ORM tables: users, applications, tickets and the point ledger."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from khe_api.db import Base

ROLE_ATTENDEE = "attendee"
ROLE_STAFF = "staff"
ROLE_ADMIN = "admin"
ROLES = (ROLE_ATTENDEE, ROLE_STAFF, ROLE_ADMIN)

STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"
STATUS_WAITLISTED = "waitlisted"
STATUS_DENIED = "denied"
APPLICATION_STATUSES = (STATUS_PENDING, STATUS_APPROVED, STATUS_WAITLISTED, STATUS_DENIED)


def _new_id() -> str:
    return uuid.uuid4().hex


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Application(Base):
    __tablename__ = "applications"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(200))
    school: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    phone: Mapped[str] = mapped_column(String(40))
    shirt: Mapped[Optional[str]] = mapped_column(String(8), nullable=True)
    demographic: Mapped[bool] = mapped_column(Boolean, default=False)
    first: Mapped[bool] = mapped_column(Boolean, default=False)
    dietary: Mapped[List[str]] = mapped_column(JSON, default=list)
    year: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    age: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    gender: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    major: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    conduct: Mapped[bool] = mapped_column(Boolean, default=False)
    travel: Mapped[bool] = mapped_column(Boolean, default=False)
    waiver: Mapped[bool] = mapped_column(Boolean, default=False)
    resume: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    link: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    status: Mapped[str] = mapped_column(String(16), default=STATUS_PENDING)
    going: Mapped[bool] = mapped_column(Boolean, default=False)
    checked: Mapped[bool] = mapped_column(Boolean, default=False)
    door: Mapped[bool] = mapped_column(Boolean, default=False)
    created: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)
    email: Mapped[str] = mapped_column(String(320), unique=True, index=True)
    password: Mapped[str] = mapped_column(String(100))
    token: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    role: Mapped[str] = mapped_column(String(16), default=ROLE_ATTENDEE)
    created: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)
    application_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("applications.id", ondelete="SET NULL"), nullable=True
    )

    application: Mapped[Optional[Application]] = relationship(lazy="joined")


class Ticket(Base):
    __tablename__ = "tickets"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)
    subject: Mapped[str] = mapped_column(String(200))
    body: Mapped[str] = mapped_column(Text)
    name: Mapped[str] = mapped_column(String(200))
    email: Mapped[str] = mapped_column(String(320))
    open: Mapped[bool] = mapped_column(Boolean, default=True)
    in_progress: Mapped[bool] = mapped_column(Boolean, default=False)
    worker: Mapped[Optional[str]] = mapped_column(String(320), nullable=True)
    created: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)


class PointGrant(Base):
    """
    Append-only ledger entry.

    At most one row per (user_id, point_id): enforced by the database, so a
    concurrent duplicate submission fails on insert instead of slipping in.
    """

    __tablename__ = "point_grants"
    __table_args__ = (UniqueConstraint("user_id", "point_id", name="uq_point_grants_user_point"),)

    # Autoincrement id doubles as insertion order
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(32), index=True)
    points: Mapped[int] = mapped_column(Integer)
    sponsorer_id: Mapped[str] = mapped_column(String(200))
    reason: Mapped[str] = mapped_column(String(500))
    point_id: Mapped[str] = mapped_column(String(200))
    # Local-part snapshot taken at grant time; not kept in sync with users.email
    email: Mapped[str] = mapped_column(String(320))
    created: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)
