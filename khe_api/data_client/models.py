import re
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _check_email(value: str) -> str:
    value = value.strip().lower()
    if not _EMAIL_RE.match(value):
        raise ValueError("not a valid email address")
    return value


def _split_dietary(value: Any) -> Any:
    """Dietary restrictions arrive either as "Vegan|Kosher" or as a list."""
    if value is None:
        return []
    if isinstance(value, str):
        return [item.strip() for item in value.split("|") if item.strip()]
    return value


# ─────────────────────────────────────────────────────────────
# Users
# ─────────────────────────────────────────────────────────────

class RegisterRequest(BaseModel):
    email: str
    password: str = Field(..., min_length=1)

    normalize_email = field_validator("email")(_check_email)


class QuickRegisterRequest(BaseModel):
    """
    Used by /users/quick (registration at the door).
    """
    email: str
    name: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)

    normalize_email = field_validator("email")(_check_email)


class TokenRequest(BaseModel):
    email: str
    password: str


class UserPatch(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = Field(default=None, min_length=1)

    @field_validator("email")
    @classmethod
    def normalize_optional_email(cls, v: Optional[str]) -> Optional[str]:
        return _check_email(v) if v is not None else v


class AdminUserPatch(BaseModel):
    email: Optional[str] = None
    role: Optional[str] = Field(default=None, pattern="^(attendee|staff|admin)$")

    @field_validator("email")
    @classmethod
    def normalize_optional_email(cls, v: Optional[str]) -> Optional[str]:
        return _check_email(v) if v is not None else v


# ─────────────────────────────────────────────────────────────
# Applications
# ─────────────────────────────────────────────────────────────

class ApplicationIn(BaseModel):
    """
    Body of an applicant's own submission / update.
    Code of conduct and the liability waiver must be accepted.
    """
    name: str = Field(..., min_length=1)
    school: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    shirt: str = Field(..., pattern="^(XS|S|M|L|XL|XXL)$")
    demographic: bool = False
    first: bool = False
    dietary: List[str] = Field(default_factory=list)
    year: str = Field(..., min_length=1)
    age: int = Field(..., ge=0, le=130)
    gender: Optional[str] = None
    major: str = Field(..., min_length=1)
    conduct: bool
    travel: bool = False
    waiver: bool
    resume: Optional[str] = None
    link: Optional[str] = None

    split_dietary = field_validator("dietary", mode="before")(_split_dietary)

    @field_validator("conduct", "waiver")
    @classmethod
    def must_accept(cls, v: bool) -> bool:
        if not v:
            raise ValueError("must be accepted")
        return v


class ApplicationAdminPatch(BaseModel):
    """Staff-side partial update: any field, plus the review/check-in flags."""
    name: Optional[str] = None
    school: Optional[str] = None
    phone: Optional[str] = None
    shirt: Optional[str] = None
    demographic: Optional[bool] = None
    first: Optional[bool] = None
    dietary: Optional[List[str]] = None
    year: Optional[str] = None
    age: Optional[int] = None
    gender: Optional[str] = None
    major: Optional[str] = None
    conduct: Optional[bool] = None
    travel: Optional[bool] = None
    waiver: Optional[bool] = None
    resume: Optional[str] = None
    link: Optional[str] = None
    status: Optional[str] = Field(default=None, pattern="^(pending|approved|waitlisted|denied)$")
    going: Optional[bool] = None
    checked: Optional[bool] = None
    door: Optional[bool] = None

    split_dietary = field_validator("dietary", mode="before")(_split_dietary)


# ─────────────────────────────────────────────────────────────
# Tickets
# ─────────────────────────────────────────────────────────────

class TicketIn(BaseModel):
    subject: str = Field(..., min_length=1)
    body: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    email: str

    normalize_email = field_validator("email")(_check_email)


class TicketPatch(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    open: Optional[bool] = None
    in_progress: Optional[bool] = Field(default=None, alias="inProgress")


# ─────────────────────────────────────────────────────────────
# Point ledger
# ─────────────────────────────────────────────────────────────

class PointGrantIn(BaseModel):
    """
    A validated grant, keyed by the ledger's public field names
    (userID, sponsorerID, pointID).
    """
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    user_id: str = Field(..., alias="userID", min_length=1)
    points: int = Field(..., ge=-2**63, le=2**63 - 1)
    sponsorer_id: str = Field(..., alias="sponsorerID", min_length=1)
    reason: str = Field(..., min_length=1)
    point_id: str = Field(..., alias="pointID", min_length=1)
    email: str = Field(..., min_length=1)

    @field_validator("points", mode="before")
    @classmethod
    def reject_bool(cls, v: Any) -> Any:
        if isinstance(v, bool):
            raise ValueError("points must be a number")
        return v


class LeaderboardEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="_id")
    email: str
    points: int
