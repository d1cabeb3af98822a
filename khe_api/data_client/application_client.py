# khe_api/data_client/application_client.py
"""
Applications + resume uploads.

Resumes are stored flat under UPLOADS_DIR as <uuid4><ext>; the original
filename is never used on disk.
"""

from __future__ import annotations

import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional

from khe_api.config import UPLOADS_DIR
from khe_api.data_client.tables import Application

# Columns an applicant or staff member may write directly
_WRITABLE = (
    "name", "school", "phone", "shirt", "demographic", "first", "dietary", "year", "age",
    "gender", "major", "conduct", "travel", "waiver", "resume", "link",
    "status", "going", "checked", "door",
)


NOT_NULL = tuple(
    name for name in _WRITABLE if not Application.__table__.columns[name].nullable
)


def null_fields(changes: Dict[str, Any]) -> List[str]:
    """Fields explicitly set to null that the table cannot store as NULL."""
    return sorted(name for name in NOT_NULL if name in changes and changes[name] is None)


def application_to_dict(app: Application) -> Dict[str, Any]:
    out: Dict[str, Any] = {"_id": app.id}
    for name in _WRITABLE:
        out[name] = getattr(app, name)
    out["dietary"] = list(app.dietary or [])
    out["created"] = app.created.isoformat() if app.created else None
    return out


def apply_changes(app: Application, changes: Dict[str, Any]) -> Application:
    for name, value in changes.items():
        if name in _WRITABLE:
            setattr(app, name, value)
    return app


# ----------------------------------------------------------------------
# Resume storage
# ----------------------------------------------------------------------
def store_resume(data: bytes, original_name: str, uploads_dir: Path = UPLOADS_DIR) -> str:
    """Write the upload and return the generated filename."""
    ext = Path(original_name or "").suffix.lower()
    filename = f"{uuid.uuid4()}{ext}"
    uploads_dir.mkdir(parents=True, exist_ok=True)
    (uploads_dir / filename).write_bytes(data)
    return filename


def resume_path(filename: str, uploads_dir: Path = UPLOADS_DIR) -> Optional[Path]:
    """
    Resolve a stored resume. Returns None when the file is missing or the
    name points outside the uploads folder.
    """
    base = uploads_dir.resolve()
    candidate = (base / filename).resolve()
    if candidate.parent != base or not candidate.is_file():
        return None
    return candidate
