# khe_api/config.py
"""
Central configuration for the hackathon backend.

Design goals:
- Always load .env from the repository root in a deterministic way
- Support switching push / mail providers (mock / real) via *_PROVIDER
- Keep secrets out of logs (provide "safe" diagnostics)
"""

from __future__ import annotations

import os
from pathlib import Path
from dotenv import load_dotenv


# ---------------------------------------------------------------------
# 1) Repo root discovery + .env loading
# ---------------------------------------------------------------------
def _find_repo_root(start: Path) -> Path:
    """
    Walk upwards until we find a folder that looks like the repository root.
    Markers: .env, pyproject.toml, README.md
    """
    markers = (".env", "pyproject.toml", "README.md")
    for p in [start, *start.parents]:
        if any((p / m).exists() for m in markers):
            return p
    # Fallback: assume khe_api/ is directly under repo root
    return start.parents[1]


REPO_ROOT = _find_repo_root(Path(__file__).resolve())
load_dotenv(dotenv_path=REPO_ROOT / ".env", override=False)


def _env_path(key: str, default: Path) -> Path:
    """Relative values are interpreted as relative to REPO_ROOT."""
    p = Path(os.getenv(key, str(default)).strip())
    if not p.is_absolute():
        p = REPO_ROOT / p
    return p.resolve()


# ---------------------------------------------------------------------
# 2) Application
# ---------------------------------------------------------------------
APP_ENV = os.getenv("APP_ENV", "development").strip().lower()
IS_PRODUCTION = APP_ENV == "production"

DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{REPO_ROOT / 'khe.db'}").strip()

UPLOADS_DIR = _env_path("UPLOADS_DIR", REPO_ROOT / "uploads")


# ---------------------------------------------------------------------
# 3) Push notifications (GCM topic messaging)
# ---------------------------------------------------------------------
PUSH_PROVIDER = os.getenv("PUSH_PROVIDER", "mock").strip().lower()
# Allowed: mock | gcm
if PUSH_PROVIDER not in {"mock", "gcm"}:
    raise RuntimeError(f"Invalid PUSH_PROVIDER='{PUSH_PROVIDER}'. Expected mock|gcm.")

GCM_API_KEY = os.getenv("GCM_API_KEY", "").strip()
GCM_SEND_URL = os.getenv("GCM_SEND_URL", "https://fcm.googleapis.com/fcm/send").strip()
PUSH_TIMEOUT_SECONDS = float(os.getenv("PUSH_TIMEOUT_SECONDS", "10"))


# ---------------------------------------------------------------------
# 4) Outbound email
#
# MAIL_API_URL is the FULL endpoint that accepts a JSON message
# ({"from", "to", "subject", "text"}), e.g. a transactional mail gateway.
# ---------------------------------------------------------------------
MAIL_PROVIDER = os.getenv("MAIL_PROVIDER", "mock").strip().lower()
# Allowed: mock | http
if MAIL_PROVIDER not in {"mock", "http"}:
    raise RuntimeError(f"Invalid MAIL_PROVIDER='{MAIL_PROVIDER}'. Expected mock|http.")

MAIL_API_URL = os.getenv("MAIL_API_URL", "").strip()
MAIL_API_KEY = os.getenv("MAIL_API_KEY", "").strip()
MAIL_FROM = os.getenv("MAIL_FROM", "Kent Hack Enough <staff@khe.io>").strip()
MAIL_TIMEOUT_SECONDS = float(os.getenv("MAIL_TIMEOUT_SECONDS", "15"))


# ---------------------------------------------------------------------
# 5) Provider validation helpers (used by the notify clients)
# ---------------------------------------------------------------------
def validate_push_config() -> None:
    if PUSH_PROVIDER == "gcm":
        if not GCM_API_KEY:
            raise RuntimeError("GCM_API_KEY is empty (PUSH_PROVIDER=gcm).")
        if not GCM_SEND_URL:
            raise RuntimeError("GCM_SEND_URL is empty (PUSH_PROVIDER=gcm).")


def validate_mail_config() -> None:
    if MAIL_PROVIDER == "http":
        if not MAIL_API_URL:
            raise RuntimeError("MAIL_API_URL is empty (MAIL_PROVIDER=http).")
        # Some gateways accept unauthenticated calls from a private network:
        # keep the key soft.


def config_diag_safe() -> dict:
    """
    Safe diagnostics (no secrets).
    Served by /api/diag/config.
    """
    return {
        "repo_root": str(REPO_ROOT),
        "app_env": APP_ENV,
        "database_backend": DATABASE_URL.split(":", 1)[0],
        "uploads_dir": str(UPLOADS_DIR),
        "push_provider": PUSH_PROVIDER,
        "gcm_send_url": GCM_SEND_URL if PUSH_PROVIDER == "gcm" else None,
        "has_gcm_key": bool(GCM_API_KEY),
        "mail_provider": MAIL_PROVIDER,
        "mail_api_url": MAIL_API_URL if MAIL_PROVIDER == "http" else None,
        "has_mail_key": bool(MAIL_API_KEY),
    }
