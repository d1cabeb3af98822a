# khe_api/routes/diag_routes.py
import logging

from fastapi import APIRouter

from khe_api.config import config_diag_safe
from khe_api.realtime import hub

logger = logging.getLogger("khe-api")
router = APIRouter(tags=["diag"])


@router.get("/health")
def health():
    return {"status": "ok"}


@router.get("/api/diag/config")
def diag_config():
    return config_diag_safe()


@router.get("/api/diag/realtime")
def diag_realtime():
    return {ns: hub.subscriber_count(ns) for ns in hub.namespaces()}
