# khe_api/routes/__init__.py
"""Router registry.

Single source of truth for FastAPI route inclusion.

Guidelines:
- Keep this list deterministic and explicit.
- Each router must be mounted exactly once (no duplicates).
- Order matters where paths overlap (see below).
"""

from __future__ import annotations

from khe_api.routes.application_routes import router as application_router
from khe_api.routes.diag_routes import router as diag_router
from khe_api.routes.gamify_routes import router as gamify_router
from khe_api.routes.realtime_routes import router as realtime_router
from khe_api.routes.ticket_routes import router as ticket_router
from khe_api.routes.user_routes import router as user_router

# Deterministic inclusion order:
# 1) Diagnostics
# 2) Applications BEFORE users ("/users/application" vs "/users/{user_id}")
# 3) Tickets, gamify, websockets
routers = [
    diag_router,
    application_router,
    user_router,
    ticket_router,
    gamify_router,
    realtime_router,
]

__all__ = ["routers"]
