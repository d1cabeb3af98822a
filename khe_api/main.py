# khe_api/main.py
import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app

from khe_api.db import init_db
from khe_api.errors import StorageError
from khe_api.metrics import REGISTRY
from khe_api.routes import routers

# ----------------------------------------------------------------------
# Logger configuration
# ----------------------------------------------------------------------
logger = logging.getLogger("khe-api")
logger.setLevel(logging.INFO)
handler = logging.StreamHandler()
formatter = logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s")
handler.setFormatter(formatter)

if not logger.handlers:
    logger.addHandler(handler)
else:
    for h in logger.handlers:
        h.setFormatter(formatter)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


# ----------------------------------------------------------------------
# FastAPI app + CORS
# ----------------------------------------------------------------------
app = FastAPI(title="khe-api", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ----------------------------------------------------------------------
# Routers (single source of truth: khe_api/routes/__init__.py)
# ----------------------------------------------------------------------
for r in routers:
    app.include_router(r)

# ----------------------------------------------------------------------
# Metrics
# ----------------------------------------------------------------------
app.mount("/metrics", make_asgi_app(registry=REGISTRY))

# ----------------------------------------------------------------------
# Exception handlers
# ----------------------------------------------------------------------
@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    logger.error(
        f"Unhandled exception on {request.url.path}: {exc}\n{traceback.format_exc()}"
    )
    detail = str(exc) if app.debug else "Internal server error"
    return JSONResponse(
        status_code=500,
        content={"error": "internal_server_error", "detail": detail},
    )


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    logger.error(f"Storage error on {request.url.path}: {exc} ({exc.cause})")
    return JSONResponse(
        status_code=503,
        content={"error": "storage_unavailable", "detail": str(exc)},
    )
