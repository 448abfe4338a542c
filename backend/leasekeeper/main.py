# backend/leasekeeper/main.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import pydantic
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import settings
from .db import init_db
from .errors import LifecycleError
from .logging_config import configure_logging
from .middleware.request_context import RequestContextMiddleware, get_request_id

from .routers.health import router as health_router
from .routers.leases import router as leases_router
from .routers.maintenance import router as maintenance_router
from .routers.clearances import router as clearances_router

API_PREFIX = "/api"

log = logging.getLogger(__name__)


def _cors_origins() -> list[str]:
    val = getattr(settings, "cors_allow_origins", ["*"])
    if isinstance(val, str):
        v = val.strip()
        return ["*"] if v == "*" else [x.strip() for x in v.split(",") if x.strip()]
    if isinstance(val, list) and val:
        return val
    return ["*"]


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


async def lifecycle_error_handler(request: Request, exc: LifecycleError) -> JSONResponse:
    if exc.status_code >= 500:
        log.error("request failed: %s", exc.message, exc_info=exc)
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "detail": exc.message,
            "error": type(exc).__name__,
            "entity_type": exc.entity_type,
            "entity_id": exc.entity_id,
            "request_id": get_request_id(),
        },
    )


async def payload_error_handler(request: Request, exc: pydantic.ValidationError) -> JSONResponse:
    # JSON form fields are validated inside the handlers, not by FastAPI
    return JSONResponse(status_code=400, content={"detail": str(exc), "error": "ValidationError"})


def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(title="Leasekeeper", version="0.1.0", lifespan=lifespan)

    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(LifecycleError, lifecycle_error_handler)
    app.add_exception_handler(pydantic.ValidationError, payload_error_handler)

    app.include_router(health_router, prefix=API_PREFIX)
    app.include_router(leases_router, prefix=API_PREFIX)
    app.include_router(maintenance_router, prefix=API_PREFIX)
    app.include_router(clearances_router, prefix=API_PREFIX)

    return app


app = create_app()
