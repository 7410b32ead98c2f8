"""
FastAPI application: REST adapter for the BotMojo assistant core.

Usage:
    python run_api.py

Or directly:
    uvicorn adapters.rest.app:app --host 0.0.0.0 --port 8000 --reload
"""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Ensure src/ is on sys.path when invoked via uvicorn directly
_src_dir = Path(__file__).resolve().parent.parent.parent
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))

from infrastructure.config import Settings
from factory import ServiceFactory
from adapters.rest.dependencies import set_factory
from adapters.rest.routers import admin, assistant, entities
from domain.exceptions import (
    AccessDeniedError,
    EntityStoreError,
    InvalidRequestError,
    PlanValidationError,
    StoreConnectionError,
    TriageError,
)

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize ServiceFactory on startup, close the store on shutdown."""
    project_root = _src_dir.parent
    config = Settings.from_env(project_root=project_root)
    factory = ServiceFactory(config)
    await factory.initialize()
    set_factory(factory)
    yield
    await factory.close()
    set_factory(None)


app = FastAPI(
    title="BotMojo Assistant",
    version=API_VERSION,
    description="Plan orchestration, permission-gated tools and a personal knowledge graph.",
    lifespan=lifespan,
)

# CORS: permissive for development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(assistant.router)
app.include_router(admin.router)
app.include_router(entities.router)


# --- Error object: {status, message, code, success} ---

def error_response(status_code: int, message: str, code: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"status": "error", "message": message, "code": code, "success": False},
    )


@app.exception_handler(InvalidRequestError)
async def _invalid_request(request: Request, exc: InvalidRequestError):
    return error_response(
        exc.context.get("http_status", 400), str(exc), exc.context.get("code", "invalid_request"),
    )


@app.exception_handler(PlanValidationError)
async def _invalid_plan(request: Request, exc: PlanValidationError):
    return error_response(400, str(exc), "invalid_plan")


@app.exception_handler(RequestValidationError)
async def _malformed_body(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = errors[0].get("msg", "Malformed request") if errors else "Malformed request"
    return error_response(400, f"Malformed request: {message}", "invalid_request")


@app.exception_handler(AccessDeniedError)
async def _access_denied(request: Request, exc: AccessDeniedError):
    return error_response(403, str(exc), exc.context.get("code", "access_denied"))


@app.exception_handler(TriageError)
async def _triage_unavailable(request: Request, exc: TriageError):
    logger.error("Triage unavailable: %s", exc)
    return error_response(502, "The planning service is unavailable", "triage_unavailable")


@app.exception_handler(EntityStoreError)
@app.exception_handler(StoreConnectionError)
async def _store_unavailable(request: Request, exc: Exception):
    logger.error("Entity store failure on %s: %s", request.url.path, exc)
    return error_response(503, "The entity store is unavailable", "store_unavailable")


@app.get("/health", tags=["health"])
async def health():
    return {"status": "ok", "version": API_VERSION}
