"""FastAPI service for Sheet Mirror."""
from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.dependencies import require_api_key, shutdown_dispatcher
from api.routers import sync_router
from sheet_mirror.errors import SheetSyncError, ValidationError
from sheet_mirror.logs import fetch_activity_entries

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    yield
    shutdown_dispatcher()


app = FastAPI(
    title="Sheet Mirror API",
    version="0.1.0",
    description="Mirrors primary-store record changes into Google Sheets.",
    lifespan=lifespan,
)

ALLOWED_ORIGINS = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    os.getenv("SHEET_MIRROR_ALLOWED_FRONTEND", "").strip(),
]
origins = [origin for origin in ALLOWED_ORIGINS if origin]

if origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
    )


@app.exception_handler(ValidationError)
async def validation_error_handler(_request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"success": False, "error": str(exc)})


@app.exception_handler(SheetSyncError)
async def sync_error_handler(_request: Request, exc: SheetSyncError) -> JSONResponse:
    logger.error(f"[API] {type(exc).__name__}: {exc}")
    return JSONResponse(status_code=500, content={"success": False, "error": str(exc)})


@app.get("/health")
def health_check() -> dict:
    """Health check endpoint with configuration status."""
    configured = all(
        os.getenv(name)
        for name in (
            "GOOGLE_SERVICE_ACCOUNT_EMAIL",
            "GOOGLE_PRIVATE_KEY",
            "GOOGLE_SPREADSHEET_ID",
        )
    )
    return {
        "status": "ok",
        "time": datetime.now(timezone.utc).isoformat(),
        "environment": os.getenv("SHEET_MIRROR_ENV", "local"),
        "services": {
            "google_sheets": "configured" if configured else "not_configured",
        },
    }


@app.get("/activity", dependencies=[Depends(require_api_key)])
def activity_feed(limit: int = Query(50, ge=1, le=200)) -> dict:
    entries = fetch_activity_entries(limit)
    return {"entries": entries, "count": len(entries)}


app.include_router(sync_router, prefix="/sync", tags=["sync"])
