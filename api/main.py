"""
SDOHClear API — Main Application

POST   /detect                  — Detect SDOH risks in a transcript
POST   /detect/batch            — Detect over many transcripts concurrently
POST   /zcodes/suggest          — Suggest Z-codes for an intake form
POST   /calls/{call_id}/messages — Buffer live-call transcript fragments
POST   /calls/{call_id}/detect  — Run detection over a buffered call
DELETE /calls/{call_id}         — Discard a buffered call
GET    /patterns                — List the pattern catalog
GET    /health                  — Health check
"""

from __future__ import annotations

import asyncio
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.requests import Request

from sdohclear import __version__
from sdohclear.catalog import PATTERNS, get_patterns
from sdohclear.config import settings
from sdohclear.detector import detect_conversation, suggest_zcodes
from sdohclear.llm.factory import get_provider
from sdohclear.logging import setup_logging, get_logger
from sdohclear.models import DetectionContext
from sdohclear.sessions import CallSessionStore
from sdohclear.schemas.detection import (
    CallDetectRequest,
    CallMessagesRequest,
    CallSessionResponse,
    DetectBatchRequest,
    DetectBatchResponse,
    DetectionContextIn,
    DetectionResponse,
    DetectRequest,
    HealthResponse,
    SuggestRequest,
    SuggestResponse,
)

logger = get_logger("api")


# ============================================================
# STARTUP / SHUTDOWN
# ============================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info(
        "SDOHClear API starting",
        extra={"engine": settings.ENGINE_VERSION, "model": settings.GEMINI_MODEL},
    )
    yield
    logger.info("SDOHClear API shutting down")


app = FastAPI(
    title="SDOHClear API",
    description="Social Determinants of Health risk detection over conversational transcripts",
    version=f"{__version__} (engine {settings.ENGINE_VERSION})",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.CORS_ORIGINS.split(",")],
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
    allow_credentials=False,
)

# Transcript buffers for live calls. Owned by the API, never by the engine.
call_sessions = CallSessionStore(
    ttl_seconds=settings.SESSION_TTL_SECONDS,
    max_calls=settings.SESSION_MAX_CALLS,
)


@app.get("/", include_in_schema=False)
async def root():
    return JSONResponse({"message": "SDOHClear API", "docs": "/docs"})


# ============================================================
# GLOBAL ERROR HANDLER
# ============================================================

@app.exception_handler(Exception)
async def global_error_handler(request: Request, exc: Exception):
    """Catch unhandled exceptions — return structured error, don't leak internals."""
    logger.error(
        f"Unhandled exception: {type(exc).__name__}",
        extra={"error": str(exc), "path": request.url.path, "method": request.method},
        exc_info=True,
    )
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error. Detection could not be completed."},
    )


# Lazy LLM provider
_llm = None


def _get_llm():
    global _llm
    if _llm is None:
        _llm = get_provider(settings.LLM_PROVIDER)
    return _llm


def _to_context(context: Optional[DetectionContextIn]) -> DetectionContext:
    if context is None:
        return DetectionContext()
    return DetectionContext(
        encounter_id=context.encounter_id,
        required_screenings=context.required_screenings,
        completed_screenings=context.completed_screenings,
        monthly_goal=context.monthly_goal,
        care_team=list(context.care_team),
    )


# ============================================================
# ROUTES
# ============================================================

@app.post("/detect", response_model=DetectionResponse)
async def detect(request: DetectRequest):
    """Detect SDOH risks in one transcript."""
    return await detect_conversation(
        request.transcript,
        context=_to_context(request.context),
        member_id=request.member_id,
        llm=_get_llm(),
    )


@app.post("/detect/batch", response_model=DetectBatchResponse)
async def detect_batch(request: DetectBatchRequest):
    """Run independent detections concurrently (e.g. a population-health batch)."""
    llm = _get_llm()
    results = await asyncio.gather(
        *[
            detect_conversation(
                item.transcript,
                context=_to_context(item.context),
                member_id=item.member_id,
                llm=llm,
            )
            for item in request.items
        ],
        return_exceptions=True,
    )

    successful = []
    for item, r in zip(request.items, results):
        if isinstance(r, dict):
            successful.append(r)
        else:
            logger.warning(
                "Batch detection item failed",
                extra={
                    "member_id": item.member_id,
                    "error": str(r),
                    "error_type": type(r).__name__,
                },
            )

    logger.info(f"Batch complete: {len(successful)}/{len(request.items)} detected")
    return {
        "results": successful,
        "total": len(request.items),
        "detected": len(successful),
    }


@app.post("/zcodes/suggest", response_model=SuggestResponse)
async def suggest(request: SuggestRequest):
    """Suggest Z-codes from an intake note and questionnaire responses."""
    findings = suggest_zcodes(note=request.note, responses=request.responses)
    return {"suggestions": [f.to_dict() for f in findings]}


@app.post("/calls/{call_id}/messages", response_model=CallSessionResponse)
async def append_call_messages(call_id: str, request: CallMessagesRequest):
    """Buffer transcript fragments delivered during a live call."""
    lines = await call_sessions.append(call_id, request.messages)
    return {
        "call_id": call_id,
        "line_count": len(lines),
        "transcript": [
            {
                "speaker": line.speaker,
                "text": line.text,
                "language": line.language,
                "timestamp": line.timestamp,
            }
            for line in lines
        ],
    }


@app.post("/calls/{call_id}/detect", response_model=DetectionResponse)
async def detect_call(call_id: str, request: CallDetectRequest):
    """Run detection over everything buffered for a call."""
    if request.close:
        lines = await call_sessions.close(call_id)
    else:
        lines = await call_sessions.get(call_id)
    if lines is None:
        raise HTTPException(404, f"No buffered transcript for call {call_id}")

    logger.info(
        "Detecting over buffered call",
        extra={"call_id": call_id, "line_count": len(lines)},
    )
    return await detect_conversation(
        lines,
        context=_to_context(request.context),
        member_id=request.member_id,
        llm=_get_llm(),
    )


@app.delete("/calls/{call_id}")
async def discard_call(call_id: str):
    lines = await call_sessions.close(call_id)
    if lines is None:
        raise HTTPException(404, f"No buffered transcript for call {call_id}")
    return {"call_id": call_id, "discarded_lines": len(lines)}


@app.get("/patterns")
async def patterns():
    """Return the pattern catalog the rule-based engine uses."""
    catalog = get_patterns()
    return {
        "engine_version": settings.ENGINE_VERSION,
        "total_patterns": len(catalog),
        "patterns": catalog,
    }


@app.get("/health", response_model=HealthResponse)
async def health():
    """Health check."""
    return {
        "status": "operational",
        "version": __version__,
        "engine_version": settings.ENGINE_VERSION,
        "llm_provider": settings.LLM_PROVIDER,
        "inference_configured": _get_llm().available,
        "patterns": len(PATTERNS),
        "active_calls": call_sessions.stats["calls"],
    }


# --- Version Headers Middleware ---
@app.middleware("http")
async def add_version_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers["X-SDOHClear-Version"] = __version__
    response.headers["X-Engine-Version"] = settings.ENGINE_VERSION
    response.headers["X-Content-Type-Options"] = "nosniff"
    return response


# --- Request Logging Middleware ---
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log every API request with method, path, status, duration."""
    path = request.url.path
    if path == "/health":
        return await call_next(request)

    start = time.time()
    response = await call_next(request)
    duration_ms = round((time.time() - start) * 1000, 1)

    logger.info(
        f"{request.method} {path} → {response.status_code} ({duration_ms}ms)",
        extra={
            "method": request.method,
            "path": path,
            "status_code": response.status_code,
            "duration_ms": duration_ms,
        },
    )
    return response


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("api.main:app", host=settings.HOST, port=settings.PORT)
