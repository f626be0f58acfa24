"""FastAPI application entrypoint."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import settings
from app.database import init_db
from app.exceptions import NoteError
from app.routers import cleanup, notes, pages
from app.schemas.note import ErrorResponse
from app.services.sweep_scheduler import SweepScheduler

# ── Logging setup ────────────────────────────────────────────────────
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
    datefmt="%H:%M:%S",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    await init_db()

    scheduler = SweepScheduler()
    if settings.sweeper_enabled:
        scheduler.start()
    app.state.sweep_scheduler = scheduler

    yield

    # Shutdown
    await scheduler.stop()


app = FastAPI(
    title="noteburn",
    description="Zero-knowledge self-destructing notes",
    version="0.1.0",
    lifespan=lifespan,
)


# ── Error shape: {"error": ..., "statusCode": ...} ───────────────────


def _error(status_code: int, message: str, details: list | None = None) -> JSONResponse:
    body = ErrorResponse(error=message, status_code=status_code, details=details or None)
    return JSONResponse(status_code=status_code, content=body.model_dump(by_alias=True, exclude_none=True))


@app.exception_handler(NoteError)
async def note_error_handler(request: Request, exc: NoteError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return _error(exc.status_code, exc.message)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    # Location and message only; echoing the input would reflect ciphertext
    details = [
        {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg", "")}
        for err in exc.errors()
    ]
    return _error(400, "Invalid request", details)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return _error(exc.status_code, str(exc.detail))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error(500, "Internal server error")


# Mount routers
app.include_router(notes.router, prefix="/api/note", tags=["notes"])
app.include_router(cleanup.router, prefix="/api/cleanup", tags=["cleanup"])
app.include_router(pages.router, tags=["pages"])


@app.get("/health")
async def health():
    return {"status": "ok", "service": "noteburn"}
