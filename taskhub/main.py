import logging
import time
import traceback
from datetime import datetime, timezone
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from taskhub.config import settings
from taskhub.database import create_tables
from taskhub.routers.auth import router as auth_router
from taskhub.routers.users import router as users_router
from taskhub.routers.projects import router as projects_router
from taskhub.routers.tasks import router as tasks_router
from taskhub.utils.errors import AppError
from taskhub.utils.logging_config import configure_logging

configure_logging()
logger = logging.getLogger("taskhub")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting TaskHub API (environment=%s)", settings.ENVIRONMENT)
    if settings.AUTO_CREATE_TABLES:
        await create_tables()
        logger.info("Database tables ensured")
    yield
    logger.info("TaskHub API shut down")


app = FastAPI(
    lifespan=lifespan,
    title="TaskHub API",
    description="Project & task collaboration with role-based project membership",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.CORS_ORIGIN],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    duration_ms = round((time.perf_counter() - started) * 1000, 1)
    logger.info(
        "%s %s %s", request.method, request.url.path, response.status_code,
        extra={"duration_ms": duration_ms},
    )
    return response


# ── Error translation ──────────────────────────────────
# Services raise typed errors; this is the one place they become responses.

def _error_body(message: str, errors: dict | None = None, exc: Exception | None = None) -> dict:
    body = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    if exc is not None and settings.is_development:
        body["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return body


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    logger.warning(
        "Application error: %s", exc.message,
        extra={"status": exc.status_code, "method": request.method, "path": request.url.path},
    )
    return JSONResponse(status_code=exc.status_code, content=_error_body(exc.message, exc.errors, exc))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = {}
    for error in exc.errors():
        loc = list(error.get("loc", ()))
        if loc and loc[0] in ("body", "query", "path", "header"):
            loc = loc[1:]
        errors[".".join(str(part) for part in loc) or "body"] = error.get("msg", "Invalid value")
    return JSONResponse(status_code=400, content=_error_body("Validation failed", errors, exc))


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        message = f"Route {request.url.path} not found"
    else:
        message = str(exc.detail)
    return JSONResponse(status_code=exc.status_code, content=_error_body(message), headers=exc.headers)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(
        "Unexpected error", exc_info=exc,
        extra={"method": request.method, "path": request.url.path},
    )
    return JSONResponse(status_code=500, content=_error_body("An unexpected error occurred", exc=exc))


app.include_router(auth_router, prefix="/api")
app.include_router(users_router, prefix="/api")
app.include_router(projects_router, prefix="/api")
app.include_router(tasks_router, prefix="/api")


@app.get("/api/health")
def health():
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}
