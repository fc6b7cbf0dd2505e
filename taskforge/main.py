import logging
import time
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy import text

from . import db_models  # noqa: F401  (registers tables on Base.metadata)
from .api.errors import register_exception_handlers
from .api.router import api_router
from .config import settings
from .db import Base, engine
from .logging_utils import request_id_var, setup_logging
from .rate_limit import limiter, rate_limit_exceeded_handler

logger = logging.getLogger("taskforge")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """App startup/shutdown lifecycle."""
    setup_logging(settings.LOG_LEVEL)
    if settings.DB_AUTO_CREATE:
        # Local dev convenience; deployments run `alembic upgrade head`
        Base.metadata.create_all(bind=engine)
    logger.info("TaskForge API starting db_dialect=%s", engine.dialect.name)
    try:
        yield
    finally:
        logger.info("TaskForge API stopping")


tags_metadata = [
    {"name": "auth", "description": "Authentication: register, login, me."},
    {"name": "organizations", "description": "Organizations, members and their projects."},
    {"name": "projects", "description": "Project read/update/delete and project tasks."},
    {"name": "tasks", "description": "Task read/update/delete and comments."},
]

app = FastAPI(
    title="TaskForge API",
    version="0.1.0",
    description=(
        "Multi-tenant project and task tracking. "
        "Obtain a token from /api/auth/login and send it as `Authorization: Bearer <token>`."
    ),
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)


@app.get("/")
def root():
    return {"name": "TaskForge API", "version": "0.1.0", "status": "running"}


@app.get("/health")
def health():
    """Simple healthcheck endpoint."""
    return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}


# JSON API under /api
app.include_router(api_router)

# Unified error handlers
register_exception_handlers(app)

# Rate limiting (global middleware + handler)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)


# Request ID + access log middleware
@app.middleware("http")
async def request_id_and_logging(request: Request, call_next):
    start = time.perf_counter()
    incoming = request.headers.get(settings.REQUEST_ID_HEADER)
    req_id = incoming or uuid.uuid4().hex
    request.state.request_id = req_id
    token = request_id_var.set(req_id)
    try:
        response = await call_next(request)
        response.headers.setdefault(settings.REQUEST_ID_HEADER, req_id)
        duration_ms = int((time.perf_counter() - start) * 1000)
        logging.getLogger("taskforge.request").info(
            "method=%s path=%s status=%s duration_ms=%s",
            request.method,
            request.url.path,
            getattr(response, "status_code", "-"),
            duration_ms,
        )
        return response
    finally:
        request_id_var.reset(token)


# --- Security: CORS and security headers ---

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def security_headers(request, call_next):
    response = await call_next(request)
    # Basic hardening headers
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("X-Frame-Options", "DENY")
    response.headers.setdefault("Referrer-Policy", "no-referrer")
    path = request.url.path
    # Swagger/ReDoc pull scripts from a CDN; leave their pages alone
    if settings.SECURITY_CSP and not (path.startswith("/docs") or path.startswith("/redoc")):
        response.headers["Content-Security-Policy"] = settings.SECURITY_CSP
    if settings.SECURITY_ENABLE_HSTS:
        response.headers.setdefault("Strict-Transport-Security", "max-age=15552000; includeSubDomains")
    return response


# --- Observability: liveness, readiness, metrics ---

@app.get("/live")
def live():
    return {"status": "live"}


@app.get("/ready")
def ready():
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return {"status": "ready"}
    except Exception as exc:
        logger.warning("readiness check failed error=%s", exc)
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="not ready") from exc


# Expose Prometheus metrics at /metrics
Instrumentator().instrument(app).expose(app, include_in_schema=False)
