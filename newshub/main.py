import asyncio
import logging
import time

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from newshub.core import request_stats
from newshub.core.config import settings
from newshub.core.exceptions import AppError
from newshub.db import session as db_session
from newshub.routes import analytics as analytics_routes
from newshub.routes import articles as articles_routes
from newshub.routes import auth as auth_routes
from newshub.routes import categories as categories_routes
from newshub.routes import health
from newshub.routes import monitoring as monitoring_routes
from newshub.routes import public as public_routes
from newshub.routes import rss_feeds as rss_feeds_routes
from newshub.routes import site_settings as site_settings_routes
from newshub.routes import sources as sources_routes
from newshub.services import auth as auth_service

app = FastAPI(
    title="NewsHub API",
    version="1.0.0",
    description="News aggregation backend: admin API and public reader API",
    # Avoid automatic 307 redirects between /path and /path/
    # Collection endpoints register both variants instead.
    redirect_slashes=False,
)

# Configure logging level from env
logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL, logging.INFO))
logger = logging.getLogger("newshub")
# Use a dedicated app logger to avoid uvicorn.access formatter expectations
_req_logger = logging.getLogger("newshub.request")
_req_logger.setLevel(getattr(logging, settings.LOG_LEVEL, logging.INFO))


@app.middleware("http")
async def request_count_middleware(request: Request, call_next):
    # set to 0; the SQLAlchemy cursor listener increments it during this request
    db_count_token = db_session.request_db_query_count.set(0)
    start = time.perf_counter()
    try:
        response = await call_next(request)
        per_req_db_count = db_session.request_db_query_count.get()
    finally:
        db_session.request_db_query_count.reset(db_count_token)
    duration_ms = int((time.perf_counter() - start) * 1000)

    # the matched route template is known once routing has happened
    route = request.scope.get("route")
    key_path = getattr(route, "path", None) or request.url.path
    key = f"{request.method} {key_path}"
    count_val, global_count_val = request_stats.record_request(key)
    request_stats.record_status(response.status_code)

    # Log every N hits to avoid spam
    if count_val % settings.REQUEST_LOG_EVERY_N == 0:
        _req_logger.info("Request count threshold reached: %s -> %s (global=%s)", key, count_val, global_count_val)

    if settings.REQUEST_LOG_VERBOSE:
        prefixes = [p.strip() for p in (settings.REQUEST_LOG_INCLUDE_PREFIXES or "").split(",") if p.strip()]
        path_full = request.url.path
        if any(path_full.startswith(pref) for pref in prefixes):
            qs = request.url.query
            path_qs = f"{path_full}?{qs}" if qs else path_full
            _req_logger.info(
                "%s %s -> %s in %sms | route_count=%s global_count=%s db_queries=%s total_db_queries=%s",
                request.method,
                path_qs,
                response.status_code,
                duration_ms,
                count_val,
                global_count_val,
                per_req_db_count,
                db_session.get_global_db_queries_total(),
            )
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "message": message})


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code == 401:
        logger.info("%s %s rejected: %s", request.method, request.url.path, exc.message)
    return _error(exc.status_code, exc.message)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return _error(exc.status_code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(p) for p in first.get("loc", ()) if p not in ("body", "query", "path"))
        message = f"{field}: {first.get('msg')}" if field else first.get("msg", "Invalid request")
    else:
        message = "Invalid request"
    return _error(400, message)


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return _error(500, "Internal server error")


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error(500, "Internal server error")


app.include_router(health.router)
app.include_router(auth_routes.router)
app.include_router(articles_routes.router)
app.include_router(sources_routes.router)
app.include_router(rss_feeds_routes.router)
app.include_router(categories_routes.router)
app.include_router(site_settings_routes.router)
app.include_router(monitoring_routes.router)
app.include_router(analytics_routes.router)
app.include_router(public_routes.router)


def _cleanup_sessions_once() -> int:
    db = db_session.SessionLocal()
    try:
        return auth_service.cleanup_expired(db)
    finally:
        db.close()


async def _session_cleanup_loop(interval: int):
    while True:
        await asyncio.sleep(interval)
        try:
            await run_in_threadpool(_cleanup_sessions_once)
        except SQLAlchemyError:
            # the next sweep retries; one failed sweep must not stop the loop
            logger.exception("Expired session cleanup failed")


@app.on_event("startup")
async def on_startup():
    # create database tables if they don't exist
    await run_in_threadpool(db_session.create_db)
    if settings.SESSION_CLEANUP_INTERVAL_SECONDS > 0:
        app.state.session_cleanup_task = asyncio.create_task(
            _session_cleanup_loop(settings.SESSION_CLEANUP_INTERVAL_SECONDS)
        )


@app.on_event("shutdown")
async def on_shutdown():
    task = getattr(app.state, "session_cleanup_task", None)
    if task is not None:
        task.cancel()


@app.get("/")
def root():
    return {"success": True, "status": "NewsHub API running"}
