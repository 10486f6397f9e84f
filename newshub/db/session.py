from sqlalchemy import create_engine, event, text
from sqlalchemy.pool import QueuePool, StaticPool
from sqlalchemy.orm import sessionmaker, declarative_base
from newshub.core.config import settings
import logging
import threading
import contextvars

DATABASE_URL = settings.DATABASE_URL

# SQLAlchemy connect_args and pooling differ between SQLite and other DBs.
# An in-memory SQLite database only exists on a single connection, so it
# gets a StaticPool; everything else uses a sized QueuePool.
if DATABASE_URL.startswith("sqlite"):
    engine_kwargs = {"connect_args": {"check_same_thread": False}}
    if DATABASE_URL in ("sqlite://", "sqlite:///:memory:") or "mode=memory" in DATABASE_URL:
        engine_kwargs["poolclass"] = StaticPool
else:
    # pool_pre_ping avoids "MySQL server has gone away" on stale connections
    engine_kwargs = {
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_pre_ping": True,
        "pool_recycle": settings.DB_POOL_RECYCLE,
        "poolclass": QueuePool,
    }

engine = create_engine(DATABASE_URL, **engine_kwargs)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

# --- Pool monitoring: log connects and checkouts to help diagnose excess connections ---
_pool_logger = logging.getLogger("newshub.db.pool")
_pool_logger.setLevel(getattr(logging, settings.LOG_LEVEL, logging.INFO))
_connect_count = 0
_checkout_count = 0
_checkin_count = 0
_pool_lock = threading.Lock()

# --- Per-request DB query counting using ContextVar ---
# The request middleware sets this to 0 at the start of each request and the
# cursor listener increments it, so the number of roundtrips per HTTP request
# can be logged.
request_db_query_count = contextvars.ContextVar("request_db_query_count", default=None)
_global_db_query_count = 0


@event.listens_for(engine, "connect")
def _on_connect(dbapi_connection, connection_record):
    global _connect_count
    with _pool_lock:
        _connect_count += 1
        cnt = _connect_count
    if cnt % settings.DB_LOG_EVERY_N == 0:
        _pool_logger.info("SQLAlchemy Pool CONNECT events: total opened=%s", cnt)


@event.listens_for(engine, "checkout")
def _on_checkout(dbapi_connection, connection_record, connection_proxy):
    global _checkout_count
    with _pool_lock:
        _checkout_count += 1
        cnt = _checkout_count
    if cnt % settings.DB_LOG_EVERY_N == 0:
        _pool_logger.info("SQLAlchemy Pool CHECKOUT events: total checkouts=%s", cnt)


@event.listens_for(engine, "checkin")
def _on_checkin(dbapi_connection, connection_record):
    global _checkin_count
    with _pool_lock:
        _checkin_count += 1
        cnt = _checkin_count
    if cnt % settings.DB_LOG_EVERY_N == 0:
        _pool_logger.info("SQLAlchemy Pool CHECKIN events: total checkins=%s", cnt)


@event.listens_for(engine, "before_cursor_execute")
def _on_before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
    current = request_db_query_count.get()
    if current is not None:
        request_db_query_count.set(current + 1)
    global _global_db_query_count
    with _pool_lock:
        _global_db_query_count += 1


def get_global_db_queries_total() -> int:
    """Return the total number of DB roundtrips since process start."""
    return _global_db_query_count


def get_pool_stats() -> dict:
    with _pool_lock:
        return {
            "connects": _connect_count,
            "checkouts": _checkout_count,
            "checkins": _checkin_count,
            "queries": _global_db_query_count,
        }


def get_db():
    """FastAPI dependency that provides a scoped SQLAlchemy Session.

    Ensures the connection is checked out from the pool and always returned
    after the request, preventing leaks and excessive new connections.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def ping() -> bool:
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    return True


def create_db():
    # Import models here so they are registered on the metadata
    import newshub.models.user  # noqa: F401
    import newshub.models.session  # noqa: F401
    import newshub.models.source  # noqa: F401
    import newshub.models.category  # noqa: F401
    import newshub.models.article  # noqa: F401
    import newshub.models.site_settings  # noqa: F401
    Base.metadata.create_all(bind=engine)
