"""
Database engine and session factory.

Sessions are short-lived: the link store opens one per operation, so the
same factory is safe to use from request handlers and aggregator threads.
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from snaplink.config import settings


Base = declarative_base()


def connect_args_for(database_url: str, timeout: float) -> dict:
    """
    Driver arguments bounding every store call by timeout (seconds).

    SQLite gets a busy timeout and cross-thread access. PostgreSQL gets a
    connect timeout plus a server-side statement_timeout, so a slow or
    lock-blocked query is cancelled instead of waiting forever.
    """
    if database_url.startswith("sqlite"):
        return {"check_same_thread": False, "timeout": timeout}
    if database_url.startswith("postgresql"):
        return {
            "connect_timeout": max(1, int(timeout)),
            "options": f"-c statement_timeout={int(timeout * 1000)}",
        }
    return {}


def make_engine(database_url: str, timeout: float = None):
    """Create an engine with a bounded driver timeout"""
    timeout = timeout if timeout is not None else settings.store_timeout_seconds
    connect_args = connect_args_for(database_url, timeout)
    return create_engine(database_url, connect_args=connect_args, pool_pre_ping=True)


engine = make_engine(settings.database_url)

# expire_on_commit=False keeps returned models readable after the session closes
SessionLocal = sessionmaker(
    autocommit=False, autoflush=False, expire_on_commit=False, bind=engine
)
