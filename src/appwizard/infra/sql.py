"""Direct Postgres access for application role management (SQLAlchemy + psycopg)."""

from __future__ import annotations

import structlog
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.pool import NullPool

logger = structlog.get_logger()

# SQLSTATE invalid_password
AUTH_FAILED_SQLSTATE = "28P01"


def _engine(url: str, connect_timeout: int = 10) -> Engine:
    if url.startswith("postgresql://"):
        url = "postgresql+psycopg://" + url[len("postgresql://"):]
    return create_engine(
        url,
        poolclass=NullPool,
        connect_args={"connect_timeout": connect_timeout},
    )


def is_auth_failure(exc: OperationalError) -> bool:
    orig = getattr(exc, "orig", None)
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate == AUTH_FAILED_SQLSTATE:
        return True
    return "authentication failed" in str(exc).lower()


def role_exists(url: str, role: str) -> bool:
    """Check pg_roles for ``role`` using the given connection URL."""
    engine = _engine(url)
    try:
        with engine.connect() as conn:
            row = conn.execute(
                text("SELECT 1 FROM pg_roles WHERE rolname = :role"), {"role": role}
            ).first()
            return row is not None
    finally:
        engine.dispose()


def create_role(url: str, role: str, password: str) -> None:
    engine = _engine(url)
    try:
        quoted_role = engine.dialect.identifier_preparer.quote(role)
        escaped_password = password.replace("'", "''")
        with engine.begin() as conn:
            conn.execution_options(no_parameters=True).exec_driver_sql(
                f"CREATE USER {quoted_role} WITH PASSWORD '{escaped_password}'"
            )
        logger.info("db_role_created", role=role)
    finally:
        engine.dispose()
