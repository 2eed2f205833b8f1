from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI

from app.config import (
    ALLOWED_AUTH_MODES,
    ALLOWED_STORAGE_MODES,
    STORAGE_MODE_DATABASE,
    get_storage_settings,
)


def _validate_env() -> None:
    """
    Validate all required environment variables at startup.

    Raises RuntimeError listing every missing or invalid variable so the
    operator can fix all problems in one restart cycle.

    Rules:
    - STORAGE_MODE must be 'memory' or 'database'.
    - AUTH_MODE must be 'mock'.
    - STORAGE_MODE=database requires a database URL.
    """

    from db.config import find_database_url, load_env_files

    load_env_files()

    errors: list[str] = []

    # --- STORAGE_MODE ---------------------------------------------------
    storage_mode = os.getenv("STORAGE_MODE", "memory").strip().lower() or "memory"
    if storage_mode not in ALLOWED_STORAGE_MODES:
        errors.append(
            f"STORAGE_MODE='{storage_mode}' is not valid. "
            f"Allowed values: {sorted(ALLOWED_STORAGE_MODES)}."
        )

    # --- AUTH_MODE ------------------------------------------------------
    auth_mode = os.getenv("AUTH_MODE", "mock").strip().lower() or "mock"
    if auth_mode not in ALLOWED_AUTH_MODES:
        errors.append(
            f"AUTH_MODE='{auth_mode}' is not valid. Allowed values: {sorted(ALLOWED_AUTH_MODES)}."
        )

    # --- Database URL ---------------------------------------------------
    if storage_mode == STORAGE_MODE_DATABASE and find_database_url() is None:
        errors.append(
            "STORAGE_MODE is 'database' but no database URL is configured. "
            "Set DATABASE_URL, CLOUD_DATABASE_URL or LOCAL_DATABASE_URL."
        )

    if errors:
        raise RuntimeError(
            "Startup validation failed: missing or invalid environment variables:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )


def _configure_logging() -> None:
    """
    Configure root logging once for the API process.
    """

    log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def _check_db() -> None:
    """Open a session and run SELECT 1. Raises RuntimeError if the DB is unreachable."""
    from sqlalchemy import text

    from db.session import get_session_factory

    try:
        with get_session_factory()() as session:
            session.execute(text("SELECT 1"))
    except Exception as exc:
        raise RuntimeError("Database unavailable.") from exc


def _check_schema() -> None:
    """
    Compare Base.metadata table names against the live DB schema.

    Every table registered on Base.metadata must exist in the database.
    Does NOT auto-migrate.
    """
    from sqlalchemy import inspect as sa_inspect

    import db.models  # noqa: F401  registers all ORM models on Base.metadata
    from db.base import Base
    from db.session import get_engine

    inspector = sa_inspect(get_engine())
    actual: set[str] = set(inspector.get_table_names())
    expected: set[str] = set(Base.metadata.tables.keys())
    missing = expected - actual

    if missing:
        logging.getLogger(__name__).critical(
            "Schema mismatch: %d table(s) defined in ORM metadata are absent from "
            "the database: %s. Run 'alembic upgrade head' and restart.",
            len(missing),
            ", ".join(sorted(missing)),
        )
        raise RuntimeError(
            f"Schema mismatch: {len(missing)} table(s) missing from the database "
            f"({', '.join(sorted(missing))}). Run migrations and restart."
        )


@asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Validate DB connectivity and schema on boot when the database backend is selected."""
    log = logging.getLogger(__name__)
    if get_storage_settings().mode == STORAGE_MODE_DATABASE:
        _check_db()
        log.info("Database connectivity confirmed")
        _check_schema()
        log.info("Database schema validated")
    else:
        log.info("Using in-memory storage; data is lost on restart")
    yield


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """

    _validate_env()
    _configure_logging()

    application = FastAPI(
        title="Marketing Ingest API",
        version="1.0.0",
        lifespan=_lifespan,
    )

    from app.api.routers import export_router, spreadsheet_ingestion_router

    application.include_router(spreadsheet_ingestion_router)
    application.include_router(export_router)

    @application.get("/health")
    def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    return application


app = create_app()
