import logging
import os
import sys
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from sqlalchemy import inspect
from sqlalchemy.exc import OperationalError

from .api.routes import router as api_router
from .core.config import get_settings
from .core.logging import RequestContextMiddleware, configure_logging
from .db.session import SessionLocal
from .services.stock_alerts import seed_technical_reasons
from .services.users import ensure_default_admin

settings = get_settings()

configure_logging(logging.DEBUG if settings.debug else logging.INFO)
logger = logging.getLogger(__name__)


def _running_under_pytest() -> bool:
    return "pytest" in sys.modules or bool(os.getenv("PYTEST_CURRENT_TEST"))


def _run_migrations_if_needed() -> None:
    """Best-effort Alembic upgrade for local SQLite databases.

    ``PC_AUTO_MIGRATE`` forces it on (``1``) or off (``0``) for any backend.
    """

    if _running_under_pytest():
        return

    auto = (os.getenv("PC_AUTO_MIGRATE") or "").strip().lower()
    if auto in {"0", "false", "no", "off"}:
        return

    should_run = auto in {"1", "true", "yes", "on"} or settings.database_url.startswith(
        "sqlite"
    )
    if not should_run:
        return

    try:
        from alembic import command
        from alembic.config import Config

        project_root = Path(__file__).resolve().parents[1]
        alembic_ini = project_root / "alembic.ini"
        if not alembic_ini.exists():
            return

        cfg = Config(str(alembic_ini))
        cfg.set_main_option("script_location", str(project_root / "alembic"))
        cfg.set_main_option("sqlalchemy.url", settings.database_url)
        command.upgrade(cfg, "head")
    except Exception:
        logger.exception("Failed to run Alembic migrations on startup.")


def _bootstrap_reference_data() -> None:
    """Seed the admin user and technical reasons once tables exist."""

    with SessionLocal() as db:
        try:
            tables = set(inspect(db.get_bind()).get_table_names())
            if "users" in tables:
                ensure_default_admin(db, settings)
            if "technical_reasons" in tables:
                seed_technical_reasons(db)
        except OperationalError:
            # Schema not created yet.
            return


@asynccontextmanager
async def _lifespan(_app: FastAPI):
    """FastAPI lifespan handler for startup/shutdown tasks."""

    logger.info("Starting application", extra={"extra": settings.dict_for_logging()})
    _run_migrations_if_needed()
    _bootstrap_reference_data()
    yield


app = FastAPI(
    title=settings.app_name,
    version=settings.version,
    debug=settings.debug,
    lifespan=_lifespan,
)

app.add_middleware(RequestContextMiddleware)
app.include_router(api_router)


__all__ = ["app"]
