import logging
import ssl
from typing import Any

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.util import immutabledict

from carecall.core.config import get_settings
from carecall.core.migrations import migrate_database


logger = logging.getLogger(__name__)

# libpq sslmode values that map onto a plain asyncpg ``ssl`` flag; ``None``
# leaves the driver default in place.
_ASYNCPG_SSL_FLAGS: dict[str, bool | None] = {
    "disable": False,
    "allow": None,
    "prefer": None,
    "require": True,
    "verify-full": True,
}

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def prepare_engine_arguments(database_url: str) -> tuple[str, dict[str, Any]]:
    """Split a libpq-style URL into an asyncpg-safe URL plus ``connect_args``.

    Managed Postgres hosts hand out ``?sslmode=require`` URLs, which asyncpg
    does not understand. Other drivers get the URL back untouched.
    """
    url = make_url(database_url)
    if "asyncpg" not in (url.drivername or ""):
        return database_url, {}

    query = dict(url.query)
    connect_args: dict[str, Any] = {}
    sslmode = query.pop("sslmode", None)
    if sslmode:
        ssl_value = _sslmode_to_asyncpg_ssl(sslmode)
        if ssl_value is not None:
            connect_args["ssl"] = ssl_value

    rendered = url.set(query=immutabledict(query)).render_as_string(hide_password=False)
    return rendered, connect_args


def _sslmode_to_asyncpg_ssl(sslmode: str) -> Any:
    normalized = sslmode.lower()
    if normalized in _ASYNCPG_SSL_FLAGS:
        return _ASYNCPG_SSL_FLAGS[normalized]
    if normalized == "verify-ca":
        context = ssl.create_default_context()
        context.check_hostname = False
        return context
    raise ValueError(f"Unsupported sslmode '{sslmode}' for asyncpg.")


def _ensure_engine() -> tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    global _engine, _session_factory
    if _engine is not None and _session_factory is not None:
        return _engine, _session_factory

    configured_url = get_settings().database_url
    if not configured_url:
        raise RuntimeError("DATABASE_URL is not configured.")

    database_url, connect_args = prepare_engine_arguments(configured_url)
    options: dict[str, Any] = {}
    if connect_args:
        options["connect_args"] = connect_args
    if not database_url.startswith("sqlite"):
        options["pool_pre_ping"] = True

    _engine = create_async_engine(database_url, **options)
    _session_factory = async_sessionmaker(_engine, expire_on_commit=False)
    logger.info("Database engine created for driver %s", make_url(database_url).drivername)
    return _engine, _session_factory


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    return _ensure_engine()[1]


async def init_database() -> None:
    """Bring the schema up to date before the first request is served."""
    _ensure_engine()
    await migrate_database()


async def dispose_engine() -> None:
    """Close pooled connections; called on application shutdown."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None
