"""Process-wide SQLAlchemy engine and session factory for the store adapters."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from .mappings import create_all_tables

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = getLogger(__name__)


class StartupError(RuntimeError):
    """Raised when the store is used before ``startup`` or started twice."""


@dataclass(slots=True)
class _Binding:
    engine: Engine
    sessions: sessionmaker[Session]


_binding: _Binding | None = None


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    create_tables: bool = False,
    force: bool = False,
) -> Engine:
    """Bind the store adapters to ``engine``, or to a new engine for ``database_uri``."""

    global _binding  # noqa: PLW0603
    if _binding is not None and not force:
        raise StartupError("Store already started; pass force=True to rebind")
    if engine is None:
        if database_uri is None:
            raise StartupError("Either an engine or a database URI is required")
        engine = create_engine(database_uri, pool_pre_ping=True)
    if create_tables:
        create_all_tables(engine)

    _binding = _Binding(engine=engine, sessions=sessionmaker(bind=engine, expire_on_commit=False))
    log.debug("Store bound to %s", engine.url.render_as_string(hide_password=True))
    return engine


def configured_engine() -> Engine | None:
    return _binding.engine if _binding is not None else None


def session_factory() -> sessionmaker[Session]:
    if _binding is None:
        raise StartupError("Store not started; call startup() before querying it")
    return _binding.sessions


def shutdown() -> None:
    """Dispose the bound engine; a later ``startup`` may bind a new one."""

    global _binding  # noqa: PLW0603
    if _binding is not None:
        _binding.engine.dispose()
    _binding = None
