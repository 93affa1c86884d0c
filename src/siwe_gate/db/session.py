"""Database session configuration."""

from __future__ import annotations

from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from siwe_gate.core.settings import settings

class Base(DeclarativeBase):
    """Declarative base shared by all ORM models."""

# Ensure model modules are imported so that metadata is populated when create_all runs.
import siwe_gate.models  # noqa: E402,F401

_connect_args: dict[str, Any] = {}
if settings.database_url.startswith("sqlite"):
    # The nonce store is shared across request threads.
    _connect_args["check_same_thread"] = False

engine = create_engine(
    settings.database_url,
    pool_pre_ping=True,
    echo=settings.sql_debug,
    connect_args=_connect_args,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def create_tables() -> None:
    """Create all database tables."""
    Base.metadata.create_all(bind=engine)
