"""
SQLAlchemy Base and Mixins

Provides declarative base and reusable mixins for database models.
"""
from datetime import datetime
from typing import Any

from geoalchemy2 import Geometry
from sqlalchemy import DateTime, JSON, event
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func
from sqlalchemy.types import Text

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite test databases)
JSONType = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """
    Base class for all database models.

    Provides common functionality and type hints for SQLAlchemy models.
    """

    id: Any


class TimestampMixin:
    """
    Mixin to add created_at and updated_at timestamp columns.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        comment="Timestamp when record was created"
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
        comment="Timestamp when record was last updated"
    )


def import_all_models():
    """
    Import all models to register them with SQLAlchemy Base.

    Called before create_all() and by Alembic so every table is discovered.
    """
    from src.hubzone.db import models  # noqa: F401


@event.listens_for(Base.metadata, "before_create")
def adapt_special_columns(metadata, connection, **kwargs):
    """Replace PostGIS geometry columns with text when using SQLite."""
    if connection.engine.name != "sqlite":
        return

    for table in metadata.tables.values():
        for column in table.columns:
            if isinstance(column.type, Geometry):
                column.type = Text()
