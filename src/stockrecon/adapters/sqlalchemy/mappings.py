"""SQLAlchemy table metadata for the image-association store."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Column, DateTime, Integer, MetaData, String, Table, Text

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

metadata = MetaData()

# One row per product image. ``original_id`` links the row to a catalog product id.
images_table = Table(
    "images",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("original_id", String(64), nullable=True, index=True),
    Column("original_url", Text, nullable=True),
    Column("storage_url", Text, nullable=True),
    Column("storage_path", Text, nullable=True),
    Column("file_name", String(255), nullable=True),
    Column("file_size", Integer, nullable=True),
    Column("mime_type", String(100), nullable=True),
    Column("download_status", String(50), nullable=True),
    Column("error_message", Text, nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=True),
    Column("updated_at", DateTime(timezone=True), nullable=True),
    Column("processed_at", DateTime(timezone=True), nullable=True),
    Column("isOk", Boolean, nullable=True),
    Column("inSystem", Boolean, nullable=True),
)


def create_all_tables(engine: Engine) -> None:
    """Create the mapped tables if missing (local development and tests)."""
    metadata.create_all(engine, checkfirst=True)
