"""SQLAlchemy declarative base and shared column helpers."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests).
JSON_COMPATIBLE = JSON().with_variant(JSONB, "postgresql")


def new_record_id() -> str:
    """Record ids are opaque strings so any module can reference them."""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Declarative base for every table the record store can reach."""
