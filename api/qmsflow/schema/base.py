"""Shared schema base classes for API responses."""

from datetime import datetime

from pydantic import BaseModel


class ORMModel(BaseModel):
    """Base model that supports reading SQLAlchemy rows and record dicts."""

    model_config = {"from_attributes": True}


class Created(ORMModel):
    """Common identity and creation timestamp for stored records."""
    id: str
    created_at: datetime
