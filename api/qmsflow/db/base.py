"""Import all models here for Alembic autogenerate."""

from qmsflow.db.base_class import Base
from qmsflow.models import quality, relationship, workflow  # noqa: F401

__all__ = ["Base"]
