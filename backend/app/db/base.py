"""SQLAlchemy declarative base for all models."""

from sqlalchemy import MetaData
from sqlalchemy.orm import DeclarativeBase

# Matches the names used in alembic/versions so autogenerate stays quiet.
NAMING_CONVENTION = {
    "ix": "ix_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
}


class Base(DeclarativeBase):
    """Base class for ORM models."""

    metadata = MetaData(naming_convention=NAMING_CONVENTION)
