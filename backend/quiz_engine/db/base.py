"""Declarative base for all database models."""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


def import_models() -> None:
    """Register every model on ``Base.metadata`` before ``create_all``."""
    import quiz_engine.models  # noqa: F401
