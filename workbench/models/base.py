"""SQLAlchemy declarative base and mixins for workbench models."""
from typing import Optional

from sqlalchemy import BigInteger
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from workbench.utils import now_ms


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


class TimestampMixin:
    """Mixin for created_at/updated_at timestamps (milliseconds since epoch)."""

    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False, default=now_ms)
    updated_at: Mapped[int] = mapped_column(
        BigInteger, nullable=False, default=now_ms, onupdate=now_ms
    )


class TimestampWithCompletedMixin(TimestampMixin):
    """Mixin for entities with optional completed_at."""

    completed_at: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
