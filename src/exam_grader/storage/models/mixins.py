"""
Database Model Mixins

Shared mixin classes for SQLAlchemy models.
"""

from datetime import datetime
from sqlalchemy import DateTime
from sqlalchemy.orm import Mapped, mapped_column

from ...utils.clock import utcnow


class TimestampMixin:
    """Mixin for models that need created/updated timestamps."""

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
