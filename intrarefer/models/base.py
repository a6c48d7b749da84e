"""Base models and mixins for database models"""

from sqlalchemy import Column, DateTime, Uuid
from sqlalchemy.orm import DeclarativeBase, declared_attr
from sqlalchemy.types import TypeDecorator
from datetime import datetime, timezone
import uuid

from intrarefer.utils.helpers import utc_now

class UTCDateTime(TypeDecorator):
    """Timezone-aware datetime stored as UTC on every backend"""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        value = value.astimezone(timezone.utc)
        # SQLite has no timezone support; store naive UTC
        if dialect.name == "sqlite":
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return value
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

class Base(DeclarativeBase):
    pass

class TimestampedModel:
    """Mixin for adding created_at and updated_at timestamps"""

    @declared_attr
    def created_at(cls):
        return Column(
            UTCDateTime,
            nullable=False,
            default=utc_now,
            index=True
        )

    @declared_attr
    def updated_at(cls):
        return Column(
            UTCDateTime,
            nullable=False,
            default=utc_now,
            onupdate=utc_now
        )

class UUIDModel:
    """Mixin for adding UUID primary key"""

    @declared_attr
    def id(cls):
        return Column(
            Uuid,
            primary_key=True,
            default=uuid.uuid4,
            nullable=False
        )

class SerializableModel:
    """Mixin providing a readable repr"""

    def __repr__(self):
        return f"<{self.__class__.__name__}(id={getattr(self, 'id', None)!r})>"

def enum_values(enum_class):
    """Persist enum values rather than member names"""
    return [member.value for member in enum_class]

__all__ = [
    "Base",
    "UTCDateTime",
    "TimestampedModel",
    "UUIDModel",
    "SerializableModel",
    "enum_values",
]
