"""Portable SQL types that work across PostgreSQL and SQLite.

Structured JSON columns are declared with a pydantic model so rows carry
typed values instead of loose dicts. PostgreSQL stores them as JSONB,
other dialects as plain JSON.
"""

from datetime import datetime, timezone

import sqlalchemy as sa
from pydantic import BaseModel
from sqlalchemy import JSON, TypeDecorator


class PydanticJSON(TypeDecorator):
    """JSON column holding a pydantic model instance.

    ``None`` stays ``None``; dicts are validated into the model on bind so
    callers may pass either form.
    """

    impl = JSON
    cache_ok = True

    def __init__(self, model: type[BaseModel], *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.model = model

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            from sqlalchemy.dialects.postgresql import JSONB

            return dialect.type_descriptor(JSONB())
        return dialect.type_descriptor(JSON())

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if not isinstance(value, self.model):
            value = self.model.model_validate(value)
        return value.model_dump(mode="json")

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return self.model.model_validate(value)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes read back from SQLite."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def str_enum(enum_cls, length: int = 20) -> sa.Enum:
    """VARCHAR-backed enum that stores member values (``"full"``) not names."""
    return sa.Enum(
        enum_cls,
        native_enum=False,
        length=length,
        values_callable=lambda members: [m.value for m in members],
        validate_strings=True,
    )
