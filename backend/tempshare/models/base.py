# tempshare/models/base.py
from datetime import datetime, timezone
from sqlalchemy import MetaData, DateTime
from sqlalchemy.orm import declarative_base
from sqlalchemy.types import TypeDecorator
from tempshare.core.config import settings


class UTCDateTime(TypeDecorator):
    """DateTime, который всегда возвращает aware-время в UTC.

    SQLite хранит время без таймзоны, поэтому при чтении naive значения
    считаются UTC, а при записи aware значения приводятся к UTC.
    """
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value, dialect):
        if value is None:
            return value
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


Base = declarative_base(metadata=MetaData(naming_convention=settings.db.naming_convention))
