from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Type

from sqlalchemy import Enum as SAEnum


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive timestamps read back from the database as UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def value_enum(enum_cls: Type[Enum]) -> SAEnum:
    """A column type that stores the enum's values ("Presente") rather than its member names ("PRESENT")."""
    return SAEnum(
        enum_cls,
        values_callable=lambda members: [m.value for m in members],
        native_enum=False,
        validate_strings=True,
        length=max(len(m.value) for m in enum_cls),
    )
