"""
Module: guard_kernel.db.base
Responsibility: Declarative base for the roster, payroll and alert tables.
Architecture position: Kernel > DB.  Imported by every ``orm.py``; imports
    nothing from the rest of the project.

Invariants enforced:
    - Every row has a uuid4 primary key stored as a 36-character string, so
      the same schema runs on SQLite and PostgreSQL.
    - Hours and pay columns annotated ``Decimal`` are Numeric(38, 9); no
      float column exists anywhere in the schema.
    - ``created_at``/``updated_at`` defaults are computed in Python, so a
      flushed object never needs a reload to read them in an async session.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import ClassVar
from uuid import UUID, uuid4

from sqlalchemy import BigInteger, DateTime, MetaData, Numeric, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UUIDString(TypeDecorator):
    """``uuid.UUID`` in Python, ``VARCHAR(36)`` in the database."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else str(value)

    def process_result_value(self, value, dialect):
        return None if value is None else UUID(value)


class Base(DeclarativeBase):
    metadata = MetaData(naming_convention={
        "ix": "ix_%(column_0_label)s",
        "uq": "uq_%(table_name)s_%(column_0_name)s",
        "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
        "pk": "pk_%(table_name)s",
    })

    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(38, 9),
        datetime: DateTime(timezone=True),
        UUID: UUIDString(),
        int: BigInteger,
    }

    id: Mapped[UUID] = mapped_column(UUIDString(), primary_key=True, default=uuid4)


class TrackedBase(Base):
    """Adds ``created_at`` (set once) and ``updated_at`` (refreshed on UPDATE).

    Services holding a Clock assign both themselves; the defaults cover
    writes made without one.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False,
    )
