# levelgate/db/models.py
from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text, func, text
from sqlalchemy.orm import Mapped, declarative_base, mapped_column, relationship

from levelgate.core.config import settings


Base = declarative_base()


def _table_args(*args):
    if settings.db_schema:
        return (*args, {"schema": settings.db_schema})
    return args


def _fk(table: str) -> str:
    if settings.db_schema:
        return f"{settings.db_schema}.{table}"
    return table


class AccessStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Level(Base):
    __tablename__ = "levels"
    __table_args__ = _table_args()

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(128), unique=True, index=True)
    difficulty_level: Mapped[int] = mapped_column(Integer)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    @property
    def is_beginner(self) -> bool:
        return self.difficulty_level == 1


# level names are unique regardless of case
Index("uq_levels_name_lower", func.lower(Level.name), unique=True)


class AccessRequest(Base):
    __tablename__ = "access_requests"
    __table_args__ = _table_args(
        # at most one pending request per (student, level)
        Index(
            "uq_access_requests_pending",
            "student_id",
            "level_id",
            unique=True,
            postgresql_where=text("status = 'pending'"),
            sqlite_where=text("status = 'pending'"),
        ),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    student_id: Mapped[str] = mapped_column(String(255), index=True)
    student_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    level_id: Mapped[str] = mapped_column(ForeignKey(f"{_fk('levels')}.id"))
    status: Mapped[str] = mapped_column(
        String(16), default=AccessStatus.PENDING.value, index=True
    )

    requested_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    reviewed_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    level: Mapped[Level] = relationship(lazy="raise")

    __mapper_args__ = {"eager_defaults": True}
