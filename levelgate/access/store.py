# levelgate/access/store.py
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional, Sequence

from fastapi import Depends
from sqlalchemy import exists, func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from levelgate.db.engine import get_session
from levelgate.db.models import AccessRequest, AccessStatus, Level

logger = logging.getLogger(__name__)


class PendingRequestExists(Exception):
    """Raised when the pending-request unique index rejects an insert."""


class LevelNameConflict(Exception):
    """Raised when a level name is already used by another level id."""

    def __init__(self, name: str, level_id: str):
        super().__init__(f"Level name '{name}' already used by level '{level_id}'")
        self.name = name
        self.level_id = level_id


class AccessStore:
    """
    Data access for levels and access requests.

    Holds no state besides the session; every call reads current rows.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    # ------------------------------------------------------------------
    # Levels
    # ------------------------------------------------------------------

    async def find_level_by_name(self, name: str) -> Optional[Level]:
        stmt = select(Level).where(func.lower(Level.name) == name.strip().lower())
        res = await self.session.execute(stmt)
        return res.scalars().first()

    async def list_levels(self) -> Sequence[Level]:
        stmt = select(Level).order_by(Level.difficulty_level, Level.name)
        res = await self.session.execute(stmt)
        return res.scalars().all()

    async def list_accessible_levels(self, student_id: str) -> Sequence[Level]:
        approved = (
            select(AccessRequest.level_id)
            .where(AccessRequest.student_id == student_id)
            .where(AccessRequest.status == AccessStatus.APPROVED.value)
        )
        stmt = (
            select(Level)
            .where(or_(Level.difficulty_level == 1, Level.id.in_(approved)))
            .order_by(Level.difficulty_level, Level.name)
        )
        res = await self.session.execute(stmt)
        return res.scalars().all()

    async def upsert_level(
        self,
        *,
        level_id: str,
        name: str,
        difficulty_level: int,
        description: Optional[str] = None,
    ) -> bool:
        """
        Insert or update a level by id. Returns True when created.

        Raises LevelNameConflict when another id already holds the name,
        compared case-insensitively.
        """
        clash = await self.find_level_by_name(name)
        if clash is not None and clash.id != level_id:
            raise LevelNameConflict(name, clash.id)

        existing = await self.session.get(Level, level_id)
        if existing:
            existing.name = name
            existing.difficulty_level = difficulty_level
            existing.description = description
            await self.session.flush()
            return False

        self.session.add(
            Level(
                id=level_id,
                name=name,
                difficulty_level=difficulty_level,
                description=description,
            )
        )
        # visible to the name check of the next upsert in this session
        await self.session.flush()
        return True

    # ------------------------------------------------------------------
    # Access requests
    # ------------------------------------------------------------------

    async def has_request(
        self, student_id: str, level_id: str, status: AccessStatus
    ) -> bool:
        stmt = select(
            exists()
            .where(AccessRequest.student_id == student_id)
            .where(AccessRequest.level_id == level_id)
            .where(AccessRequest.status == status.value)
        )
        res = await self.session.execute(stmt)
        return bool(res.scalar())

    async def create_request(
        self, student_id: str, level_id: str, student_name: Optional[str] = None
    ) -> str:
        request = AccessRequest(
            id=str(uuid.uuid4()),
            student_id=student_id,
            student_name=student_name,
            level_id=level_id,
            status=AccessStatus.PENDING.value,
        )
        self.session.add(request)
        try:
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            logger.info(
                "Pending request race detected student=%s level=%s",
                student_id,
                level_id,
            )
            raise PendingRequestExists(str(exc.orig)) from exc
        except SQLAlchemyError:
            await self.session.rollback()
            raise

        return request.id

    async def get_request(self, request_id: str) -> Optional[AccessRequest]:
        return await self.session.get(AccessRequest, request_id)

    async def list_student_requests(
        self, student_id: str, status: Optional[AccessStatus] = None
    ) -> Sequence[tuple[AccessRequest, str]]:
        stmt = (
            select(AccessRequest, Level.name)
            .join(Level, Level.id == AccessRequest.level_id)
            .where(AccessRequest.student_id == student_id)
            .order_by(AccessRequest.requested_at.desc())
        )
        if status is not None:
            stmt = stmt.where(AccessRequest.status == status.value)
        res = await self.session.execute(stmt)
        return [(row[0], row[1]) for row in res.all()]

    async def list_pending(self) -> Sequence[tuple[AccessRequest, str]]:
        stmt = (
            select(AccessRequest, Level.name)
            .join(Level, Level.id == AccessRequest.level_id)
            .where(AccessRequest.status == AccessStatus.PENDING.value)
            .order_by(AccessRequest.requested_at.asc())
        )
        res = await self.session.execute(stmt)
        return [(row[0], row[1]) for row in res.all()]

    async def mark_reviewed(
        self, request: AccessRequest, status: AccessStatus, reviewer_id: str
    ) -> None:
        request.status = status.value
        request.reviewed_at = datetime.now(timezone.utc)
        request.reviewed_by = reviewer_id
        try:
            await self.session.commit()
        except SQLAlchemyError:
            await self.session.rollback()
            raise

    async def commit(self) -> None:
        await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()


async def get_store(db: AsyncSession = Depends(get_session)) -> AccessStore:
    return AccessStore(db)
