"""
Participant and check-in store access.

Thin async wrapper over the `paidparticipants` and `checkins` tables. Database
failures are surfaced as UpstreamError; nothing here retries.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from entrypass.errors import UpstreamError
from entrypass.kernel.models import Checkin, PaidParticipant
from entrypass.logging_config import get_logger

logger = get_logger(__name__)


class ParticipantStore:
    """Row-addressable access to paid participants and the check-in ledger."""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _insert(self, table):
        dialect = self.session.get_bind().dialect.name
        if dialect == "postgresql":
            return pg_insert(table)
        if dialect == "sqlite":
            return sqlite_insert(table)
        raise UpstreamError(f"Unsupported database dialect: {dialect}")

    async def get_participant(self, row_hash: str) -> Optional[PaidParticipant]:
        try:
            result = await self.session.execute(
                select(PaidParticipant).where(PaidParticipant.row_hash == row_hash)
            )
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Participant lookup failed: %s", type(e).__name__)
            raise UpstreamError("Failed to retrieve entry pass data") from e

    async def get_checkin(self, row_hash: str) -> Optional[Checkin]:
        try:
            # Check-ins are written by core upserts; refresh any cached instance
            result = await self.session.execute(
                select(Checkin)
                .where(Checkin.row_hash == row_hash)
                .execution_options(populate_existing=True)
            )
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Check-in lookup failed: %s", type(e).__name__)
            raise UpstreamError("Failed to retrieve check-in status") from e

    async def list_participants(self) -> List[PaidParticipant]:
        """All paid participants in sheet order."""
        try:
            result = await self.session.execute(
                select(PaidParticipant).order_by(PaidParticipant.row_number.asc())
            )
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Participant listing failed: %s", type(e).__name__)
            raise UpstreamError("Failed to list participants") from e

    async def count_participants(self) -> int:
        try:
            result = await self.session.execute(select(func.count()).select_from(PaidParticipant))
            return int(result.scalar_one())
        except SQLAlchemyError as e:
            raise UpstreamError("Failed to count participants") from e

    async def record_checkin(
        self,
        row_hash: str,
        checked_in_by: str,
        *,
        at: Optional[datetime] = None,
        overwrite: bool = True,
    ) -> bool:
        """
        Write the check-in row for `row_hash` in a single statement.

        With overwrite=True this is an upsert on row_hash (last write wins).
        With overwrite=False an existing row is left alone and False is returned.
        """
        values = {
            "row_hash": row_hash,
            "checked_in_at": at or datetime.now(timezone.utc),
            "checked_in_by": checked_in_by,
        }
        stmt = self._insert(Checkin).values(**values)
        if overwrite:
            stmt = stmt.on_conflict_do_update(
                index_elements=[Checkin.row_hash],
                set_={
                    "checked_in_at": values["checked_in_at"],
                    "checked_in_by": values["checked_in_by"],
                },
            )
        else:
            stmt = stmt.on_conflict_do_nothing(index_elements=[Checkin.row_hash])
        stmt = stmt.returning(Checkin.row_hash)

        try:
            result = await self.session.execute(stmt)
            written = result.first() is not None
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("Check-in write failed: %s", type(e).__name__)
            raise UpstreamError("Failed to record check-in") from e
        return written

    async def upsert_participants(self, rows: Iterable[Dict[str, Any]]) -> int:
        """Insert or replace participant rows keyed by row_hash. Used by the import script."""
        count = 0
        try:
            for row in rows:
                stmt = self._insert(PaidParticipant).values(
                    row_hash=row["row_hash"],
                    row_number=row["row_number"],
                    headers=row["headers"],
                    data=row["data"],
                )
                stmt = stmt.on_conflict_do_update(
                    index_elements=[PaidParticipant.row_hash],
                    set_={
                        "row_number": stmt.excluded.row_number,
                        "headers": stmt.excluded.headers,
                        "data": stmt.excluded.data,
                        "updated_at": func.now(),
                    },
                )
                await self.session.execute(stmt)
                count += 1
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise UpstreamError("Failed to import participants") from e
        return count
