"""SQLAlchemy implementation for ExecutionRepository."""

from __future__ import annotations

from datetime import datetime
from typing import Sequence

from sqlalchemy import and_, delete, desc, func, select, update

from devloop.db.models import ExecutionRecord
from devloop.domain.common import AsyncRepository

RUNNING = "running"


class SqlExecutionRepository(AsyncRepository[ExecutionRecord]):
    model = ExecutionRecord

    async def insert(self, values: dict) -> ExecutionRecord:
        record = await self.add(ExecutionRecord(**values))
        await self.session.refresh(record)
        return record

    async def finalize(self, execution_id: str, values: dict) -> bool:
        # only an in-flight row may receive its outcome; finished rows are immutable
        stmt = (
            update(ExecutionRecord)
            .where(ExecutionRecord.id == execution_id)
            .where(ExecutionRecord.status == RUNNING)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def get_by_id(self, execution_id: str) -> ExecutionRecord | None:
        return await self.get(execution_id)

    async def list_by_script(
        self,
        script_id: str,
        *,
        limit: int,
        offset: int,
        before: datetime | None,
    ) -> Sequence[ExecutionRecord]:
        stmt = select(ExecutionRecord).where(ExecutionRecord.script_id == script_id)
        if before is not None:
            stmt = stmt.where(ExecutionRecord.started_at < before)
        stmt = (
            stmt.order_by(desc(ExecutionRecord.started_at), desc(ExecutionRecord.id))
            .offset(offset)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def latest_per_script(self, limit: int) -> Sequence[ExecutionRecord]:
        latest = (
            select(
                ExecutionRecord.script_id.label("script_id"),
                func.max(ExecutionRecord.id).label("last_id"),
            )
            .group_by(ExecutionRecord.script_id)
            .subquery()
        )
        stmt = (
            select(ExecutionRecord)
            .join(
                latest,
                and_(
                    ExecutionRecord.script_id == latest.c.script_id,
                    ExecutionRecord.id == latest.c.last_id,
                ),
            )
            .order_by(desc(ExecutionRecord.started_at), desc(ExecutionRecord.id))
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def delete(self, execution_id: str) -> bool:
        record = await self.get(execution_id)
        if record is None:
            return False
        await self.remove(record)
        return True

    async def delete_by_script(self, script_id: str) -> int:
        stmt = delete(ExecutionRecord).where(ExecutionRecord.script_id == script_id)
        result = await self.session.execute(stmt)
        return result.rowcount or 0

    async def mark_in_flight_interrupted(self, finished_at: datetime, reason: str) -> int:
        stmt = (
            update(ExecutionRecord)
            .where(ExecutionRecord.status == RUNNING)
            .values(status="interrupted", finished_at=finished_at, error_message=reason)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0
