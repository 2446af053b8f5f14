"""Domain service and store for durable execution history."""

from __future__ import annotations

import json
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import AsyncIterator, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from devloop.db.models import ExecutionRecord as ExecutionRecordModel
from devloop.infrastructure.database.repositories.execution_repository import SqlExecutionRepository
from devloop.infrastructure.database.session import session_scope

from .exceptions import ExecutionInFlightError, ExecutionNotFoundError, RedactionError, StoreWriteError
from .models import ExecutionRecord, ExecutionStatus, as_utc
from .redaction import scrub
from .repository import ExecutionRepository

logger = logging.getLogger(__name__)

INTERRUPTED_REASON = "service stopped before the execution finished"


@dataclass(slots=True)
class HistoryService:
    repository: ExecutionRepository

    @classmethod
    def with_session(cls, session: AsyncSession) -> "HistoryService":
        return cls(SqlExecutionRepository(session))

    async def append(self, record: ExecutionRecord) -> ExecutionRecord:
        stored = scrub(record)
        model = await self.repository.insert(
            {
                "id": stored.id,
                "script_id": stored.script_id,
                "script_name": stored.script_name,
                "script_path": stored.script_path,
                "command": stored.command,
                "args": json.dumps(stored.args, ensure_ascii=False),
                "env": json.dumps(stored.env, ensure_ascii=False, sort_keys=True),
                "output": stored.output,
                "output_truncated": stored.output_truncated,
                "exit_code": stored.exit_code,
                "status": stored.status.value,
                "error_message": stored.error_message,
                "incognito": stored.incognito,
                "started_at": stored.started_at,
                "finished_at": stored.finished_at,
            }
        )
        return self._to_domain(model)

    async def finalize(self, record: ExecutionRecord) -> bool:
        stored = scrub(record)
        return await self.repository.finalize(
            stored.id,
            {
                "output": stored.output,
                "output_truncated": stored.output_truncated,
                "exit_code": stored.exit_code,
                "status": stored.status.value,
                "error_message": stored.error_message,
                "finished_at": stored.finished_at,
            },
        )

    async def get(self, execution_id: str) -> ExecutionRecord | None:
        model = await self.repository.get_by_id(execution_id)
        return self._to_domain(model) if model else None

    async def by_script(
        self,
        script_id: str,
        *,
        limit: int,
        offset: int = 0,
        before: Optional[datetime] = None,
    ) -> list[ExecutionRecord]:
        models = await self.repository.list_by_script(
            script_id,
            limit=limit,
            offset=offset,
            before=as_utc(before),
        )
        return [self._to_domain(model) for model in models]

    async def recent(self, limit: int) -> list[ExecutionRecord]:
        models = await self.repository.latest_per_script(limit)
        return [self._to_domain(model) for model in models]

    async def delete(self, execution_id: str) -> bool:
        model = await self.repository.get_by_id(execution_id)
        if model is None:
            return False
        if model.status == ExecutionStatus.RUNNING.value:
            raise ExecutionInFlightError(f"execution {execution_id} is still running")
        return await self.repository.delete(execution_id)

    async def purge_script(self, script_id: str) -> int:
        return await self.repository.delete_by_script(script_id)

    async def reconcile_in_flight(self, now: datetime) -> int:
        return await self.repository.mark_in_flight_interrupted(now, INTERRUPTED_REASON)

    @staticmethod
    def _to_domain(model: ExecutionRecordModel) -> ExecutionRecord:
        return ExecutionRecord.from_orm(model)


class HistoryStore:
    """Session-per-operation facade used by the execution engine and the API.

    Every write commits before returning, so a record handed to the store is
    durable once the call completes.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @asynccontextmanager
    async def _service(self) -> AsyncIterator[HistoryService]:
        async with session_scope(self._session_factory) as session:
            yield HistoryService.with_session(session)

    async def append(self, record: ExecutionRecord) -> ExecutionRecord:
        """Persist a record in one step (used for in-flight markers too)."""
        try:
            async with self._service() as service:
                return await service.append(record)
        except RedactionError as exc:
            raise StoreWriteError(str(exc)) from exc
        except SQLAlchemyError as exc:
            logger.exception("Failed to persist execution %s", record.id)
            raise StoreWriteError(f"could not persist execution {record.id}") from exc

    async def finalize(self, record: ExecutionRecord) -> None:
        if not record.status.is_final:
            raise ValueError("finalize requires a final execution status")
        try:
            async with self._service() as service:
                updated = await service.finalize(record)
        except RedactionError as exc:
            raise StoreWriteError(str(exc)) from exc
        except SQLAlchemyError as exc:
            logger.exception("Failed to finalize execution %s", record.id)
            raise StoreWriteError(f"could not finalize execution {record.id}") from exc
        if not updated:
            raise StoreWriteError(f"execution {record.id} is no longer in flight")

    async def get(self, execution_id: str) -> ExecutionRecord:
        async with self._service() as service:
            record = await service.get(execution_id)
        if record is None:
            raise ExecutionNotFoundError(f"execution {execution_id} not found")
        return record

    async def by_script(
        self,
        script_id: str,
        *,
        limit: int = 20,
        before: Optional[datetime] = None,
        offset: int = 0,
    ) -> list[ExecutionRecord]:
        """Records for one script, newest first."""
        async with self._service() as service:
            return await service.by_script(script_id, limit=limit, offset=offset, before=before)

    async def recent(self, limit: int = 10) -> list[ExecutionRecord]:
        """Latest record of each of the most recently run scripts, newest first."""
        async with self._service() as service:
            return await service.recent(limit)

    async def delete(self, execution_id: str) -> None:
        async with self._service() as service:
            deleted = await service.delete(execution_id)
        if not deleted:
            raise ExecutionNotFoundError(f"execution {execution_id} not found")
        logger.info("Deleted execution %s", execution_id)

    async def purge_script(self, script_id: str) -> int:
        async with self._service() as service:
            count = await service.purge_script(script_id)
        logger.info("Purged %d execution(s) of script %s", count, script_id)
        return count

    async def reconcile_in_flight(self) -> int:
        """Close out executions left running by a previous process."""
        async with self._service() as service:
            count = await service.reconcile_in_flight(datetime.now(timezone.utc))
        if count:
            logger.warning("Marked %d in-flight execution(s) as interrupted", count)
        return count
