"""Repository protocol for execution history persistence."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol, Sequence

from devloop.db.models import ExecutionRecord as ExecutionRecordModel


class ExecutionRepository(Protocol):
    async def insert(self, values: dict) -> ExecutionRecordModel:
        ...

    async def finalize(self, execution_id: str, values: dict) -> bool:
        ...

    async def get_by_id(self, execution_id: str) -> ExecutionRecordModel | None:
        ...

    async def list_by_script(
        self,
        script_id: str,
        *,
        limit: int,
        offset: int,
        before: datetime | None,
    ) -> Sequence[ExecutionRecordModel]:
        ...

    async def latest_per_script(self, limit: int) -> Sequence[ExecutionRecordModel]:
        ...

    async def delete(self, execution_id: str) -> bool:
        ...

    async def delete_by_script(self, script_id: str) -> int:
        ...

    async def mark_in_flight_interrupted(self, finished_at: datetime, reason: str) -> int:
        ...
