"""Tests for the durable history store."""

import asyncio
import dataclasses
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from devloop.infrastructure.database import build_engine, build_session_factory, init_db
from devloop.modules.history import (
    REDACTED,
    ExecutionInFlightError,
    ExecutionNotFoundError,
    ExecutionRecord,
    ExecutionStatus,
    HistoryStore,
    StoreWriteError,
    new_execution_id,
)

BASE = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def _record(script_id: str, offset: int, **kwargs) -> ExecutionRecord:
    started = BASE + timedelta(seconds=offset)
    ns = int(started.timestamp()) * 1_000_000_000
    values = {
        "id": new_execution_id(script_id, ns),
        "script_id": script_id,
        "script_name": f"{script_id}-name",
        "command": f"python /scripts/{script_id}.py",
        "args": ["--flag", "value"],
        "env": {"TOKEN": "secret"},
        "started_at": started,
    }
    values.update(kwargs)
    return ExecutionRecord(**values)


def _finished(record: ExecutionRecord, exit_code: int = 0, output: str = "done\n") -> ExecutionRecord:
    return replace(
        record,
        status=ExecutionStatus.SUCCEEDED if exit_code == 0 else ExecutionStatus.FAILED,
        exit_code=exit_code,
        output=output,
        finished_at=record.started_at + timedelta(seconds=1),
    )


def run_with_store(settings, scenario):
    async def _main():
        engine = build_engine(settings)
        settings.data_dir.mkdir(parents=True, exist_ok=True)
        await init_db(engine)
        try:
            return await scenario(HistoryStore(build_session_factory(engine)))
        finally:
            await engine.dispose()

    return asyncio.run(_main())


class TestAppendAndFinalize:
    """Tests for writing records."""

    def test_in_flight_then_final(self, make_settings):
        """A record is written running, then finalized once."""

        async def scenario(store):
            record = _record("s1", 0)
            await store.append(record)
            stored = await store.get(record.id)
            assert stored.status is ExecutionStatus.RUNNING

            await store.finalize(_finished(record, exit_code=3, output="boom"))
            final = await store.get(record.id)
            assert final.exit_code == 3
            assert final.output == "boom"
            assert final.duration_ms == 1000

            with pytest.raises(StoreWriteError):
                await store.finalize(_finished(record, exit_code=0, output="rewritten"))
            assert (await store.get(record.id)).output == "boom"

        run_with_store(make_settings(), scenario)

    def test_incognito_is_scrubbed_before_storage(self, make_settings):
        """Incognito args, env values and output never reach the database."""

        async def scenario(store):
            record = _record("s1", 0, incognito=True)
            await store.append(record)
            await store.finalize(_finished(record, exit_code=0, output="secret output"))

            (stored,) = await store.by_script("s1")
            assert stored.args == [REDACTED, REDACTED]
            assert stored.env == {"TOKEN": REDACTED}
            assert stored.output == REDACTED
            assert stored.exit_code == 0
            assert stored.started_at == record.started_at

        run_with_store(make_settings(), scenario)

    def test_scrub_failure_aborts_the_write(self, make_settings):
        """An incognito record that cannot be masked is never stored."""

        async def scenario(store):
            record = _record("s1", 0, incognito=True)
            with patch.object(dataclasses, "replace", side_effect=TypeError("boom")):
                with pytest.raises(StoreWriteError):
                    await store.append(record)
            assert await store.by_script("s1") == []
            with pytest.raises(ExecutionNotFoundError):
                await store.get(record.id)

        run_with_store(make_settings(), scenario)


class TestQueries:
    """Tests for by_script, recent and delete."""

    def test_by_script_newest_first_with_cursor(self, make_settings):
        """Records come back newest first; ``before`` and offsets page through them."""

        async def scenario(store):
            for offset in range(5):
                await store.append(_finished(_record("s1", offset)))
            await store.append(_finished(_record("other", 10)))

            records = await store.by_script("s1")
            assert [r.started_at for r in records] == [BASE + timedelta(seconds=s) for s in (4, 3, 2, 1, 0)]

            older = await store.by_script("s1", before=BASE + timedelta(seconds=2))
            assert len(older) == 2

            page_two = await store.by_script("s1", limit=2, offset=2)
            assert [r.started_at for r in page_two] == [BASE + timedelta(seconds=2), BASE + timedelta(seconds=1)]

        run_with_store(make_settings(), scenario)

    def test_recent_is_one_per_script(self, make_settings):
        """Recent lists distinct scripts by their latest run."""

        async def scenario(store):
            await store.append(_finished(_record("a", 0)))
            await store.append(_finished(_record("b", 1)))
            await store.append(_finished(_record("a", 2)))
            await store.append(_finished(_record("c", 3)))

            recent = await store.recent()
            assert [r.script_id for r in recent] == ["c", "a", "b"]
            assert recent[1].started_at == BASE + timedelta(seconds=2)
            assert [r.script_id for r in await store.recent(limit=1)] == ["c"]

        run_with_store(make_settings(), scenario)

    def test_delete(self, make_settings):
        """Deleted records are gone; unknown ids raise."""

        async def scenario(store):
            record = _finished(_record("a", 0))
            await store.append(record)

            await store.delete(record.id)

            assert await store.by_script("a") == []
            with pytest.raises(ExecutionNotFoundError):
                await store.delete(record.id)
            with pytest.raises(ExecutionNotFoundError):
                await store.get(record.id)

        run_with_store(make_settings(), scenario)

    def test_running_record_cannot_be_deleted(self, make_settings):
        """A record still in flight is kept until it is finalized."""

        async def scenario(store):
            record = _record("a", 0)
            await store.append(record)

            with pytest.raises(ExecutionInFlightError):
                await store.delete(record.id)

            await store.finalize(_finished(record))
            assert (await store.get(record.id)).status is ExecutionStatus.SUCCEEDED
            await store.delete(record.id)
            assert await store.by_script("a") == []

        run_with_store(make_settings(), scenario)

    def test_purge_script(self, make_settings):
        """Purging removes every record of one script only."""

        async def scenario(store):
            for offset in range(3):
                await store.append(_finished(_record("a", offset)))
            await store.append(_finished(_record("b", 5)))

            assert await store.purge_script("a") == 3
            assert await store.by_script("a") == []
            assert len(await store.by_script("b")) == 1

        run_with_store(make_settings(), scenario)


class TestReconcile:
    """Tests for in-flight reconciliation."""

    def test_running_rows_become_interrupted(self, make_settings):
        """Rows left running by a dead process are closed out."""

        async def scenario(store):
            running = _record("a", 0)
            done = _finished(_record("a", 1))
            await store.append(running)
            await store.append(done)

            assert await store.reconcile_in_flight() == 1

            stored = await store.get(running.id)
            assert stored.status is ExecutionStatus.INTERRUPTED
            assert stored.finished_at is not None
            assert (await store.get(done.id)).status is ExecutionStatus.SUCCEEDED

        run_with_store(make_settings(), scenario)
