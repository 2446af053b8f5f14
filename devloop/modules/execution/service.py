"""Execution engine: resolves, runs and records script executions."""

from __future__ import annotations

import asyncio
import logging
import os
import shlex
import time
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Optional, Protocol

from devloop.core.config import ExecutionSettings
from devloop.modules.catalog.models import Script
from devloop.modules.catalog.service import CatalogManager
from devloop.modules.config.models import AppConfig
from devloop.modules.config.service import ConfigManager
from devloop.modules.history.exceptions import ExecutionNotFoundError
from devloop.modules.history.models import ExecutionRecord, ExecutionStatus, new_execution_id
from devloop.modules.history.service import HistoryStore

from .exceptions import (
    ExecutionCancelledError,
    ExecutionTimedOutError,
    InputValidationError,
    ProcessSpawnError,
    ScriptBusyError,
    UnsupportedExtensionError,
)
from .inputs import resolve_inputs
from .models import ExecutionRequest, ExecutionResult, PreparedCommand, RunningExecution
from .process import ProcessOutcome, spawn, supervise

logger = logging.getLogger(__name__)


class EventPublisher(Protocol):
    async def publish(self, event_type: str, data: Optional[dict[str, Any]] = None) -> int:
        ...


def prepare_command(
    script: Script,
    config: AppConfig,
    request: ExecutionRequest,
    *,
    env_input_prefix: str = "env:",
    base_env: Optional[dict[str, str]] = None,
) -> PreparedCommand:
    """Snapshot everything a run needs so later rescans cannot affect it.

    Environment precedence, highest first: caller values, the configured
    global variables, the service's own environment.
    """
    interpreter = config.interpreter_for(script.extension)
    if interpreter is None:
        raise UnsupportedExtensionError(script.id, script.extension)
    if request.command and request.command.strip():
        interpreter = request.command.strip()
    try:
        interpreter_argv = shlex.split(interpreter)
    except ValueError as exc:
        raise InputValidationError([f"command {interpreter!r} cannot be parsed: {exc}"]) from exc
    if not interpreter_argv:
        raise InputValidationError(["command must not be empty"])

    if request.inputs is not None:
        args, input_env = resolve_inputs(script.inputs, request.inputs, env_prefix=env_input_prefix)
        caller_env = {**request.env, **input_env}
    else:
        args = [str(arg) for arg in request.args]
        caller_env = dict(request.env)

    bad_names = [name for name in caller_env if not name or "=" in name or "\x00" in name]
    if bad_names:
        raise InputValidationError([f"invalid environment variable name {name!r}" for name in bad_names])
    caller_env = {name: str(value) for name, value in caller_env.items()}

    process_env = dict(os.environ if base_env is None else base_env)
    process_env.update(config.environment_variables)
    process_env.update(caller_env)

    command_argv = (*interpreter_argv, script.path)
    return PreparedCommand(
        script_id=script.id,
        script_name=script.name,
        script_path=script.path,
        cwd=script.folder,
        argv=(*command_argv, *args),
        display_command=shlex.join(command_argv),
        args=tuple(args),
        caller_env=caller_env,
        process_env=process_env,
    )


def _final_status(outcome: ProcessOutcome) -> ExecutionStatus:
    if outcome.timed_out:
        return ExecutionStatus.TIMED_OUT
    if outcome.cancelled:
        return ExecutionStatus.CANCELLED
    if outcome.exit_code == 0:
        return ExecutionStatus.SUCCEEDED
    return ExecutionStatus.FAILED


class ExecutionEngine:
    """Runs cataloged scripts as child processes.

    Runs of one script never overlap: each script id owns an asyncio lock that
    is held from the in-flight history write until the final one. Different
    scripts run in parallel.
    """

    def __init__(
        self,
        catalog: CatalogManager,
        config_manager: ConfigManager,
        history: HistoryStore,
        settings: ExecutionSettings,
        events: Optional[EventPublisher] = None,
    ) -> None:
        self.catalog = catalog
        self.config_manager = config_manager
        self.history = history
        self.settings = settings
        self.events = events
        self._locks: dict[str, asyncio.Lock] = {}
        self._running: dict[str, RunningExecution] = {}
        self._last_started_ns = 0

    def _lock_for(self, script_id: str) -> asyncio.Lock:
        lock = self._locks.get(script_id)
        if lock is None:
            lock = self._locks[script_id] = asyncio.Lock()
        return lock

    def prepare(self, script_id: str, request: ExecutionRequest) -> PreparedCommand:
        script = self.catalog.get(script_id)
        return prepare_command(
            script,
            self.config_manager.get(),
            request,
            env_input_prefix=self.settings.env_input_prefix,
        )

    async def execute(self, script_id: str, request: ExecutionRequest) -> ExecutionResult:
        """Run a script to completion and return its output.

        A nonzero exit code is a normal result. Timeouts and cancellations are
        raised after the record has been finalized.
        """
        prepared = self.prepare(script_id, request)
        lock = self._lock_for(script_id)
        if self.settings.busy_policy == "reject" and lock.locked():
            raise ScriptBusyError(f"script {prepared.script_name!r} is already running")
        if lock.locked():
            logger.info("Script %s is busy, queueing execution", script_id)
        async with lock:
            return await self._run(prepared, incognito=request.incognito)

    def _next_start(self) -> tuple[int, datetime]:
        started_ns = max(time.time_ns(), self._last_started_ns + 1)
        self._last_started_ns = started_ns
        return started_ns, datetime.fromtimestamp(started_ns / 1_000_000_000, tz=timezone.utc)

    async def _run(self, prepared: PreparedCommand, *, incognito: bool) -> ExecutionResult:
        started_ns, started_at = self._next_start()
        record = ExecutionRecord(
            id=new_execution_id(prepared.script_id, started_ns),
            script_id=prepared.script_id,
            script_name=prepared.script_name,
            script_path=prepared.script_path,
            command=prepared.display_command,
            args=list(prepared.args),
            env=dict(prepared.caller_env),
            incognito=incognito,
            started_at=started_at,
        )
        # the in-flight marker must be durable before anything is spawned
        await self.history.append(record)

        running = RunningExecution(
            execution_id=record.id,
            script_id=prepared.script_id,
            started_at=started_at,
            incognito=incognito,
        )
        self._running[prepared.script_id] = running
        if incognito:
            logger.info("Starting incognito execution %s", record.id)
        else:
            logger.info("Starting execution %s: %s", record.id, shlex.join(prepared.argv))
        await self._publish(
            "execution.started",
            {
                "execution_id": record.id,
                "script_id": record.script_id,
                "started_at": started_at.isoformat(),
                "incognito": incognito,
            },
        )

        try:
            try:
                process = await spawn(prepared.argv, cwd=prepared.cwd, env=prepared.process_env)
            except OSError as exc:
                message = f"could not start {prepared.argv[0]!r}: {exc.strerror or exc}"
                failed = replace(
                    record,
                    status=ExecutionStatus.SPAWN_FAILED,
                    error_message=message,
                    output="",
                    finished_at=datetime.now(timezone.utc),
                )
                await self.history.finalize(failed)
                await self._announce_finish(failed)
                logger.error("Execution %s failed to start: %s", record.id, message)
                raise ProcessSpawnError(message, record.id) from exc

            running.pid = process.pid
            try:
                outcome = await supervise(
                    process,
                    timeout=self.settings.timeout_seconds,
                    max_output_bytes=self.settings.max_output_bytes,
                    cancel_event=running.cancel_event,
                    grace=self.settings.kill_grace_seconds,
                )
            except asyncio.CancelledError:
                interrupted = replace(
                    record,
                    status=ExecutionStatus.INTERRUPTED,
                    error_message="execution was interrupted by the service",
                    output="",
                    finished_at=datetime.now(timezone.utc),
                )
                await self.history.finalize(interrupted)
                raise
        finally:
            self._running.pop(prepared.script_id, None)

        status = _final_status(outcome)
        error_message = None
        if status is ExecutionStatus.TIMED_OUT:
            error_message = f"timed out after {self.settings.timeout_seconds:g}s"
        elif status is ExecutionStatus.CANCELLED:
            error_message = "cancelled by request"
        finished = replace(
            record,
            status=status,
            exit_code=outcome.exit_code,
            output=outcome.output,
            output_truncated=outcome.truncated,
            error_message=error_message,
            finished_at=datetime.now(timezone.utc),
        )
        await self.history.finalize(finished)
        await self._announce_finish(finished)
        result = ExecutionResult(record=finished, output=outcome.output)

        if status is ExecutionStatus.TIMED_OUT:
            logger.warning("Execution %s %s", record.id, error_message)
            raise ExecutionTimedOutError(f"execution {record.id} {error_message}", result)
        if status is ExecutionStatus.CANCELLED:
            logger.warning("Execution %s was cancelled", record.id)
            raise ExecutionCancelledError(f"execution {record.id} was cancelled", result)
        logger.info(
            "Execution %s finished with exit code %s in %sms",
            record.id,
            outcome.exit_code,
            finished.duration_ms,
        )
        return result

    async def _announce_finish(self, record: ExecutionRecord) -> None:
        await self._publish(
            "execution.finished",
            {
                "execution_id": record.id,
                "script_id": record.script_id,
                "status": record.status.value,
                "exit_code": record.exit_code,
                "finished_at": record.finished_at.isoformat() if record.finished_at else None,
                "incognito": record.incognito,
            },
        )

    async def _publish(self, event_type: str, data: dict[str, Any]) -> None:
        if self.events is not None:
            await self.events.publish(event_type, data)

    def cancel(self, script_id: str) -> RunningExecution:
        """Ask the running execution of a script to stop."""
        running = self._running.get(script_id)
        if running is None:
            raise ExecutionNotFoundError(f"script {script_id} has no running execution")
        running.cancel_event.set()
        logger.info("Cancellation requested for execution %s", running.execution_id)
        return running

    def running(self) -> list[RunningExecution]:
        return sorted(self._running.values(), key=lambda item: item.execution_id)

    def is_running(self, script_id: str) -> bool:
        return script_id in self._running

    async def shutdown(self, timeout: float = 5.0) -> None:
        """Cancel every running execution and wait for them to be recorded."""
        if not self._running:
            return
        logger.info("Stopping %d running execution(s)", len(self._running))
        for running in list(self._running.values()):
            running.cancel_event.set()
        deadline = time.monotonic() + timeout
        while self._running and time.monotonic() < deadline:
            await asyncio.sleep(0.05)
