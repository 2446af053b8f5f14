"""Child process spawning and supervision."""

from __future__ import annotations

import asyncio
import logging
import os
import signal
from collections import deque
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

logger = logging.getLogger(__name__)

READ_CHUNK = 64 * 1024
POSIX = os.name == "posix"


class BoundedBuffer:
    """Keeps the newest ``limit`` bytes written; older bytes are dropped."""

    def __init__(self, limit: int) -> None:
        self.limit = limit
        self.truncated = False
        self._chunks: deque[bytes] = deque()
        self._size = 0

    def __len__(self) -> int:
        return self._size

    def write(self, data: bytes) -> None:
        if not data:
            return
        self._chunks.append(data)
        self._size += len(data)
        while self._size > self.limit:
            self.truncated = True
            overflow = self._size - self.limit
            head = self._chunks[0]
            if len(head) <= overflow:
                self._chunks.popleft()
                self._size -= len(head)
            else:
                self._chunks[0] = head[overflow:]
                self._size -= overflow

    def getvalue(self) -> bytes:
        return b"".join(self._chunks)

    def text(self) -> str:
        return self.getvalue().decode("utf-8", errors="replace")


@dataclass(slots=True)
class ProcessOutcome:
    exit_code: Optional[int]
    output: str
    truncated: bool
    timed_out: bool = False
    cancelled: bool = False


async def spawn(
    argv: Sequence[str],
    *,
    cwd: str,
    env: Mapping[str, str],
) -> asyncio.subprocess.Process:
    """Start ``argv`` with stdout and stderr merged into one pipe.

    On POSIX the child leads a new session so the whole process tree can be
    signalled at once.
    """
    return await asyncio.create_subprocess_exec(
        *argv,
        cwd=cwd,
        env=dict(env),
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.STDOUT,
        start_new_session=POSIX,
    )


def _signal_tree(process: asyncio.subprocess.Process, sig: int) -> None:
    try:
        if POSIX:
            os.killpg(process.pid, sig)
        elif sig == signal.SIGTERM:
            process.terminate()
        else:
            process.kill()
    except (ProcessLookupError, PermissionError):
        pass


async def terminate_tree(process: asyncio.subprocess.Process, grace: float) -> None:
    """SIGTERM the process group, then SIGKILL whatever outlives ``grace``."""
    _signal_tree(process, signal.SIGTERM)
    try:
        await asyncio.wait_for(process.wait(), timeout=grace)
    except asyncio.TimeoutError:
        logger.warning("Process %s ignored SIGTERM, killing it", process.pid)
    _signal_tree(process, signal.SIGKILL if POSIX else signal.SIGTERM)
    await process.wait()


async def _pump(stream: asyncio.StreamReader, buffer: BoundedBuffer) -> None:
    while True:
        chunk = await stream.read(READ_CHUNK)
        if not chunk:
            return
        buffer.write(chunk)


async def supervise(
    process: asyncio.subprocess.Process,
    *,
    timeout: float,
    max_output_bytes: int,
    cancel_event: asyncio.Event,
    grace: float,
) -> ProcessOutcome:
    """Collect output until the process exits, times out or is cancelled."""
    buffer = BoundedBuffer(max_output_bytes)
    assert process.stdout is not None
    reader = asyncio.ensure_future(_pump(process.stdout, buffer))
    waiter = asyncio.ensure_future(process.wait())
    cancelled = asyncio.ensure_future(cancel_event.wait())
    timed_out = was_cancelled = False
    try:
        done, _ = await asyncio.wait(
            {waiter, cancelled},
            timeout=timeout,
            return_when=asyncio.FIRST_COMPLETED,
        )
        if waiter not in done:
            was_cancelled = cancelled in done
            timed_out = not was_cancelled
            await terminate_tree(process, grace)
    except asyncio.CancelledError:
        await asyncio.shield(terminate_tree(process, grace))
        raise
    finally:
        cancelled.cancel()
        if not waiter.done():
            waiter.cancel()

    try:
        # descendants that escaped the process group may still hold the pipe
        await asyncio.wait_for(asyncio.shield(reader), timeout=max(grace, 0.1))
    except asyncio.TimeoutError:
        logger.warning("Output of process %s still open after exit, detaching", process.pid)
        reader.cancel()

    return ProcessOutcome(
        exit_code=None if (timed_out or was_cancelled) else process.returncode,
        output=buffer.text(),
        truncated=buffer.truncated,
        timed_out=timed_out,
        cancelled=was_cancelled,
    )


__all__ = ["BoundedBuffer", "ProcessOutcome", "spawn", "supervise", "terminate_tree"]
