"""Async process runner.

Spawns one OS process per call through a :class:`ShellAdapter` and
offers three ways to consume it:

- ``run_captured``: wait for exit, return all of stdout (stderr is discarded)
- ``stream``: async iterator of :class:`OutputLine` events fed by a bounded queue
- ``run_streaming``: ``stream`` dispatched to per-stream line callbacks

Every invocation is bounded by a timeout; on expiry the child (and, on
POSIX, its process group) is killed and :class:`CommandTimeout` raised.
A child that cannot be launched raises :class:`SpawnError`; a non-zero
exit status is returned, never raised.
"""

from __future__ import annotations

import asyncio
import inspect
import os
import signal
import time
from dataclasses import dataclass
from enum import Enum
from typing import AsyncIterator, Awaitable, Callable

from azcli_inventory.constants import truncate
from azcli_inventory.errors import CommandTimeout, SpawnError
from azcli_inventory.logging import Loggers
from azcli_inventory.process.shell import ShellAdapter, detect_shell

logger = Loggers.process()

LineCallback = Callable[[str], "Awaitable[None] | None"]

DEFAULT_LINE_LIMIT = 1024 * 1024
DEFAULT_QUEUE_SIZE = 256


class StreamName(Enum):
    """Which pipe a line came from."""

    STDOUT = "stdout"
    STDERR = "stderr"


@dataclass(frozen=True)
class OutputLine:
    """One completed line of child output, without its line terminator."""

    stream: StreamName
    text: str


@dataclass
class CapturedOutput:
    """Result of :meth:`ProcessRunner.run_captured`.

    Attributes:
        command: The command string that was run.
        output: Full standard output text.
        exit_code: Exit status of the child.
        duration_ms: Wall-clock duration in milliseconds.
    """

    command: str
    output: str
    exit_code: int
    duration_ms: int = 0

    @property
    def success(self) -> bool:
        return self.exit_code == 0


class ProcessStream:
    """Async iterator over the output lines of one child process.

    ``exit_code`` is set once iteration completes normally. Leaving the
    loop early (``break`` or an exception) kills the child.

    Example:
        stream = runner.stream("az login")
        async for line in stream:
            print(line.stream.value, line.text)
        print(stream.exit_code)
    """

    def __init__(self, runner: ProcessRunner, command: str, timeout: float | None) -> None:
        self._runner = runner
        self.command = command
        self.timeout = timeout
        self.exit_code: int | None = None

    def __aiter__(self) -> AsyncIterator[OutputLine]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[OutputLine]:
        runner = self._runner
        loop = asyncio.get_running_loop()
        deadline = None if self.timeout is None else loop.time() + self.timeout

        process = await runner._spawn(
            self.command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        queue: asyncio.Queue[OutputLine | None] = asyncio.Queue(maxsize=runner.queue_size)
        readers = [
            asyncio.create_task(runner._pump(process.stdout, StreamName.STDOUT, queue)),
            asyncio.create_task(runner._pump(process.stderr, StreamName.STDERR, queue)),
        ]
        start = time.monotonic()

        try:
            open_streams = len(readers)
            while open_streams:
                item = await _wait_until(queue.get(), deadline, loop)
                if item is None:
                    open_streams -= 1
                    continue
                yield item

            self.exit_code = await _wait_until(process.wait(), deadline, loop)
        except asyncio.TimeoutError:
            logger.warning(
                "command_timeout",
                command=truncate(self.command),
                timeout=self.timeout,
            )
            await runner._kill(process)
            raise CommandTimeout(self.command, self.timeout or 0) from None
        finally:
            for reader in readers:
                if not reader.done():
                    reader.cancel()
            await asyncio.gather(*readers, return_exceptions=True)
            if process.returncode is None:
                await runner._kill(process)

        logger.debug(
            "command_exited",
            command=truncate(self.command),
            exit_code=self.exit_code,
            duration_ms=int((time.monotonic() - start) * 1000),
        )


async def _wait_until(awaitable, deadline: float | None, loop: asyncio.AbstractEventLoop):
    """Await ``awaitable`` but give up at the absolute loop time ``deadline``."""
    if deadline is None:
        return await awaitable
    remaining = deadline - loop.time()
    if remaining <= 0:
        if inspect.iscoroutine(awaitable):
            awaitable.close()
        raise asyncio.TimeoutError
    return await asyncio.wait_for(awaitable, remaining)


class ProcessRunner:
    """Runs command strings as child processes through the host shell.

    Args:
        shell: Interpreter adapter; detected from the host when omitted.
        timeout: Default timeout in seconds for calls that don't pass one.
        encoding: Encoding used to decode child output.
        line_limit: Longest line the reader buffers before discarding it.
        queue_size: Capacity of the line channel used by ``stream``.
    """

    def __init__(
        self,
        shell: ShellAdapter | None = None,
        *,
        timeout: float | None = None,
        encoding: str = "utf-8",
        line_limit: int = DEFAULT_LINE_LIMIT,
        queue_size: int = DEFAULT_QUEUE_SIZE,
    ) -> None:
        self.shell = shell or detect_shell()
        self.timeout = timeout
        self.encoding = encoding
        self.line_limit = line_limit
        self.queue_size = queue_size

    async def run_captured(self, command: str, *, timeout: float | None = None) -> CapturedOutput:
        """Run ``command`` to completion and return its stdout and exit code.

        Raises:
            SpawnError: The interpreter could not be launched.
            CommandTimeout: The command ran longer than the timeout.
        """
        timeout = self.timeout if timeout is None else timeout
        start = time.monotonic()
        process = await self._spawn(
            command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.DEVNULL,
        )
        try:
            stdout, _ = await asyncio.wait_for(process.communicate(), timeout)
        except asyncio.TimeoutError:
            logger.warning("command_timeout", command=truncate(command), timeout=timeout)
            await self._kill(process)
            raise CommandTimeout(command, timeout or 0) from None
        finally:
            if process.returncode is None:
                await self._kill(process)

        duration_ms = int((time.monotonic() - start) * 1000)
        output = (stdout or b"").decode(self.encoding, errors="replace")
        logger.debug(
            "command_exited",
            command=truncate(command),
            exit_code=process.returncode,
            duration_ms=duration_ms,
            stdout_len=len(output),
        )
        return CapturedOutput(
            command=command,
            output=output,
            exit_code=process.returncode,
            duration_ms=duration_ms,
        )

    def stream(self, command: str, *, timeout: float | None = None) -> ProcessStream:
        """Return an async iterator over the output lines of ``command``."""
        return ProcessStream(self, command, self.timeout if timeout is None else timeout)

    async def run_streaming(
        self,
        command: str,
        on_stdout_line: LineCallback,
        on_stderr_line: LineCallback,
        *,
        timeout: float | None = None,
    ) -> int:
        """Run ``command``, calling a callback per completed line, and return the exit code.

        Callbacks may be plain functions or coroutine functions. Order is
        preserved within each stream; the two streams may interleave.
        """
        stream = self.stream(command, timeout=timeout)
        async for line in stream:
            callback = on_stdout_line if line.stream is StreamName.STDOUT else on_stderr_line
            result = callback(line.text)
            if inspect.isawaitable(result):
                await result
        assert stream.exit_code is not None
        return stream.exit_code

    async def _spawn(self, command: str, *, stdout: int, stderr: int) -> asyncio.subprocess.Process:
        invocation = self.shell.build(command)
        try:
            if invocation.raw_command is not None:
                process = await asyncio.create_subprocess_shell(
                    invocation.raw_command,
                    stdin=asyncio.subprocess.DEVNULL,
                    stdout=stdout,
                    stderr=stderr,
                    limit=self.line_limit,
                )
            else:
                process = await asyncio.create_subprocess_exec(
                    *invocation.argv,
                    stdin=asyncio.subprocess.DEVNULL,
                    stdout=stdout,
                    stderr=stderr,
                    limit=self.line_limit,
                    start_new_session=True,
                )
        except OSError as exc:
            logger.error(
                "command_spawn_failed",
                command=truncate(command),
                executable=invocation.executable,
                error=str(exc),
            )
            raise SpawnError(command, exc) from exc

        logger.debug(
            "command_spawned",
            command=truncate(command),
            shell=self.shell.name,
            pid=process.pid,
        )
        return process

    async def _pump(
        self,
        reader: asyncio.StreamReader | None,
        name: StreamName,
        queue: asyncio.Queue[OutputLine | None],
    ) -> None:
        """Copy lines from one pipe into the shared queue, then post a sentinel."""
        if reader is not None:
            while True:
                try:
                    raw = await reader.readline()
                except ValueError:
                    # readline() drops the oversized chunk; keep reading after it
                    logger.warning("output_line_too_long", stream=name.value, limit=self.line_limit)
                    continue
                if not raw:
                    break
                text = raw.decode(self.encoding, errors="replace").rstrip("\r\n")
                await queue.put(OutputLine(name, text))
        await queue.put(None)

    async def _kill(self, process: asyncio.subprocess.Process) -> None:
        if process.returncode is not None:
            return
        try:
            if self.shell.is_windows:
                process.kill()
            else:
                os.killpg(process.pid, signal.SIGKILL)
        except ProcessLookupError:
            pass
        await process.wait()


__all__ = [
    "CapturedOutput",
    "LineCallback",
    "OutputLine",
    "ProcessRunner",
    "ProcessStream",
    "StreamName",
]
