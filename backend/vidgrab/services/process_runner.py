"""Child-process invocation for the external extraction and media tools.

Commands are always argument lists handed to the OS directly; nothing goes
through a shell, so URL content can never be interpreted as shell syntax.
"""
import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from typing import AsyncIterator, Deque, List, Optional, Sequence

from ..config import MAX_TOOL_OUTPUT_BYTES, STREAM_CHUNK_SIZE
from .errors import DownloaderError, ExternalToolFailure, classify_upstream_error

logger = logging.getLogger(__name__)

# stderr lines that are progress chatter rather than diagnostics
_NOISE_PREFIXES = ("[download]", "[youtube]", "[info]", "[merger]", "[twitter]", "[reddit]", "WARNING")

STDERR_TAIL_LINES = 50


class _OutputLimitExceeded(Exception):
    pass


@dataclass
class ProcessResult:
    args: List[str]
    returncode: int
    stdout: bytes
    stderr: str

    @property
    def text(self) -> str:
        return self.stdout.decode("utf-8", errors="replace")


def tool_failure(tool: str, returncode: Optional[int], stderr: str) -> DownloaderError:
    """Turn a failed run into the most specific error we can name"""
    classified = classify_upstream_error(stderr)
    if isinstance(classified, ExternalToolFailure):
        classified.returncode = returncode
        classified.stderr = stderr
    if classified is not None:
        return classified
    return ExternalToolFailure(returncode=returncode, stderr=stderr)


def _tail(text: str, lines: int = 6) -> str:
    return "\n".join(text.strip().splitlines()[-lines:])


async def _read_limited(stream: asyncio.StreamReader, limit: int) -> bytes:
    buffer = bytearray()
    while True:
        chunk = await stream.read(64 * 1024)
        if not chunk:
            return bytes(buffer)
        buffer += chunk
        if len(buffer) > limit:
            raise _OutputLimitExceeded()


async def _terminate(process: asyncio.subprocess.Process) -> None:
    if process.returncode is None:
        try:
            process.kill()
        except ProcessLookupError:
            pass
        await process.wait()


async def _spawn(args: Sequence[str], tool: str, **kwargs) -> asyncio.subprocess.Process:
    try:
        return await asyncio.create_subprocess_exec(*args, **kwargs)
    except FileNotFoundError as exc:
        raise ExternalToolFailure(f"{tool} is not installed or not available in PATH") from exc
    except PermissionError as exc:
        raise ExternalToolFailure(f"{tool} could not be executed") from exc


async def run_buffered(
    args: Sequence[str],
    tool: str,
    timeout: Optional[float] = None,
    max_output: int = MAX_TOOL_OUTPUT_BYTES,
) -> ProcessResult:
    """Run a command to completion and capture its output.

    Raises a DownloaderError on spawn failure, timeout, output overflow, or a
    non-zero exit status. The child is killed on every early exit, including
    cancellation of the awaiting task.
    """
    args = [str(a) for a in args]
    logger.debug("Running %s: %s", tool, args)
    process = await _spawn(
        args,
        tool,
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    try:
        stdout, stderr_bytes, returncode = await asyncio.wait_for(
            asyncio.gather(
                _read_limited(process.stdout, max_output),
                _read_limited(process.stderr, max_output),
                process.wait(),
            ),
            timeout=timeout,
        )
    except asyncio.TimeoutError:
        logger.error("%s timed out after %ss", tool, timeout)
        raise ExternalToolFailure(f"{tool} timed out", timed_out=True)
    except _OutputLimitExceeded:
        logger.error("%s exceeded the %d byte output ceiling", tool, max_output)
        raise ExternalToolFailure(f"{tool} produced too much output")
    finally:
        await _terminate(process)

    stderr = stderr_bytes.decode("utf-8", errors="replace")
    if returncode != 0:
        logger.error("%s exited with code %s: %s", tool, returncode, _tail(stderr))
        raise tool_failure(tool, returncode, stderr)
    return ProcessResult(args=args, returncode=returncode, stdout=stdout, stderr=stderr)


class StreamingProcess:
    """A child whose stdout is consumed live.

    Use as an async context manager; leaving the block kills the child if it
    is still running, which is how client disconnects stop orphaned work.
    """

    def __init__(
        self,
        args: Sequence[str],
        tool: str,
        chunk_size: int = STREAM_CHUNK_SIZE,
        read_timeout: Optional[float] = None,
    ):
        self.args = [str(a) for a in args]
        self.tool = tool
        self.chunk_size = chunk_size
        # Longest wait for the next chunk before the child counts as stalled
        self.read_timeout = read_timeout
        self.process: Optional[asyncio.subprocess.Process] = None
        self.fatal_lines: List[str] = []
        self._stderr_tail: Deque[str] = deque(maxlen=STDERR_TAIL_LINES)
        self._stderr_task: Optional[asyncio.Task] = None

    async def start(self) -> "StreamingProcess":
        logger.debug("Streaming %s: %s", self.tool, self.args)
        self.process = await _spawn(
            self.args,
            self.tool,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        self._stderr_task = asyncio.ensure_future(self._monitor_stderr())
        return self

    async def __aenter__(self) -> "StreamingProcess":
        return await self.start()

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    @property
    def stderr(self) -> str:
        return "\n".join(self._stderr_tail)

    async def _monitor_stderr(self) -> None:
        async for raw in self.process.stderr:
            line = raw.decode("utf-8", errors="replace").rstrip()
            if not line:
                continue
            self._stderr_tail.append(line)
            if line.startswith("ERROR") or "error:" in line.lower():
                self.fatal_lines.append(line)
                logger.error("%s: %s", self.tool, line)
            elif not line.startswith(_NOISE_PREFIXES):
                logger.debug("%s: %s", self.tool, line)

    async def read_chunk(self) -> bytes:
        """Next chunk of stdout, or b"" at end of stream"""
        try:
            return await asyncio.wait_for(self.process.stdout.read(self.chunk_size), timeout=self.read_timeout)
        except asyncio.TimeoutError:
            logger.error("%s produced no output for %ss", self.tool, self.read_timeout)
            raise ExternalToolFailure(f"{self.tool} stalled", timed_out=True)

    async def iter_chunks(self) -> AsyncIterator[bytes]:
        while True:
            chunk = await self.read_chunk()
            if not chunk:
                return
            yield chunk

    async def wait(self) -> int:
        returncode = await self.process.wait()
        if self._stderr_task is not None:
            await self._stderr_task
        return returncode

    def failure(self) -> DownloaderError:
        stderr = "\n".join(self.fatal_lines) or self.stderr
        return tool_failure(self.tool, self.process.returncode if self.process else None, stderr)

    async def close(self) -> None:
        if self.process is None:
            return
        if self.process.returncode is None:
            logger.info("Killing %s (pid %s)", self.tool, self.process.pid)
        await _terminate(self.process)
        if self._stderr_task is not None and not self._stderr_task.done():
            self._stderr_task.cancel()
            try:
                await self._stderr_task
            except asyncio.CancelledError:
                pass
