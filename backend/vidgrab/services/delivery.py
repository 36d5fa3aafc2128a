"""HTTP responses carrying the finished MP4"""
import logging
import os
from typing import AsyncIterator, Awaitable, Callable, Dict, Optional

import anyio
from fastapi.responses import Response, StreamingResponse
from starlette.concurrency import run_in_threadpool
from starlette.types import Receive, Scope, Send

from ..config import STREAM_CHUNK_SIZE
from .process_runner import StreamingProcess

logger = logging.getLogger(__name__)

VIDEO_MEDIA_TYPE = "video/mp4"

CloseHook = Callable[[], Awaitable[None]]


def video_headers(filename: str, content_length: Optional[int] = None) -> Dict[str, str]:
    headers = {
        "Content-Disposition": f'attachment; filename="{filename}"',
        "Cache-Control": "no-cache",
    }
    if content_length is None:
        headers["Transfer-Encoding"] = "chunked"
    else:
        headers["Content-Length"] = str(content_length)
    return headers


class CleanupStreamingResponse(StreamingResponse):
    """StreamingResponse that runs on_close exactly once however it ends.

    Covers normal completion, errors raised while streaming, and the client
    going away mid-transfer. The hook runs shielded from cancellation so a
    disconnect cannot interrupt it.
    """

    def __init__(self, content, on_close: Optional[CloseHook] = None, **kwargs):
        super().__init__(content, **kwargs)
        self._on_close = on_close
        self._closed = False

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        with anyio.CancelScope(shield=True):
            # Release the open file / pipe before the hook deletes anything
            aclose = getattr(self.body_iterator, "aclose", None)
            if aclose is not None:
                try:
                    await aclose()
                except Exception as e:
                    logger.warning("Error closing response body: %s", e)
            if self._on_close is not None:
                await self._on_close()

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            await self.close()


def file_response(data: bytes, filename: str) -> Response:
    """Whole file in one body with an exact Content-Length"""
    return Response(
        content=data,
        media_type=VIDEO_MEDIA_TYPE,
        headers=video_headers(filename, content_length=len(data)),
    )


async def _iter_file(path: str, chunk_size: int) -> AsyncIterator[bytes]:
    with open(path, "rb") as f:
        while True:
            chunk = await run_in_threadpool(f.read, chunk_size)
            if not chunk:
                return
            yield chunk


def file_stream_response(
    path: str,
    filename: str,
    on_close: CloseHook,
    chunk_size: int = STREAM_CHUNK_SIZE,
) -> CleanupStreamingResponse:
    """Stream a finished file; on_close deletes it"""
    return CleanupStreamingResponse(
        _iter_file(path, chunk_size),
        on_close=on_close,
        media_type=VIDEO_MEDIA_TYPE,
        headers=video_headers(filename, content_length=os.path.getsize(path)),
    )


async def _iter_process(process: StreamingProcess, first_chunk: bytes) -> AsyncIterator[bytes]:
    if first_chunk:
        yield first_chunk
    async for chunk in process.iter_chunks():
        yield chunk
    returncode = await process.wait()
    if returncode != 0:
        # Headers are already sent; aborting the body is all that is left
        logger.error("%s exited with code %s mid-stream", process.tool, returncode)
        raise process.failure()
    logger.info("Stream ended successfully")


def process_stream_response(
    process: StreamingProcess,
    first_chunk: bytes,
    filename: str,
    on_close: CloseHook,
) -> CleanupStreamingResponse:
    """Chunked response fed straight from the tool's stdout"""
    return CleanupStreamingResponse(
        _iter_process(process, first_chunk),
        on_close=on_close,
        media_type=VIDEO_MEDIA_TYPE,
        headers=video_headers(filename),
    )
