"""yt-dlp command-line invocations"""
import logging
import os
from typing import List, Optional, Sequence

from ..config import (
    DOWNLOAD_TIMEOUT_SECONDS,
    FFMPEG_LOCATION,
    STREAM_CHUNK_SIZE,
    STREAM_IDLE_TIMEOUT_SECONDS,
    USER_AGENT,
    YTDLP_COMMAND,
)
from .errors import ExternalToolFailure
from .format_resolver import FormatSelection
from .process_runner import StreamingProcess, run_buffered

logger = logging.getLogger(__name__)

TOOL_NAME = "yt-dlp"


class Extractor:
    """Builds and runs yt-dlp argument lists"""

    def __init__(
        self,
        command: Optional[Sequence[str]] = None,
        timeout: Optional[float] = DOWNLOAD_TIMEOUT_SECONDS,
        ffmpeg_location: Optional[str] = FFMPEG_LOCATION,
        user_agent: str = USER_AGENT,
        idle_timeout: Optional[float] = STREAM_IDLE_TIMEOUT_SECONDS,
    ):
        self.command = list(command or YTDLP_COMMAND)
        self.timeout = timeout
        self.idle_timeout = idle_timeout
        self.ffmpeg_location = ffmpeg_location
        self.user_agent = user_agent

    def _base_args(self) -> List[str]:
        args = self.command + [
            "--no-warnings",
            "--no-playlist",
            "--no-progress",
            "--user-agent", self.user_agent,
            # Retry options
            "--retries", "10",
            "--fragment-retries", "10",
        ]
        if self.ffmpeg_location:
            args += ["--ffmpeg-location", self.ffmpeg_location]
        return args

    def download_args(self, url: str, selection: FormatSelection, output_path: str) -> List[str]:
        args = self._base_args() + ["-f", selection.selector]
        if selection.needs_merging:
            args += ["--merge-output-format", "mp4"]
        # "--" keeps a URL starting with "-" from being read as an option
        return args + ["-o", output_path, "--", url]

    def stream_args(self, url: str, selection: FormatSelection) -> List[str]:
        return self._base_args() + ["-f", selection.selector, "-o", "-", "--", url]

    async def download(self, url: str, selection: FormatSelection, output_path: str) -> str:
        """Download to output_path and return it once verified non-empty"""
        logger.info("Downloading %s with format %s", url, selection.selector)
        await run_buffered(self.download_args(url, selection, output_path), TOOL_NAME, timeout=self.timeout)
        if not os.path.exists(output_path):
            raise ExternalToolFailure("Download failed - file not created")
        if os.path.getsize(output_path) == 0:
            raise ExternalToolFailure("Downloaded file is empty")
        return output_path

    def open_stream(self, url: str, selection: FormatSelection) -> StreamingProcess:
        logger.info("Streaming %s with format %s", url, selection.selector)
        return StreamingProcess(
            self.stream_args(url, selection),
            TOOL_NAME,
            chunk_size=STREAM_CHUNK_SIZE,
            read_timeout=self.idle_timeout,
        )
