"""ffmpeg re-encoding to an H.264/AAC MP4"""
import logging
import os
from enum import Enum
from typing import List, Optional

from ..config import FFMPEG_COMMAND, TRANSCODE_TIMEOUT_SECONDS
from .errors import ConversionFailure, DownloaderError
from .process_runner import run_buffered

logger = logging.getLogger(__name__)


class EncodeProfile(str, Enum):
    STANDARD = "standard"
    # Low-memory settings that play on very old Windows Media Player builds
    BASELINE = "baseline"


_PROFILE_ARGS = {
    EncodeProfile.STANDARD: [
        "-c:v", "libx264",
        "-preset", "fast",
        "-crf", "23",
        "-pix_fmt", "yuv420p",
        "-c:a", "aac",
        "-b:a", "192k",
    ],
    EncodeProfile.BASELINE: [
        "-c:v", "libx264",
        "-preset", "ultrafast",
        "-profile:v", "baseline",
        "-level:v", "3.0",
        "-pix_fmt", "yuv420p",
        "-refs", "1",
        "-crf", "28",
        "-bf", "0",
        "-threads", "1",
        "-c:a", "aac",
        "-b:a", "128k",
        "-ar", "44100",
        "-ac", "2",
    ],
}


class Transcoder:
    def __init__(self, command: str = FFMPEG_COMMAND, timeout: Optional[float] = TRANSCODE_TIMEOUT_SECONDS):
        self.command = command
        self.timeout = timeout

    def transcode_args(self, source: str, target: str, profile: EncodeProfile = EncodeProfile.STANDARD) -> List[str]:
        return (
            [self.command, "-hide_banner", "-loglevel", "error", "-y", "-i", source]
            + _PROFILE_ARGS[profile]
            + ["-movflags", "+faststart", "-f", "mp4", target]
        )

    async def transcode(self, source: str, target: str, profile: EncodeProfile = EncodeProfile.STANDARD) -> str:
        """Re-encode source into target; raises ConversionFailure"""
        logger.info("Re-encoding %s (%s profile)", source, profile.value)
        try:
            await run_buffered(self.transcode_args(source, target, profile), "ffmpeg", timeout=self.timeout)
        except DownloaderError as e:
            raise ConversionFailure(str(e)) from e
        if not os.path.exists(target) or os.path.getsize(target) == 0:
            raise ConversionFailure("ffmpeg produced no output")
        return target
