"""Codec probing with ffprobe"""
import json
import logging
from dataclasses import dataclass
from typing import Optional

from ..config import FFPROBE_COMMAND, PROBE_TIMEOUT_SECONDS
from .errors import DownloaderError
from .process_runner import run_buffered

logger = logging.getLogger(__name__)

# What Windows Media Player plays without extra codec packs
COMPATIBLE_VIDEO_CODECS = ("h264", "avc1")
COMPATIBLE_AUDIO_CODECS = ("aac", "mp3")


@dataclass(frozen=True)
class CodecReport:
    video_codec: Optional[str] = None
    audio_codec: Optional[str] = None
    is_target_compatible: bool = False


def is_compatible(video_codec: Optional[str], audio_codec: Optional[str]) -> bool:
    if not video_codec or not audio_codec:
        return False
    return (
        any(codec in video_codec.lower() for codec in COMPATIBLE_VIDEO_CODECS)
        and any(codec in audio_codec.lower() for codec in COMPATIBLE_AUDIO_CODECS)
    )


def parse_streams(payload: dict) -> CodecReport:
    """First video and first audio codec from ffprobe's -show_streams JSON"""
    video_codec = None
    audio_codec = None
    for stream in payload.get("streams") or []:
        codec_type = stream.get("codec_type")
        if codec_type == "video" and video_codec is None:
            video_codec = stream.get("codec_name")
        elif codec_type == "audio" and audio_codec is None:
            audio_codec = stream.get("codec_name")
    return CodecReport(video_codec, audio_codec, is_compatible(video_codec, audio_codec))


class CodecVerifier:
    def __init__(self, command: str = FFPROBE_COMMAND, timeout: Optional[float] = PROBE_TIMEOUT_SECONDS):
        self.command = command
        self.timeout = timeout

    def probe_args(self, path: str):
        return [self.command, "-v", "quiet", "-print_format", "json", "-show_streams", path]

    async def verify(self, path: str) -> CodecReport:
        """Never raises; a failed probe reports the file as incompatible"""
        try:
            result = await run_buffered(self.probe_args(path), "ffprobe", timeout=self.timeout)
            report = parse_streams(json.loads(result.text or "{}"))
        except (DownloaderError, ValueError) as e:
            logger.warning("Probe failed for %s, will convert: %s", path, e)
            return CodecReport()
        logger.info(
            "Codec check - video: %s, audio: %s, compatible: %s",
            report.video_codec, report.audio_codec, report.is_target_compatible,
        )
        return report
