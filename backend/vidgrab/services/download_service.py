"""Download orchestration: resolve, fetch, verify, convert, deliver"""
import asyncio
import logging
import os
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, FrozenSet, Optional

from fastapi.responses import Response
from starlette.concurrency import run_in_threadpool

from ..config import DOWNLOAD_TIMEOUT_SECONDS, TEMP_DIR
from ..models.schemas import DownloadRequest
from ..utils.file_utils import TempFiles
from ..utils.filename_sanitizer import get_safe_filename
from ..utils.platform_detector import Platform, extract_youtube_id
from .codec_verifier import CodecVerifier
from .delivery import file_response, file_stream_response, process_stream_response
from .errors import ConversionFailure, ExternalToolFailure
from .extractor import Extractor
from .format_resolver import FormatSelection, normalize_quality, resolve_format
from .transcoder import EncodeProfile, Transcoder
from .video_info_service import VideoInfoService

logger = logging.getLogger(__name__)

DOWNLOAD_ALTERNATIVES = [
    'Use a browser extension like "Video DownloadHelper"',
    "Try online services like y2mate or savefrom",
    "Use VPN and try again",
    "Wait a few hours and retry",
]


class Strategy(str, Enum):
    # Download to a temp file, stream it back with Content-Length;
    # probed first when the selection may need conversion
    PREFER_PREMUXED = "prefer_premuxed"
    # Download, always re-encode with the baseline profile
    FORCE_RECODE = "force_recode"
    # Pipe the tool's stdout straight into the response
    DIRECT_STREAM = "direct_stream"
    # Download, probe codecs, re-encode only when needed
    PROBE_THEN_CONVERT = "probe_then_convert"


ALL_PLATFORMS = frozenset({Platform.YOUTUBE, Platform.TWITTER, Platform.REDDIT})
YOUTUBE_ONLY = frozenset({Platform.YOUTUBE})


@dataclass(frozen=True)
class EndpointPolicy:
    strategy: Strategy
    platforms: FrozenSet[Platform] = ALL_PLATFORMS
    premuxed_only: bool = False
    # When False the filename comes from the video id and no metadata call is made
    lookup_title: bool = True


def _read_file(path: str) -> bytes:
    with open(path, "rb") as f:
        return f.read()


class DownloadService:
    """Service for turning a validated request into an MP4 response"""

    def __init__(
        self,
        info_service: VideoInfoService,
        extractor: Optional[Extractor] = None,
        verifier: Optional[CodecVerifier] = None,
        transcoder: Optional[Transcoder] = None,
        temp_dir: str = TEMP_DIR,
        first_byte_timeout: Optional[float] = DOWNLOAD_TIMEOUT_SECONDS,
        remove: Callable[[str], None] = os.remove,
    ):
        self.info_service = info_service
        self.extractor = extractor or Extractor()
        self.verifier = verifier or CodecVerifier()
        self.transcoder = transcoder or Transcoder()
        self.temp_dir = temp_dir
        self.first_byte_timeout = first_byte_timeout
        self.remove = remove

    def temp_files(self) -> TempFiles:
        return TempFiles(self.temp_dir, remove=self.remove)

    async def build_filename(
        self,
        request: DownloadRequest,
        platform: Platform,
        policy: EndpointPolicy,
        selection: FormatSelection,
    ) -> str:
        if policy.lookup_title:
            info = await self.info_service.get_video_info(request.url, platform)
            title = info.title
        else:
            video_id = extract_youtube_id(request.url) if platform == Platform.YOUTUBE else None
            title = f"{platform.value}_{video_id or 'video'}"
        return get_safe_filename(title, selection.quality)

    async def deliver(self, request: DownloadRequest, platform: Platform, policy: EndpointPolicy) -> Response:
        """Run the request through the policy's strategy and build the response"""
        premuxed_only = policy.premuxed_only or policy.strategy == Strategy.DIRECT_STREAM
        selection = resolve_format(platform, request.quality, request.format_id, premuxed_only=premuxed_only)
        filename = await self.build_filename(request, platform, policy, selection)
        logger.info(
            "%s: %s quality=%s format=%s", policy.strategy.value, request.url, selection.quality, selection.selector
        )

        if policy.strategy == Strategy.DIRECT_STREAM:
            return await self._direct_stream(request.url, selection, filename)

        temps = self.temp_files()
        handed_off = False
        try:
            path = temps.create("download")
            started = time.monotonic()
            await self.extractor.download(request.url, selection, path)
            logger.info("Download finished in %.1fs", time.monotonic() - started)

            if policy.strategy == Strategy.PROBE_THEN_CONVERT or self._may_need_conversion(policy, selection):
                report = await self.verifier.verify(path)
                if not report.is_target_compatible:
                    path = await self._reencode(temps, path, EncodeProfile.STANDARD)
            elif policy.strategy == Strategy.FORCE_RECODE:
                path = await self._reencode(temps, path, EncodeProfile.BASELINE)

            if policy.strategy == Strategy.PREFER_PREMUXED:

                async def release_temps() -> None:
                    temps.cleanup()

                response = file_stream_response(path, filename, on_close=release_temps)
                handed_off = True
                return response

            data = await run_in_threadpool(_read_file, path)
            return file_response(data, filename)
        finally:
            if not handed_off:
                temps.cleanup()

    @staticmethod
    def _may_need_conversion(policy: EndpointPolicy, selection: FormatSelection) -> bool:
        # A merged YouTube selection can fall through to VP9/Opus alternatives
        return policy.strategy == Strategy.PREFER_PREMUXED and selection.needs_conversion

    async def _reencode(self, temps: TempFiles, source: str, profile: EncodeProfile) -> str:
        """Return the re-encoded path, or source if conversion failed"""
        target = temps.create("converted")
        started = time.monotonic()
        try:
            await self.transcoder.transcode(source, target, profile)
        except ConversionFailure as e:
            logger.warning("Re-encoding failed, continuing with the original file: %s", e)
            temps.release(target)
            return source
        logger.info("Re-encoding finished in %.1fs", time.monotonic() - started)
        temps.release(source)
        return target

    async def _direct_stream(self, url: str, selection: FormatSelection, filename: str) -> Response:
        process = self.extractor.open_stream(url, selection)
        await process.start()
        try:
            # Wait for the first bytes so an immediate failure is still a JSON error
            first_chunk = await asyncio.wait_for(process.read_chunk(), timeout=self.first_byte_timeout)
            if not first_chunk:
                returncode = await process.wait()
                if returncode != 0:
                    raise process.failure()
                raise ExternalToolFailure("Download produced no data")
        except asyncio.TimeoutError:
            await process.close()
            raise ExternalToolFailure("Timed out waiting for the download to start", timed_out=True)
        except BaseException:
            await process.close()
            raise
        logger.info("%s started streaming data", process.tool)
        return process_stream_response(process, first_chunk, filename, on_close=process.close)

    @staticmethod
    def alternatives(request: DownloadRequest, platform: Platform) -> Dict:
        """Suggestions returned when automated download is not possible"""
        quality = normalize_quality(request.quality)
        video_id = extract_youtube_id(request.url) if platform == Platform.YOUTUBE else None
        return {
            "success": True,
            "message": "Please use the browser extension or alternative download method",
            "filename": f"{platform.value}_{video_id or 'video'}_{quality}.mp4",
            "videoId": video_id,
            "quality": quality,
            "alternatives": list(DOWNLOAD_ALTERNATIVES),
        }
