"""Service for fetching video information"""
import asyncio
import logging
from typing import Dict, List, Optional

import yt_dlp
from yt_dlp.utils import DownloadError
from starlette.concurrency import run_in_threadpool

from ..config import FFMPEG_LOCATION, METADATA_TIMEOUT_SECONDS, USER_AGENT
from ..models.schemas import VideoFormat, VideoInfo
from ..utils.platform_detector import Platform
from .errors import ExternalToolFailure, NoVideoFound, UpstreamUnavailable, classify_upstream_error
from .info_cache import VideoInfoCache

logger = logging.getLogger(__name__)

# (quality, format id offered to the client, itag that must exist, height)
YOUTUBE_COMPATIBLE_FORMATS = [
    ("1080p", "137+140", "137", 1080),
    ("720p", "22", "22", 720),
    ("480p", "135+140", "135", 480),
    ("360p", "18", "18", 360),
]


def _filesize(fmt: dict) -> Optional[int]:
    size = fmt.get("filesize") or fmt.get("filesize_approx")
    return int(size) if size else None


def _youtube_formats(raw_formats: List[dict]) -> List[VideoFormat]:
    by_id: Dict[str, dict] = {str(f.get("format_id")): f for f in raw_formats}
    heights = {f.get("height") for f in raw_formats if f.get("height")}
    formats = []
    for quality, format_id, itag, height in YOUTUBE_COMPATIBLE_FORMATS:
        if itag in by_id:
            formats.append(VideoFormat(quality=quality, format="mp4", size=_filesize(by_id[itag]), format_id=format_id))
        elif height in heights:
            # No H.264 itag at this height; the resolver's quality chain decides
            formats.append(VideoFormat(quality=quality, format="mp4"))
    return formats


def _mp4_formats(raw_formats: List[dict], keep_format_ids: bool) -> List[VideoFormat]:
    candidates = sorted(
        (f for f in raw_formats if f.get("ext") == "mp4" and f.get("height") and f.get("url")),
        key=lambda f: f["height"],
        reverse=True,
    )
    formats = []
    seen_qualities = set()
    for f in candidates:
        quality = f"{f['height']}p"
        if quality in seen_qualities:
            continue
        seen_qualities.add(quality)
        formats.append(VideoFormat(
            quality=quality,
            format="mp4",
            size=_filesize(f),
            url=f.get("url"),
            format_id=str(f.get("format_id")) if keep_format_ids else None,
        ))
    return formats


def build_video_info(info: dict, platform: Platform) -> VideoInfo:
    """Map yt-dlp's info dict onto VideoInfo with client-facing formats"""
    if info.get("entries"):
        # Galleries and multi-video posts: take the first entry with media
        entry = next((e for e in info["entries"] if e and (e.get("formats") or e.get("url"))), None)
        if entry is None:
            raise NoVideoFound("No video was found in this post")
        info = entry

    raw_formats = info.get("formats") or []
    if not raw_formats and not info.get("url"):
        raise NoVideoFound("No video was found in this post")

    if platform == Platform.YOUTUBE:
        formats = _youtube_formats(raw_formats)
    else:
        # Reddit DASH video ids carry no audio, so Reddit picks by quality
        formats = _mp4_formats(raw_formats, keep_format_ids=platform != Platform.REDDIT)
    if not formats:
        formats = [VideoFormat(quality="best", format="mp4")]

    default_title = "Twitter Video" if platform == Platform.TWITTER else "video"
    return VideoInfo(
        title=info.get("title") or default_title,
        duration=info.get("duration"),
        thumbnail=info.get("thumbnail"),
        author=info.get("uploader") or info.get("channel") or info.get("author"),
        platform=platform,
        formats=formats,
    )


class VideoInfoService:
    """Service for retrieving video metadata"""

    def __init__(self, cache: VideoInfoCache, timeout: Optional[float] = METADATA_TIMEOUT_SECONDS):
        self.cache = cache
        self.timeout = timeout

    @staticmethod
    def _ydl_opts() -> Dict:
        ydl_opts = {
            'quiet': True,
            'no_warnings': True,
            'noplaylist': True,
            'extract_flat': False,
            # Add headers to avoid 403 errors
            'http_headers': {
                'User-Agent': USER_AGENT,
                'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8',
                'Accept-Language': 'en-us,en;q=0.5',
            },
            'retries': 10,
        }
        if FFMPEG_LOCATION:
            ydl_opts['ffmpeg_location'] = FFMPEG_LOCATION
        return ydl_opts

    def _extract_info(self, url: str) -> Dict:
        with yt_dlp.YoutubeDL(self._ydl_opts()) as ydl:
            return ydl.extract_info(url, download=False)

    async def fetch(self, url: str, platform: Platform) -> VideoInfo:
        """Extract metadata without consulting the cache"""
        try:
            info = await asyncio.wait_for(run_in_threadpool(self._extract_info, url), timeout=self.timeout)
        except asyncio.TimeoutError:
            raise ExternalToolFailure("Timed out while retrieving video information", timed_out=True)
        except DownloadError as e:
            logger.warning("Failed to get video info for %s: %s", url, e)
            classified = classify_upstream_error(str(e))
            if classified is not None:
                raise classified from e
            raise UpstreamUnavailable(
                "Failed to retrieve video information. The video might be unavailable or private."
            ) from e
        if not info:
            raise NoVideoFound()
        return build_video_info(info, platform)

    async def get_video_info(self, url: str, platform: Platform) -> VideoInfo:
        return await self.cache.get_or_fetch(url, lambda u: self.fetch(u, platform))
