"""API routes"""
import logging
from typing import Optional

from fastapi import APIRouter, Request
from fastapi.responses import Response

from ..config import (
    FALLBACK_RATE_LIMIT_MAX_REQUESTS,
    FALLBACK_RATE_LIMIT_WINDOW_SECONDS,
    INFO_CACHE_TTL_SECONDS,
    RATE_LIMIT_MAX_REQUESTS,
    RATE_LIMIT_WINDOW_SECONDS,
)
from ..models.schemas import ErrorResponse, VideoInfoResponse
from ..services.download_service import (
    ALL_PLATFORMS,
    YOUTUBE_ONLY,
    DownloadService,
    EndpointPolicy,
    Strategy,
)
from ..services.errors import InvalidRequest
from ..services.info_cache import VideoInfoCache
from ..services.rate_limiter import RateLimiter, client_id_from_headers
from ..services.request_validator import validate_request
from ..services.store import MemoryStore
from ..services.video_info_service import VideoInfoService

logger = logging.getLogger(__name__)

# Rate-limit buckets and cached metadata (in-memory, per process)
store = MemoryStore()

# Initialize services
info_cache = VideoInfoCache(INFO_CACHE_TTL_SECONDS, store=store)
video_info_service = VideoInfoService(info_cache)
download_service = DownloadService(video_info_service)


def _limiter(name: str, max_requests: int = RATE_LIMIT_MAX_REQUESTS,
             window: float = RATE_LIMIT_WINDOW_SECONDS, message: Optional[str] = None) -> RateLimiter:
    return RateLimiter(max_requests, window, name=name, store=store, message=message)


rate_limiters = {
    "stream-hybrid": _limiter("stream-hybrid"),
    "stream-fallback": _limiter(
        "stream-fallback",
        FALLBACK_RATE_LIMIT_MAX_REQUESTS,
        FALLBACK_RATE_LIMIT_WINDOW_SECONDS,
        "Too many requests. Please wait a moment.",
    ),
    "stream": _limiter("stream"),
    "download-file": _limiter("download-file"),
    "download-windows": _limiter("download-windows"),
}

policies = {
    "stream-hybrid": EndpointPolicy(Strategy.PREFER_PREMUXED, YOUTUBE_ONLY),
    "stream-fallback": EndpointPolicy(
        Strategy.PREFER_PREMUXED, YOUTUBE_ONLY, premuxed_only=True, lookup_title=False
    ),
    "stream": EndpointPolicy(Strategy.DIRECT_STREAM, YOUTUBE_ONLY),
    "download-file": EndpointPolicy(Strategy.PROBE_THEN_CONVERT, ALL_PLATFORMS),
    "download-windows": EndpointPolicy(Strategy.FORCE_RECODE, ALL_PLATFORMS),
}

ERROR_RESPONSES = {
    status: {"model": ErrorResponse} for status in (400, 403, 404, 429, 500)
}

router = APIRouter(prefix="/api", tags=["api"])


async def _read_json(request: Request):
    try:
        return await request.json()
    except ValueError:
        raise InvalidRequest()


async def _download(request: Request, endpoint: str) -> Response:
    rate_limiters[endpoint].check(client_id_from_headers(request.headers))
    body = await _read_json(request)
    download_request, platform = validate_request(body, policies[endpoint].platforms)
    return await download_service.deliver(download_request, platform, policies[endpoint])


def sweep_expired() -> int:
    """Drop expired rate-limit buckets and cache entries"""
    removed = info_cache.sweep()
    for limiter in rate_limiters.values():
        removed += limiter.sweep()
    return removed


@router.get("/health")
async def health():
    return {"status": "ok"}


@router.post("/video-info", response_model=VideoInfoResponse, response_model_by_alias=True,
             response_model_exclude_none=True, responses=ERROR_RESPONSES)
async def get_video_info(request: Request):
    """Get video information and available formats"""
    body = await _read_json(request)
    download_request, platform = validate_request(body, ALL_PLATFORMS)
    info = await video_info_service.get_video_info(download_request.url, platform)
    logger.info("Returning %d formats for %s", len(info.formats), download_request.url)
    return VideoInfoResponse(
        video_info=info, message="Video information extracted successfully"
    )


@router.post("/stream-hybrid", responses=ERROR_RESPONSES)
async def stream_hybrid(request: Request):
    """Download to a temp file, then stream it with a known length"""
    return await _download(request, "stream-hybrid")


@router.post("/stream-fallback", responses=ERROR_RESPONSES)
async def stream_fallback(request: Request):
    """Single-file formats only, no metadata lookup"""
    return await _download(request, "stream-fallback")


@router.post("/stream", responses=ERROR_RESPONSES)
async def stream(request: Request):
    """Pipe yt-dlp's output straight to the client"""
    return await _download(request, "stream")


@router.post("/download-file", responses=ERROR_RESPONSES)
async def download_file(request: Request):
    """Download, re-encode only if the codecs need it, return the whole file"""
    return await _download(request, "download-file")


@router.post("/download-windows", responses=ERROR_RESPONSES)
async def download_windows(request: Request):
    """Download and always re-encode with the most compatible profile"""
    return await _download(request, "download-windows")


@router.post("/direct-download", responses=ERROR_RESPONSES)
async def direct_download(request: Request):
    """Suggest manual alternatives when automated download is blocked"""
    body = await _read_json(request)
    download_request, platform = validate_request(body, YOUTUBE_ONLY)
    return download_service.alternatives(download_request, platform)
