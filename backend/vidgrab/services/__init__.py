"""Services package"""
from .download_service import DownloadService, EndpointPolicy, Strategy
from .info_cache import VideoInfoCache
from .rate_limiter import RateLimiter
from .store import MemoryStore
from .video_info_service import VideoInfoService

__all__ = [
    "DownloadService",
    "EndpointPolicy",
    "MemoryStore",
    "RateLimiter",
    "Strategy",
    "VideoInfoCache",
    "VideoInfoService",
]
