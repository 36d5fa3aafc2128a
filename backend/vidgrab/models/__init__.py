"""Models package"""
from .schemas import (
    DEFAULT_QUALITY,
    SUPPORTED_QUALITIES,
    DownloadRequest,
    ErrorResponse,
    VideoFormat,
    VideoInfo,
    VideoInfoResponse,
)

__all__ = [
    "DEFAULT_QUALITY",
    "SUPPORTED_QUALITIES",
    "DownloadRequest",
    "ErrorResponse",
    "VideoFormat",
    "VideoInfo",
    "VideoInfoResponse",
]
