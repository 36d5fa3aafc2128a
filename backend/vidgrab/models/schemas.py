"""Pydantic models for request/response validation"""
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..utils.platform_detector import Platform

SUPPORTED_QUALITIES = ("360p", "480p", "720p", "1080p")
DEFAULT_QUALITY = "720p"


class DownloadRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    url: str
    quality: Optional[str] = None
    format_id: Optional[str] = Field(default=None, alias="formatId")


class VideoFormat(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    quality: str
    format: str = "mp4"
    size: Optional[int] = None
    url: Optional[str] = None
    format_id: Optional[str] = Field(default=None, alias="formatId")


class VideoInfo(BaseModel):
    title: str
    duration: Optional[float] = None
    thumbnail: Optional[str] = None
    author: Optional[str] = None
    platform: Platform
    formats: List[VideoFormat] = []


class VideoInfoResponse(BaseModel):
    success: bool = True
    video_info: VideoInfo = Field(alias="videoInfo")
    message: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    alternatives: Optional[List[str]] = None
