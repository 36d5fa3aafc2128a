"""Validation of download request bodies"""
from typing import Any, Collection, Tuple

from pydantic import ValidationError

from ..models.schemas import DownloadRequest
from ..utils.platform_detector import (
    COMING_SOON,
    PLATFORM_DISPLAY_NAMES,
    Platform,
    detect_platform,
    is_valid_url,
)
from .errors import InvalidRequest, UnsupportedPlatform


def validate_request(
    body: Any, allowed_platforms: Collection[Platform]
) -> Tuple[DownloadRequest, Platform]:
    """Parse a raw JSON body and check the URL against the endpoint's platforms"""
    if not isinstance(body, dict):
        raise InvalidRequest()
    try:
        request = DownloadRequest.model_validate(body)
    except ValidationError:
        raise InvalidRequest()

    request.url = request.url.strip()
    if not is_valid_url(request.url):
        raise InvalidRequest("Please enter a valid URL")

    platform = detect_platform(request.url)
    if platform not in allowed_platforms:
        raise UnsupportedPlatform(_unsupported_message(platform, allowed_platforms))
    return request, platform


def _unsupported_message(platform: Platform, allowed: Collection[Platform]) -> str:
    names = [PLATFORM_DISPLAY_NAMES[p] for p in Platform if p in allowed]
    supported = ", ".join(names)
    if platform in COMING_SOON:
        return f"{PLATFORM_DISPLAY_NAMES[platform]} support is coming soon! Currently supported: {supported}."
    if platform == Platform.UNKNOWN:
        return f"This URL is not from a supported video platform. Please use a {supported} video URL."
    if names == ["YouTube"]:
        return "Currently only YouTube downloads are supported"
    return f"{PLATFORM_DISPLAY_NAMES[platform]} is not supported here. Supported: {supported}."
