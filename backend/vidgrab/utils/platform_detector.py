"""Platform detection from a video URL"""
import re
from enum import Enum
from typing import Dict, Optional
from urllib.parse import urlparse


class Platform(str, Enum):
    YOUTUBE = "youtube"
    TWITTER = "twitter"
    REDDIT = "reddit"
    INSTAGRAM = "instagram"
    FACEBOOK = "facebook"
    UNKNOWN = "unknown"


PLATFORM_DISPLAY_NAMES: Dict[Platform, str] = {
    Platform.YOUTUBE: "YouTube",
    Platform.TWITTER: "Twitter/X",
    Platform.REDDIT: "Reddit",
    Platform.INSTAGRAM: "Instagram",
    Platform.FACEBOOK: "Facebook",
    Platform.UNKNOWN: "Unknown",
}

# Recognised but never enabled on any endpoint
COMING_SOON = {Platform.INSTAGRAM, Platform.FACEBOOK}

_HOST_SUFFIXES = [
    (("youtube.com", "youtu.be"), Platform.YOUTUBE),
    (("twitter.com", "x.com"), Platform.TWITTER),
    (("reddit.com", "redd.it"), Platform.REDDIT),
    (("instagram.com",), Platform.INSTAGRAM),
    (("facebook.com", "fb.watch"), Platform.FACEBOOK),
]

_YOUTUBE_ID_RE = re.compile(r"(?:v=|/)([\w-]{11})")


def is_valid_url(url: str) -> bool:
    """True for absolute http(s) URLs with a host"""
    if not isinstance(url, str) or not url.strip():
        return False
    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc) and bool(parsed.hostname)


def detect_platform(url: str) -> Platform:
    """Derive the platform from the URL hostname only"""
    try:
        hostname = (urlparse(url).hostname or "").lower()
    except ValueError:
        return Platform.UNKNOWN
    for suffixes, platform in _HOST_SUFFIXES:
        for suffix in suffixes:
            if hostname == suffix or hostname.endswith("." + suffix):
                return platform
    return Platform.UNKNOWN


def extract_youtube_id(url: str) -> Optional[str]:
    match = _YOUTUBE_ID_RE.search(url or "")
    return match.group(1) if match else None
