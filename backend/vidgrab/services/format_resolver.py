"""Format selection for yt-dlp, biased towards Windows Media Player compatibility.

YouTube serves VP9/AV1 video and Opus audio for many qualities, neither of
which Windows Media Player handles, so YouTube selectors name H.264 itags and
the AAC audio stream (140) explicitly. Twitter and Reddit serve H.264 in MP4
already and only need container filters.

Every table value is a "/"-separated fallback chain: the first alternative
that exists for the video wins.
"""
import re
from dataclasses import dataclass
from typing import Dict, Optional

from ..models.schemas import DEFAULT_QUALITY
from ..utils.platform_detector import Platform
from .errors import InvalidRequest

# AAC 128k audio-only stream on YouTube
YOUTUBE_AAC_AUDIO = "140"

# Characters allowed in a caller-supplied format id
FORMAT_ID_PATTERN = re.compile(r"^[A-Za-z0-9+\-_.]{1,64}$")

# Pre-muxed first, then H.264+AAC pairs, then anything at the height
YOUTUBE_FORMATS: Dict[str, str] = {
    "1080p": "137+140/299+140/22/best[height<=1080][ext=mp4]/best[height<=1080]",
    "720p": "22/136+140/298+140/best[height<=720][ext=mp4]/best[height<=720]",
    "480p": "135+140/18/best[height<=480][ext=mp4]/best[height<=480]",
    "360p": "18/134+140/best[height<=360][ext=mp4]/best[height<=360]",
}

# Single-file formats only; used when output goes to stdout and cannot be merged
YOUTUBE_PREMUXED_FORMATS: Dict[str, str] = {
    "1080p": "37/22/best[height<=1080][ext=mp4]/best[height<=1080]",
    "720p": "22/best[height<=720][ext=mp4]/best[height<=720]",
    "480p": "18/best[height<=480][ext=mp4]/best[height<=480]",
    "360p": "18/best[height<=360][ext=mp4]/best[height<=360]",
}

TWITTER_FORMATS: Dict[str, str] = {
    "1080p": "best[height<=1080][ext=mp4]/best[ext=mp4]/best",
    "720p": "best[height<=720][ext=mp4]/best[ext=mp4]/best",
    "480p": "best[height<=480][ext=mp4]/best[ext=mp4]/best",
    "360p": "best[height<=360][ext=mp4]/best[ext=mp4]/best",
}

# Reddit hosts DASH video and audio separately
REDDIT_FORMATS: Dict[str, str] = {
    "1080p": "bestvideo[height<=1080]+bestaudio/best[height<=1080]/best",
    "720p": "bestvideo[height<=720]+bestaudio/best[height<=720]/best",
    "480p": "bestvideo[height<=480]+bestaudio/best[height<=480]/best",
    "360p": "bestvideo[height<=360]+bestaudio/best[height<=360]/best",
}

REDDIT_PREMUXED_FORMATS: Dict[str, str] = {
    "1080p": "best[height<=1080]/best",
    "720p": "best[height<=720]/best",
    "480p": "best[height<=480]/best",
    "360p": "best[height<=360]/best",
}

_TABLES: Dict[Platform, Dict[str, str]] = {
    Platform.YOUTUBE: YOUTUBE_FORMATS,
    Platform.TWITTER: TWITTER_FORMATS,
    Platform.REDDIT: REDDIT_FORMATS,
}

_PREMUXED_TABLES: Dict[Platform, Dict[str, str]] = {
    Platform.YOUTUBE: YOUTUBE_PREMUXED_FORMATS,
    Platform.TWITTER: TWITTER_FORMATS,
    Platform.REDDIT: REDDIT_PREMUXED_FORMATS,
}


@dataclass(frozen=True)
class FormatSelection:
    selector: str
    quality: str
    needs_merging: bool
    needs_conversion: bool


def normalize_quality(quality: Optional[str]) -> str:
    """Unknown or missing qualities are treated as 720p"""
    return quality if quality in YOUTUBE_FORMATS else DEFAULT_QUALITY


def format_needs_merging(selector: str) -> bool:
    return "+" in selector


def resolve_format(
    platform: Platform,
    quality: Optional[str] = None,
    format_id: Optional[str] = None,
    premuxed_only: bool = False,
) -> FormatSelection:
    """Pick a yt-dlp selector for the request; a format id beats a quality"""
    label = normalize_quality(quality)

    if format_id and not FORMAT_ID_PATTERN.match(format_id):
        raise InvalidRequest("Invalid format id")

    # A merge cannot be written to stdout, so merged ids fall back to the table
    if format_id and not (premuxed_only and format_needs_merging(format_id)):
        selector = format_id
        if (
            platform == Platform.YOUTUBE
            and not premuxed_only
            and not format_needs_merging(format_id)
        ):
            # Pin AAC audio instead of letting yt-dlp pick Opus
            selector = f"{format_id}+{YOUTUBE_AAC_AUDIO}"
        merging = format_needs_merging(selector)
        return FormatSelection(selector, label, merging, merging)

    tables = _PREMUXED_TABLES if premuxed_only else _TABLES
    table = tables.get(platform, TWITTER_FORMATS)
    selector = table[label]
    merging = format_needs_merging(selector)
    return FormatSelection(
        selector=selector,
        quality=label,
        needs_merging=merging,
        needs_conversion=merging and platform == Platform.YOUTUBE,
    )
