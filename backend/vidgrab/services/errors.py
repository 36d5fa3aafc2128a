"""Error types raised while serving a download request"""
from typing import List, Optional, Tuple, Type


class DownloaderError(Exception):
    """Base error; carries the HTTP status and a user-facing message"""

    status_code = 500
    default_message = "An unexpected error occurred"

    def __init__(self, message: Optional[str] = None, alternatives: Optional[List[str]] = None):
        self.message = message or self.default_message
        self.alternatives = alternatives
        super().__init__(self.message)

    def to_payload(self) -> dict:
        payload = {"success": False, "error": self.message}
        if self.alternatives:
            payload["alternatives"] = list(self.alternatives)
        return payload


class InvalidRequest(DownloaderError):
    status_code = 400
    default_message = "Invalid request. Please provide a valid URL."


class UnsupportedPlatform(DownloaderError):
    status_code = 400
    default_message = "Unsupported platform. Please use a YouTube, Twitter, or Reddit video URL."


class UpstreamBlocked(DownloaderError):
    status_code = 403
    default_message = "The video site is blocking the request. Please try again in a few moments."


class UpstreamUnavailable(DownloaderError):
    status_code = 404
    default_message = "This video is unavailable or private"


class NoVideoFound(UpstreamUnavailable):
    default_message = "No video was found at this URL"


class FormatUnavailable(UpstreamUnavailable):
    default_message = "The requested video quality is not available. Try a different quality."


class RateLimited(DownloaderError):
    status_code = 429
    default_message = "Rate limit exceeded. Please try again later."


class ExternalToolFailure(DownloaderError):
    """A child process exited non-zero, timed out, or produced no output"""

    status_code = 500
    default_message = "Failed to download video"

    def __init__(
        self,
        message: Optional[str] = None,
        returncode: Optional[int] = None,
        stderr: str = "",
        timed_out: bool = False,
    ):
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr
        self.timed_out = timed_out


class ConversionFailure(DownloaderError):
    """Re-encoding failed; callers fall back to the original file"""

    default_message = "Failed to convert video"


# Known upstream phrases, checked in order. First match wins.
_UPSTREAM_PATTERNS: List[Tuple[Tuple[str, ...], Type[DownloaderError], str]] = [
    (
        ("no video formats found", "there's no video in this", "no media found",
         "no video could be found", "does not contain a video"),
        NoVideoFound,
        "No video was found in this post",
    ),
    (
        ("requested format is not available",),
        FormatUnavailable,
        FormatUnavailable.default_message,
    ),
    (
        ("sign in to confirm your age", "age-restricted", "age restricted", "inappropriate for some users"),
        UpstreamUnavailable,
        "This video is age-restricted and cannot be downloaded.",
    ),
    (
        ("video unavailable", "private video", "this video is private", "has been removed",
         "http error 404", "does not exist"),
        UpstreamUnavailable,
        UpstreamUnavailable.default_message,
    ),
    (
        ("http error 429", "too many requests"),
        UpstreamBlocked,
        "Rate limit reached on the video site. Please try again later.",
    ),
    (
        ("http error 403", "sign in to confirm you're not a bot", "sign in to confirm you’re not a bot"),
        UpstreamBlocked,
        UpstreamBlocked.default_message,
    ),
    (
        ("ffmpeg is not installed", "ffmpeg not found", "ffprobe and ffmpeg not found"),
        ExternalToolFailure,
        "This video quality requires ffmpeg to be installed. Please try 720p or 360p.",
    ),
]


def classify_upstream_error(text: str) -> Optional[DownloaderError]:
    """Map tool output to a specific error, or None when nothing matches"""
    lowered = (text or "").lower()
    for needles, error_type, message in _UPSTREAM_PATTERNS:
        if any(needle in lowered for needle in needles):
            return error_type(message)
    return None
