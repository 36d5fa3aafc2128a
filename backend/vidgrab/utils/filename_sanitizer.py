"""Filename sanitization for saved files and Content-Disposition headers"""
import re

MAX_BASENAME_LENGTH = 200

_INVALID_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')
_EDGE_DOTS_AND_SPACES = re.compile(r"^[\s.]+|[\s.]+$")
_SEPARATOR_RUNS = re.compile(r"[\s_]+")
_NON_ASCII = re.compile(r"[^\x00-\x7f]")


def sanitize_filename(filename: str) -> str:
    """Make a title safe to use as a file name on any common file system"""
    sanitized = _INVALID_CHARS.sub("_", filename or "")
    sanitized = _EDGE_DOTS_AND_SPACES.sub("", sanitized)
    sanitized = _SEPARATOR_RUNS.sub("_", sanitized)
    sanitized = sanitized[:MAX_BASENAME_LENGTH]
    sanitized = sanitized.rstrip("_")
    return sanitized or "download"


def sanitize_filename_for_headers(filename: str) -> str:
    """Like sanitize_filename, but also drops non-ASCII code points.

    Header values are latin-1 on the wire, so anything outside ASCII is
    removed before the file-system rules are applied.
    """
    return sanitize_filename(_NON_ASCII.sub("", filename or ""))


def get_safe_filename(title: str, quality: str, extension: str = "mp4", for_headers: bool = True) -> str:
    base = sanitize_filename_for_headers(title) if for_headers else sanitize_filename(title)
    return f"{base}_{quality}.{extension}"
