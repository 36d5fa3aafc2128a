"""Utils package"""
from .file_utils import TempFiles, cleanup_old_files
from .filename_sanitizer import get_safe_filename, sanitize_filename, sanitize_filename_for_headers
from .platform_detector import Platform, detect_platform, is_valid_url

__all__ = [
    "Platform",
    "TempFiles",
    "cleanup_old_files",
    "detect_platform",
    "get_safe_filename",
    "is_valid_url",
    "sanitize_filename",
    "sanitize_filename_for_headers",
]
