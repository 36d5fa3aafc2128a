from __future__ import annotations

from vidgrab.utils.filename_sanitizer import (
    MAX_BASENAME_LENGTH,
    get_safe_filename,
    sanitize_filename,
    sanitize_filename_for_headers,
)


def test_reserved_characters_become_underscores() -> None:
    assert sanitize_filename("a/b:c*d?") == "a_b_c_d"
    assert get_safe_filename("a/b:c*d?", "720p") == "a_b_c_d_720p.mp4"


def test_whitespace_and_edge_dots_are_collapsed() -> None:
    assert sanitize_filename("  ..My   Video.. ") == "My_Video"


def test_empty_titles_fall_back_to_download() -> None:
    assert sanitize_filename("") == "download"
    assert sanitize_filename("???") == "download"
    assert get_safe_filename("", "360p") == "download_360p.mp4"


def test_long_titles_are_capped() -> None:
    assert len(sanitize_filename("x" * 500)) == MAX_BASENAME_LENGTH


def test_header_variant_strips_non_ascii() -> None:
    assert sanitize_filename_for_headers("Café ☕ time") == "Caf_time"
    assert sanitize_filename("Café") == "Café"
    assert get_safe_filename("日本語", "480p") == "download_480p.mp4"
    assert get_safe_filename("日本語", "480p", for_headers=False) == "日本語_480p.mp4"
