from __future__ import annotations

import httpx
import pytest

from vidgrab.client import (
    DEFAULT_FILENAME,
    DownloadFailed,
    FallbackSequencer,
    FallbackStep,
    filename_from_disposition,
)

URL = "https://www.youtube.com/watch?v=dQw4w9WgXcQ"
VIDEO = b"\x00\x00\x00\x18ftypmp42video"


def video_response() -> httpx.Response:
    return httpx.Response(
        200,
        content=VIDEO,
        headers={"content-type": "video/mp4", "content-disposition": 'attachment; filename="Clip_720p.mp4"'},
    )


def error_response(status: int, message: str) -> httpx.Response:
    return httpx.Response(status, json={"success": False, "error": message})


def make_client(responses: dict, seen: list) -> httpx.Client:
    def handler(request: httpx.Request) -> httpx.Response:
        seen.append((request.url.path, request.read()))
        return responses[request.url.path]()

    return httpx.Client(transport=httpx.MockTransport(handler), base_url="http://vidgrab.test")


def test_blocked_hybrid_falls_back_once() -> None:
    seen = []
    client = make_client(
        {
            "/api/stream-hybrid": lambda: error_response(403, "The video site is blocking the request."),
            "/api/stream-fallback": video_response,
        },
        seen,
    )

    outcome = FallbackSequencer(client).download(URL, quality="720p")

    assert outcome.endpoint == "/api/stream-fallback"
    assert outcome.content == VIDEO
    assert outcome.filename == "Clip_720p.mp4"
    assert not outcome.blocked
    assert [path for path, _ in seen] == ["/api/stream-hybrid", "/api/stream-fallback"]
    assert b'"quality":"720p"' in seen[0][1].replace(b" ", b"")


def test_first_success_stops_the_chain() -> None:
    seen = []
    client = make_client({"/api/stream-hybrid": video_response}, seen)

    outcome = FallbackSequencer(client).download(URL)

    assert outcome.endpoint == "/api/stream-hybrid"
    assert outcome.attempts == [("/api/stream-hybrid", 200)]


def test_server_error_on_hybrid_skips_to_direct_download() -> None:
    seen = []
    client = make_client(
        {
            "/api/stream-hybrid": lambda: error_response(500, "Failed to download video"),
            "/api/direct-download": lambda: httpx.Response(
                200,
                json={"success": True, "alternatives": ["Wait a few hours and retry"]},
            ),
        },
        seen,
    )

    outcome = FallbackSequencer(client).download(URL)

    assert outcome.blocked
    assert outcome.endpoint == "/api/direct-download"
    assert [path for path, _ in seen] == ["/api/stream-hybrid", "/api/direct-download"]
    assert outcome.attempts == [("/api/stream-hybrid", 500), ("/api/direct-download", 200)]


def test_rate_limited_hybrid_skips_fallback_and_reports_last_error() -> None:
    seen = []
    client = make_client(
        {
            "/api/stream-hybrid": lambda: error_response(429, "Rate limit exceeded. Please try again later."),
            "/api/direct-download": lambda: error_response(500, "An unexpected error occurred"),
        },
        seen,
    )

    with pytest.raises(DownloadFailed) as excinfo:
        FallbackSequencer(client).download(URL)

    assert excinfo.value.message == "An unexpected error occurred"
    assert excinfo.value.status_code == 500
    assert excinfo.value.attempts == [("/api/stream-hybrid", 429), ("/api/direct-download", 500)]


def test_step_entry_condition_gates_only_that_step() -> None:
    seen = []
    client = make_client(
        {
            "/first": lambda: error_response(500, "boom"),
            "/last": video_response,
        },
        seen,
    )
    steps = [FallbackStep("/first"), FallbackStep("/skipped", frozenset({403})), FallbackStep("/last")]

    outcome = FallbackSequencer(client, steps).download(URL)

    assert outcome.endpoint == "/last"
    assert [path for path, _ in seen] == ["/first", "/last"]


def test_alternatives_become_a_suggestions_message() -> None:
    seen = []
    client = make_client(
        {
            "/api/stream-hybrid": lambda: error_response(404, "This video is unavailable or private"),
            "/api/stream-fallback": lambda: error_response(500, "Failed to download video"),
            "/api/direct-download": lambda: httpx.Response(
                200,
                json={
                    "success": True,
                    "filename": "youtube_dQw4w9WgXcQ_720p.mp4",
                    "alternatives": ["Use VPN and try again", "Wait a few hours and retry"],
                },
            ),
        },
        seen,
    )

    outcome = FallbackSequencer(client).download(URL)

    assert outcome.blocked
    assert outcome.blocked_message == (
        "YouTube is blocking automated downloads. Please try:\n"
        "• Use VPN and try again\n"
        "• Wait a few hours and retry"
    )
    assert outcome.filename == "youtube_dQw4w9WgXcQ_720p.mp4"
    assert outcome.content == b""


def test_exhausted_chain_reports_last_error() -> None:
    seen = []
    client = make_client(
        {
            "/api/stream-hybrid": lambda: error_response(403, "blocked"),
            "/api/stream-fallback": lambda: error_response(429, "Too many requests. Please wait a moment."),
            "/api/direct-download": lambda: error_response(400, "Please enter a valid URL"),
        },
        seen,
    )

    with pytest.raises(DownloadFailed) as excinfo:
        FallbackSequencer(client).download(URL)

    assert str(excinfo.value) == "Please enter a valid URL"
    assert [status for _, status in excinfo.value.attempts] == [403, 429, 400]


def test_error_without_json_uses_status_text() -> None:
    seen = []
    client = make_client({"/only": lambda: httpx.Response(502, text="<html>bad gateway</html>")}, seen)

    with pytest.raises(DownloadFailed) as excinfo:
        FallbackSequencer(client, [FallbackStep("/only")]).download(URL)

    assert excinfo.value.message == "Bad Gateway"


def test_format_id_is_sent_as_camel_case() -> None:
    seen = []
    client = make_client({"/api/stream-hybrid": video_response}, seen)

    FallbackSequencer(client).download(URL, format_id="137+140")

    assert b'"formatId"' in seen[0][1]


def test_empty_step_list_is_rejected() -> None:
    with pytest.raises(ValueError):
        FallbackSequencer(httpx.Client(), [])


@pytest.mark.parametrize(
    "header,expected",
    [
        ('attachment; filename="My_Video_720p.mp4"', "My_Video_720p.mp4"),
        ("attachment; filename=clip.mp4", "clip.mp4"),
        ("attachment", DEFAULT_FILENAME),
        (None, DEFAULT_FILENAME),
    ],
)
def test_filename_from_disposition(header, expected: str) -> None:
    assert filename_from_disposition(header) == expected
