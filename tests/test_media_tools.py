from __future__ import annotations

import asyncio

import pytest

from vidgrab.services.codec_verifier import CodecReport, CodecVerifier, is_compatible, parse_streams
from vidgrab.services.errors import ConversionFailure
from vidgrab.services.extractor import Extractor
from vidgrab.services.format_resolver import resolve_format
from vidgrab.services.transcoder import EncodeProfile, Transcoder
from vidgrab.utils.platform_detector import Platform

MISSING_TOOL = "vidgrab-no-such-tool-xyz"


def test_parse_streams_takes_first_video_and_audio() -> None:
    payload = {
        "streams": [
            {"codec_type": "video", "codec_name": "h264"},
            {"codec_type": "audio", "codec_name": "aac"},
            {"codec_type": "audio", "codec_name": "opus"},
        ]
    }

    assert parse_streams(payload) == CodecReport("h264", "aac", True)


def test_vp9_opus_is_incompatible() -> None:
    payload = {
        "streams": [
            {"codec_type": "video", "codec_name": "vp9"},
            {"codec_type": "audio", "codec_name": "opus"},
        ]
    }

    assert not parse_streams(payload).is_target_compatible


def test_missing_stream_is_incompatible() -> None:
    assert not is_compatible("h264", None)
    assert not parse_streams({"streams": [{"codec_type": "video", "codec_name": "h264"}]}).is_target_compatible
    assert not parse_streams({}).is_target_compatible


def test_probe_failure_fails_closed() -> None:
    report = asyncio.run(CodecVerifier(command=MISSING_TOOL).verify("/nonexistent.mp4"))

    assert report == CodecReport()
    assert not report.is_target_compatible


def test_probe_arguments() -> None:
    args = CodecVerifier(command="ffprobe").probe_args("/tmp/a.mp4")
    assert args == ["ffprobe", "-v", "quiet", "-print_format", "json", "-show_streams", "/tmp/a.mp4"]


def test_standard_profile_arguments() -> None:
    args = Transcoder(command="ffmpeg").transcode_args("in.mp4", "out.mp4")

    assert args[:7] == ["ffmpeg", "-hide_banner", "-loglevel", "error", "-y", "-i", "in.mp4"]
    assert args[args.index("-c:v") + 1] == "libx264"
    assert args[args.index("-c:a") + 1] == "aac"
    assert args[-5:] == ["-movflags", "+faststart", "-f", "mp4", "out.mp4"]


def test_baseline_profile_arguments() -> None:
    args = Transcoder(command="ffmpeg").transcode_args("in.mp4", "out.mp4", EncodeProfile.BASELINE)

    assert args[args.index("-profile:v") + 1] == "baseline"
    assert args[args.index("-level:v") + 1] == "3.0"
    assert args[args.index("-ac") + 1] == "2"


def test_transcode_failure_is_a_conversion_failure(tmp_path) -> None:
    with pytest.raises(ConversionFailure):
        asyncio.run(Transcoder(command=MISSING_TOOL).transcode("in.mp4", str(tmp_path / "out.mp4")))


def test_download_arguments_end_with_separator_and_url() -> None:
    extractor = Extractor(command=["yt-dlp"], ffmpeg_location=None)
    selection = resolve_format(Platform.YOUTUBE, "1080p")
    args = extractor.download_args("https://youtu.be/dQw4w9WgXcQ", selection, "/tmp/out.mp4")

    assert args[0] == "yt-dlp"
    assert args[args.index("-f") + 1] == selection.selector
    assert args[args.index("--merge-output-format") + 1] == "mp4"
    assert args[-4:] == ["-o", "/tmp/out.mp4", "--", "https://youtu.be/dQw4w9WgXcQ"]
    assert "--ffmpeg-location" not in args


def test_premuxed_download_skips_merge_flag() -> None:
    extractor = Extractor(command=["yt-dlp"], ffmpeg_location="/opt/ffmpeg")
    args = extractor.download_args("https://x.com/u/status/1", resolve_format(Platform.TWITTER, "720p"), "out.mp4")

    assert "--merge-output-format" not in args
    assert args[args.index("--ffmpeg-location") + 1] == "/opt/ffmpeg"


def test_stream_arguments_write_to_stdout() -> None:
    extractor = Extractor(command=["yt-dlp"])
    selection = resolve_format(Platform.YOUTUBE, "720p", premuxed_only=True)
    args = extractor.stream_args("https://youtu.be/dQw4w9WgXcQ", selection)

    assert args[-4:] == ["-o", "-", "--", "https://youtu.be/dQw4w9WgXcQ"]


def test_stream_carries_idle_timeout() -> None:
    extractor = Extractor(command=["yt-dlp"], idle_timeout=5)
    selection = resolve_format(Platform.YOUTUBE, "720p", premuxed_only=True)

    process = extractor.open_stream("https://youtu.be/dQw4w9WgXcQ", selection)

    assert process.read_timeout == 5
    assert process.process is None
