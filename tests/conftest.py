from __future__ import annotations

import sys

import pytest

# Stands in for yt-dlp: honours "-o <path>" by writing a small file there.
FAKE_YTDLP_SCRIPT = (
    "import sys\n"
    "args = sys.argv[1:]\n"
    "out = args[args.index('-o') + 1]\n"
    "data = b'\\x00\\x00\\x00\\x18ftypmp42' + b'\\x00' * 4096\n"
    "if out == '-':\n"
    "    sys.stdout.buffer.write(data)\n"
    "else:\n"
    "    open(out, 'wb').write(data)\n"
)


def fake_ytdlp_command(script: str = FAKE_YTDLP_SCRIPT) -> list:
    return [sys.executable, "-c", script]


def failing_ytdlp_command(stderr: str, returncode: int = 1) -> list:
    script = f"import sys\nsys.stderr.write({stderr!r} + '\\n')\nsys.exit({returncode})\n"
    return [sys.executable, "-c", script]


class FakeClock:
    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


class RecordingRemove:
    """os.remove that remembers every path it was asked to delete"""

    def __init__(self) -> None:
        self.calls = []

    def __call__(self, path: str) -> None:
        import os

        self.calls.append(path)
        os.remove(path)


@pytest.fixture
def recording_remove() -> RecordingRemove:
    return RecordingRemove()
