"""HTTP client that walks the download endpoints until one succeeds"""
import logging
import re
from dataclasses import dataclass, field
from typing import FrozenSet, List, Optional, Sequence, Tuple

import httpx

logger = logging.getLogger(__name__)

DEFAULT_FILENAME = "video.mp4"

_FILENAME_PATTERN = re.compile(r'filename="?([^";]+)"?')


@dataclass(frozen=True)
class FallbackStep:
    path: str
    # Failure statuses of the previous attempt that lead into this step;
    # None means any failure does. The first step is always tried.
    enter_on: Optional[FrozenSet[int]] = None


DEFAULT_STEPS: Tuple[FallbackStep, ...] = (
    FallbackStep("/api/stream-hybrid"),
    FallbackStep("/api/stream-fallback", frozenset({403, 404})),
    FallbackStep("/api/direct-download"),
)


@dataclass
class DownloadOutcome:
    endpoint: str
    content: bytes = b""
    filename: str = DEFAULT_FILENAME
    # Set when the server answered with manual alternatives instead of a file
    blocked_message: Optional[str] = None
    attempts: List[Tuple[str, int]] = field(default_factory=list)

    @property
    def blocked(self) -> bool:
        return self.blocked_message is not None


class DownloadFailed(Exception):
    """The last step that was tried failed"""

    def __init__(self, message: str, status_code: Optional[int] = None,
                 attempts: Optional[List[Tuple[str, int]]] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.attempts = attempts or []


def filename_from_disposition(header: Optional[str]) -> str:
    if not header:
        return DEFAULT_FILENAME
    match = _FILENAME_PATTERN.search(header)
    return match.group(1).strip() if match else DEFAULT_FILENAME


def blocked_message(alternatives: Sequence[str]) -> str:
    lines = ["YouTube is blocking automated downloads. Please try:"]
    lines.extend(f"• {alternative}" for alternative in alternatives)
    return "\n".join(lines)


def _error_text(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        data = None
    if isinstance(data, dict) and data.get("error"):
        return str(data["error"])
    return response.reason_phrase or f"HTTP {response.status_code}"


def _is_json(response: httpx.Response) -> bool:
    return response.headers.get("content-type", "").startswith("application/json")


class FallbackSequencer:
    """Try each step in order, skipping steps the last failure does not lead into.

    Works with any httpx.Client, including one bound to an ASGI app.
    """

    def __init__(self, client: httpx.Client, steps: Sequence[FallbackStep] = DEFAULT_STEPS):
        if not steps:
            raise ValueError("at least one step is required")
        self.client = client
        self.steps = list(steps)

    def download(self, url: str, quality: Optional[str] = None,
                 format_id: Optional[str] = None) -> DownloadOutcome:
        payload = {"url": url}
        if quality:
            payload["quality"] = quality
        if format_id:
            payload["formatId"] = format_id

        attempts: List[Tuple[str, int]] = []
        response = None
        for step in self.steps:
            if response is not None and step.enter_on is not None and response.status_code not in step.enter_on:
                logger.info("Skipping %s after a %s", step.path, response.status_code)
                continue
            response = self.client.post(step.path, json=payload)
            attempts.append((step.path, response.status_code))
            if response.is_success:
                return self._outcome(step, response, attempts)

            logger.warning("%s failed with %s: %s", step.path, response.status_code, _error_text(response))

        raise DownloadFailed(_error_text(response), response.status_code, attempts)

    @staticmethod
    def _outcome(step: FallbackStep, response: httpx.Response,
                 attempts: List[Tuple[str, int]]) -> DownloadOutcome:
        if _is_json(response):
            data = response.json()
            if isinstance(data, dict) and data.get("alternatives"):
                return DownloadOutcome(
                    endpoint=step.path,
                    blocked_message=blocked_message(data["alternatives"]),
                    filename=data.get("filename") or DEFAULT_FILENAME,
                    attempts=attempts,
                )
            raise DownloadFailed(_error_text(response), response.status_code, attempts)

        filename = filename_from_disposition(response.headers.get("content-disposition"))
        logger.info("Downloaded %s via %s (%d bytes)", filename, step.path, len(response.content))
        return DownloadOutcome(
            endpoint=step.path,
            content=response.content,
            filename=filename,
            attempts=attempts,
        )
