"""File utility functions"""
import glob
import logging
import os
import time
import uuid
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


def cleanup_old_files(directory: str, max_age_hours: float) -> int:
    """Remove files older than max_age_hours; returns how many were removed"""
    removed = 0
    try:
        current_time = time.time()
        for filename in os.listdir(directory):
            filepath = os.path.join(directory, filename)
            if not os.path.isfile(filepath):
                continue
            age_hours = (current_time - os.path.getmtime(filepath)) / 3600
            if age_hours > max_age_hours:
                os.remove(filepath)
                removed += 1
                logger.info("Removed stale temp file: %s (age: %.1f hours)", filename, age_hours)
    except OSError as e:
        logger.warning("Error during temp cleanup of %s: %s", directory, e)
    return removed


@dataclass
class TempFileHandle:
    path: str
    created_at: float = field(default_factory=time.time)


class TempFiles:
    """Temp paths owned by a single request.

    Every path handed out by create() is deleted exactly once, either through
    release() or through cleanup(). Deletion errors are logged, never raised.
    """

    def __init__(self, directory: str, remove: Callable[[str], None] = os.remove):
        self.directory = directory
        self._remove = remove
        self._handles: Dict[str, TempFileHandle] = {}
        os.makedirs(directory, exist_ok=True)

    def create(self, label: str = "download", suffix: str = ".mp4") -> str:
        path = os.path.join(self.directory, f"{label}_{uuid.uuid4().hex}{suffix}")
        self._handles[path] = TempFileHandle(path)
        return path

    @property
    def paths(self) -> List[str]:
        return list(self._handles)

    def release(self, path: Optional[str]) -> None:
        """Delete one tracked path now"""
        if path is None or path not in self._handles:
            return
        del self._handles[path]
        self._delete(path)
        # yt-dlp leaves .part / .fNNN fragments next to the target on failure
        for leftover in glob.glob(glob.escape(os.path.splitext(path)[0]) + ".*"):
            if leftover != path and leftover not in self._handles:
                self._delete(leftover)

    def cleanup(self) -> None:
        """Delete every path still tracked"""
        for path in list(self._handles):
            self.release(path)

    def _delete(self, path: str) -> None:
        try:
            self._remove(path)
        except FileNotFoundError:
            # The tool never wrote the file
            pass
        except OSError as e:
            logger.error("Failed to delete temp file %s: %s", path, e)

    def __enter__(self) -> "TempFiles":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.cleanup()
