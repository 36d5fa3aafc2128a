"""Application configuration"""
import os
import sys
import tempfile

# Temp directory for in-flight downloads
TEMP_DIR = os.getenv("TEMP_DIR", os.path.join(tempfile.gettempdir(), "vidgrab"))

# Temp files older than this are removed on startup
TEMP_FILE_MAX_AGE_HOURS = int(os.getenv("TEMP_FILE_MAX_AGE_HOURS", "6"))

# CORS settings
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*").split(",")

# API settings
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "8000"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# External tools
YTDLP_COMMAND = os.getenv("YTDLP_COMMAND", f"{sys.executable} -m yt_dlp").split()
FFMPEG_COMMAND = os.getenv("FFMPEG_COMMAND", "ffmpeg")
FFPROBE_COMMAND = os.getenv("FFPROBE_COMMAND", "ffprobe")
# Passed to yt-dlp as --ffmpeg-location when set
FFMPEG_LOCATION = os.getenv("FFMPEG_LOCATION") or None
if FFMPEG_LOCATION and not os.path.exists(FFMPEG_LOCATION):
    FFMPEG_LOCATION = None

# Per-operation timeouts (seconds)
DOWNLOAD_TIMEOUT_SECONDS = float(os.getenv("DOWNLOAD_TIMEOUT_SECONDS", "300"))
METADATA_TIMEOUT_SECONDS = float(os.getenv("METADATA_TIMEOUT_SECONDS", "60"))
PROBE_TIMEOUT_SECONDS = float(os.getenv("PROBE_TIMEOUT_SECONDS", "15"))
TRANSCODE_TIMEOUT_SECONDS = float(os.getenv("TRANSCODE_TIMEOUT_SECONDS", "600"))

# Ceiling on captured tool output in buffered mode
MAX_TOOL_OUTPUT_BYTES = int(os.getenv("MAX_TOOL_OUTPUT_BYTES", str(100 * 1024 * 1024)))

# Video info cache
INFO_CACHE_TTL_SECONDS = float(os.getenv("INFO_CACHE_TTL_SECONDS", "300"))

# Per-client rate limits for the download endpoints
RATE_LIMIT_MAX_REQUESTS = int(os.getenv("RATE_LIMIT_MAX_REQUESTS", "10"))
RATE_LIMIT_WINDOW_SECONDS = float(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "3600"))
# The fallback endpoint is retried by clients, so it gets a short window
FALLBACK_RATE_LIMIT_MAX_REQUESTS = int(os.getenv("FALLBACK_RATE_LIMIT_MAX_REQUESTS", "5"))
FALLBACK_RATE_LIMIT_WINDOW_SECONDS = float(os.getenv("FALLBACK_RATE_LIMIT_WINDOW_SECONDS", "60"))

# How often expired rate-limit buckets and cache entries are swept
SWEEP_INTERVAL_SECONDS = float(os.getenv("SWEEP_INTERVAL_SECONDS", "600"))

STREAM_CHUNK_SIZE = int(os.getenv("STREAM_CHUNK_SIZE", str(64 * 1024)))
# A streaming download that sends nothing for this long is killed
STREAM_IDLE_TIMEOUT_SECONDS = float(os.getenv("STREAM_IDLE_TIMEOUT_SECONDS", "60"))

USER_AGENT = os.getenv(
    "USER_AGENT",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
)
