"""Main application entry point"""
import asyncio
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import CORS_ORIGINS, SWEEP_INTERVAL_SECONDS, TEMP_DIR, TEMP_FILE_MAX_AGE_HOURS
from .routers import api
from .services.errors import DownloaderError
from .utils.file_utils import cleanup_old_files
from .utils.logging_config import setup_logging

logger = logging.getLogger(__name__)


async def _sweep_periodically(interval: float) -> None:
    while True:
        await asyncio.sleep(interval)
        removed = api.sweep_expired()
        if removed:
            logger.debug("Swept %d expired rate-limit/cache entries", removed)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    # Create temp directory and drop files a previous crash left behind
    os.makedirs(TEMP_DIR, exist_ok=True)
    cleanup_old_files(TEMP_DIR, TEMP_FILE_MAX_AGE_HOURS)
    sweeper = asyncio.ensure_future(_sweep_periodically(SWEEP_INTERVAL_SECONDS))
    try:
        yield
    finally:
        sweeper.cancel()
        try:
            await sweeper
        except asyncio.CancelledError:
            pass


# Initialize FastAPI app
app = FastAPI(title="vidgrab API", lifespan=lifespan)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition"],
)


@app.exception_handler(DownloaderError)
async def downloader_error_handler(request: Request, exc: DownloaderError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s", request.url.path)
    return JSONResponse(status_code=500, content={"success": False, "error": "An unexpected error occurred"})


# Include routers
app.include_router(api.router)


if __name__ == "__main__":
    import uvicorn
    from .config import API_HOST, API_PORT
    setup_logging()
    uvicorn.run(app, host=API_HOST, port=API_PORT)
