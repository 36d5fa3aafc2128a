"""Run the API server: python main.py"""
import uvicorn

from vidgrab.config import API_HOST, API_PORT
from vidgrab.main import app
from vidgrab.utils.logging_config import setup_logging

if __name__ == "__main__":
    setup_logging()
    uvicorn.run(app, host=API_HOST, port=API_PORT)
