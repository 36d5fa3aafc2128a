"""vidgrab: fetch a video from a public URL as a Windows-compatible MP4"""

__version__ = "1.0.0"
