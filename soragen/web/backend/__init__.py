"""FastAPI backend for the video generation queue."""
