"""Web interface for the Sora video generation queue.

This package provides a FastAPI backend exposing the task queue over
HTTP and WebSocket.

Usage:
    python -m soragen.web [--port 3000] [--host 127.0.0.1]
"""
