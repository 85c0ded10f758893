"""Sora video generation queue.

Accepts prompts over HTTP, forwards them to the Kie.ai generation API with
bounded concurrency, and tracks each job until a webhook or the fallback
status check resolves it.
"""

__version__ = "0.1.0"
