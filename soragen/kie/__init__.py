"""Kie.ai generation API client."""

from .client import KieClient, report_from_payload

__all__ = ["KieClient", "report_from_payload"]
