"""
Router HTTP transport.
"""

from nomyo.api.http_client import AsyncHttpClient, Endpoint, raise_for_status

__all__ = ["AsyncHttpClient", "Endpoint", "raise_for_status"]
