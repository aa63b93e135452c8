"""
HTTP transport to the Voyage AI API.
"""

from .client import DEFAULT_API_BASE, VoyageTransport

__all__ = ["DEFAULT_API_BASE", "VoyageTransport"]
