"""
Cybake Bridge - imports Shopify orders into Cybake.

Webhook in, GraphQL fetch, tag-driven transform, Cybake REST submit, and an
import log with deduplication and operator retry.
"""

from .config import Settings, get_settings
from .main import create_app

__all__ = ["Settings", "get_settings", "create_app"]
