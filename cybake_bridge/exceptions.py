"""
Exceptions raised by the bridge's API clients and services.
"""


class BridgeError(Exception):
    """Base class for bridge errors."""


class ShopifyError(BridgeError):
    """Shopify request failed or returned GraphQL errors."""
