"""
Bridge configuration.

Every setting comes from the environment (or a .env file) and is held on an
explicit Settings object that gets passed into clients, services and the app.
"""
from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings


def find_env_file() -> str:
    """Find .env file - check local dir, then project root."""
    local_env = Path(".env")
    root_env = Path("../.env")

    if local_env.exists():
        return str(local_env)
    elif root_env.exists():
        return str(root_env)
    return ".env"  # default


class Settings(BaseSettings):
    """Bridge settings from environment variables."""

    # Shopify
    SHOPIFY_STORE: str = "your-store.myshopify.com"
    SHOPIFY_ACCESS_TOKEN: str = ""
    SHOPIFY_API_VERSION: str = "2025-01"
    SHOPIFY_CLIENT_ID: str = ""
    SHOPIFY_CLIENT_SECRET: str = ""
    SHOPIFY_WEBHOOK_SECRET: str = ""  # HMAC signing secret for native webhooks

    # Cybake
    CYBAKE_API_URL: str = ""
    CYBAKE_API_KEY: str = ""
    CYBAKE_API_VERSION: str = "2.0"

    # Import log store
    DATABASE_URL: str = "sqlite:///./import_logs.db"

    # Shared secret sent by Shopify Flow in x-webhook-secret
    WEBHOOK_SECRET: str = ""

    # Outbound HTTP
    REQUEST_TIMEOUT: float = 30.0

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    LOG_PATH: str = ""  # e.g. /app/logs/cybake-bridge.log

    class Config:
        env_file = find_env_file()
        env_file_encoding = "utf-8"
        extra = "ignore"

    @property
    def shopify_graphql_url(self) -> str:
        """Get Shopify GraphQL API URL"""
        return self.shopify_graphql_url_for(self.SHOPIFY_API_VERSION)

    def shopify_graphql_url_for(self, version: str) -> str:
        return f"https://{self.SHOPIFY_STORE}/admin/api/{version}/graphql.json"

    @property
    def cybake_import_url(self) -> str:
        return f"{self.CYBAKE_API_URL.rstrip('/')}/api/home"

    @property
    def is_cybake_configured(self) -> bool:
        return bool(self.CYBAKE_API_URL and self.CYBAKE_API_KEY)

    def validate_required_config(self) -> list:
        """Validate that required configuration is present"""
        errors = []

        if not self.SHOPIFY_ACCESS_TOKEN:
            errors.append("SHOPIFY_ACCESS_TOKEN is required")

        if not self.CYBAKE_API_URL:
            errors.append("CYBAKE_API_URL is required")

        if not self.CYBAKE_API_KEY:
            errors.append("CYBAKE_API_KEY is required")

        return errors

    def get_config_summary(self) -> dict:
        """Get a summary of configuration (without sensitive data)"""
        return {
            "shopify_store": self.SHOPIFY_STORE,
            "shopify_api_version": self.SHOPIFY_API_VERSION,
            "shopify_token_configured": bool(self.SHOPIFY_ACCESS_TOKEN),
            "cybake_api_url": self.CYBAKE_API_URL,
            "cybake_api_version": self.CYBAKE_API_VERSION,
            "cybake_configured": self.is_cybake_configured,
            "webhook_secret_configured": bool(self.WEBHOOK_SECRET),
            "debug": self.DEBUG,
            "host": self.HOST,
            "port": self.PORT,
            "log_level": self.LOG_LEVEL,
        }


def token_preview(token: str) -> str:
    """Short, loggable form of a secret."""
    if not token:
        return "MISSING"
    return f"{token[:8]}...{token[-4:]} (length: {len(token)})"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
