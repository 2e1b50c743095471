"""
Cybake Bridge - FastAPI application.

Receives Shopify order webhooks, imports the orders into Cybake and keeps an
import log that the dashboard reads and retries from.
"""
import base64
import hashlib
import hmac
import json
import logging
import sys
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from typing import Literal, Optional

import uvicorn
from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from .config import Settings, get_settings
from .cybake_client import CybakeClient
from .importer import ImportService
from .log_store import ImportLogStore
from .models import HealthResponse, LogsResponse
from .retry import RetryService
from .shopify_client import ShopifyClient

logger = logging.getLogger(__name__)


def setup_logging(settings: Settings) -> logging.Logger:
    """Configure logging with file and console handlers."""
    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if settings.LOG_PATH:
        try:
            log_path = Path(settings.LOG_PATH)
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_path)
            file_handler.setLevel(log_level)
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)
            root_logger.info("Logging to file: %s", log_path)
        except OSError as e:
            root_logger.error("Failed to set up file logging: %s", e)

    return logging.getLogger(__name__)


def verify_shopify_webhook(data: bytes, hmac_header: str, secret: str) -> bool:
    """Verify that the webhook request is from Shopify"""
    if not hmac_header or not secret:
        return False

    computed_hmac = base64.b64encode(
        hmac.new(
            secret.encode('utf-8'),
            data,
            hashlib.sha256
        ).digest()
    ).decode('utf-8')

    return hmac.compare_digest(computed_hmac.encode("utf-8"), hmac_header.encode("utf-8"))


def is_authorized(settings: Settings, body: bytes, shared_secret: Optional[str], hmac_header: Optional[str]) -> bool:
    """
    Accept the Shopify Flow shared secret or a native webhook signature.

    With neither secret configured every caller is accepted.
    """
    if not settings.WEBHOOK_SECRET and not settings.SHOPIFY_WEBHOOK_SECRET:
        return True
    if settings.WEBHOOK_SECRET and hmac.compare_digest(
        (shared_secret or "").encode("utf-8"), settings.WEBHOOK_SECRET.encode("utf-8")
    ):
        return True
    return verify_shopify_webhook(body, hmac_header or "", settings.SHOPIFY_WEBHOOK_SECRET)


async def _json_body(request: Request):
    try:
        return json.loads(await request.body())
    except ValueError:
        return None


def create_app(
    settings: Optional[Settings] = None,
    shopify: Optional[ShopifyClient] = None,
    cybake: Optional[CybakeClient] = None,
    store: Optional[ImportLogStore] = None,
) -> FastAPI:
    """
    Create the bridge application.

    Collaborators default to the real clients built from settings; tests pass
    their own.
    """
    settings = settings or get_settings()
    shopify = shopify or ShopifyClient(settings)
    cybake = cybake or CybakeClient(settings)
    store = store or ImportLogStore.from_url(settings.DATABASE_URL)

    importer = ImportService(shopify, cybake, store)
    retrier = RetryService(shopify, cybake, store)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Runs in the serving process, including the reloader child.
        setup_logging(settings)
        logger.info("Cybake bridge starting up")
        logger.info("Shopify store: %s (API %s)", settings.SHOPIFY_STORE, settings.SHOPIFY_API_VERSION)
        logger.info("Cybake API: %s (version %s)", settings.CYBAKE_API_URL or "MISSING", settings.CYBAKE_API_VERSION)
        for error in settings.validate_required_config():
            logger.warning("Configuration: %s", error)
        if not settings.WEBHOOK_SECRET and not settings.SHOPIFY_WEBHOOK_SECRET:
            logger.warning("No webhook secret configured - /import accepts any caller")

        yield

        logger.info("Cybake bridge shutting down")

    app = FastAPI(
        title="Cybake Bridge",
        description="Imports Shopify orders into Cybake",
        version="1.0.0",
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    # =========================================================================
    # Health & Config
    # =========================================================================

    @app.get("/health", response_model=HealthResponse)
    async def health_check():
        """Health check endpoint"""
        return HealthResponse(status="healthy", timestamp=datetime.now().isoformat())

    @app.get("/config")
    async def get_config():
        """Get current configuration (without sensitive data)"""
        return settings.get_config_summary()

    @app.get("/validate-config")
    async def validate_config():
        """Validate that all required configuration is present"""
        errors = settings.validate_required_config()
        if errors:
            return {"valid": False, "errors": errors}
        return {"valid": True, "message": "All required configuration is present"}

    # =========================================================================
    # Import
    # =========================================================================

    @app.post("/import")
    async def import_order(request: Request):
        """
        Import one order into Cybake.

        Called by Shopify Flow (or an orders/create webhook) with
        {"order_id": ..., "order_name": ...}; order_id may be numeric or a GID.
        """
        raw = await request.body()
        if not is_authorized(
            settings,
            raw,
            request.headers.get("x-webhook-secret"),
            request.headers.get("x-shopify-hmac-sha256"),
        ):
            return JSONResponse({"success": False, "error": "Unauthorized"}, status_code=401)

        body = await _json_body(request)
        if not isinstance(body, dict):
            return JSONResponse({"success": False, "error": "Invalid JSON"}, status_code=400)

        order_id = body.get("order_id") or body.get("id")
        if not order_id:
            return JSONResponse({"success": False, "error": "Missing order_id"}, status_code=400)

        result = await run_in_threadpool(importer.import_order, order_id, body.get("order_name"))
        return JSONResponse(result.body, status_code=result.status_code)

    # =========================================================================
    # Import log
    # =========================================================================

    @app.get("/logs", response_model=LogsResponse)
    def list_logs(
        status: Literal["all", "success", "failed"] = "all",
        page: int = Query(1, ge=1),
        limit: int = Query(50, ge=1, le=500),
        search: Optional[str] = None,
    ):
        """Paginated import history, newest first, with overall counts."""
        try:
            logs, total = store.list_logs(status=status, page=page, limit=limit, search=search)
            summary = store.summary()
        except Exception as e:
            logger.error("Failed to query import logs: %s", e, exc_info=True)
            raise HTTPException(status_code=500, detail=str(e))

        return LogsResponse(logs=logs, total=total, page=page, limit=limit, summary=summary)

    @app.post("/retry")
    async def retry_import(request: Request):
        """Resend the stored payload of a failed import."""
        body = await _json_body(request)
        if not isinstance(body, dict):
            return JSONResponse({"success": False, "error": "Invalid JSON"}, status_code=400)

        log_id = body.get("log_id")
        if log_id is None or log_id == "":
            return JSONResponse({"success": False, "error": "Missing log_id"}, status_code=400)
        try:
            log_id = int(log_id)
        except (TypeError, ValueError):
            return JSONResponse({"success": False, "error": "Invalid log_id"}, status_code=400)

        try:
            result = await run_in_threadpool(retrier.retry, log_id)
        except Exception as e:
            logger.error("Retry error for log %s: %s", log_id, e, exc_info=True)
            return JSONResponse(
                {"success": False, "error": "Internal error", "message": str(e)},
                status_code=500,
            )
        return JSONResponse(result.body, status_code=result.status_code)

    # =========================================================================
    # Diagnostics
    # =========================================================================

    @app.post("/diagnostics/token")
    def exchange_token():
        """Exchange the app's client credentials for an access token."""
        try:
            return shopify.request_access_token()
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    @app.get("/diagnostics/shopify")
    def probe_shopify():
        """Try the configured Shopify token against several API versions."""
        return shopify.probe_api_versions()

    @app.get("/diagnostics/cybake")
    def probe_cybake():
        """List which Cybake paths answer with the configured API key."""
        return cybake.probe_endpoints()

    return app


def main():
    settings = get_settings()
    setup_logging(settings)

    uvicorn.run(
        "cybake_bridge.main:create_app",
        factory=True,
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
