import json
import logging
from typing import Any, Dict, Optional, Sequence

import requests

from .base import ImportTarget
from .config import Settings, token_preview
from .models import SubmitResult

logger = logging.getLogger(__name__)

PROBE_PATHS = (
    "/api/home",
    "/api/import",
    "/api/import/status",
    "/api/orders",
    "/api/home/status",
    "/api",
    "/swagger",
    "/swagger/v1/swagger.json",
    "/swagger/index.html",
)


class CybakeClient(ImportTarget):
    """Client for the Cybake home-order import API."""

    def __init__(self, config: Settings, session: Optional[requests.Session] = None):
        self.config = config
        self.session = session or requests.Session()
        self.headers = {
            'Content-Type': 'application/json',
            'x-api-key': config.CYBAKE_API_KEY,
            'x-api-version': config.CYBAKE_API_VERSION,
        }

    def submit(self, payload: Dict[str, Any]) -> SubmitResult:
        url = self.config.cybake_import_url
        orders = payload.get("Orders") or [{}]
        logger.info(
            "Cybake request: url=%s key=%s version=%s orders=%d first=%s",
            url,
            token_preview(self.config.CYBAKE_API_KEY),
            self.config.CYBAKE_API_VERSION,
            len(payload.get("Orders") or []),
            orders[0].get("ExternalUniqueIdentifier"),
        )
        logger.debug("Cybake payload: %s", json.dumps(payload, indent=2))

        try:
            response = self.session.post(
                url,
                json=payload,
                headers=self.headers,
                timeout=self.config.REQUEST_TIMEOUT,
            )
        except requests.exceptions.RequestException as e:
            error = f"Network error calling {url}: {e}"
            logger.error("Cybake network error: %s", error, exc_info=True)
            return SubmitResult(success=False, http_status=0, data=None, error=error)

        text = response.text
        logger.info("Cybake response: %s %s", response.status_code, response.reason)
        logger.debug("Cybake response body: %s", text[:2000])

        try:
            data = json.loads(text)
        except ValueError:
            data = {"raw": text[:2000]}

        if response.ok:
            return SubmitResult(success=True, http_status=response.status_code, data=data, text=text)

        error = f"Cybake returned {response.status_code} {response.reason}: {text[:1000]}"
        logger.error("Cybake rejected import: %s", error)
        return SubmitResult(
            success=False,
            http_status=response.status_code,
            data=data,
            text=text,
            error=error,
        )

    def probe_endpoints(self, paths: Sequence[str] = PROBE_PATHS) -> Dict[str, Any]:
        """GET each candidate path and report status plus the start of the body."""
        base = self.config.CYBAKE_API_URL.rstrip('/')
        results: Dict[str, Any] = {}

        for path in paths:
            try:
                response = self.session.get(
                    f"{base}{path}",
                    headers=self.headers,
                    timeout=self.config.REQUEST_TIMEOUT,
                )
                results[path] = {"status": response.status_code, "body": response.text[:500]}
            except requests.exceptions.RequestException as e:
                results[path] = {"error": str(e)}

        return results
