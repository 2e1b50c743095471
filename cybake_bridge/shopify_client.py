import json
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

import requests

from .base import OrderSource
from .config import Settings, token_preview
from .exceptions import ShopifyError
from .models import LineItem, Order, ShippingAddress

logger = logging.getLogger(__name__)

PROBE_API_VERSIONS = ("2025-01", "2024-10", "2024-07")


class ShopifyClient(OrderSource):
    def __init__(self, config: Settings, session: Optional[requests.Session] = None):
        self.config = config
        self.session = session or requests.Session()
        self.headers = {
            'Content-Type': 'application/json',
            'X-Shopify-Access-Token': config.SHOPIFY_ACCESS_TOKEN
        }

    def _graphql(self, query: str, variables: Optional[dict] = None, url: Optional[str] = None) -> dict:
        try:
            response = self.session.post(
                url or self.config.shopify_graphql_url,
                json={"query": query, "variables": variables or {}},
                headers=self.headers,
                timeout=self.config.REQUEST_TIMEOUT,
            )
            response.raise_for_status()
            return response.json()
        except requests.exceptions.RequestException as e:
            raise ShopifyError(f"Shopify request failed: {e}") from e
        except ValueError as e:
            raise ShopifyError(f"Shopify returned invalid JSON: {e}") from e

    def get_order(self, gid: str) -> Optional[Order]:
        """
        Fetch a specific order by GID
        """
        query = """
        query getOrder($id: ID!) {
            order(id: $id) {
                id
                legacyResourceId
                name
                tags
                note
                email
                phone
                createdAt
                totalShippingPriceSet { shopMoney { amount currencyCode } }
                currentTotalPriceSet { shopMoney { amount } }
                shippingAddress {
                    name firstName lastName company
                    address1 address2
                    city province provinceCode
                    zip country countryCode
                    phone
                }
                lineItems(first: 100) {
                    edges {
                        node {
                            id sku quantity name
                            originalUnitPriceSet { shopMoney { amount } }
                        }
                    }
                }
            }
        }
        """

        logger.debug("Fetching order %s (token %s)", gid, token_preview(self.config.SHOPIFY_ACCESS_TOKEN))
        data = self._graphql(query, {"id": gid})

        if data.get("errors"):
            logger.error("Shopify GraphQL errors: %s", json.dumps(data["errors"]))

        order_data = (data.get("data") or {}).get("order")
        if not order_data:
            logger.error("No order in response for %s: %s", gid, json.dumps(data)[:2000])
            return None

        return parse_order(order_data)

    def _mutate_tags(self, mutation_name: str, gid: str, tags: List[str]) -> None:
        mutation = f"""
        mutation {mutation_name}($id: ID!, $tags: [String!]!) {{
            {mutation_name}(id: $id, tags: $tags) {{
                userErrors {{
                    field
                    message
                }}
            }}
        }}
        """

        data = self._graphql(mutation, {"id": gid, "tags": list(tags)})

        if data.get("errors"):
            raise ShopifyError(f"GraphQL errors: {data['errors']}")

        result = (data.get("data") or {}).get(mutation_name) or {}
        if result.get("userErrors"):
            raise ShopifyError(f"User errors: {result['userErrors']}")

    def add_tags(self, gid: str, tags: List[str]) -> None:
        self._mutate_tags("tagsAdd", gid, tags)

    def remove_tags(self, gid: str, tags: List[str]) -> None:
        self._mutate_tags("tagsRemove", gid, tags)

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def request_access_token(self) -> Dict[str, Any]:
        """
        Exchange the app's client credentials for an Admin API token.

        Returns the upstream status and raw body untouched so the operator can
        see exactly what Shopify said.
        """
        try:
            response = self.session.post(
                f"https://{self.config.SHOPIFY_STORE}/admin/oauth/access_token",
                json={
                    "client_id": self.config.SHOPIFY_CLIENT_ID,
                    "client_secret": self.config.SHOPIFY_CLIENT_SECRET,
                    "grant_type": "client_credentials",
                },
                headers={'Content-Type': 'application/json'},
                timeout=self.config.REQUEST_TIMEOUT,
            )
        except requests.exceptions.RequestException as e:
            raise ShopifyError(f"Token request failed: {e}") from e

        return {"status": response.status_code, "body": response.text}

    def probe_api_versions(self, versions: Sequence[str] = PROBE_API_VERSIONS) -> Dict[str, Any]:
        """Try the configured token against several API versions and REST."""
        token = self.config.SHOPIFY_ACCESS_TOKEN
        results: Dict[str, Any] = {
            "token_length": len(token),
            "token_preview": f"{token[:8]}...{token[-4:]}" if token else "MISSING",
            "store": self.config.SHOPIFY_STORE or "MISSING",
        }

        for version in versions:
            key = f"api_{version.replace('-', '_')}"
            try:
                response = self.session.post(
                    self.config.shopify_graphql_url_for(version),
                    json={"query": "{ shop { name } }"},
                    headers=self.headers,
                    timeout=self.config.REQUEST_TIMEOUT,
                )
                results[key] = {"status": response.status_code, "body": response.text[:500]}
            except requests.exceptions.RequestException as e:
                results[key] = {"error": str(e)}

        try:
            response = self.session.get(
                f"https://{self.config.SHOPIFY_STORE}/admin/api/{versions[0]}/orders.json",
                params={"limit": 1},
                headers={'X-Shopify-Access-Token': token},
                timeout=self.config.REQUEST_TIMEOUT,
            )
            results["rest_api"] = {"status": response.status_code, "body": response.text[:500]}
        except requests.exceptions.RequestException as e:
            results["rest_api"] = {"error": str(e)}

        return results


def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _amount(price_set: Optional[dict]) -> str:
    return ((price_set or {}).get("shopMoney") or {}).get("amount") or "0"


def parse_order(order_data: dict) -> Order:
    """Build an Order from the GraphQL `order` node."""
    line_items = []
    for item_edge in (order_data.get("lineItems") or {}).get("edges") or []:
        item = item_edge["node"]
        line_items.append(LineItem(
            sku=item.get("sku"),
            quantity=item.get("quantity") or 0,
            name=item.get("name"),
            price=_amount(item.get("originalUnitPriceSet")),
        ))

    address = order_data.get("shippingAddress")
    shipping_address = None
    if address:
        shipping_address = ShippingAddress(
            name=address.get("name"),
            first_name=address.get("firstName"),
            last_name=address.get("lastName"),
            company=address.get("company"),
            address1=address.get("address1"),
            address2=address.get("address2"),
            city=address.get("city"),
            province=address.get("province"),
            province_code=address.get("provinceCode"),
            zip=address.get("zip"),
            country=address.get("country"),
            country_code=address.get("countryCode"),
            phone=address.get("phone"),
        )

    return Order(
        id=order_data["id"],
        legacy_resource_id=order_data.get("legacyResourceId"),
        name=order_data.get("name"),
        tags=order_data.get("tags") or [],
        note=order_data.get("note"),
        email=order_data.get("email"),
        phone=order_data.get("phone"),
        created_at=_parse_datetime(order_data.get("createdAt")),
        shipping_price=_amount(order_data.get("totalShippingPriceSet")),
        total_price=_amount(order_data.get("currentTotalPriceSet")),
        shipping_address=shipping_address,
        line_items=line_items,
    )
