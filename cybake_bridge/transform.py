"""
Shopify order -> Cybake home-order payload.
"""
import re
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional, Tuple

from .models import (
    HomeOrder,
    HomeOrderOptions,
    ImportMeta,
    ImportPayload,
    LineItem,
    Order,
    OrderLine,
    TagInfo,
)
from .tags import parse_tags, to_iso

GID_PREFIX = "gid://shopify/Order/"

PLACEHOLDER_EMAIL = "noemail@placeholder.com"
MISSING = "N/A"

FALLBACK_DELIVERY_DAYS = 3
NOTE_SEPARATOR = " | "

_FLOAT_SKU = re.compile(r"^\d+\.0$")


def numeric_order_id(order_id) -> str:
    """gid://shopify/Order/123456 -> 123456 (plain ids pass through)."""
    return str(order_id).strip().replace(GID_PREFIX, "", 1)


def order_gid(order_id) -> str:
    return f"{GID_PREFIX}{numeric_order_id(order_id)}"


def clean_sku(sku) -> Optional[str]:
    """Trim and undo spreadsheet float formatting ("123.0" -> "123")."""
    if sku is None:
        return None
    s = str(sku).strip()
    if _FLOAT_SKU.match(s):
        s = s[:-2]
    return s or None


def clean_phone(phone) -> Optional[str]:
    """Strip the leading apostrophes spreadsheet exports add to phone numbers."""
    if not phone:
        return None
    return str(phone).lstrip("'").strip() or None


def parse_amount(amount) -> float:
    try:
        return float(amount or 0)
    except (TypeError, ValueError):
        return 0.0


def consolidate_line_items(items: Iterable[LineItem]) -> List[OrderLine]:
    """
    Merge line items that share a SKU.

    Items without a SKU or with a non-positive quantity are dropped.
    Quantities add up, the price of the first occurrence is kept and differing
    display names are appended to the note.
    """
    lines: Dict[str, OrderLine] = {}

    for item in items:
        sku = clean_sku(item.sku)
        if not sku or not item.quantity or item.quantity <= 0:
            continue

        existing = lines.get(sku)
        if existing is None:
            lines[sku] = OrderLine(
                product_identifier=sku,
                quantity=item.quantity,
                price=parse_amount(item.price),
                note=item.name or None,
            )
            continue

        existing.quantity += item.quantity
        if item.name and existing.note != item.name:
            existing.note = f"{existing.note}; {item.name}" if existing.note else item.name

    return list(lines.values())


def fallback_delivery_date(order: Order, now: Optional[datetime] = None) -> str:
    base = order.created_at or now or datetime.now(timezone.utc)
    return to_iso(base + timedelta(days=FALLBACK_DELIVERY_DAYS))


def build_order_note(tag_info: TagInfo, customer_note: Optional[str]) -> Optional[str]:
    parts = []
    if tag_info.order_type:
        parts.append(tag_info.order_type)
    if tag_info.day_of_week and tag_info.date_str:
        parts.append(f"{tag_info.day_of_week}, {tag_info.date_str}")
    elif tag_info.date_str:
        parts.append(tag_info.date_str)
    if tag_info.time_window:
        parts.append(tag_info.time_window)
    if tag_info.location:
        parts.append(tag_info.location)

    note = (customer_note or "").strip()
    if note and note.lower() != "null":
        parts.append(f"Customer Note: {note}")

    return NOTE_SEPARATOR.join(parts) if parts else None


def transform_order(order: Order, now: Optional[datetime] = None) -> Tuple[ImportPayload, ImportMeta]:
    """Build the Cybake payload and the log summary for one Shopify order."""
    tag_info = parse_tags(order.tags)
    lines = consolidate_line_items(order.line_items)
    shipping = order.shipping_address
    numeric_id = order.legacy_resource_id or numeric_order_id(order.id)
    delivery_date = tag_info.delivery_date or fallback_delivery_date(order, now)
    customer = (shipping.name if shipping else None) or "Unknown"

    home_order = HomeOrder(
        external_unique_identifier=f"SHOPIFY-{(order.name or '').replace('#', '', 1)}-{numeric_id}",
        delivery_customer=customer,
        delivery_date=delivery_date,
        purchase_order_number=order.name or f"SHOP-{numeric_id}",
        ordered_date=to_iso(order.created_at or now or datetime.now(timezone.utc)),
        order_note=build_order_note(tag_info, order.note),
        email=order.email or PLACEHOLDER_EMAIL,
        telephone=clean_phone((shipping.phone if shipping else None) or order.phone),
        address_line_one=(shipping.address1 if shipping else None) or MISSING,
        address_line_two=(shipping.address2 if shipping else None) or None,
        address_line_three=None,
        address_city=(shipping.city if shipping else None) or None,
        address_country=(shipping.country if shipping else None) or None,
        address_county=(shipping.province if shipping else None) or None,
        address_postcode=(shipping.zip if shipping else None) or MISSING,
        shipping=parse_amount(order.shipping_price),
        order_lines=lines,
    )
    payload = ImportPayload(home_order_options=HomeOrderOptions(), orders=[home_order])

    meta = ImportMeta(
        shopify_order_id=numeric_id,
        order_number=order.name or f"#{numeric_id}",
        customer_name=customer,
        customer_email=order.email,
        delivery_date=delivery_date.split("T")[0],
        order_type=tag_info.order_type or "Unknown",
        line_items_count=len(lines),
        order_total=parse_amount(order.total_price),
    )
    return payload, meta
