"""
Tag parsing.

Shopify orders carry their delivery details as free-text tags written by the
store's delivery app and by staff, e.g.::

    ["Local Delivery", "15 June 2025", "9:00 AM - 12:00 PM", "Hove"]

parse_tags() makes one left-to-right pass and drops each tag into the first
bucket it fits. Buckets for order type and location keep the first tag they
receive; anything that arrives later is ignored.
"""
import re
from datetime import datetime, timezone
from typing import Iterable, Optional

from .models import TagInfo

# Tags the bridge writes back to Shopify
IMPORTED_TAG = "Cybake-Imported"
FAILED_TAG = "Cybake-Failed"
PENDING_TAG = "Cybake-Pending"

SYSTEM_TAGS = {t.lower() for t in (IMPORTED_TAG, FAILED_TAG, PENDING_TAG)}

TIME_PATTERN = re.compile(r"\d{1,2}:\d{2}\s*[AP]M\s*-\s*\d{1,2}:\d{2}\s*[AP]M", re.IGNORECASE)
DATE_PATTERN = re.compile(r"^\d{1,2}\s+\w{3,}\s+\d{4}$")

# Substring match, so "Local Delivery - Brighton" is an order type
ORDER_TYPES = ("local delivery", "store pickup", "shipping", "delivery", "pickup")

DATE_FORMATS = ("%d %B %Y", "%d %b %Y")


def to_iso(value: datetime) -> str:
    """UTC timestamp in the millisecond 'Z' form Cybake expects."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def parse_tag_date(text: str) -> Optional[datetime]:
    """Parse 'D Month YYYY' (full or abbreviated month) as UTC midnight."""
    normalized = " ".join(text.split())
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(normalized, fmt).replace(tzinfo=timezone.utc)
        except ValueError:
            continue
    return None


def is_system_tag(tag: str) -> bool:
    return tag.strip().lower() in SYSTEM_TAGS


def parse_tags(tags: Iterable[str]) -> TagInfo:
    info = TagInfo()

    for tag in tags:
        trimmed = (tag or "").strip()
        if not trimmed or is_system_tag(trimmed):
            continue

        if TIME_PATTERN.search(trimmed):
            info.time_window = trimmed
        elif DATE_PATTERN.match(trimmed):
            info.date_str = trimmed
            parsed = parse_tag_date(trimmed)
            if parsed is not None:
                info.delivery_date = to_iso(parsed)
                info.day_of_week = parsed.strftime("%A")
        elif any(ot in trimmed.lower() for ot in ORDER_TYPES):
            if info.order_type is None:
                info.order_type = trimmed
        elif info.location is None:
            info.location = trimmed

    return info
