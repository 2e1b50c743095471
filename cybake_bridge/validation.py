"""
Payload checks run before anything is sent to Cybake.
"""
from typing import List

from .models import ImportPayload
from .transform import MISSING, PLACEHOLDER_EMAIL


def validate_payload(payload: ImportPayload) -> List[str]:
    """Return every problem found, in a stable order. Empty means valid."""
    if not payload.orders:
        return ["No order data"]

    order = payload.orders[0]
    errors = []

    if not order.email or order.email == PLACEHOLDER_EMAIL:
        errors.append("Missing email")
    if not order.address_line_one or order.address_line_one == MISSING:
        errors.append("Missing address")
    if not order.address_postcode or order.address_postcode == MISSING:
        errors.append("Missing postcode")
    if not order.delivery_date:
        errors.append("Could not parse delivery date from tags")
    if not order.order_lines:
        errors.append("No valid line items (missing SKUs?)")

    for line in order.order_lines:
        if not line.product_identifier:
            errors.append(f"Line item missing SKU: {line.note or 'unknown'}")
        if not line.quantity or line.quantity <= 0:
            errors.append(f"Invalid quantity for {line.product_identifier}")

    return errors
