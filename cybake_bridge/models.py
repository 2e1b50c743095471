"""
Pydantic models for Shopify orders, Cybake import payloads and the bridge API.
"""
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Shopify (source order)
# =============================================================================

class ShippingAddress(BaseModel):
    name: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    company: Optional[str] = None
    address1: Optional[str] = None
    address2: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    province_code: Optional[str] = None
    zip: Optional[str] = None
    country: Optional[str] = None
    country_code: Optional[str] = None
    phone: Optional[str] = None


class LineItem(BaseModel):
    sku: Optional[str] = None
    quantity: int = 0
    name: Optional[str] = None
    price: str = "0"


class Order(BaseModel):
    """Order as fetched from the Shopify Admin GraphQL API."""
    id: str  # GID
    legacy_resource_id: Optional[str] = None
    name: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    note: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    created_at: Optional[datetime] = None
    shipping_price: str = "0"
    total_price: str = "0"
    shipping_address: Optional[ShippingAddress] = None
    line_items: List[LineItem] = Field(default_factory=list)


class TagInfo(BaseModel):
    """Delivery metadata recovered from free-text order tags."""
    order_type: Optional[str] = None
    date_str: Optional[str] = None
    delivery_date: Optional[str] = None  # ISO timestamp
    day_of_week: Optional[str] = None
    time_window: Optional[str] = None
    location: Optional[str] = None


# =============================================================================
# Cybake (import payload)
# =============================================================================

class OrderLine(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    product_identifier: Optional[str] = Field(None, alias="ProductIdentifier")
    quantity: int = Field(0, alias="Quantity")
    price: float = Field(0.0, alias="Price")
    note: Optional[str] = Field(None, alias="Note")


class HomeOrderOptions(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    group_invoices_to_head_office: bool = Field(False, alias="GroupInvoicesToHeadOffice")
    send_invoices_to_head_office: bool = Field(False, alias="SendInvoicesToHeadOffice")
    export_invoices_to_head_office: bool = Field(False, alias="ExportInvoicesToHeadOffice")
    head_office_company_code: Optional[str] = Field(None, alias="HeadOfficeCompanyCode")
    order_source: int = Field(1, alias="OrderSource")
    group_order_items: bool = Field(False, alias="GroupOrderItems")


class HomeOrder(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    external_unique_identifier: str = Field(alias="ExternalUniqueIdentifier")
    delivery_customer: str = Field("Unknown", alias="DeliveryCustomer")
    delivery_date: Optional[str] = Field(None, alias="DeliveryDate")
    purchase_order_number: Optional[str] = Field(None, alias="PurchaseOrderNumber")
    ordered_date: Optional[str] = Field(None, alias="OrderedDate")
    order_note: Optional[str] = Field(None, alias="OrderNote")
    email: Optional[str] = Field(None, alias="Email")
    telephone: Optional[str] = Field(None, alias="Telephone")
    address_line_one: Optional[str] = Field(None, alias="AddressLineOne")
    address_line_two: Optional[str] = Field(None, alias="AddressLineTwo")
    address_line_three: Optional[str] = Field(None, alias="AddressLineThree")
    address_city: Optional[str] = Field(None, alias="AddressCity")
    address_country: Optional[str] = Field(None, alias="AddressCountry")
    address_county: Optional[str] = Field(None, alias="AddressCounty")
    address_postcode: Optional[str] = Field(None, alias="AddressPostcode")
    shipping: float = Field(0.0, alias="Shipping")
    order_lines: List[OrderLine] = Field(default_factory=list, alias="OrderLines")


class ImportPayload(BaseModel):
    """Body of POST /api/home. Serialise with to_wire()."""
    model_config = ConfigDict(populate_by_name=True)

    home_order_options: HomeOrderOptions = Field(
        default_factory=HomeOrderOptions, alias="HomeOrderOptions"
    )
    orders: List[HomeOrder] = Field(default_factory=list, alias="Orders")

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class ImportMeta(BaseModel):
    """Summary columns written to the import log alongside each attempt."""
    shopify_order_id: str
    order_number: str
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    delivery_date: Optional[str] = None  # YYYY-MM-DD
    order_type: Optional[str] = None
    line_items_count: int = 0
    order_total: Optional[float] = None


class ImportAttempt(ImportMeta):
    """One import or retry outcome, as handed to the log store."""
    status: Literal["success", "failed"]
    cybake_import_id: Optional[str] = None
    http_status: Optional[int] = None
    error_message: Optional[str] = None
    payload_sent: Optional[Dict[str, Any]] = None
    cybake_response: Optional[Any] = None


class SubmitResult(BaseModel):
    """Outcome of one call to Cybake. http_status 0 means no response."""
    success: bool
    http_status: int = 0
    data: Optional[Any] = None
    text: str = ""
    error: Optional[str] = None

    @property
    def import_id(self) -> Optional[str]:
        if isinstance(self.data, dict) and self.data.get("ImportItemId") is not None:
            return str(self.data["ImportItemId"])
        return None


# =============================================================================
# Bridge API
# =============================================================================

class ImportResponse(BaseModel):
    success: bool
    order: Optional[str] = None
    cybake_import_id: Optional[str] = None
    error: Optional[str] = None
    message: Optional[str] = None
    details: Optional[List[str]] = None


class ImportLogOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    shopify_order_id: str
    order_number: str
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    delivery_date: Optional[str] = None
    order_type: Optional[str] = None
    line_items_count: int = 0
    order_total: Optional[float] = None
    status: str
    cybake_import_id: Optional[str] = None
    http_status: Optional[int] = None
    error_message: Optional[str] = None
    payload_sent: Optional[Dict[str, Any]] = None
    cybake_response: Optional[Any] = None
    retry_count: int = 0
    created_at: datetime
    updated_at: datetime


class LogSummary(BaseModel):
    total: int = 0
    success: int = 0
    failed: int = 0


class LogsResponse(BaseModel):
    logs: List[ImportLogOut]
    total: int
    page: int
    limit: int
    summary: LogSummary


class HealthResponse(BaseModel):
    status: str
    timestamp: str
