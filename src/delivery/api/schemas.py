"""Pydantic request/response schemas for the delivery API.

These are external contracts, kept apart from the internal Protean
commands. Cart contents are only loosely typed here: the intake service
validates them and answers 400 with every problem it finds.
"""

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Storefront intake
# ---------------------------------------------------------------------------
class OrderItemSchema(BaseModel):
    product_id: str
    name: str
    variant: str | None = None
    quantity: int
    unit_price: float


class PlaceOrderRequest(BaseModel):
    customer_handle: str
    delivery_type: str
    address: str | None = None
    items: list[OrderItemSchema] = Field(default_factory=list)
    declared_total: float

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "customer_handle": "@night_owl",
                    "delivery_type": "Livraison Millau",
                    "address": "12 rue du Pont",
                    "items": [
                        {
                            "product_id": "p-7",
                            "name": "Cookie",
                            "variant": "chocolat",
                            "quantity": 2,
                            "unit_price": 12.5,
                        }
                    ],
                    "declared_total": 25.0,
                }
            ]
        }
    }


class PlaceOrderResponse(BaseModel):
    order_id: int
    applied_discount: float
    requires_approval: bool


# ---------------------------------------------------------------------------
# Admin session
# ---------------------------------------------------------------------------
class LoginRequest(BaseModel):
    password: str


class LoginResponse(BaseModel):
    token: str
    expires_in: int


# ---------------------------------------------------------------------------
# Customers
# ---------------------------------------------------------------------------
class ApproveCustomerRequest(BaseModel):
    note: str | None = None


class BlockCustomerRequest(BaseModel):
    reason: str | None = None


class OrdersAffectedResponse(BaseModel):
    orders_affected: int


class CustomerResponse(BaseModel):
    handle: str
    status: str
    first_seen_at: datetime | None = None
    approved_at: datetime | None = None
    approved_by: str | None = None
    blocked_at: datetime | None = None
    block_reason: str | None = None
    notes: str | None = None


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
class OrderLineResponse(BaseModel):
    product_id: str
    name: str
    variant: str | None = None
    quantity: int
    unit_price: float
    line_total: float


class OrderResponse(BaseModel):
    order_id: int
    customer_handle: str
    delivery_type: str
    address: str | None = None
    lines: list[OrderLineResponse]
    declared_total: float
    discount: float
    total_charged: float
    status: str
    zone: str | None = None
    courier_id: str | None = None
    eta_minutes: int | None = None
    cancellation_reason: str | None = None
    cancelled_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class TimelineEntryResponse(BaseModel):
    event_type: str
    description: str
    occurred_at: datetime


class OrderDetailResponse(OrderResponse):
    timeline: list[TimelineEntryResponse] = Field(default_factory=list)


class DeleteOrderRequest(BaseModel):
    reason: str = "Supprimée par l'administrateur"


# ---------------------------------------------------------------------------
# Stock
# ---------------------------------------------------------------------------
class StockLineResponse(BaseModel):
    key: str
    product_id: str
    variant: str | None = None
    name: str | None = None
    quantity: int


class StockMovementRequest(BaseModel):
    product_id: str
    variant: str | None = None
    name: str | None = None
    direction: str = Field(pattern="^(in|out)$")
    quantity: int
    reason: str | None = None


class StockMovementResponse(BaseModel):
    product_id: str
    variant: str | None = None
    direction: str
    requested_quantity: int
    quantity: int
    stock_after: int
    reason: str | None = None
    order_id: int | None = None
    created_at: datetime | None = None


class StockAfterResponse(BaseModel):
    stock_after: int


# ---------------------------------------------------------------------------
# Ledger
# ---------------------------------------------------------------------------
class LedgerEntryRequest(BaseModel):
    entry_type: str = Field(pattern="^(revenue|expense)$")
    amount: float
    category: str | None = None
    description: str | None = None


class LedgerEntryResponse(BaseModel):
    entry_type: str
    amount: float
    category: str | None = None
    description: str | None = None
    order_id: int | None = None
    created_at: datetime | None = None


class LedgerResponse(BaseModel):
    entries: list[LedgerEntryResponse]
    balance: float


class EntryIdResponse(BaseModel):
    entry_id: str


# ---------------------------------------------------------------------------
# Stats
# ---------------------------------------------------------------------------
class StatsResponse(BaseModel):
    revenue: float
    order_count: int
    average_basket: float
    top_product: str | None = None
    out_of_stock: int
    low_stock: int


class StatusResponse(BaseModel):
    status: str = "ok"
