"""Storefront intake, admin back office and Telegram webhook routes.

Routes that can send chat messages are plain functions, so FastAPI runs them
in its threadpool and a slow chat API holds a worker thread instead of the
event loop.
"""

import secrets
from typing import Any

import structlog
from fastapi import APIRouter, Body, Depends, Header, HTTPException
from protean.utils.globals import current_domain

from delivery.accounting.entries import RecordLedgerEntry
from delivery.accounting.ledger import all_entries, cash_balance
from delivery.api.dependencies import get_services, open_admin_session, require_admin
from delivery.api.schemas import (
    ApproveCustomerRequest,
    BlockCustomerRequest,
    CustomerResponse,
    DeleteOrderRequest,
    EntryIdResponse,
    LedgerEntryRequest,
    LedgerEntryResponse,
    LedgerResponse,
    LoginRequest,
    LoginResponse,
    OrderDetailResponse,
    OrderResponse,
    OrdersAffectedResponse,
    PlaceOrderRequest,
    PlaceOrderResponse,
    StatsResponse,
    StatusResponse,
    StockAfterResponse,
    StockLineResponse,
    StockMovementRequest,
    StockMovementResponse,
)
from delivery.customer.customer import list_customers
from delivery.inventory.movements import RecordStockMovement
from delivery.inventory.stock import all_movements, all_stock_lines, movements_for
from delivery.projections.order_timeline import timeline_for
from delivery.reporting.stats import compute_stats
from delivery.services.container import Services

logger = structlog.get_logger(__name__)


def _order_response(order, response_cls=OrderResponse, **extra):
    return response_cls(
        order_id=order.order_id,
        customer_handle=order.customer_handle,
        delivery_type=order.delivery_type,
        address=order.address,
        lines=[line.to_dict() for line in order.lines],
        declared_total=order.declared_total,
        discount=order.discount or 0.0,
        total_charged=order.total_charged,
        status=order.status,
        zone=order.zone,
        courier_id=order.courier_id,
        eta_minutes=order.eta_minutes,
        cancellation_reason=order.cancellation_reason,
        cancelled_by=order.cancelled_by,
        created_at=order.created_at,
        updated_at=order.updated_at,
        **extra,
    )


# ---------------------------------------------------------------------------
# Storefront Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=PlaceOrderResponse)
def place_order(body: PlaceOrderRequest, services: Services = Depends(get_services)) -> PlaceOrderResponse:
    result = services.intake.place_order(body.model_dump())
    return PlaceOrderResponse(
        order_id=result.order_id,
        applied_discount=result.applied_discount,
        requires_approval=result.requires_approval,
    )


# ---------------------------------------------------------------------------
# Admin Routers
# ---------------------------------------------------------------------------
auth_router = APIRouter(prefix="/admin", tags=["admin"])
admin_router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


@auth_router.post("/login", response_model=LoginResponse)
async def login(body: LoginRequest, services: Services = Depends(get_services)) -> LoginResponse:
    token = open_admin_session(services, body.password)
    logger.info("Admin session opened")
    return LoginResponse(token=token, expires_in=int(services.settings.ADMIN_TOKEN_TTL_SECONDS))


@admin_router.get("/customers", response_model=list[CustomerResponse])
async def get_customers(status: str | None = None) -> list[CustomerResponse]:
    return [
        CustomerResponse(
            handle=record.handle,
            status=record.status,
            first_seen_at=record.first_seen_at,
            approved_at=record.approved_at,
            approved_by=record.approved_by,
            blocked_at=record.blocked_at,
            block_reason=record.block_reason,
            notes=record.notes,
        )
        for record in list_customers(status)
    ]


@admin_router.post("/customers/{handle}/approve", response_model=OrdersAffectedResponse)
def approve_customer(
    handle: str,
    body: ApproveCustomerRequest | None = None,
    services: Services = Depends(get_services),
) -> OrdersAffectedResponse:
    released = services.moderation.approve_customer(handle, approver="admin", note=body.note if body else None)
    return OrdersAffectedResponse(orders_affected=released)


@admin_router.post("/customers/{handle}/block", response_model=OrdersAffectedResponse)
def block_customer(
    handle: str,
    body: BlockCustomerRequest | None = None,
    services: Services = Depends(get_services),
) -> OrdersAffectedResponse:
    cancelled = services.moderation.block_customer(handle, reason=body.reason if body else None)
    return OrdersAffectedResponse(orders_affected=cancelled)


@admin_router.get("/orders", response_model=list[OrderResponse])
async def get_orders(
    status: str | None = None,
    customer: str | None = None,
    services: Services = Depends(get_services),
) -> list[OrderResponse]:
    return [_order_response(order) for order in services.store.list_orders(status=status, customer_handle=customer)]


@admin_router.get("/orders/{order_id}", response_model=OrderDetailResponse)
async def get_order(order_id: int, services: Services = Depends(get_services)) -> OrderDetailResponse:
    order = services.store.get(order_id)
    return _order_response(order, OrderDetailResponse, timeline=timeline_for(order.order_id))


@admin_router.delete("/orders/{order_id}", response_model=OrderResponse)
def delete_order(
    order_id: int,
    body: DeleteOrderRequest | None = None,
    services: Services = Depends(get_services),
) -> OrderResponse:
    reason = body.reason if body else DeleteOrderRequest().reason
    return _order_response(services.moderation.delete_order(order_id, reason))


@admin_router.get("/stock", response_model=list[StockLineResponse])
async def get_stock() -> list[StockLineResponse]:
    return [
        StockLineResponse(
            key=line.key,
            product_id=line.product_id,
            variant=line.variant,
            name=line.name,
            quantity=line.quantity or 0,
        )
        for line in all_stock_lines()
    ]


@admin_router.post("/stock/movements", status_code=201, response_model=StockAfterResponse)
async def record_stock_movement(body: StockMovementRequest) -> StockAfterResponse:
    command = RecordStockMovement(
        product_id=body.product_id,
        variant=body.variant,
        name=body.name,
        direction=body.direction,
        quantity=body.quantity,
        reason=body.reason,
    )
    stock_after = current_domain.process(command, asynchronous=False)
    return StockAfterResponse(stock_after=stock_after)


@admin_router.get("/stock/movements", response_model=list[StockMovementResponse])
async def get_stock_movements(product_id: str | None = None, variant: str | None = None) -> list[StockMovementResponse]:
    movements = movements_for(product_id, variant) if product_id else all_movements()
    return [
        StockMovementResponse(
            product_id=m.product_id,
            variant=m.variant,
            direction=m.direction,
            requested_quantity=m.requested_quantity,
            quantity=m.quantity,
            stock_after=m.stock_after,
            reason=m.reason,
            order_id=m.order_id,
            created_at=m.created_at,
        )
        for m in movements
    ]


@admin_router.get("/ledger", response_model=LedgerResponse)
async def get_ledger() -> LedgerResponse:
    entries = all_entries()
    return LedgerResponse(
        entries=[
            LedgerEntryResponse(
                entry_type=e.entry_type,
                amount=e.amount,
                category=e.category,
                description=e.description,
                order_id=e.order_id,
                created_at=e.created_at,
            )
            for e in entries
        ],
        balance=cash_balance(entries),
    )


@admin_router.post("/ledger", status_code=201, response_model=EntryIdResponse)
async def record_ledger_entry(body: LedgerEntryRequest) -> EntryIdResponse:
    command = RecordLedgerEntry(
        entry_type=body.entry_type,
        amount=body.amount,
        category=body.category,
        description=body.description,
    )
    entry_id = current_domain.process(command, asynchronous=False)
    return EntryIdResponse(entry_id=entry_id)


@admin_router.get("/stats", response_model=StatsResponse)
async def get_stats(services: Services = Depends(get_services)) -> StatsResponse:
    return StatsResponse(**compute_stats(services.settings.LOW_STOCK_THRESHOLD).to_dict())


# ---------------------------------------------------------------------------
# Telegram Router
# ---------------------------------------------------------------------------
telegram_router = APIRouter(prefix="/telegram", tags=["telegram"])


@telegram_router.post("/webhook", response_model=StatusResponse)
def telegram_webhook(
    update: dict[str, Any] = Body(...),
    x_telegram_bot_api_secret_token: str = Header(default=""),
    services: Services = Depends(get_services),
) -> StatusResponse:
    """Process one update pushed by Telegram."""
    secret = services.settings.TELEGRAM_WEBHOOK_SECRET
    if secret and not secrets.compare_digest(x_telegram_bot_api_secret_token.encode(), secret.encode()):
        raise HTTPException(status_code=401, detail="Invalid webhook secret")

    services.dispatch.handle(services.hub.parse(update))
    return StatusResponse()
