"""Delivery FastAPI application.

Storefront intake, the admin back office and the Telegram webhook, served
from one process. That process owns the dispatch board, which is rebuilt
from the open orders on startup.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000
"""

from contextlib import asynccontextmanager

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV selects the config overlay from domain.toml:
#   - unset / "test" → memory provider, sync processing
#   - "production"   → PostgreSQL from DATABASE_URL
from delivery.domain import delivery  # noqa: E402
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

delivery.init()

from delivery.api import admin_router, auth_router, order_router, register_error_handlers, telegram_router  # noqa: E402
from delivery.services.container import build_services, rebuild_board  # noqa: E402
from delivery.utils.logging import add_context, clear_context, get_logger  # noqa: E402

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    with delivery.domain_context():
        services = build_services()
        rebuild_board(services)
    app.state.services = services
    logger.info(
        "Delivery service started",
        zones=services.router.zones,
        channel=services.settings.CHANNEL_ADAPTER,
    )
    yield
    logger.info("Delivery service stopped")


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Delivery API",
    description="Order intake, courier dispatch and admin back office",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the delivery domain context and bind request details for logging."""
    if request.url.path == "/health":
        return await call_next(request)
    clear_context()
    add_context(method=request.method, path=request.url.path)
    with delivery.domain_context():
        response = await call_next(request)
    return response


register_error_handlers(app)

# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
app.include_router(order_router)
app.include_router(auth_router)
app.include_router(admin_router)
app.include_router(telegram_router)


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------
@app.get("/health")
async def health(request: Request):
    services = getattr(request.app.state, "services", None)
    return JSONResponse(
        content={
            "status": "ok",
            "domain": delivery.name,
            "open_assignments": len(services.board) if services else 0,
        }
    )
