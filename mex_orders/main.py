"""
FastAPI Application Entry Point

The Mex ordering backend with real-time order tracking.

Endpoints:
    - POST /api/orders: Place an order
    - GET /api/orders/{id}: Get one order
    - GET /api/admin/orders: List orders (admin)
    - PATCH /api/orders/{id}/status: Change order status (admin)
    - DELETE /api/orders/{id}: Delete an order (admin)
    - WS /ws: Live order tracking
    - GET /health: System health check

Author: Khalil Bannouri
Version: 1.0.0
"""

import asyncio
import logging
import secrets
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from fastapi import (
    APIRouter,
    Depends,
    FastAPI,
    Header,
    HTTPException,
    Query,
    Request,
    WebSocket,
)
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import redis

from mex_orders.core.config import Settings, get_settings, setup_logging
from mex_orders.database import init_db
from mex_orders.exceptions import (
    InvalidStatusError,
    InvalidStatusTransitionError,
    OrderNotFoundError,
)
from mex_orders.realtime import BroadcastEngine, ConnectionHandler, SubscriptionRegistry
from mex_orders.schemas import (
    ErrorResponse,
    HealthResponse,
    MessageResponse,
    OrderCreate,
    OrderListResponse,
    OrderResponse,
    OrderStatusUpdate,
    RealtimeStats,
)
from mex_orders.services.notifications import (
    NotificationDispatcher,
    QueuedNotificationDispatcher,
    get_notification_service,
)
from mex_orders.services.orders import BaseOrderStore, SqlOrderStore, create_order_store
from mex_orders.services.status import StatusNotifier, StatusTransitionCoordinator
from mex_orders.tasks import send_order_status_sms

# Initialize configuration and logging
settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)


# =============================================================================
# DEPENDENCIES
# =============================================================================

def get_order_store(request: Request) -> BaseOrderStore:
    return request.app.state.order_store


def get_coordinator(request: Request) -> StatusTransitionCoordinator:
    return request.app.state.coordinator


def require_admin(
    x_admin_token: Optional[str] = Header(None, alias="x-admin-token"),
) -> None:
    """
    Gate staff-only routes behind the shared admin token.

    Without ADMIN_API_TOKEN the routes stay open in development only.
    """
    settings = get_settings()

    if settings.admin_api_token:
        if not x_admin_token or not secrets.compare_digest(
            x_admin_token, settings.admin_api_token
        ):
            raise HTTPException(status_code=401, detail="Admin token required")
        return

    if not settings.is_development:
        raise HTTPException(
            status_code=403,
            detail="Admin API disabled: ADMIN_API_TOKEN is not configured"
        )


def build_notifier(settings: Settings) -> StatusNotifier:
    """Pick in-process or Celery delivery for status SMS."""
    if settings.notification_queue_enabled:
        logger.info("✅ Status SMS: queued through Celery")
        return QueuedNotificationDispatcher(send_order_status_sms)

    service = get_notification_service()
    logger.info(f"✅ Status SMS: sent in-process ({service.provider_name})")
    return NotificationDispatcher(service)


def _ping_redis(url: str) -> None:
    r = redis.Redis.from_url(url, socket_timeout=2)
    try:
        r.ping()
    finally:
        r.close()


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

router = APIRouter()


@router.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """API root with navigation links."""
    settings = get_settings()
    return {
        "message": f"🌮 Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": "/docs",
        "order_tracking": settings.ws_path,
        "health": "/health",
    }


@router.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="System Health Check",
)
async def health_check(
    request: Request,
    store: BaseOrderStore = Depends(get_order_store),
) -> HealthResponse:
    """Verify all system components are operational."""
    settings = get_settings()

    store_status = "healthy" if await store.health_check() else "unhealthy"

    # Check Redis
    redis_status = "healthy"
    try:
        await asyncio.to_thread(_ping_redis, settings.redis_url)
    except Exception as e:
        redis_status = f"unhealthy: {str(e)}"
        logger.error(f"Redis health check failed: {e}")

    notification_service = get_notification_service()
    notification_status = (
        "healthy" if await notification_service.health_check() else "unhealthy"
    )

    registry: SubscriptionRegistry = request.app.state.registry

    overall = "operational" if all(
        s == "healthy" for s in [store_status, redis_status, notification_status]
    ) else "degraded"

    return HealthResponse(
        status=overall,
        order_store=store_status,
        redis=redis_status,
        notification_service=notification_status,
        realtime=RealtimeStats(
            subscribed_connections=registry.connection_count,
            tracked_orders=registry.order_count,
            subscriptions=registry.subscription_count,
        ),
        timestamp=datetime.now(),
    )


# =============================================================================
# ORDER API ENDPOINTS
# =============================================================================

@router.post(
    "/api/orders",
    response_model=OrderResponse,
    status_code=201,
    responses={400: {"model": ErrorResponse}},
    tags=["Orders"],
    summary="Place Order",
)
async def create_order(
    order_data: OrderCreate,
    store: BaseOrderStore = Depends(get_order_store),
) -> OrderResponse:
    """Place a new order. Payment is cash on pickup."""
    logger.info(f"Creating order for: {order_data.customer_name}")

    order = await store.create_order(order_data)

    logger.info(f"Order #{order.id} created successfully")
    return order


@router.get(
    "/api/orders/{order_id}",
    response_model=OrderResponse,
    responses={404: {"model": ErrorResponse}},
    tags=["Orders"],
)
async def get_order(
    order_id: int,
    store: BaseOrderStore = Depends(get_order_store),
) -> OrderResponse:
    """Get a specific order by ID."""
    order = await store.get_order(order_id)

    if not order:
        raise HTTPException(status_code=404, detail=f"Order #{order_id} not found")

    return order


@router.get(
    "/api/admin/orders",
    response_model=OrderListResponse,
    dependencies=[Depends(require_admin)],
    tags=["Admin"],
    summary="List Orders",
)
async def list_orders(
    status: Optional[str] = Query(None),
    store: BaseOrderStore = Depends(get_order_store),
) -> OrderListResponse:
    """Retrieve all orders, optionally filtered by status."""
    orders = await store.list_orders(status=status.lower() if status else None)
    return OrderListResponse(total=len(orders), orders=orders)


@router.patch(
    "/api/orders/{order_id}/status",
    response_model=OrderResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
    dependencies=[Depends(require_admin)],
    tags=["Admin"],
    summary="Update Order Status",
)
async def update_order_status(
    order_id: int,
    update: OrderStatusUpdate,
    coordinator: StatusTransitionCoordinator = Depends(get_coordinator),
) -> OrderResponse:
    """
    Move an order to a new status.

    Subscribed customers receive the update over the tracking WebSocket;
    confirmed/preparing/ready also send the customer an SMS. The response
    does not wait for the SMS.
    """
    try:
        return await coordinator.transition(order_id, update.status)
    except InvalidStatusError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except OrderNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidStatusTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.delete(
    "/api/orders/{order_id}",
    response_model=MessageResponse,
    responses={404: {"model": ErrorResponse}},
    dependencies=[Depends(require_admin)],
    tags=["Admin"],
)
async def delete_order(
    order_id: int,
    coordinator: StatusTransitionCoordinator = Depends(get_coordinator),
) -> MessageResponse:
    """Delete an order; subscribers are told it is gone."""
    try:
        await coordinator.delete(order_id)
    except OrderNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return MessageResponse(message="Order deleted successfully")


# =============================================================================
# ORDER TRACKING WEBSOCKET
# =============================================================================

async def order_tracking_ws(websocket: WebSocket) -> None:
    """One customer tracking connection."""
    state = websocket.app.state
    handler = ConnectionHandler(
        websocket,
        registry=state.registry,
        store=state.order_store,
        send_timeout=get_settings().ws_send_timeout_seconds,
    )
    await handler.run()


# =============================================================================
# ERROR HANDLERS
# =============================================================================

async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal Server Error",
            "detail": str(exc) if get_settings().debug else "An unexpected error occurred",
        },
    )


# =============================================================================
# APPLICATION FACTORY
# =============================================================================

def create_app(
    order_store: Optional[BaseOrderStore] = None,
    notifier: Optional[StatusNotifier] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        order_store: Use this store instead of the configured one
        notifier: Use this notifier instead of the configured dispatcher
    """
    settings = get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Manage application startup and shutdown events.
        """
        # Startup
        logger.info("=" * 60)
        logger.info(f"🚀 Starting {settings.app_name}")
        logger.info(f"   Version: {settings.app_version}")
        logger.info(f"   Environment: {settings.env_mode.value}")
        logger.info(f"   Debug: {settings.debug}")
        logger.info("=" * 60)

        store = order_store or create_order_store()
        if isinstance(store, SqlOrderStore):
            await init_db()
            logger.info("✅ Database initialized")
        logger.info(f"✅ Order Store: {store.backend_name}")

        registry: SubscriptionRegistry[ConnectionHandler] = SubscriptionRegistry()
        broadcaster = BroadcastEngine(registry)
        coordinator = StatusTransitionCoordinator(
            store,
            broadcaster,
            notifier or build_notifier(settings),
            notify_statuses=settings.notify_statuses_list,
            strict=settings.strict_status_transitions,
        )

        app.state.order_store = store
        app.state.registry = registry
        app.state.broadcaster = broadcaster
        app.state.coordinator = coordinator
        logger.info(f"✅ Order tracking WebSocket at {settings.ws_path}")

        # Validate production config
        if settings.use_real_services:
            missing = settings.validate_production_config()
            if missing:
                logger.warning(f"⚠️ Missing production config: {missing}")

        logger.info("=" * 60)
        logger.info("✅ Application ready!")
        logger.info("=" * 60)

        yield  # Application runs

        # Shutdown
        logger.info("Shutting down...")
        await coordinator.drain()
        registry.clear()
        await store.close()
        logger.info("✅ Cleanup complete")

    app = FastAPI(
        title=settings.app_name,
        description=(
            "Restaurant ordering API with live order tracking. Staff status "
            "changes are pushed to customers over WebSocket and by SMS."
        ),
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router)
    app.add_api_websocket_route(settings.ws_path, order_tracking_ws)
    app.add_exception_handler(Exception, global_exception_handler)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "mex_orders.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.is_development,
    )
