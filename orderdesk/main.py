"""
FastAPI Application Entry Point

OrderDesk - order taking with live staff notifications.

Endpoints:
    - POST /api/orders: Place an order (customers)
    - GET /api/orders: List orders (staff)
    - GET /api/orders/{id}: Get one order
    - PUT /api/orders/{id}/status: Move an order through its workflow
    - POST /api/staff/login: Staff login
    - POST /api/subscribe: Register a Web Push subscription
    - DELETE /api/subscribe: Remove a Web Push subscription
    - GET /api/stats: Order counters
    - WS /ws: Live order events for staff screens
    - GET /health: System health check

Run with:
    uvicorn orderdesk.main:app --port 3000
"""

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional
from contextlib import asynccontextmanager

from fastapi import (
    APIRouter,
    Body,
    Depends,
    FastAPI,
    Query,
    Request,
    WebSocket,
    WebSocketDisconnect,
    status,
)
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from orderdesk.core.config import Settings, get_settings, setup_logging
from orderdesk.core.exceptions import OrderDeskError
from orderdesk.dependencies import (
    ServiceContainer,
    build_services,
    get_manager,
    get_registry,
    get_services,
    get_staff_directory,
)
from orderdesk.models import Order, PushSubscription
from orderdesk.realtime import (
    EVENT_ERROR,
    EVENT_EXISTING_ORDERS,
    EVENT_UPDATE_ORDER_STATUS,
)
from orderdesk.schemas import (
    ErrorResponse,
    HealthResponse,
    OrderCreateResponse,
    PublicKeyResponse,
    StaffLogin,
    StaffLoginResponse,
    StaffPublic,
    StatsResponse,
    StatusUpdate,
    StatusUpdateEvent,
    SubscribeResponse,
    Unsubscribe,
    UnsubscribeResponse,
)
from orderdesk.services import OrderLifecycleManager, StaffDirectory, SubscriptionRegistry
from orderdesk.services.lifecycle import describe_validation_error

logger = logging.getLogger(__name__)

router = APIRouter()

ERROR_RESPONSES = {400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown events.
    """
    services: ServiceContainer = app.state.services
    settings = services.settings

    # Startup
    logger.info("=" * 60)
    logger.info(f"🚀 Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Debug: {settings.debug}")
    logger.info("=" * 60)

    await services.start()
    logger.info(f"✅ Storage: {services.storage.backend_name}")
    logger.info(f"✅ Push Service: {services.push_service.provider_name}")
    logger.info(f"✅ Push Dispatch: {settings.push_dispatch.value}")

    if settings.use_real_services:
        missing = settings.validate_production_config()
        if missing:
            logger.warning(f"⚠️ Missing production config: {missing}")

    logger.info("✅ Application ready!")

    yield  # Application runs

    # Shutdown
    logger.info("Shutting down...")
    await services.stop()
    logger.info("✅ Cleanup complete")


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@router.get("/", tags=["Root"])
async def root(services: ServiceContainer = Depends(get_services)) -> dict[str, str]:
    """API root with navigation links."""
    settings = services.settings
    return {
        "message": f"🍕 Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": "/docs",
        "health": "/health",
    }


@router.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="System Health Check",
)
async def health_check(services: ServiceContainer = Depends(get_services)) -> HealthResponse:
    """Verify all system components are operational."""
    storage_status = "healthy" if await services.storage.health_check() else "unhealthy"
    push_status = "healthy" if await services.push_service.health_check() else "unhealthy"

    overall = "operational" if storage_status == push_status == "healthy" else "degraded"

    return HealthResponse(
        status=overall,
        storage=storage_status,
        push_service=push_status,
        realtime_connections=services.channel.connection_count,
        timestamp=datetime.now(timezone.utc),
    )


# =============================================================================
# ORDER API ENDPOINTS
# =============================================================================

@router.post(
    "/api/orders",
    response_model=OrderCreateResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ERROR_RESPONSES,
    tags=["Orders"],
    summary="Place Order",
)
async def create_order(
    payload: Any = Body(...),
    manager: OrderLifecycleManager = Depends(get_manager),
) -> OrderCreateResponse:
    """
    Place a new order.

    Validation happens in the lifecycle manager so a missing customer
    field or an empty item list comes back as a 400 with the reason.
    Staff are notified after the response is on its way.
    """
    order = await manager.place_order(payload)
    return OrderCreateResponse(
        message="Order placed successfully!",
        order_id=order.id,
        order=order,
    )


@router.get(
    "/api/orders",
    response_model=list[Order],
    responses=ERROR_RESPONSES,
    tags=["Orders"],
    summary="List Orders",
)
async def list_orders(
    status_filter: Optional[str] = Query(None, alias="status"),
    manager: OrderLifecycleManager = Depends(get_manager),
) -> list[Order]:
    """All orders in the order they were placed."""
    return await manager.list_orders(status=status_filter)


@router.get(
    "/api/orders/{order_id}",
    response_model=Order,
    responses={404: {"model": ErrorResponse}},
    tags=["Orders"],
)
async def get_order(
    order_id: str,
    manager: OrderLifecycleManager = Depends(get_manager),
) -> Order:
    """Get a specific order by ID."""
    return await manager.get_order(order_id)


@router.put(
    "/api/orders/{order_id}/status",
    response_model=Order,
    responses={**ERROR_RESPONSES, 404: {"model": ErrorResponse}},
    tags=["Orders"],
    summary="Update Order Status",
)
async def update_order_status(
    order_id: str,
    body: StatusUpdate,
    manager: OrderLifecycleManager = Depends(get_manager),
) -> Order:
    """Move an order to a new status."""
    return await manager.change_status(order_id, body.status)


@router.get("/api/stats", response_model=StatsResponse, tags=["Orders"])
async def order_stats(manager: OrderLifecycleManager = Depends(get_manager)) -> StatsResponse:
    return await manager.stats()


# =============================================================================
# STAFF & PUSH SUBSCRIPTION ENDPOINTS
# =============================================================================

@router.post(
    "/api/staff/login",
    response_model=StaffLoginResponse,
    responses={401: {"model": ErrorResponse}},
    tags=["Staff"],
    summary="Staff Login",
)
async def staff_login(
    body: StaffLogin,
    staff: StaffDirectory = Depends(get_staff_directory),
    services: ServiceContainer = Depends(get_services),
) -> StaffLoginResponse:
    """Check staff credentials and hand out the VAPID public key."""
    # Argon2 verification is CPU-bound; keep it off the event loop.
    member = await asyncio.to_thread(staff.authenticate, body.staff_id, body.password)
    return StaffLoginResponse(
        message="Login successful",
        staff=StaffPublic(id=member.id, name=member.name, role=member.role),
        push_public_key=services.push_service.public_key,
    )


@router.post(
    "/api/subscribe",
    response_model=SubscribeResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ERROR_RESPONSES,
    tags=["Push"],
)
async def subscribe(
    subscription: PushSubscription,
    registry: SubscriptionRegistry = Depends(get_registry),
) -> SubscribeResponse:
    """Save a browser push subscription (duplicates are ignored)."""
    created = await registry.add(subscription)
    return SubscribeResponse(
        message="Subscription saved" if created else "Subscription already exists",
        created=created,
    )


@router.delete(
    "/api/subscribe",
    response_model=UnsubscribeResponse,
    responses=ERROR_RESPONSES,
    tags=["Push"],
)
async def unsubscribe(
    body: Unsubscribe,
    registry: SubscriptionRegistry = Depends(get_registry),
) -> UnsubscribeResponse:
    removed = await registry.remove(body.endpoint)
    return UnsubscribeResponse(
        message="Subscription removed" if removed else "Subscription not found",
        removed=removed,
    )


@router.get("/api/push/public-key", response_model=PublicKeyResponse, tags=["Push"])
async def push_public_key(services: ServiceContainer = Depends(get_services)) -> PublicKeyResponse:
    return PublicKeyResponse(public_key=services.push_service.public_key)


# =============================================================================
# WEBSOCKET
# =============================================================================

async def handle_client_event(services: ServiceContainer, websocket: WebSocket, message: Any) -> None:
    """Process one message from a staff client; failures go back to that client only."""
    event = message.get("event") if isinstance(message, dict) else None

    if event != EVENT_UPDATE_ORDER_STATUS:
        await services.channel.send(websocket, EVENT_ERROR, {"message": f"Unknown event: {event!r}"})
        return

    try:
        data = StatusUpdateEvent.model_validate(message.get("data") or {})
        await services.manager.change_status(data.order_id, data.new_status)
    except ValidationError as e:
        await services.channel.send(websocket, EVENT_ERROR, {
            "event": event,
            "message": describe_validation_error(e),
        })
    except OrderDeskError as e:
        await services.channel.send(websocket, EVENT_ERROR, {
            "event": event,
            "error": e.error,
            "message": e.message,
        })


@router.websocket("/ws")
async def staff_socket(websocket: WebSocket) -> None:
    """
    Live order feed for staff.

    On connect the client receives ``existingOrders``; afterwards every
    ``newOrder`` and ``orderUpdated`` event. Clients may send
    ``updateOrderStatus`` with ``{orderId, newStatus}``.
    """
    services = get_services(websocket)
    channel = services.channel

    async def existing_orders() -> tuple[str, list[dict[str, Any]]]:
        orders = await services.manager.list_orders()
        return EVENT_EXISTING_ORDERS, [o.model_dump(mode="json", by_alias=True) for o in orders]

    try:
        if not await channel.connect(websocket, snapshot=existing_orders):
            return

        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
            except json.JSONDecodeError:
                await channel.send(websocket, EVENT_ERROR, {"message": "Messages must be JSON"})
                continue
            await handle_client_event(services, websocket, message)

    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("Staff socket closed after an unexpected error")
    finally:
        channel.disconnect(websocket)


# =============================================================================
# ERROR HANDLERS
# =============================================================================

def error_response(status_code: int, error: str, detail: Optional[str]) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=error, detail=detail).model_dump(by_alias=True),
    )


async def orderdesk_error_handler(request: Request, exc: OrderDeskError) -> JSONResponse:
    """Domain errors carry their own status code."""
    if exc.status_code >= 500:
        logger.error(f"{exc.error} on {request.method} {request.url.path}: {exc.message}", exc_info=exc)
        debug = request.app.state.services.settings.debug
        return error_response(exc.status_code, exc.error, exc.message if debug else "An unexpected error occurred")

    logger.info(f"{exc.error} on {request.method} {request.url.path}: {exc.message}")
    return error_response(exc.status_code, exc.error, exc.message)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies are client errors (400), not 422."""
    parts = [
        f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg')}"
        for err in exc.errors()
    ]
    return error_response(status.HTTP_400_BAD_REQUEST, "Validation Error", "; ".join(parts))


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.error(f"Unhandled exception: {exc}", exc_info=exc)
    debug = request.app.state.services.settings.debug
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Internal Server Error",
        str(exc) if debug else "An unexpected error occurred",
    )


# =============================================================================
# APPLICATION FACTORY
# =============================================================================

def create_app(
    settings: Optional[Settings] = None,
    services: Optional[ServiceContainer] = None,
) -> FastAPI:
    """Build the FastAPI application around a service container."""
    if services is None:
        services = build_services(settings or get_settings())
    settings = services.settings

    app = FastAPI(
        title=settings.app_name,
        description=(
            "Order-taking backend with live WebSocket updates and "
            "Web Push notifications for staff."
        ),
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.services = services

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(OrderDeskError, orderdesk_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    app.include_router(router)
    return app


setup_logging()
app = create_app()
