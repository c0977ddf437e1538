from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.api.deps import get_session, get_cache, get_dispatcher
from backend.app.core.auth import Actor, get_current_actor, require_admin
from backend.app.core.exceptions import ServiceError, BelowMinimumOrderError
from backend.app.core.logging import get_logger
from backend.app.schemas import OrderCreate, OrderStatusUpdate, PaymentStatusUpdate
from backend.app.services.cache import CacheService
from backend.app.services.notifications import NotificationDispatcher
from backend.app.services.orders import OrderService

router = APIRouter()
logger = get_logger(__name__)


def _handle_service_error(e: ServiceError):
    """Convert service exceptions to HTTP exceptions."""
    if isinstance(e, BelowMinimumOrderError):
        raise HTTPException(
            status_code=e.status_code,
            detail={"message": e.message, "min_order_amount": float(e.minimum)},
        )
    raise HTTPException(status_code=e.status_code, detail=e.message)


# --- 1. Create order ---
@router.post("", status_code=201)
async def create_order(
    data: OrderCreate,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_session),
    cache: CacheService = Depends(get_cache),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    """Place an order for the authenticated customer."""
    logger.info(
        "Creating order",
        user_id=actor.user_id,
        order_type=data.order_type,
        items=len(data.items),
    )
    service = OrderService(session, cache=cache, dispatcher=dispatcher)
    payload = data.model_dump(mode="json")
    try:
        return await service.create_order(
            user_id=actor.user_id,
            order_type=payload["order_type"],
            items=payload["items"],
            payment_method=payload["payment_method"],
            delivery_address=payload["delivery_address"],
            delivery_slot_id=payload["delivery_slot_id"],
            discount=payload["discount"],
            notes=payload["notes"],
        )
    except ServiceError as e:
        await session.rollback()
        logger.warning(
            "Order creation failed",
            user_id=actor.user_id,
            error=e.message,
            error_code=e.status_code,
        )
        _handle_service_error(e)


# --- 2. Own orders ---
@router.get("")
async def list_my_orders(
    status: Optional[str] = None,
    sort_by: str = Query("date"),
    sort_order: str = Query("desc"),
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_session),
):
    service = OrderService(session)
    try:
        return await service.get_user_orders(actor.user_id, status=status, sort_by=sort_by, sort_order=sort_order)
    except ServiceError as e:
        _handle_service_error(e)


# --- 3. Admin listings (declared before /{order_id}) ---
@router.get("/admin/all")
async def list_all_orders(
    status: Optional[str] = None,
    sort_by: str = Query("date"),
    sort_order: str = Query("desc"),
    _admin: Actor = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    service = OrderService(session)
    try:
        return await service.get_all_orders(status=status, sort_by=sort_by, sort_order=sort_order)
    except ServiceError as e:
        _handle_service_error(e)


@router.get("/user/{user_id}")
async def list_user_orders(
    user_id: int,
    status: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    _admin: Actor = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    service = OrderService(session)
    try:
        return await service.get_orders_by_user(user_id, status=status, start_date=start_date, end_date=end_date)
    except ServiceError as e:
        _handle_service_error(e)


# --- 4. Single order ---
@router.get("/{order_id}")
async def get_order(
    order_id: int,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_session),
):
    service = OrderService(session)
    try:
        return await service.get_order(order_id, actor)
    except ServiceError as e:
        _handle_service_error(e)


@router.put("/{order_id}/status")
async def update_order_status(
    order_id: int,
    data: OrderStatusUpdate,
    admin: Actor = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    service = OrderService(session, dispatcher=dispatcher)
    try:
        return await service.update_status(order_id, data.status, reason=data.cancellation_reason)
    except ServiceError as e:
        await session.rollback()
        logger.warning(
            "Order status update failed",
            order_id=order_id,
            new_status=data.status,
            admin_id=admin.user_id,
            error=e.message,
        )
        _handle_service_error(e)


@router.put("/{order_id}/payment-status")
async def update_payment_status(
    order_id: int,
    data: PaymentStatusUpdate,
    _admin: Actor = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    service = OrderService(session)
    try:
        return await service.update_payment_status(order_id, data.payment_status)
    except ServiceError as e:
        await session.rollback()
        _handle_service_error(e)


@router.delete("/{order_id}")
async def delete_order(
    order_id: int,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_session),
):
    service = OrderService(session)
    try:
        await service.delete_order(order_id, actor)
    except ServiceError as e:
        await session.rollback()
        _handle_service_error(e)
    return {"status": "ok", "order_id": order_id}
