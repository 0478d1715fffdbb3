from uuid import UUID

from fastapi import APIRouter, Depends, status

from marketplace.core.auth import CurrentUser, get_current_user, require_seller
from marketplace.api.deps import get_order_service
from marketplace.schemas.order import OrderCloseRequest, OrderCreate, OrderCreationResult, OrderRead, OrderStatusUpdate
from marketplace.services.orders.order_service import CUSTOMER, SELLER, OrderService

router = APIRouter()

@router.post("/orders", response_model=OrderCreationResult, status_code=status.HTTP_201_CREATED)
async def create_orders(
    payload: OrderCreate,
    current_user: CurrentUser = Depends(get_current_user),
    service: OrderService = Depends(get_order_service),
):
    """
    Place a cart. Items are split into one order per seller.
    """
    return await service.create_orders(
        customer_id=current_user.id,
        items=[item.model_dump() for item in payload.items],
        shipping_address=payload.shipping_address.model_dump(),
        referral_code=payload.referral_code,
        affiliate_id=payload.affiliate_id,
        tracking_id=payload.tracking_id,
    )

@router.patch("/seller/orders/{order_id}/status", response_model=OrderRead)
async def update_order_status(
    order_id: UUID,
    payload: OrderStatusUpdate,
    current_user: CurrentUser = Depends(require_seller),
    service: OrderService = Depends(get_order_service),
):
    return await service.update_status(
        order_id,
        current_user.id,
        payload.status,
        tracking_id=payload.tracking_id,
        status_explanation=payload.status_explanation,
    )

@router.post("/seller/orders/{order_id}/cancel", response_model=OrderRead)
async def seller_cancel_order(
    order_id: UUID,
    payload: OrderCloseRequest,
    current_user: CurrentUser = Depends(require_seller),
    service: OrderService = Depends(get_order_service),
):
    return await service.cancel(order_id, current_user.id, payload.explanation, actor=SELLER)

@router.post("/seller/orders/{order_id}/return", response_model=OrderRead)
async def seller_return_order(
    order_id: UUID,
    payload: OrderCloseRequest,
    current_user: CurrentUser = Depends(require_seller),
    service: OrderService = Depends(get_order_service),
):
    return await service.return_order(order_id, current_user.id, payload.explanation, actor=SELLER)

@router.post("/customer/orders/{order_id}/cancel", response_model=OrderRead)
async def customer_cancel_order(
    order_id: UUID,
    payload: OrderCloseRequest,
    current_user: CurrentUser = Depends(get_current_user),
    service: OrderService = Depends(get_order_service),
):
    return await service.cancel(order_id, current_user.id, payload.explanation, actor=CUSTOMER)

@router.post("/customer/orders/{order_id}/return", response_model=OrderRead)
async def customer_return_order(
    order_id: UUID,
    payload: OrderCloseRequest,
    current_user: CurrentUser = Depends(get_current_user),
    service: OrderService = Depends(get_order_service),
):
    return await service.return_order(order_id, current_user.id, payload.explanation, actor=CUSTOMER)
