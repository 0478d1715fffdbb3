import logging
from typing import Any, Dict, Optional
from uuid import UUID

from marketplace.db.models.invoice import Invoice
from marketplace.db.models.order import Order, OrderStatus
from marketplace.schemas.notification import NotificationRecord, NotificationType
from marketplace.services.email.service import get_email_service
from marketplace.services.notifications.push import RedisPushChannel
from marketplace.services.notifications.telegram import TelegramNotificationService

logger = logging.getLogger(__name__)

_SELLER_TITLES = {
    NotificationType.ORDER_CREATED: "New Order Received",
    NotificationType.ORDER_UPDATED: "Order Updated",
    NotificationType.ORDER_CANCELLED: "Order Cancelled",
    NotificationType.ORDER_COMPLETED: "Order Completed",
}
_SELLER_MESSAGES = {
    NotificationType.ORDER_CREATED: "You have received a new order #{order_number}",
    NotificationType.ORDER_UPDATED: "Order #{order_number} has been updated",
    NotificationType.ORDER_CANCELLED: "Order #{order_number} has been cancelled",
    NotificationType.ORDER_COMPLETED: "Order #{order_number} has been completed",
}
_CUSTOMER_TITLES = {
    NotificationType.ORDER_CREATED: "Order Confirmed",
    NotificationType.ORDER_UPDATED: "Order Status Updated",
    NotificationType.ORDER_CANCELLED: "Order Cancelled",
    NotificationType.ORDER_COMPLETED: "Order Delivered",
}
_CUSTOMER_MESSAGES = {
    NotificationType.ORDER_CREATED: "Your order #{order_number} has been confirmed",
    NotificationType.ORDER_UPDATED: "Your order #{order_number} status has been updated{suffix}",
    NotificationType.ORDER_CANCELLED: "Your order #{order_number} has been cancelled",
    NotificationType.ORDER_COMPLETED: "Your order #{order_number} has been delivered",
}


def notification_type_for(status: OrderStatus) -> NotificationType:
    status = OrderStatus(status)
    if status in (OrderStatus.CANCELLED, OrderStatus.RETURNED):
        return NotificationType.ORDER_CANCELLED
    if status == OrderStatus.DELIVERED:
        return NotificationType.ORDER_COMPLETED
    return NotificationType.ORDER_UPDATED


def build_order_notification(
    user_id: UUID,
    type: NotificationType,
    order_id: UUID,
    order_number: str,
    metadata: Optional[Dict[str, Any]] = None,
    is_customer: bool = False,
) -> NotificationRecord:
    metadata = metadata or {}
    titles = _CUSTOMER_TITLES if is_customer else _SELLER_TITLES
    messages = _CUSTOMER_MESSAGES if is_customer else _SELLER_MESSAGES
    new_status = metadata.get("newStatus")
    suffix = f" to {new_status}" if new_status else ""
    link = f"/account/orders/{order_id}" if is_customer else f"/orders/{order_id}"
    return NotificationRecord(
        user_id=user_id,
        type=type,
        title=titles[type],
        message=messages[type].format(order_number=order_number, suffix=suffix),
        link=link,
        metadata={"orderId": str(order_id), "orderNumber": order_number, **metadata},
    )


class NotificationDispatcher:
    """Fans side effects out to push, Telegram and email.

    Every entry point logs and swallows delivery failures so callers never
    roll back business state because a notification could not be sent.
    """

    def __init__(self, push=None, telegram=None, email=None):
        self.push = push
        self.telegram = telegram
        self.email = email

    async def deliver(self, user_id: UUID, record: NotificationRecord) -> None:
        if self.push is None:
            return
        try:
            await self.push.publish(user_id, record)
        except Exception as e:
            logger.error(f"Failed to deliver notification to user {user_id}: {str(e)}", exc_info=True)

    async def notify_order_event(
        self,
        user_id: UUID,
        type: NotificationType,
        order_id: UUID,
        order_number: str,
        metadata: Optional[Dict[str, Any]] = None,
        is_customer: bool = False,
    ) -> Optional[NotificationRecord]:
        try:
            record = build_order_notification(user_id, type, order_id, order_number, metadata, is_customer)
        except Exception as e:
            logger.error(f"Failed to build notification for order {order_number}: {str(e)}", exc_info=True)
            return None
        await self.deliver(user_id, record)
        return record

    async def send_order_alert(self, chat_id: str, order: Order) -> bool:
        if self.telegram is None:
            return False
        try:
            return await self.telegram.send_order_notification(chat_id, order)
        except Exception as e:
            logger.error(f"Failed to send Telegram alert for order {order.order_number}: {str(e)}", exc_info=True)
            return False

    async def send_invoice_summary(self, email: str, invoice: Invoice) -> bool:
        if self.email is None or not email:
            return False
        try:
            return await self.email.send_invoice_summary(email, invoice)
        except Exception as e:
            logger.error(f"Failed to email invoice {invoice.invoice_number}: {str(e)}", exc_info=True)
            return False

    async def send_seller_notification(self, email: str, kind: str, payload: Dict[str, Any]) -> bool:
        if self.email is None or not email:
            return False
        try:
            return await self.email.send_seller_notification(email, kind, payload)
        except Exception as e:
            logger.error(f"Failed to send {kind} email to seller: {str(e)}", exc_info=True)
            return False

    async def send_order_status_email(self, email: str, order: Order) -> bool:
        if self.email is None or not email:
            return False
        try:
            return await self.email.send_order_status_email(email, order)
        except Exception as e:
            logger.error(f"Failed to send status email for order {order.order_number}: {str(e)}", exc_info=True)
            return False

    async def close(self) -> None:
        """Release the push and Telegram connections."""
        for channel in (self.push, self.telegram):
            close = getattr(channel, "close", None)
            if close is None:
                continue
            try:
                await close()
            except Exception as e:
                logger.error(f"Failed to close {type(channel).__name__}: {str(e)}", exc_info=True)


def get_notification_dispatcher() -> NotificationDispatcher:
    """Production wiring of all delivery channels."""
    return NotificationDispatcher(
        push=RedisPushChannel(),
        telegram=TelegramNotificationService(),
        email=get_email_service(),
    )
