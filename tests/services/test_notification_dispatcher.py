import uuid
from decimal import Decimal

import pytest

from marketplace.db.models import Order, OrderStatus
from marketplace.schemas.notification import NotificationType
from marketplace.services.email.service import EmailService
from marketplace.services.notifications.dispatcher import (
    NotificationDispatcher,
    build_order_notification,
    notification_type_for,
)
from marketplace.services.notifications.push import channel_for
from marketplace.services.notifications.telegram import TelegramNotificationService, format_order_alert


def _order(status=OrderStatus.CANCELLED, explanation="Buyer <changed> mind"):
    return Order(
        id=uuid.uuid4(),
        order_number="ORD-ABC-123456",
        total_amount=Decimal("20.00"),
        buyer_currency="EUR",
        status=status,
        status_explanation=explanation,
    )


@pytest.mark.parametrize("status, expected", [
    (OrderStatus.PROCESSING, NotificationType.ORDER_UPDATED),
    (OrderStatus.IN_TRANSIT, NotificationType.ORDER_UPDATED),
    (OrderStatus.DELIVERED, NotificationType.ORDER_COMPLETED),
    (OrderStatus.CANCELLED, NotificationType.ORDER_CANCELLED),
    (OrderStatus.RETURNED, NotificationType.ORDER_CANCELLED),
])
def test_notification_type_for_status(status, expected):
    assert notification_type_for(status) == expected


def test_customer_and_seller_wording_differs():
    order_id = uuid.uuid4()
    metadata = {"newStatus": "in_transit", "trackingId": "TRK-9"}

    customer = build_order_notification(
        uuid.uuid4(), NotificationType.ORDER_UPDATED, order_id, "ORD-1", metadata, is_customer=True
    )
    seller = build_order_notification(
        uuid.uuid4(), NotificationType.ORDER_UPDATED, order_id, "ORD-1", metadata, is_customer=False
    )

    assert customer.title == "Order Status Updated"
    assert customer.message == "Your order #ORD-1 status has been updated to in_transit"
    assert customer.link == f"/account/orders/{order_id}"
    assert seller.title == "Order Updated"
    assert seller.link == f"/orders/{order_id}"
    assert seller.metadata == {
        "orderId": str(order_id),
        "orderNumber": "ORD-1",
        "newStatus": "in_transit",
        "trackingId": "TRK-9",
    }


def test_channel_name():
    user_id = uuid.uuid4()
    assert channel_for(user_id) == f"notifications:{user_id}"


def test_telegram_alert_escapes_html():
    text = format_order_alert(_order())

    assert text.startswith("<b>❌ Order cancelled</b>")
    assert "#ORD-ABC-123456" in text
    assert "Total: 20.00 EUR" in text
    assert "Reason: Buyer &lt;changed&gt; mind" in text


async def test_telegram_without_token_is_a_no_op():
    service = TelegramNotificationService(token="")

    assert service.is_configured is False
    assert await service.send_order_notification("42", _order()) is False


async def test_dispatcher_without_channels_does_nothing():
    dispatcher = NotificationDispatcher()
    order = _order()

    record = await dispatcher.notify_order_event(uuid.uuid4(), NotificationType.ORDER_CANCELLED, order.id, "ORD-1")

    assert record.title == "Order Cancelled"
    assert await dispatcher.send_order_alert("42", order) is False
    assert await dispatcher.send_order_status_email("buyer@example.com", order) is False


async def test_missing_email_address_is_skipped(notifier, email):
    assert await notifier.send_seller_notification(None, "new_order", {"order_number": "ORD-1"}) is False
    assert email.seller_notifications == []


async def test_channel_failures_are_swallowed(broken_notifier):
    order = _order()

    record = await broken_notifier.notify_order_event(
        uuid.uuid4(), NotificationType.ORDER_CANCELLED, order.id, order.order_number, is_customer=True
    )

    assert record is not None
    assert await broken_notifier.send_order_alert("42", order) is False
    assert await broken_notifier.send_order_status_email("buyer@example.com", order) is False
    assert await broken_notifier.send_seller_notification("seller@example.com", "order_cancelled", {}) is False


async def test_close_releases_channels(notifier, push, telegram):
    await notifier.close()

    assert push.closed is True
    assert telegram.closed is True


async def test_close_failures_are_swallowed(broken_notifier):
    await broken_notifier.close()


async def test_close_without_channels():
    await NotificationDispatcher().close()
    await TelegramNotificationService(token="").close()


class TestEmailService:

    @pytest.fixture
    def service(self):
        return EmailService()

    async def test_seller_notification_is_rendered(self, service):
        with service.fastmail.record_messages() as outbox:
            sent = await service.send_seller_notification(
                "seller@example.com",
                "order_returned",
                {"order_number": "ORD-7", "explanation": "Damaged"},
            )

        assert sent is True
        assert len(outbox) == 1
        assert outbox[0]["Subject"] == "Order #ORD-7 was returned"

    async def test_unknown_seller_notification(self, service):
        with pytest.raises(ValueError):
            await service.send_seller_notification("seller@example.com", "refund", {"order_number": "ORD-7"})

    @pytest.mark.parametrize("status", [OrderStatus.PENDING, OrderStatus.PROCESSING])
    async def test_no_status_email_before_shipping(self, service, status):
        with service.fastmail.record_messages() as outbox:
            sent = await service.send_order_status_email("buyer@example.com", _order(status=status))

        assert sent is False
        assert len(outbox) == 0
