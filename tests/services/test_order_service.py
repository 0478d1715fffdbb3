import uuid
from decimal import Decimal

import pytest
from sqlalchemy import select

from marketplace.core.exceptions import BadRequestError, ForbiddenError, NotFoundError
from marketplace.db.models import CommissionStatus, Order, OrderStatus, ProductStatus, UserType
from marketplace.schemas.notification import NotificationType
from marketplace.services.affiliate.commission_ledger import CommissionLedger
from marketplace.services.orders.order_service import CUSTOMER, SELLER, OrderService


@pytest.fixture
def service(db, notifier):
    return OrderService(db, notifier=notifier)


async def test_transition_persists_and_clears_explanation(service, make, seller, customer):
    product = await make.product(seller)
    order = await make.order(seller, customer, [(product, 1)], status=OrderStatus.PENDING)

    updated = await service.update_status(order.id, seller.id, OrderStatus.PROCESSING, status_explanation="ignored")

    assert updated.status == OrderStatus.PROCESSING
    assert updated.status_explanation is None


async def test_tracking_id_is_recorded(service, make, seller, customer):
    product = await make.product(seller)
    order = await make.order(seller, customer, [(product, 1)], status=OrderStatus.PROCESSING)

    updated = await service.update_status(order.id, seller.id, OrderStatus.IN_TRANSIT, tracking_id="TRK-1")

    assert updated.tracking_id == "TRK-1"


async def test_invalid_transition_leaves_order_untouched(service, db, make, seller, customer):
    product = await make.product(seller)
    order = await make.order(seller, customer, [(product, 1)], status=OrderStatus.PROCESSING)

    with pytest.raises(BadRequestError):
        await service.update_status(order.id, seller.id, OrderStatus.DELIVERED)

    await db.rollback()
    await db.refresh(order)
    assert order.status == OrderStatus.PROCESSING


async def test_terminal_order_cannot_change(service, make, seller, customer):
    product = await make.product(seller)
    order = await make.order(seller, customer, [(product, 1)], status=OrderStatus.DELIVERED)

    with pytest.raises(BadRequestError) as exc:
        await service.update_status(order.id, seller.id, OrderStatus.RETURNED, status_explanation="broken")
    assert "final" in exc.value.detail


async def test_other_seller_is_forbidden(service, make, seller, customer):
    other_seller = await make.user(UserType.SELLER)
    product = await make.product(seller)
    order = await make.order(seller, customer, [(product, 1)], status=OrderStatus.PENDING)

    with pytest.raises(ForbiddenError):
        await service.update_status(order.id, other_seller.id, OrderStatus.PROCESSING)


async def test_missing_order(service, seller):
    with pytest.raises(NotFoundError):
        await service.update_status(uuid.uuid4(), seller.id, OrderStatus.PROCESSING)


async def test_cancel_requires_explanation(service, make, seller, customer):
    product = await make.product(seller)
    order = await make.order(seller, customer, [(product, 1)], status=OrderStatus.PENDING)

    with pytest.raises(BadRequestError):
        await service.update_status(order.id, seller.id, OrderStatus.CANCELLED, status_explanation="   ")


async def test_cancel_restores_stock_exactly_once(service, make, seller, customer):
    product = await make.product(seller, stock=0, status=ProductStatus.OUT_OF_STOCK)
    order = await make.order(seller, customer, [(product, 3)], status=OrderStatus.PENDING)

    cancelled = await service.cancel(order.id, customer.id, "Changed my mind", actor=CUSTOMER)

    assert cancelled.status == OrderStatus.CANCELLED
    assert cancelled.status_explanation == "Changed my mind"
    assert product.stock == 3
    assert product.status == ProductStatus.ACTIVE

    with pytest.raises(BadRequestError) as exc:
        await service.cancel(order.id, customer.id, "Again", actor=CUSTOMER)
    assert exc.value.detail == "Order is already cancelled"
    assert product.stock == 3


async def test_cancel_through_transition_restores_stock(service, make, seller, customer):
    product = await make.product(seller, stock=5)
    order = await make.order(seller, customer, [(product, 2)], status=OrderStatus.PROCESSING)

    await service.update_status(order.id, seller.id, OrderStatus.CANCELLED, status_explanation="Out of stock")

    assert product.stock == 7


@pytest.mark.parametrize("status, message", [
    (OrderStatus.DELIVERED, "Cannot cancel a delivered order"),
    (OrderStatus.RETURNED, "Order is already returned"),
])
async def test_cancel_rejected_for_closed_orders(service, make, seller, customer, status, message):
    product = await make.product(seller)
    order = await make.order(seller, customer, [(product, 1)], status=status)

    with pytest.raises(BadRequestError) as exc:
        await service.cancel(order.id, seller.id, "No", actor=SELLER)
    assert exc.value.detail == message


async def test_cancel_checks_the_acting_party(service, make, seller, customer):
    stranger = await make.user(UserType.CUSTOMER)
    product = await make.product(seller)
    order = await make.order(seller, customer, [(product, 1)], status=OrderStatus.PENDING)

    with pytest.raises(ForbiddenError):
        await service.cancel(order.id, stranger.id, "Mine now", actor=CUSTOMER)
    with pytest.raises(ForbiddenError):
        await service.cancel(order.id, customer.id, "Not the seller", actor=SELLER)


async def test_return_only_from_delivered(service, make, seller, customer):
    product = await make.product(seller, stock=1)
    in_transit = await make.order(seller, customer, [(product, 1)], status=OrderStatus.IN_TRANSIT)
    cancelled = await make.order(seller, customer, [(product, 1)], status=OrderStatus.CANCELLED)
    delivered = await make.order(seller, customer, [(product, 2)], status=OrderStatus.DELIVERED)

    with pytest.raises(BadRequestError) as exc:
        await service.return_order(in_transit.id, customer.id, "Too late")
    assert exc.value.detail == "Only delivered orders can be returned"

    with pytest.raises(BadRequestError) as exc:
        await service.return_order(cancelled.id, customer.id, "Nope")
    assert exc.value.detail == "Cannot return a cancelled order"

    returned = await service.return_order(delivered.id, customer.id, "Wrong size")
    assert returned.status == OrderStatus.RETURNED
    assert product.stock == 3

    with pytest.raises(BadRequestError) as exc:
        await service.return_order(delivered.id, customer.id, "Again")
    assert exc.value.detail == "Order is already returned"


async def test_commissions_follow_cancellation(service, db, make, seller, customer, affiliate):
    product = await make.product(seller, affiliate_commission="10")
    order = await make.order(seller, customer, [(product, 1)], status=OrderStatus.PENDING, affiliate=affiliate)
    ledger = CommissionLedger(db)
    await ledger.create_commissions_for_order(order.id, affiliate.id)

    await service.cancel(order.id, seller.id, "Fraud check failed", actor=SELLER)

    commissions = await ledger.get_commissions_for_order(order.id)
    assert [c.status for c in commissions] == [CommissionStatus.CANCELLED]


async def test_delivery_approves_commissions(service, db, make, seller, customer, affiliate):
    product = await make.product(seller, affiliate_commission="10")
    order = await make.order(seller, customer, [(product, 1)], status=OrderStatus.IN_TRANSIT, affiliate=affiliate)
    ledger = CommissionLedger(db)
    await ledger.create_commissions_for_order(order.id, affiliate.id)

    await service.update_status(order.id, seller.id, OrderStatus.DELIVERED)

    commissions = await ledger.get_commissions_for_order(order.id)
    assert [c.status for c in commissions] == [CommissionStatus.APPROVED]


async def test_status_change_notifies_both_parties(service, push, email, make, seller, customer):
    product = await make.product(seller)
    order = await make.order(seller, customer, [(product, 1)], status=OrderStatus.IN_TRANSIT)

    await service.update_status(order.id, seller.id, OrderStatus.DELIVERED)

    recipients = {user_id: record for user_id, record in push.published}
    assert set(recipients) == {seller.id, customer.id}
    assert recipients[customer.id].type == NotificationType.ORDER_COMPLETED
    assert recipients[customer.id].title == "Order Delivered"
    assert recipients[customer.id].metadata["newStatus"] == "delivered"
    assert email.status_emails == [(customer.email, order.order_number, OrderStatus.DELIVERED)]


async def test_telegram_alert_on_cancel_when_enabled(service, telegram, email, make, seller, customer):
    await make.seller_settings(seller, telegram_chat_id="12345", notifications_orders=True)
    product = await make.product(seller)
    order = await make.order(seller, customer, [(product, 1)], status=OrderStatus.PENDING)

    await service.cancel(order.id, customer.id, "Ordered twice")

    assert telegram.sent == [("12345", order.order_number, OrderStatus.CANCELLED)]
    assert email.seller_notifications[0][1] == "order_cancelled"


async def test_no_telegram_alert_when_disabled(service, telegram, make, seller, customer):
    await make.seller_settings(seller, telegram_chat_id="12345", notifications_orders=False)
    product = await make.product(seller)
    order = await make.order(seller, customer, [(product, 1)], status=OrderStatus.PENDING)

    await service.cancel(order.id, customer.id, "Ordered twice")

    assert telegram.sent == []


async def test_notification_failures_do_not_undo_the_transition(db, broken_notifier, make, seller, customer):
    await make.seller_settings(seller, telegram_chat_id="12345")
    product = await make.product(seller, stock=0, status=ProductStatus.OUT_OF_STOCK)
    order = await make.order(seller, customer, [(product, 1)], status=OrderStatus.PENDING)

    cancelled = await OrderService(db, notifier=broken_notifier).cancel(order.id, customer.id, "Late")

    assert cancelled.status == OrderStatus.CANCELLED
    assert product.stock == 1


class TestCreateOrders:

    async def test_cart_is_split_per_seller(self, service, db, make, seller, customer):
        other_seller = await make.user(UserType.SELLER)
        first = await make.product(seller, price="1000", stock=5)
        second = await make.product(other_seller, price="250", stock=1)

        result = await service.create_orders(
            customer.id,
            [
                {"product_id": first.id, "quantity": 2},
                {"product_id": second.id, "quantity": 1},
            ],
            {"street": "Main 1", "city": "Skopje", "country": "MK"},
        )

        assert result["orders_created"] == 2
        assert result["errors"] == []
        totals = {order.seller_id: order.total_amount for order in result["orders"]}
        assert totals == {seller.id: Decimal("2000"), other_seller.id: Decimal("250")}
        assert all(order.status == OrderStatus.PENDING for order in result["orders"])
        assert all(order.payment_method == "cod" for order in result["orders"])

        await db.refresh(first)
        await db.refresh(second)
        assert first.stock == 3
        assert second.stock == 0
        assert second.status == ProductStatus.OUT_OF_STOCK

    async def test_kosovo_buyer_pays_in_eur(self, service, make, seller, customer):
        product = await make.product(seller, price="1230", stock=5)

        result = await service.create_orders(
            customer.id,
            [{"product_id": product.id, "quantity": 1}],
            {"street": "Rr. 1", "city": "Prishtina", "country": "KS"},
        )

        order = result["orders"][0]
        assert order.buyer_currency == "EUR"
        assert order.seller_base_currency == "MKD"
        assert order.total_amount == Decimal("20.00")
        assert order.total_amount_base == Decimal("1230")
        assert order.items[0].price == Decimal("20.00")

    async def test_restricted_seller_does_not_block_the_rest(self, service, db, make, seller, customer):
        frozen = await make.user(UserType.SELLER)
        await make.seller_settings(frozen, payment_restricted=True)
        blocked = await make.product(frozen, stock=5)
        allowed = await make.product(seller, stock=5)
        # the failed seller's rollback expires every loaded instance
        frozen_id, seller_id = frozen.id, seller.id

        result = await service.create_orders(
            customer.id,
            [{"product_id": blocked.id, "quantity": 1}, {"product_id": allowed.id, "quantity": 1}],
            {"street": "Main 1", "city": "Skopje", "country": "MK"},
        )

        assert result["orders_created"] == 1
        assert result["orders"][0].seller_id == seller_id
        assert result["errors"][0]["seller_id"] == str(frozen_id)
        assert "overdue invoices" in result["errors"][0]["error"]

        await db.refresh(blocked)
        assert blocked.stock == 5

    async def test_all_sellers_failing_is_an_error(self, service, make, seller, customer):
        product = await make.product(seller, stock=1)

        with pytest.raises(BadRequestError) as exc:
            await service.create_orders(
                customer.id,
                [{"product_id": product.id, "quantity": 2}],
                {"street": "Main 1", "city": "Skopje", "country": "MK"},
            )
        assert "Insufficient stock" in exc.value.detail

    async def test_unsupported_shipping_country(self, service, make, seller, customer):
        await make.seller_settings(seller, shipping_countries=["MK"])
        product = await make.product(seller, stock=1)

        with pytest.raises(BadRequestError) as exc:
            await service.create_orders(
                customer.id,
                [{"product_id": product.id, "quantity": 1}],
                {"street": "Rr. 1", "city": "Prishtina", "country": "KS"},
            )
        assert "does not support shipping to KS" in exc.value.detail

    async def test_unknown_product(self, service, customer):
        with pytest.raises(NotFoundError):
            await service.create_orders(
                customer.id,
                [{"product_id": uuid.uuid4(), "quantity": 1}],
                {"street": "Main 1", "city": "Skopje", "country": "MK"},
            )

    async def test_referral_creates_commissions(self, service, db, make, seller, customer, affiliate):
        await make.referral(affiliate, code="FRIEND10")
        product = await make.product(seller, price="500", stock=5, affiliate_commission="10")

        result = await service.create_orders(
            customer.id,
            [{"product_id": product.id, "quantity": 2}],
            {"street": "Main 1", "city": "Skopje", "country": "MK"},
            referral_code="FRIEND10",
        )

        order = result["orders"][0]
        assert order.affiliate_id == affiliate.id
        assert order.referral_code == "FRIEND10"
        commissions = await CommissionLedger(db).get_commissions_for_order(order.id)
        assert len(commissions) == 1
        assert commissions[0].commission_amount == Decimal("100.00")

    async def test_new_order_notifications(self, service, push, email, make, seller, customer):
        product = await make.product(seller, stock=5)

        result = await service.create_orders(
            customer.id,
            [{"product_id": product.id, "quantity": 1}],
            {"street": "Main 1", "city": "Skopje", "country": "MK"},
        )

        order = result["orders"][0]
        types = {user_id: record.type for user_id, record in push.published}
        assert types == {seller.id: NotificationType.ORDER_CREATED, customer.id: NotificationType.ORDER_CREATED}
        assert email.seller_notifications[0][:2] == (seller.email, "new_order")
        assert email.seller_notifications[0][2]["order_number"] == order.order_number
