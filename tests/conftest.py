import os

# settings are read at import time
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["TELEGRAM_BOT_TOKEN"] = ""
os.environ["MAIL_SUPPRESS_SEND"] = "True"

import uuid
from datetime import datetime
from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import marketplace.db.models  # noqa: F401
from marketplace.db.base import Base
from marketplace.db.models import (
    AffiliateCommission,
    AffiliateReferral,
    CommissionStatus,
    Order,
    OrderItem,
    OrderStatus,
    Product,
    ProductStatus,
    SellerSettings,
    User,
    UserType,
)
from marketplace.services.notifications.dispatcher import NotificationDispatcher

# Monday; the previous week is 2026-10-12 .. 2026-10-18 (ISO week 42)
MONDAY = datetime(2026, 10, 19, 0, 0, 0)
LAST_WEEK = datetime(2026, 10, 14, 12, 0, 0)


class FakePush:
    def __init__(self):
        self.published = []
        self.closed = False

    async def publish(self, user_id, record):
        self.published.append((user_id, record))
        return 1

    async def close(self):
        self.closed = True


class FakeTelegram:
    def __init__(self):
        self.sent = []
        self.closed = False

    async def send_order_notification(self, chat_id, order):
        self.sent.append((chat_id, order.order_number, order.status))
        return True

    async def close(self):
        self.closed = True


class FakeEmail:
    def __init__(self):
        self.invoices = []
        self.seller_notifications = []
        self.status_emails = []

    async def send_invoice_summary(self, email, invoice):
        self.invoices.append((email, invoice.invoice_number))
        return True

    async def send_seller_notification(self, email, kind, payload):
        self.seller_notifications.append((email, kind, payload))
        return True

    async def send_order_status_email(self, email, order):
        self.status_emails.append((email, order.order_number, order.status))
        return True


class ExplodingChannel:
    """Every call raises, like an unreachable broker or SMTP server."""

    def __getattr__(self, name):
        async def explode(*args, **kwargs):
            raise ConnectionError(f"{name} is down")
        return explode


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db(engine):
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest.fixture
def push():
    return FakePush()


@pytest.fixture
def telegram():
    return FakeTelegram()


@pytest.fixture
def email():
    return FakeEmail()


@pytest.fixture
def notifier(push, telegram, email):
    return NotificationDispatcher(push=push, telegram=telegram, email=email)


@pytest.fixture
def broken_notifier():
    return NotificationDispatcher(push=ExplodingChannel(), telegram=ExplodingChannel(), email=ExplodingChannel())


class Factory:
    def __init__(self, db):
        self.db = db

    async def user(self, user_type=UserType.SELLER, market=None, email=None):
        user = User(
            email=email or f"{user_type.value}-{uuid.uuid4().hex[:8]}@example.com",
            name=user_type.value.title(),
            user_type=user_type,
            market=market,
        )
        self.db.add(user)
        await self.db.commit()
        return user

    async def product(
        self,
        seller,
        price="1000",
        stock=10,
        affiliate_commission="0",
        status=ProductStatus.ACTIVE,
        base_price=None,
        base_currency=None,
        has_variants=False,
    ):
        product = Product(
            seller_id=seller.id,
            name=f"Product {uuid.uuid4().hex[:6]}",
            price=Decimal(price),
            base_price=Decimal(base_price) if base_price is not None else None,
            base_currency=base_currency,
            stock=stock,
            affiliate_commission=Decimal(affiliate_commission),
            status=status,
            has_variants=has_variants,
        )
        self.db.add(product)
        await self.db.commit()
        return product

    async def order(
        self,
        seller,
        customer,
        lines,
        status=OrderStatus.DELIVERED,
        currency="MKD",
        payment_method="cod",
        updated_at=LAST_WEEK,
        affiliate=None,
        seller_paid=False,
        total_amount_base="auto",
    ):
        """``lines`` is a list of ``(product, quantity)`` priced at the product price."""
        items = [
            OrderItem(
                product_id=product.id,
                product_name=product.name,
                quantity=quantity,
                price=product.price,
                base_price=product.price,
                base_currency=currency,
            )
            for product, quantity in lines
        ]
        total = sum((item.price * item.quantity for item in items), Decimal("0"))
        order = Order(
            order_number=f"ORD-{uuid.uuid4().hex[:10].upper()}",
            seller_id=seller.id,
            customer_id=customer.id,
            affiliate_id=affiliate.id if affiliate is not None else None,
            total_amount=total,
            total_amount_base=total if total_amount_base == "auto" else total_amount_base,
            buyer_currency=currency,
            seller_base_currency=currency,
            exchange_rate=Decimal("61.5"),
            status=status,
            status_explanation="reason" if status in (OrderStatus.CANCELLED, OrderStatus.RETURNED) else None,
            shipping_address={"street": "Main 1", "city": "Skopje", "country": "MK"},
            payment_method=payment_method,
            seller_paid=seller_paid,
            created_at=updated_at,
            updated_at=updated_at,
            items=items,
        )
        self.db.add(order)
        await self.db.commit()
        return order

    async def commission(self, order, affiliate, product, item_amount, percent, status=CommissionStatus.PENDING):
        item_amount = Decimal(item_amount)
        percent = Decimal(percent)
        commission = AffiliateCommission(
            affiliate_id=affiliate.id,
            order_id=order.id,
            product_id=product.id,
            order_item_amount=item_amount,
            commission_percent=percent,
            commission_amount=(item_amount * percent / 100).quantize(Decimal("0.01")),
            status=status,
        )
        self.db.add(commission)
        await self.db.commit()
        return commission

    async def referral(self, affiliate, code="FRIEND10", is_active=True):
        referral = AffiliateReferral(affiliate_id=affiliate.id, referral_code=code, is_active=is_active)
        self.db.add(referral)
        await self.db.commit()
        return referral

    async def seller_settings(self, seller, **values):
        seller_settings = SellerSettings(seller_id=seller.id, **values)
        self.db.add(seller_settings)
        await self.db.commit()
        return seller_settings


@pytest.fixture
def make(db):
    return Factory(db)


@pytest.fixture
async def seller(make):
    return await make.user(UserType.SELLER)


@pytest.fixture
async def customer(make):
    return await make.user(UserType.CUSTOMER)


@pytest.fixture
async def affiliate(make):
    return await make.user(UserType.AFFILIATE)
