import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Numeric, String, Uuid
from sqlalchemy.orm import relationship

from marketplace.core.clock import utcnow
from marketplace.db.base import Base, JSONType


class SellerSettings(Base):
    __tablename__ = 'seller_settings'

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    seller_id = Column(Uuid, ForeignKey('users.id'), nullable=False, unique=True)
    # null means the platform default applies
    platform_fee_percent = Column(Numeric(5, 2), nullable=True)
    shipping_countries = Column(JSONType, nullable=True)
    notifications_orders = Column(Boolean, nullable=False, default=True)
    telegram_chat_id = Column(String(64), nullable=True)
    payment_restricted = Column(Boolean, nullable=False, default=False)
    payment_restricted_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    seller = relationship("User", back_populates="seller_settings")
