import uuid
from enum import Enum

from sqlalchemy import Column, DateTime, String, Uuid
from sqlalchemy.orm import relationship

from marketplace.core.clock import utcnow
from marketplace.db.base import Base
from marketplace.db.models._types import str_enum


class UserType(str, Enum):
    CUSTOMER = "customer"
    SELLER = "seller"
    AFFILIATE = "affiliate"
    ADMIN = "admin"


class User(Base):
    __tablename__ = 'users'

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(String(255), nullable=False, unique=True, index=True)
    name = Column(String(255), nullable=True)
    user_type = Column(str_enum(UserType, "user_type"), nullable=False, default=UserType.CUSTOMER)
    # MK sellers list in MKD, KS sellers in EUR
    market = Column(String(2), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    seller_settings = relationship("SellerSettings", back_populates="seller", uselist=False)
