import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Uuid

from marketplace.core.clock import utcnow
from marketplace.db.base import Base


class AffiliateReferral(Base):
    __tablename__ = 'affiliate_referrals'

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    affiliate_id = Column(Uuid, ForeignKey('users.id'), nullable=False, index=True)
    referral_code = Column(String(50), nullable=False, unique=True)
    is_active = Column(Boolean, nullable=False, default=True)
    total_orders = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=utcnow, nullable=False)
