import uuid

from sqlalchemy import Column, DateTime, Numeric, String, Uuid

from marketplace.core.clock import utcnow
from marketplace.db.base import Base

MAIN_SETTINGS_KEY = "main"


class PlatformSettings(Base):
    __tablename__ = 'platform_settings'

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    key = Column(String(32), nullable=False, unique=True, default=MAIN_SETTINGS_KEY)
    platform_fee_percent = Column(Numeric(5, 2), nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
