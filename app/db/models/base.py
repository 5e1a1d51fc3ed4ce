from sqlalchemy import Column, Integer, DateTime, func
from app.db.database import Base
from app.utils.helpers import utc_now


class TimestampMixin:
    """Mixin for store-assigned created_at and updated_at timestamps"""
    created_at = Column(DateTime(timezone=True), default=utc_now, server_default=func.now(), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False)


class IntegerIdMixin:
    """Mixin for an autoincrement integer primary key"""
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
