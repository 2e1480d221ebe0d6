"""
SQLAlchemy model for receipt persistence.
"""
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Float, Integer, String, Text

from app.config import settings
from app.database import Base


class ReceiptModel(Base):
    __tablename__ = "receipts"
    # AUTOINCREMENT keeps SQLite from handing out ids of deleted rows again
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, autoincrement=True)
    merchant = Column(String, nullable=False)
    date = Column(String(10), nullable=False, index=True)
    amount = Column(Float, nullable=False)
    tax = Column(Float, nullable=True)
    currency = Column(String(3), nullable=False, default=settings.DEFAULT_CURRENCY)
    category = Column(String, nullable=False)
    image_url = Column(Text, nullable=True)
    created_at = Column(
        DateTime,
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
