"""
Account SQLAlchemy ORM model.

An account is the billing/ownership unit: it carries the subscription plan and
the quota usage counters that the ledger adjusts.
"""
from sqlalchemy import Column, String, BigInteger, Integer, DateTime
from sqlalchemy.orm import relationship
from datetime import datetime, timezone

from db.database import Base


class Account(Base):
    __tablename__ = "accounts"

    id = Column(String, primary_key=True)  # identifier issued by the auth service
    plan = Column(String, nullable=False, default="free")
    subscription_status = Column(String, nullable=False, default="active")
    subscription_expires_at = Column(DateTime, nullable=True)

    # Quota usage: committed counters + outstanding reservations
    bytes_used = Column(BigInteger, nullable=False, default=0)
    document_count = Column(Integer, nullable=False, default=0)
    bytes_reserved = Column(BigInteger, nullable=False, default=0)
    documents_reserved = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    documents = relationship("Document", back_populates="account")
