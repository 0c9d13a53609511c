"""
Document SQLAlchemy ORM model.
"""
import enum

from sqlalchemy import Column, String, Integer, BigInteger, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship
from datetime import datetime, timezone

from db.database import Base


class DocumentStatus(str, enum.Enum):
    UPLOADED = "uploaded"
    PROCESSING = "processing"
    ANALYZED = "analyzed"
    FAILED = "failed"


class Document(Base):
    __tablename__ = "documents"
    __table_args__ = (
        Index("ix_documents_account_created", "account_id", "created_at"),
    )

    id = Column(String, primary_key=True)
    account_id = Column(String, ForeignKey("accounts.id"), nullable=False, index=True)
    file_name = Column(String, nullable=False)
    file_type = Column(String, nullable=False)       # pdf | docx | xlsx | txt
    file_size = Column(BigInteger, nullable=False, default=0)
    storage_path = Column(String, nullable=True)     # Supabase Storage path
    status = Column(String, nullable=False, default=DocumentStatus.UPLOADED.value, index=True)
    result_ref = Column(String, nullable=True)       # analyzer result reference
    failure_reason = Column(String, nullable=True)
    retry_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
    analysis_start_time = Column(DateTime, nullable=True)
    analysis_end_time = Column(DateTime, nullable=True)

    account = relationship("Account", back_populates="documents")
