"""SQLAlchemy models."""

from sqlalchemy import Column, DateTime, Float, Integer, String, Text
from sqlalchemy.sql import func

from .database import Base


class IndexJob(Base):
    """One full-rebuild run started from the API."""

    __tablename__ = "index_jobs"

    id = Column(Integer, primary_key=True, index=True)
    root = Column(String(1024), nullable=False)
    collection = Column(String(255), nullable=False, index=True)
    config_fingerprint = Column(String(64))
    status = Column(String(50), nullable=False, index=True)  # pending, running, completed, failed
    files = Column(Integer, default=0)
    chunks = Column(Integer, default=0)
    indexed = Column(Integer, default=0)
    failed = Column(Integer, default=0)
    duration_s = Column(Float)
    error_message = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    started_at = Column(DateTime(timezone=True))
    finished_at = Column(DateTime(timezone=True))
