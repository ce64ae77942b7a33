"""Thread model for conversation management."""
from datetime import datetime, timezone
from sqlalchemy import Column, String, DateTime, Text, ForeignKey, Index
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()

DEFAULT_THREAD_TITLE = "New chat"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Thread(Base):
    """
    SQLAlchemy model for conversation threads.

    Each thread belongs to exactly one anonymous identifier. updated_at is
    bumped on rename and on every message append and drives the listing order.
    """
    __tablename__ = "threads"

    thread_id = Column(String, primary_key=True)
    anon_user_id = Column(
        String,
        ForeignKey("users.anon_user_id", ondelete="CASCADE"),
        nullable=False,
    )
    title = Column(Text, nullable=True, default=DEFAULT_THREAD_TITLE)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    user = relationship("User", back_populates="threads")
    messages = relationship("Message", back_populates="thread", passive_deletes=True)

    __table_args__ = (
        Index("idx_threads_user_updated", "anon_user_id", updated_at.desc()),
    )
