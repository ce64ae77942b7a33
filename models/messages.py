"""Message model for thread history."""
import enum
from sqlalchemy import Column, String, DateTime, Text, ForeignKey, Index, CheckConstraint
from sqlalchemy.orm import relationship
from .threads import Base, utcnow


class MessageRole(str, enum.Enum):
    """Enum for the author of a message."""
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class Message(Base):
    """
    SQLAlchemy model for a single turn in a thread.

    Messages are append-only. created_at is the order for history reads.
    content is nullable because assistant replies are stored exactly as the
    relay returned them.
    """
    __tablename__ = "messages"

    msg_id = Column(String, primary_key=True)
    thread_id = Column(
        String,
        ForeignKey("threads.thread_id", ondelete="CASCADE"),
        nullable=False,
    )
    role = Column(String, nullable=False)
    content = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    thread = relationship("Thread", back_populates="messages")

    __table_args__ = (
        CheckConstraint("role in ('user','assistant','system')", name="ck_messages_role"),
        Index("idx_messages_thread_time", "thread_id", created_at.asc()),
    )
