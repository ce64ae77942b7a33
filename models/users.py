"""User model for anonymous identifiers."""
from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import relationship
from .threads import Base, utcnow


class User(Base):
    """
    SQLAlchemy model for users.

    A user is nothing more than the opaque identifier a client generated for
    itself. Rows are created implicitly with the first thread.
    """
    __tablename__ = "users"

    anon_user_id = Column(String, primary_key=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    threads = relationship("Thread", back_populates="user", passive_deletes=True)
