from sqlalchemy import JSON, Boolean, Column, ForeignKey, String
from sqlalchemy.orm import relationship

from database.database import Base
from models.user import User


class ChatSession(Base):
    __tablename__ = "chat_session"

    session_id = Column(String, primary_key=True, nullable=False, index=True)
    user_id = Column(
        String,
        ForeignKey(User.user_id, ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title = Column(String)
    # Snapshot of the ticket the session was started from, if any
    context = Column(JSON, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    time_created = Column(String)
    time_updated = Column(String)

    # Relationship with cascade delete (ORM-level)
    messages = relationship(
        "SessionMessage",
        back_populates="session",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="SessionMessage.time_created",
    )

    user = relationship("User", back_populates="chat_sessions")
