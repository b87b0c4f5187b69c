import enum

from sqlalchemy import JSON, Boolean, Column, ForeignKey, String, Text
from sqlalchemy.orm import relationship

from database.database import Base
from models.session import ChatSession


class ChatRole(str, enum.Enum):
    USER = "USER"
    ASSISTANT = "ASSISTANT"


class SessionMessage(Base):
    __tablename__ = "session_messages"

    message_id = Column(String, primary_key=True, nullable=False, index=True)
    session_id = Column(
        String,
        ForeignKey(ChatSession.session_id, ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    role = Column(String, nullable=False)
    content = Column(Text, nullable=False)
    # "metadata" is reserved on declarative classes
    message_metadata = Column("metadata", JSON, nullable=True)
    is_emergency = Column(Boolean, nullable=False, default=False)
    time_created = Column(String, nullable=False)

    session = relationship("ChatSession", back_populates="messages")
