from sqlalchemy import Boolean, Column, ForeignKey, String, Text
from sqlalchemy.orm import relationship

from database.database import Base
from models.patient_request import PatientRequest
from models.user import User


class RequestMessage(Base):
    __tablename__ = "request_messages"

    message_id = Column(String, primary_key=True, nullable=False, index=True)
    request_id = Column(
        String,
        ForeignKey(PatientRequest.request_id, ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sender_id = Column(
        String,
        ForeignKey(User.user_id, ondelete="CASCADE"),
        nullable=False,
    )
    # PATIENT or VOLUNTEER
    sender_role = Column(String, nullable=False)
    content = Column(Text, nullable=False)
    # Only ever flipped False -> True, by the recipient side
    is_read = Column(Boolean, nullable=False, default=False)
    time_created = Column(String, nullable=False)

    request = relationship("PatientRequest", back_populates="messages")
    sender = relationship("User")
