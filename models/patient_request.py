import enum

from sqlalchemy import Column, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from database.database import Base
from models.user import User


class RequestStatus(str, enum.Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    RESOLVED = "RESOLVED"
    CANCELLED = "CANCELLED"


class PatientRequest(Base):
    __tablename__ = "patient_requests"

    request_id = Column(String, primary_key=True, nullable=False, index=True)
    patient_id = Column(
        String,
        ForeignKey(User.user_id, ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # Set exactly once, by the conditional update in assign_request
    volunteer_id = Column(
        String,
        ForeignKey(User.user_id, ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    title = Column(String, nullable=False)
    issue = Column(Text, nullable=False)
    status = Column(String, nullable=False, default=RequestStatus.PENDING.value)

    # Contact details captured by the ticket form
    contact_name = Column(String, nullable=True)
    contact_age = Column(Integer, nullable=True)
    contact_email = Column(String, nullable=True)
    contact_phone = Column(String, nullable=True)

    time_created = Column(String, nullable=True)
    time_updated = Column(String, nullable=True)

    patient = relationship("User", foreign_keys=[patient_id], back_populates="requests")
    volunteer = relationship(
        "User", foreign_keys=[volunteer_id], back_populates="assigned_requests"
    )

    auto_summary = relationship(
        "AutoSummary",
        back_populates="request",
        uselist=False,
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    messages = relationship(
        "RequestMessage",
        back_populates="request",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="RequestMessage.time_created",
    )
