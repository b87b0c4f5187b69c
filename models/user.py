import enum

from sqlalchemy import Column, Integer, String
from sqlalchemy.orm import relationship

from database.database import Base


class UserRole(str, enum.Enum):
    PATIENT = "PATIENT"
    VOLUNTEER = "VOLUNTEER"
    ADMIN = "ADMIN"


class User(Base):
    __tablename__ = "users"

    user_id = Column(String, nullable=False, primary_key=True, index=True)
    name = Column(String, nullable=True)
    email = Column(String, nullable=False, unique=True, index=True)
    password = Column(String, nullable=False)
    phone = Column(String, nullable=True)
    age = Column(Integer, nullable=True)
    role = Column(String, nullable=False, default=UserRole.PATIENT.value)
    time_created = Column(String, nullable=True)
    time_updated = Column(String, nullable=True)

    # Tickets raised by this account as a patient
    requests = relationship(
        "PatientRequest",
        back_populates="patient",
        foreign_keys="PatientRequest.patient_id",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    # Tickets this account claimed as a volunteer (a relation, not ownership)
    assigned_requests = relationship(
        "PatientRequest",
        back_populates="volunteer",
        foreign_keys="PatientRequest.volunteer_id",
    )

    chat_sessions = relationship(
        "ChatSession",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
