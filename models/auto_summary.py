from sqlalchemy import Boolean, Column, ForeignKey, String, Text
from sqlalchemy.orm import relationship

from database.database import Base
from models.patient_request import PatientRequest


class AutoSummary(Base):
    __tablename__ = "auto_summaries"

    summary_id = Column(String, primary_key=True, nullable=False, index=True)
    request_id = Column(
        String,
        ForeignKey(PatientRequest.request_id, ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    content = Column(Text, nullable=False)
    generated_by_ai = Column(Boolean, nullable=False, default=True)
    time_created = Column(String, nullable=True)

    request = relationship("PatientRequest", back_populates="auto_summary")
