from sqlalchemy import Column, String, DateTime, Float, Boolean
from sqlalchemy.sql import func
from app.core.database import Base

class ExamAttempt(Base):
    __tablename__ = "exam_attempts"

    id = Column(String, primary_key=True, index=True)
    exam_id = Column(String, nullable=False, index=True)
    student_id = Column(String, nullable=False, index=True)
    is_submitted = Column(Boolean, nullable=False, default=False)
    total_score = Column(Float, nullable=True)
    max_score = Column(Float, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, onupdate=func.now())
