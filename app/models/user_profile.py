from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base
from app.core.constants import RoleEnum

class UserProfile(Base):
    __tablename__ = "user_profiles"

    # Matches the subject of the caller's verified identity
    id = Column(String, primary_key=True, index=True)
    full_name = Column(String, nullable=False)
    department_id = Column(String, ForeignKey("departments.id"), nullable=True, index=True)
    role = Column(String, nullable=False, default=RoleEnum.STUDENT.value, index=True)
    created_at = Column(DateTime, server_default=func.now())

    department = relationship("Department", back_populates="members")
