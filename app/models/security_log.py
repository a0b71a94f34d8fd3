from sqlalchemy import Column, Integer, String, DateTime
from app.core.database import Base

class SecurityLog(Base):
    __tablename__ = "security_logs"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    timestamp = Column(DateTime, nullable=False)
    user_id = Column(String, nullable=False, index=True)
    action = Column(String, nullable=False)
    reason = Column(String, nullable=False)
    requested_department_id = Column(String, nullable=True)
    user_department_id = Column(String, nullable=True)
