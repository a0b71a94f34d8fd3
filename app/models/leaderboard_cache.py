from sqlalchemy import Column, String, Integer, DateTime, JSON
from app.core.database import Base

class LeaderboardCache(Base):
    __tablename__ = "leaderboard_cache"

    department_id = Column(String, primary_key=True)
    # Full ordered ranking, never chunked or partially updated
    entries = Column(JSON, nullable=False, default=list)
    total_students = Column(Integer, nullable=False, default=0)
    last_updated = Column(DateTime, nullable=False)
    expires_at = Column(DateTime, nullable=False, index=True)
