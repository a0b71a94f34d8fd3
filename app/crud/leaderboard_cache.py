from datetime import datetime
from typing import Any, Dict, List, Optional
from sqlalchemy.orm import Session

from app.crud.base import CRUDBase
from app.models.leaderboard_cache import LeaderboardCache

class CRUDLeaderboardCache(CRUDBase[LeaderboardCache]):

    def get_all(self, db: Session) -> List[LeaderboardCache]:
        return db.query(LeaderboardCache).order_by(LeaderboardCache.department_id).all()

    def get_expired(self, db: Session, *, now: datetime) -> List[LeaderboardCache]:
        return (
            db.query(LeaderboardCache)
            .filter(LeaderboardCache.expires_at < now)
            .order_by(LeaderboardCache.department_id)
            .all()
        )

    def replace(
        self,
        db: Session,
        *,
        department_id: str,
        entries: List[Dict[str, Any]],
        total_students: int,
        last_updated: datetime,
        expires_at: datetime
    ) -> LeaderboardCache:
        row = db.get(LeaderboardCache, department_id)
        if row is None:
            row = LeaderboardCache(department_id=department_id)
            db.add(row)
        row.entries = entries
        row.total_students = total_students
        row.last_updated = last_updated
        row.expires_at = expires_at
        db.commit()
        db.refresh(row)
        return row

    def delete(self, db: Session, *, department_id: str) -> bool:
        deleted = (
            db.query(LeaderboardCache)
            .filter(LeaderboardCache.department_id == department_id)
            .delete(synchronize_session=False)
        )
        db.commit()
        return deleted > 0


leaderboard_cache = CRUDLeaderboardCache(LeaderboardCache)
