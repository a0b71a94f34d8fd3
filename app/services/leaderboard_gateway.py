from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Iterator, List, Optional, Sequence
import logging

from sqlalchemy.orm import Session

from app.core.config import settings
from app.crud.department import department as crud_department
from app.crud.exam_attempt import exam_attempt as crud_exam_attempt
from app.crud.leaderboard_cache import leaderboard_cache as crud_leaderboard_cache
from app.crud.security_log import security_log as crud_security_log
from app.crud.user_profile import user_profile as crud_user_profile
from app.models.exam_attempt import ExamAttempt
from app.models.leaderboard_cache import LeaderboardCache
from app.models.user_profile import UserProfile
from app.schemas.leaderboard import (
    DepartmentRecord, GradedAttempt, RankingCacheEntry, RosterMember, StudentAggregate
)

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    """Naive UTC, matching how timestamps are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def chunked(items: Sequence[str], size: int) -> Iterator[List[str]]:
    for start in range(0, len(items), size):
        yield list(items[start:start + size])


def _as_decimal(value: Any) -> Optional[Decimal]:
    if value is None:
        return None
    return Decimal(str(value))


def _to_roster_member(profile: UserProfile) -> RosterMember:
    return RosterMember(
        user_id=profile.id,
        full_name=profile.full_name,
        department_id=profile.department_id,
        role=profile.role
    )


def _to_graded_attempt(attempt: ExamAttempt) -> GradedAttempt:
    return GradedAttempt(
        attempt_id=attempt.id,
        exam_id=attempt.exam_id,
        student_id=attempt.student_id,
        is_submitted=bool(attempt.is_submitted),
        total_score=_as_decimal(attempt.total_score),
        max_score=_as_decimal(attempt.max_score)
    )


def _to_cache_entry(row: LeaderboardCache) -> RankingCacheEntry:
    return RankingCacheEntry(
        department_id=row.department_id,
        entries=[StudentAggregate.model_validate(entry) for entry in row.entries or []],
        total_students=row.total_students,
        last_updated=row.last_updated,
        expires_at=row.expires_at
    )


class LeaderboardGateway:
    """All leaderboard store I/O for one unit of work.

    Roster and attempt reads raise on failure since there is nothing to fall back to.
    Cache reads, writes and deletes never raise; a failed read is a miss.
    """

    def __init__(self, db: Session, batch_size: Optional[int] = None, ttl: Optional[timedelta] = None):
        self.db = db
        self.batch_size = batch_size or settings.ATTEMPT_QUERY_BATCH_SIZE
        self.ttl = ttl or timedelta(minutes=settings.LEADERBOARD_CACHE_TTL_MINUTES)

    def get_profile(self, user_id: str) -> Optional[RosterMember]:
        profile = crud_user_profile.get(self.db, id=user_id)
        return _to_roster_member(profile) if profile else None

    def fetch_roster(self, department_id: str) -> List[RosterMember]:
        profiles = crud_user_profile.get_students_by_department(self.db, department_id=department_id)
        return [_to_roster_member(p) for p in profiles]

    def fetch_all_students(self) -> List[RosterMember]:
        return [_to_roster_member(p) for p in crud_user_profile.get_all_students(self.db)]

    def fetch_departments(self) -> List[DepartmentRecord]:
        return [DepartmentRecord(id=d.id, name=d.name) for d in crud_department.get_all(self.db)]

    def fetch_attempts(self, student_ids: Sequence[str]) -> List[GradedAttempt]:
        # The store caps "in" filters, so one query per batch; dropping a batch would drop students
        attempts: List[GradedAttempt] = []
        for batch in chunked(list(student_ids), self.batch_size):
            rows = crud_exam_attempt.get_submitted_by_students(self.db, student_ids=batch)
            attempts.extend(_to_graded_attempt(row) for row in rows)
        return attempts

    def count_students(self) -> int:
        return crud_user_profile.count_students(self.db)

    def count_departments(self) -> int:
        return crud_department.count(self.db)

    def count_submitted_attempts(self) -> int:
        return crud_exam_attempt.count_submitted(self.db)

    def read_cache(self, department_id: str, now: Optional[datetime] = None) -> Optional[RankingCacheEntry]:
        now = now or utcnow()
        try:
            row = crud_leaderboard_cache.get(self.db, id=department_id)
            if row is None:
                return None
            if now >= row.expires_at:
                logger.debug(f"Leaderboard cache for department {department_id} expired at {row.expires_at}")
                return None
            return _to_cache_entry(row)
        except Exception as e:
            logger.error(f"Error reading leaderboard cache for department {department_id}: {e}")
            self.db.rollback()
            return None

    def write_cache(
        self,
        department_id: str,
        entries: List[StudentAggregate],
        total_students: int,
        now: Optional[datetime] = None
    ) -> Optional[RankingCacheEntry]:
        now = now or utcnow()
        try:
            row = crud_leaderboard_cache.replace(
                self.db,
                department_id=department_id,
                entries=[entry.model_dump(mode="json") for entry in entries],
                total_students=total_students,
                last_updated=now,
                expires_at=now + self.ttl
            )
            return _to_cache_entry(row)
        except Exception as e:
            logger.error(f"Error writing leaderboard cache for department {department_id}: {e}")
            self.db.rollback()
            return None

    def invalidate_cache(self, department_id: str) -> bool:
        try:
            deleted = crud_leaderboard_cache.delete(self.db, department_id=department_id)
            logger.info(f"Invalidated leaderboard cache for department {department_id} (existed: {deleted})")
            return deleted
        except Exception as e:
            logger.error(f"Error invalidating leaderboard cache for department {department_id}: {e}")
            self.db.rollback()
            return False

    def list_expired_caches(self, now: Optional[datetime] = None) -> List[str]:
        rows = crud_leaderboard_cache.get_expired(self.db, now=now or utcnow())
        return [row.department_id for row in rows]

    def list_caches(self) -> List[LeaderboardCache]:
        return crud_leaderboard_cache.get_all(self.db)

    def append_security_log(
        self,
        *,
        user_id: str,
        action: str,
        reason: str,
        requested_department_id: Optional[str] = None,
        user_department_id: Optional[str] = None
    ) -> None:
        crud_security_log.create(self.db, obj_in={
            "timestamp": utcnow(),
            "user_id": user_id,
            "action": action,
            "reason": reason,
            "requested_department_id": requested_department_id,
            "user_department_id": user_department_id
        })
