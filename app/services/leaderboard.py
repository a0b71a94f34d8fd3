from datetime import datetime
from typing import Any, Callable, List, Mapping, Optional, Sequence, Tuple
import asyncio
import functools
import logging

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.constants import EXAM_ATTEMPT_UPDATED_EVENT, SecurityActionEnum
from app.core.database import SessionLocal
from app.core.decorators import leaderboard_operation
from app.core.exceptions import LeaderboardError
from app.schemas.leaderboard import (
    AdminRefreshResponse, AdminResetResponse, AttemptValidationSummary, CacheDetail,
    CacheRefreshResult, CacheSummary, DepartmentLeaderboardResponse, LeaderboardPage,
    LeaderboardStatus, RankingResult, StudentAggregate
)
from app.services.access_guard import AccessGuard, access_guard
from app.services.leaderboard_gateway import LeaderboardGateway, utcnow
from app.services.ranking_calculator import calculate_department_rankings, calculate_student_rankings
from app.services.ranking_parser import describe_issues, profiles_by_id, validate_exam_attempt_batch
from app.utils.events import event_bus

logger = logging.getLogger(__name__)


def paginate(
    entries: Sequence[StudentAggregate], total_students: int, offset: int, limit: int
) -> Tuple[List[StudentAggregate], bool, Optional[int]]:
    page = list(entries[offset:offset + limit])
    has_more = offset + limit < total_students
    next_cursor = offset + limit if has_more else None
    return page, has_more, next_cursor


class LeaderboardService:

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal, guard: AccessGuard = access_guard):
        self.session_factory = session_factory
        self.guard = guard

    def _gateway(self, db: Session) -> LeaderboardGateway:
        return LeaderboardGateway(db)

    def _validate_pagination(self, limit: int, offset: int) -> None:
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1 or limit > settings.LEADERBOARD_MAX_PAGE_SIZE:
            raise LeaderboardError.invalid_argument(
                f"limit must be between 1 and {settings.LEADERBOARD_MAX_PAGE_SIZE}"
            )
        if isinstance(offset, bool) or not isinstance(offset, int) or offset < 0:
            raise LeaderboardError.invalid_argument("offset must be non-negative")

    def compute_department_rankings(self, gateway: LeaderboardGateway, department_id: str) -> RankingResult:
        """Full recomputation over the whole roster; pagination never reaches this far."""
        roster = gateway.fetch_roster(department_id)
        if not roster:
            return RankingResult(entries=[], total_students=0)

        attempts = gateway.fetch_attempts([member.user_id for member in roster])
        return calculate_student_rankings(department_id, roster, attempts)

    @leaderboard_operation("calculate leaderboard")
    async def get_department_leaderboard(
        self,
        db: Session,
        caller_id: Optional[str],
        department_id: Optional[str],
        force_refresh: bool = False,
        limit: Optional[int] = None,
        offset: int = 0
    ) -> LeaderboardPage:
        gateway = self._gateway(db)
        profile = await self.guard.authenticate(gateway, caller_id)

        if not department_id:
            raise LeaderboardError.invalid_argument("departmentId is required")
        if limit is None:
            limit = settings.LEADERBOARD_DEFAULT_PAGE_SIZE
        self._validate_pagination(limit, offset)

        await self.guard.authorize_department(gateway, profile, department_id)

        if not force_refresh:
            cached = gateway.read_cache(department_id)
            if cached is not None:
                logger.debug(f"Leaderboard cache HIT for department {department_id}")
                page, has_more, next_cursor = paginate(cached.entries, cached.total_students, offset, limit)
                return LeaderboardPage(
                    entries=page,
                    total_students=cached.total_students,
                    last_updated=cached.last_updated,
                    department_id=department_id,
                    has_more=has_more,
                    next_cursor=next_cursor,
                    from_cache=True
                )

        logger.debug(f"Leaderboard cache MISS for department {department_id} (force_refresh={force_refresh})")
        computed_at = utcnow()
        result = self.compute_department_rankings(gateway, department_id)
        gateway.write_cache(department_id, result.entries, result.total_students, now=computed_at)

        page, has_more, next_cursor = paginate(result.entries, result.total_students, offset, limit)
        return LeaderboardPage(
            entries=page,
            total_students=result.total_students,
            last_updated=computed_at,
            department_id=department_id,
            has_more=has_more,
            next_cursor=next_cursor,
            from_cache=False
        )

    @leaderboard_operation("calculate department leaderboard")
    async def get_global_department_leaderboard(
        self, db: Session, caller_id: Optional[str]
    ) -> DepartmentLeaderboardResponse:
        gateway = self._gateway(db)
        await self.guard.authenticate(gateway, caller_id)

        departments = gateway.fetch_departments()
        students = gateway.fetch_all_students()
        if not departments or not students:
            return DepartmentLeaderboardResponse(rankings=[], total_departments=0, last_updated=utcnow())

        known_departments = {department.id for department in departments}
        student_ids_by_department = {}
        for student in students:
            if student.department_id in known_departments:
                student_ids_by_department.setdefault(student.department_id, []).append(student.user_id)

        attempts = []
        for student_ids in student_ids_by_department.values():
            attempts.extend(gateway.fetch_attempts(student_ids))

        rankings = calculate_department_rankings(departments, students, attempts)
        return DepartmentLeaderboardResponse(
            rankings=rankings,
            total_departments=len(rankings),
            last_updated=utcnow()
        )

    @staticmethod
    def is_new_submission(before: Optional[Mapping[str, Any]], after: Optional[Mapping[str, Any]]) -> bool:
        is_now_submitted = bool(after) and after.get("is_submitted") is True
        was_submitted = bool(before) and before.get("is_submitted") is True
        return is_now_submitted and not was_submitted

    async def on_attempt_submitted(
        self, db: Session, before: Optional[Mapping[str, Any]], after: Optional[Mapping[str, Any]]
    ) -> bool:
        """Invalidate the student's department cache on a genuinely new submission.

        Never raises: the submission that triggered this must not fail because of it.
        """
        try:
            if not self.is_new_submission(before, after):
                return False

            student_id = after.get("student_id")
            if not student_id:
                logger.error("No student_id found in exam attempt")
                return False

            gateway = self._gateway(db)
            profile = gateway.get_profile(student_id)
            if profile is None:
                logger.error(f"Student profile not found: {student_id}")
                return False
            if not profile.department_id:
                logger.error(f"No department_id found for student: {student_id}")
                return False

            gateway.invalidate_cache(profile.department_id)
            logger.info(f"Cache invalidated for department: {profile.department_id}")
            return True
        except Exception as e:
            logger.error(f"Error handling exam attempt update: {e}", exc_info=True)
            return False

    def _refresh_department(self, department_id: str, invalidate_first: bool = False) -> CacheRefreshResult:
        # Runs on a worker thread with its own session
        db = self.session_factory()
        try:
            gateway = self._gateway(db)
            if invalidate_first:
                gateway.invalidate_cache(department_id)
            result = self.compute_department_rankings(gateway, department_id)
            written = gateway.write_cache(department_id, result.entries, result.total_students)
            if written is None:
                return CacheRefreshResult(
                    department_id=department_id,
                    success=False,
                    total_students=result.total_students,
                    error="cache write failed"
                )
            logger.info(f"Refreshed cache for department: {department_id}")
            return CacheRefreshResult(
                department_id=department_id, success=True, total_students=result.total_students
            )
        finally:
            db.close()

    async def _refresh_departments(
        self, department_ids: Sequence[str], invalidate_first: bool = False
    ) -> List[CacheRefreshResult]:
        loop = asyncio.get_running_loop()
        tasks = [
            loop.run_in_executor(None, functools.partial(self._refresh_department, department_id, invalidate_first))
            for department_id in department_ids
        ]
        outcomes = await asyncio.gather(*tasks, return_exceptions=True)

        results = []
        for department_id, outcome in zip(department_ids, outcomes):
            if isinstance(outcome, Exception):
                logger.error(f"Error refreshing cache for department {department_id}: {outcome}")
                results.append(CacheRefreshResult(department_id=department_id, success=False, error=str(outcome)))
            else:
                results.append(outcome)
        return results

    async def refresh_stale_caches(self, now: Optional[datetime] = None) -> List[CacheRefreshResult]:
        try:
            db = self.session_factory()
            try:
                expired = self._gateway(db).list_expired_caches(now=now)
            finally:
                db.close()

            if not expired:
                logger.info("No expired caches found")
                return []

            logger.info(f"Found {len(expired)} expired caches to refresh")
            results = await self._refresh_departments(expired)
            logger.info(
                f"Cache refresh completed: {sum(1 for r in results if r.success)} of {len(results)} refreshed"
            )
            return results
        except Exception as e:
            logger.error(f"Error in refresh_stale_caches: {e}", exc_info=True)
            return []

    async def _require_admin(
        self, gateway: LeaderboardGateway, caller_id: Optional[str], action: SecurityActionEnum, detail: str
    ) -> None:
        profile = await self.guard.authenticate(gateway, caller_id)
        await self.guard.require_admin(gateway, profile, action, detail)

    @leaderboard_operation("refresh leaderboard cache")
    async def admin_refresh_cache(
        self, db: Session, caller_id: Optional[str], department_id: Optional[str] = None
    ) -> AdminRefreshResponse:
        gateway = self._gateway(db)
        await self._require_admin(
            gateway, caller_id, SecurityActionEnum.ADMIN_REFRESH_CACHE,
            "Only administrators can refresh leaderboard cache"
        )

        if department_id:
            result = self.compute_department_rankings(gateway, department_id)
            written = gateway.write_cache(department_id, result.entries, result.total_students)
            if written is None:
                return AdminRefreshResponse(
                    success=False,
                    message=f"Cache write failed for department: {department_id}",
                    department_id=department_id,
                    total_students=result.total_students,
                    timestamp=utcnow()
                )
            return AdminRefreshResponse(
                success=True,
                message=f"Cache refreshed for department: {department_id}",
                department_id=department_id,
                total_students=result.total_students,
                timestamp=utcnow()
            )

        departments = gateway.fetch_departments()
        if not departments:
            return AdminRefreshResponse(
                success=True, message="No departments found", refreshed_count=0, timestamp=utcnow()
            )

        results = await self._refresh_departments([department.id for department in departments])
        success_count = sum(1 for r in results if r.success)
        return AdminRefreshResponse(
            success=True,
            message=f"Cache refreshed for {success_count} of {len(results)} departments",
            refreshed_count=success_count,
            total_departments=len(results),
            results=results,
            timestamp=utcnow()
        )

    @leaderboard_operation("recalculate rankings")
    async def admin_recalculate_rankings(self, db: Session, caller_id: Optional[str]) -> AdminRefreshResponse:
        gateway = self._gateway(db)
        await self._require_admin(
            gateway, caller_id, SecurityActionEnum.ADMIN_RECALCULATE_RANKINGS,
            "Only administrators can recalculate rankings"
        )

        departments = gateway.fetch_departments()
        if not departments:
            return AdminRefreshResponse(
                success=True, message="No departments found", refreshed_count=0, timestamp=utcnow()
            )

        results = await self._refresh_departments(
            [department.id for department in departments], invalidate_first=True
        )
        succeeded = [r for r in results if r.success]
        return AdminRefreshResponse(
            success=True,
            message=f"Rankings recalculated for {len(succeeded)} of {len(results)} departments",
            refreshed_count=len(succeeded),
            total_departments=len(results),
            total_students=sum(r.total_students or 0 for r in succeeded),
            results=results,
            timestamp=utcnow()
        )

    @leaderboard_operation("reset leaderboard")
    async def admin_reset_cache(
        self, db: Session, caller_id: Optional[str], department_id: Optional[str]
    ) -> AdminResetResponse:
        gateway = self._gateway(db)
        await self._require_admin(
            gateway, caller_id, SecurityActionEnum.ADMIN_RESET_CACHE,
            "Only administrators can reset leaderboard"
        )
        if not department_id:
            raise LeaderboardError.invalid_argument("departmentId is required")

        gateway.invalidate_cache(department_id)
        return AdminResetResponse(
            success=True,
            message=f"Leaderboard cache cleared for department: {department_id}",
            department_id=department_id,
            timestamp=utcnow()
        )

    @leaderboard_operation("get leaderboard status")
    async def admin_get_cache_status(self, db: Session, caller_id: Optional[str]) -> LeaderboardStatus:
        gateway = self._gateway(db)
        await self._require_admin(
            gateway, caller_id, SecurityActionEnum.ADMIN_VIEW_STATUS,
            "Only administrators can view leaderboard status"
        )

        now = utcnow()
        rows = gateway.list_caches()
        details = []
        valid = expired = total_cached_students = 0
        for row in rows:
            is_expired = now >= row.expires_at
            if is_expired:
                expired += 1
            else:
                valid += 1
                total_cached_students += row.total_students or 0
            details.append(CacheDetail(
                department_id=row.department_id,
                total_students=row.total_students or 0,
                last_updated=row.last_updated,
                expires_at=row.expires_at,
                is_expired=is_expired
            ))

        return LeaderboardStatus(
            total_departments=gateway.count_departments(),
            total_students=gateway.count_students(),
            total_exam_attempts=gateway.count_submitted_attempts(),
            cache=CacheSummary(
                total=len(rows),
                valid=valid,
                expired=expired,
                total_cached_students=total_cached_students
            ),
            cache_details=details,
            timestamp=now
        )

    @leaderboard_operation("validate exam attempts")
    async def admin_get_attempt_diagnostics(
        self, db: Session, caller_id: Optional[str], department_id: Optional[str]
    ) -> AttemptValidationSummary:
        gateway = self._gateway(db)
        await self._require_admin(
            gateway, caller_id, SecurityActionEnum.ADMIN_VIEW_DIAGNOSTICS,
            "Only administrators can view attempt diagnostics"
        )
        if not department_id:
            raise LeaderboardError.invalid_argument("departmentId is required")

        roster = gateway.fetch_roster(department_id)
        attempts = gateway.fetch_attempts([member.user_id for member in roster])
        summary = validate_exam_attempt_batch(attempts, profiles_by_id(roster))
        for line in describe_issues(summary.errors):
            logger.warning(f"Invalid exam attempt in department {department_id}: {line}")
        return summary


leaderboard_service = LeaderboardService()


async def handle_exam_attempt_updated(data: dict):
    db = leaderboard_service.session_factory()
    try:
        await leaderboard_service.on_attempt_submitted(db, data.get("before"), data.get("after"))
    finally:
        db.close()


event_bus.subscribe(EXAM_ATTEMPT_UPDATED_EVENT, handle_exam_attempt_updated)
