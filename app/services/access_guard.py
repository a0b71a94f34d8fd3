from typing import Optional
import logging

from app.core.constants import SecurityActionEnum
from app.core.exceptions import LeaderboardError
from app.schemas.leaderboard import RosterMember
from app.services.leaderboard_gateway import LeaderboardGateway
from app.utils.permission import permission_helper

logger = logging.getLogger(__name__)


class AccessGuard:
    """Sole enforcement point for department isolation on leaderboard data."""

    async def authenticate(self, gateway: LeaderboardGateway, caller_id: Optional[str]) -> RosterMember:
        if not caller_id:
            raise LeaderboardError.unauthenticated("User must be authenticated to access leaderboard data")

        profile = gateway.get_profile(caller_id)
        if profile is None:
            raise LeaderboardError.not_found("User profile not found")
        return profile

    async def authorize_department(
        self, gateway: LeaderboardGateway, profile: RosterMember, department_id: str
    ) -> None:
        if permission_helper.can_view_department_leaderboard(profile, department_id):
            return

        await self._log_security_violation(
            gateway,
            user_id=profile.user_id,
            action=SecurityActionEnum.ACCESS_OTHER_DEPARTMENT_LEADERBOARD,
            reason="Student attempted to access leaderboard from different department",
            requested_department_id=department_id,
            user_department_id=profile.department_id
        )
        raise LeaderboardError.permission_denied(
            "You do not have permission to access this department's leaderboard"
        )

    async def require_admin(
        self, gateway: LeaderboardGateway, profile: RosterMember, action: SecurityActionEnum, detail: str
    ) -> None:
        if permission_helper.is_admin(profile):
            return

        await self._log_security_violation(
            gateway,
            user_id=profile.user_id,
            action=action,
            reason=f"Non-admin role '{profile.role}' attempted an administrative action",
            user_department_id=profile.department_id
        )
        raise LeaderboardError.permission_denied(detail)

    async def _log_security_violation(
        self,
        gateway: LeaderboardGateway,
        *,
        user_id: str,
        action: SecurityActionEnum,
        reason: str,
        requested_department_id: Optional[str] = None,
        user_department_id: Optional[str] = None
    ) -> None:
        logger.warning(
            f"Security violation: user={user_id} action={action.value} reason={reason} "
            f"requested_department={requested_department_id} user_department={user_department_id}"
        )
        try:
            gateway.append_security_log(
                user_id=user_id,
                action=action.value,
                reason=reason,
                requested_department_id=requested_department_id,
                user_department_id=user_department_id
            )
        except Exception as e:
            # The denial still stands even when it cannot be recorded
            logger.error(f"Error logging security violation for user {user_id}: {e}")
            try:
                gateway.db.rollback()
            except Exception as rollback_error:
                logger.error(f"Rollback after failed security log write also failed: {rollback_error}")


access_guard = AccessGuard()
