from typing import Optional

from app.core.constants import RoleEnum
from app.schemas.leaderboard import RosterMember


class PermissionHelper:
    ADMIN_ROLES = {RoleEnum.ADMIN.value, RoleEnum.SUPER_ADMIN.value}

    @staticmethod
    def is_admin(profile: RosterMember) -> bool:
        return profile.role in PermissionHelper.ADMIN_ROLES

    @staticmethod
    def belongs_to_department(profile: RosterMember, department_id: Optional[str]) -> bool:
        return bool(profile.department_id) and profile.department_id == department_id

    @staticmethod
    def can_view_department_leaderboard(profile: RosterMember, department_id: str) -> bool:
        if PermissionHelper.is_admin(profile):
            return True
        return PermissionHelper.belongs_to_department(profile, department_id)


permission_helper = PermissionHelper()
