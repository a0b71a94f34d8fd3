from enum import Enum


class RoleEnum(str, Enum):
    STUDENT = "student"
    ADMIN = "admin"
    SUPER_ADMIN = "superadmin"

class SecurityActionEnum(str, Enum):
    ACCESS_OTHER_DEPARTMENT_LEADERBOARD = "access_other_department_leaderboard"
    ADMIN_REFRESH_CACHE = "admin_refresh_leaderboard_cache"
    ADMIN_RECALCULATE_RANKINGS = "admin_recalculate_rankings"
    ADMIN_RESET_CACHE = "admin_reset_leaderboard"
    ADMIN_VIEW_STATUS = "admin_view_leaderboard_status"
    ADMIN_VIEW_DIAGNOSTICS = "admin_view_attempt_diagnostics"

class AttemptErrorCodeEnum(str, Enum):
    MISSING_STUDENT_ID = "MISSING_STUDENT_ID"
    MISSING_DEPARTMENT_ID = "MISSING_DEPARTMENT_ID"
    MISSING_SCORE = "MISSING_SCORE"
    INVALID_SCORE = "INVALID_SCORE"
    INVALID_EXAM_DATA = "INVALID_EXAM_DATA"
    MISSING_REQUIRED_FIELD = "MISSING_REQUIRED_FIELD"

EXAM_ATTEMPT_UPDATED_EVENT = "exam_attempt_updated"
