from decimal import Decimal
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class RosterMember(BaseModel):
    """A profile as seen by the leaderboard: who they are and where they belong."""
    user_id: str
    full_name: str
    department_id: Optional[str] = None
    role: Optional[str] = None


class GradedAttempt(BaseModel):
    """Read-only view of an exam attempt. Malformed scores are kept and filtered later."""
    attempt_id: Optional[str] = None
    exam_id: Optional[str] = None
    student_id: Optional[str] = None
    is_submitted: bool = False
    total_score: Optional[Decimal] = Field(None, allow_inf_nan=True)
    max_score: Optional[Decimal] = Field(None, allow_inf_nan=True)


class DepartmentRecord(BaseModel):
    id: str
    name: str


class StudentAggregate(BaseModel):
    model_config = ConfigDict(frozen=True)

    student_id: str
    student_name: str
    department_id: str
    total_points: Decimal
    average_score: Decimal
    exam_count: int
    rank_position: int = Field(..., ge=1)


class DepartmentAggregate(BaseModel):
    model_config = ConfigDict(frozen=True)

    department_id: str
    department_name: str
    total_department_score: Decimal
    average_score: Decimal
    active_student_count: int
    rank_position: int = Field(..., ge=1)


class RankingResult(BaseModel):
    entries: List[StudentAggregate]
    total_students: int


class RankingCacheEntry(BaseModel):
    department_id: str
    entries: List[StudentAggregate]
    total_students: int
    last_updated: datetime
    expires_at: datetime


class LeaderboardPage(BaseModel):
    entries: List[StudentAggregate]
    total_students: int
    last_updated: datetime
    department_id: str
    has_more: bool
    next_cursor: Optional[int] = None
    from_cache: bool


class DepartmentLeaderboardResponse(BaseModel):
    rankings: List[DepartmentAggregate]
    total_departments: int
    last_updated: datetime


class CacheRefreshResult(BaseModel):
    department_id: str
    success: bool
    total_students: Optional[int] = None
    error: Optional[str] = None


class AdminRefreshResponse(BaseModel):
    success: bool
    message: str
    department_id: Optional[str] = None
    total_students: Optional[int] = None
    refreshed_count: Optional[int] = None
    total_departments: Optional[int] = None
    results: Optional[List[CacheRefreshResult]] = None
    timestamp: datetime


class AdminResetResponse(BaseModel):
    success: bool
    message: str
    department_id: str
    timestamp: datetime


class CacheSummary(BaseModel):
    total: int
    valid: int
    expired: int
    total_cached_students: int


class CacheDetail(BaseModel):
    department_id: str
    total_students: int
    last_updated: datetime
    expires_at: datetime
    is_expired: bool


class LeaderboardStatus(BaseModel):
    total_departments: int
    total_students: int
    total_exam_attempts: int
    cache: CacheSummary
    cache_details: List[CacheDetail]
    timestamp: datetime


class AttemptValidationError(BaseModel):
    code: str
    message: str
    field: Optional[str] = None
    value: Optional[str] = None


class AttemptValidationIssue(BaseModel):
    attempt_id: str
    error: AttemptValidationError


class ValidatedAttempt(BaseModel):
    attempt_id: str
    exam_id: str
    student_id: str
    department_id: str
    score: Decimal
    max_score: Decimal


class AttemptValidationSummary(BaseModel):
    total_attempts: int
    valid_count: int
    invalid_count: int
    errors: List[AttemptValidationIssue]
    error_summary: Dict[str, int]
