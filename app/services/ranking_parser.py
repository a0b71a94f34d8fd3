"""Strict validation of exam attempts, used for diagnostics only.

Ranking itself drops ineligible attempts silently (see ranking_calculator). This module
explains *why* an attempt would be dropped so admins can find bad data.
"""
import json
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Tuple, Union

from app.core.constants import AttemptErrorCodeEnum
from app.schemas.leaderboard import (
    AttemptValidationError, AttemptValidationIssue, AttemptValidationSummary,
    GradedAttempt, RosterMember, ValidatedAttempt
)

ValidationOutcome = Union[ValidatedAttempt, AttemptValidationError]


def _error(code: AttemptErrorCodeEnum, message: str, field: str, value: Any) -> AttemptValidationError:
    return AttemptValidationError(
        code=code.value,
        message=message,
        field=field,
        value=None if value is None else str(value)
    )


def _is_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, Decimal):
        return not value.is_nan()
    if isinstance(value, (int, float)):
        return value == value
    return False


def validate_exam_attempt(attempt: GradedAttempt, profile: RosterMember) -> ValidationOutcome:
    if not attempt.student_id:
        return _error(AttemptErrorCodeEnum.MISSING_STUDENT_ID,
                      "studentId is required and must be a non-empty string", "studentId", attempt.student_id)

    if not profile.department_id:
        return _error(AttemptErrorCodeEnum.MISSING_DEPARTMENT_ID,
                      "departmentId is required and must be a non-empty string", "departmentId", profile.department_id)

    if attempt.total_score is None:
        return _error(AttemptErrorCodeEnum.MISSING_SCORE,
                      "totalScore is required and cannot be null", "totalScore", None)

    if not _is_number(attempt.total_score):
        return _error(AttemptErrorCodeEnum.INVALID_SCORE,
                      "totalScore must be a valid number", "totalScore", attempt.total_score)

    if attempt.max_score is None:
        return _error(AttemptErrorCodeEnum.MISSING_SCORE,
                      "maxScore is required and cannot be null", "maxScore", None)

    if not _is_number(attempt.max_score) or attempt.max_score <= 0:
        return _error(AttemptErrorCodeEnum.INVALID_SCORE,
                      "maxScore must be a valid positive number", "maxScore", attempt.max_score)

    if attempt.total_score < 0:
        return _error(AttemptErrorCodeEnum.INVALID_SCORE,
                      "totalScore cannot be negative", "totalScore", attempt.total_score)

    if not attempt.exam_id:
        return _error(AttemptErrorCodeEnum.MISSING_REQUIRED_FIELD,
                      "examId is required and must be a non-empty string", "examId", attempt.exam_id)

    if not attempt.attempt_id:
        return _error(AttemptErrorCodeEnum.MISSING_REQUIRED_FIELD,
                      "attemptId is required and must be a non-empty string", "attemptId", attempt.attempt_id)

    return ValidatedAttempt(
        attempt_id=attempt.attempt_id,
        exam_id=attempt.exam_id,
        student_id=attempt.student_id,
        department_id=profile.department_id,
        score=attempt.total_score,
        max_score=attempt.max_score
    )


def parse_exam_attempts(
    attempts: Iterable[GradedAttempt],
    profiles: Mapping[str, RosterMember]
) -> Tuple[List[ValidatedAttempt], List[AttemptValidationIssue]]:
    valid_attempts: List[ValidatedAttempt] = []
    errors: List[AttemptValidationIssue] = []

    for attempt in attempts:
        if not attempt.is_submitted:
            continue

        attempt_id = attempt.attempt_id or "unknown"
        profile = profiles.get(attempt.student_id) if attempt.student_id else None
        if profile is None:
            errors.append(AttemptValidationIssue(
                attempt_id=attempt_id,
                error=_error(AttemptErrorCodeEnum.INVALID_EXAM_DATA,
                             f"Student profile not found for studentId: {attempt.student_id}",
                             "studentId", attempt.student_id)
            ))
            continue

        outcome = validate_exam_attempt(attempt, profile)
        if isinstance(outcome, AttemptValidationError):
            errors.append(AttemptValidationIssue(attempt_id=attempt_id, error=outcome))
            continue
        valid_attempts.append(outcome)

    return valid_attempts, errors


def validate_exam_attempt_batch(
    attempts: Iterable[GradedAttempt],
    profiles: Mapping[str, RosterMember]
) -> AttemptValidationSummary:
    attempts = list(attempts)
    valid_attempts, errors = parse_exam_attempts(attempts, profiles)

    error_summary: Dict[str, int] = {code.value: 0 for code in AttemptErrorCodeEnum}
    for issue in errors:
        error_summary[issue.error.code] += 1

    return AttemptValidationSummary(
        total_attempts=len(attempts),
        valid_count=len(valid_attempts),
        invalid_count=len(errors),
        errors=errors,
        error_summary=error_summary
    )


def format_parser_error(error: AttemptValidationError) -> str:
    message = f"[{error.code}] {error.message}"
    if error.field:
        message += f" (field: {error.field})"
    if error.value is not None:
        message += f" (value: {json.dumps(error.value)})"
    return message


def profiles_by_id(roster: Iterable[RosterMember]) -> Dict[str, RosterMember]:
    return {member.user_id: member for member in roster}


def describe_issues(issues: Iterable[AttemptValidationIssue]) -> List[str]:
    return [f"{issue.attempt_id}: {format_parser_error(issue.error)}" for issue in issues]

