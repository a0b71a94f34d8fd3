from decimal import Decimal

import pytest

from app.core.constants import AttemptErrorCodeEnum
from app.schemas.leaderboard import AttemptValidationError, GradedAttempt, RosterMember, ValidatedAttempt
from app.services.ranking_parser import (
    describe_issues, format_parser_error, parse_exam_attempts, profiles_by_id,
    validate_exam_attempt, validate_exam_attempt_batch
)

PROFILE = RosterMember(user_id="s1", full_name="Student One", department_id="d1", role="student")


def graded(**overrides):
    values = dict(
        attempt_id="att-1",
        exam_id="exam-1",
        student_id="s1",
        is_submitted=True,
        total_score=Decimal("42"),
        max_score=Decimal("50")
    )
    values.update(overrides)
    return GradedAttempt(**values)


def test_valid_attempt_is_enriched_with_department():
    outcome = validate_exam_attempt(graded(), PROFILE)

    assert isinstance(outcome, ValidatedAttempt)
    assert outcome.department_id == "d1"
    assert outcome.score == Decimal("42")
    assert outcome.max_score == Decimal("50")


@pytest.mark.parametrize("overrides,profile,code,field", [
    ({"student_id": ""}, PROFILE, AttemptErrorCodeEnum.MISSING_STUDENT_ID, "studentId"),
    ({}, PROFILE.model_copy(update={"department_id": None}), AttemptErrorCodeEnum.MISSING_DEPARTMENT_ID, "departmentId"),
    ({"total_score": None}, PROFILE, AttemptErrorCodeEnum.MISSING_SCORE, "totalScore"),
    ({"total_score": Decimal("NaN")}, PROFILE, AttemptErrorCodeEnum.INVALID_SCORE, "totalScore"),
    ({"max_score": None}, PROFILE, AttemptErrorCodeEnum.MISSING_SCORE, "maxScore"),
    ({"max_score": Decimal("0")}, PROFILE, AttemptErrorCodeEnum.INVALID_SCORE, "maxScore"),
    ({"total_score": Decimal("-1")}, PROFILE, AttemptErrorCodeEnum.INVALID_SCORE, "totalScore"),
    ({"exam_id": None}, PROFILE, AttemptErrorCodeEnum.MISSING_REQUIRED_FIELD, "examId"),
    ({"attempt_id": None}, PROFILE, AttemptErrorCodeEnum.MISSING_REQUIRED_FIELD, "attemptId"),
])
def test_invalid_attempts_report_first_failing_check(overrides, profile, code, field):
    outcome = validate_exam_attempt(graded(**overrides), profile)

    assert isinstance(outcome, AttemptValidationError)
    assert outcome.code == code.value
    assert outcome.field == field


def test_missing_score_is_reported_before_negative_max():
    outcome = validate_exam_attempt(graded(total_score=None, max_score=Decimal("-3")), PROFILE)
    assert outcome.code == AttemptErrorCodeEnum.MISSING_SCORE.value


def test_parse_skips_unsubmitted_and_flags_unknown_students():
    attempts = [
        graded(attempt_id="ok"),
        graded(attempt_id="draft", is_submitted=False, total_score=None),
        graded(attempt_id="orphan", student_id="nobody"),
        graded(attempt_id="bad", max_score=Decimal("0")),
    ]

    valid, errors = parse_exam_attempts(attempts, profiles_by_id([PROFILE]))

    assert [v.attempt_id for v in valid] == ["ok"]
    assert [e.attempt_id for e in errors] == ["orphan", "bad"]
    assert errors[0].error.code == AttemptErrorCodeEnum.INVALID_EXAM_DATA.value
    assert "nobody" in errors[0].error.message


def test_batch_summary_counts_every_code():
    attempts = [
        graded(attempt_id="ok"),
        graded(attempt_id="no-score", total_score=None),
        graded(attempt_id="no-max", max_score=None),
        graded(attempt_id="orphan", student_id="ghost"),
    ]

    summary = validate_exam_attempt_batch(attempts, profiles_by_id([PROFILE]))

    assert summary.total_attempts == 4
    assert summary.valid_count == 1
    assert summary.invalid_count == 3
    assert summary.error_summary[AttemptErrorCodeEnum.MISSING_SCORE.value] == 2
    assert summary.error_summary[AttemptErrorCodeEnum.INVALID_EXAM_DATA.value] == 1
    assert set(summary.error_summary) == {code.value for code in AttemptErrorCodeEnum}
    assert summary.error_summary[AttemptErrorCodeEnum.INVALID_SCORE.value] == 0


def test_format_parser_error():
    error = AttemptValidationError(
        code="INVALID_SCORE", message="maxScore must be a valid positive number", field="maxScore", value="0"
    )
    assert format_parser_error(error) == (
        '[INVALID_SCORE] maxScore must be a valid positive number (field: maxScore) (value: "0")'
    )

    bare = AttemptValidationError(code="MISSING_SCORE", message="totalScore is required and cannot be null")
    assert format_parser_error(bare) == "[MISSING_SCORE] totalScore is required and cannot be null"


def test_describe_issues_prefixes_attempt_id():
    _, errors = parse_exam_attempts([graded(attempt_id="x1", total_score=None)], profiles_by_id([PROFILE]))
    lines = describe_issues(errors)
    assert lines == ["x1: [MISSING_SCORE] totalScore is required and cannot be null (field: totalScore)"]
