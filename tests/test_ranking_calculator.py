from decimal import Decimal, InvalidOperation

import pytest

from app.schemas.leaderboard import DepartmentRecord, GradedAttempt, RosterMember
from app.services.ranking_calculator import (
    calculate_department_rankings, calculate_student_rankings, is_eligible_attempt, round_score
)


def member(user_id, department_id="d1", name=None):
    return RosterMember(user_id=user_id, full_name=name or user_id.title(), department_id=department_id, role="student")


def attempt(student_id, total, max_score=100, submitted=True):
    return GradedAttempt(
        attempt_id=f"{student_id}-{total}",
        exam_id="exam",
        student_id=student_id,
        is_submitted=submitted,
        total_score=None if total is None else Decimal(str(total)),
        max_score=None if max_score is None else Decimal(str(max_score))
    )


def test_total_points_drive_order_and_average_only_breaks_ties():
    roster = [member("alice", name="Alice"), member("bob", name="Bob")]
    attempts = [attempt("alice", 90), attempt("alice", 80), attempt("bob", 100)]

    result = calculate_student_rankings("d1", roster, attempts)

    assert result.total_students == 2
    alice, bob = result.entries
    assert (alice.student_name, alice.total_points, alice.average_score, alice.rank_position) == (
        "Alice", Decimal("170.00"), Decimal("85.00"), 1
    )
    assert (bob.student_name, bob.total_points, bob.average_score, bob.rank_position) == (
        "Bob", Decimal("100.00"), Decimal("100.00"), 2
    )
    assert alice.exam_count == 2 and bob.exam_count == 1
    assert all(entry.department_id == "d1" for entry in result.entries)


def test_equal_totals_are_ordered_by_average():
    roster = [member("a"), member("b")]
    attempts = [attempt("a", 50), attempt("a", 50), attempt("b", 100)]

    entries = calculate_student_rankings("d1", roster, attempts).entries

    assert [e.student_id for e in entries] == ["b", "a"]
    assert [e.rank_position for e in entries] == [1, 2]


def test_full_ties_keep_roster_order_with_distinct_ranks():
    roster = [member("c"), member("a"), member("b")]
    attempts = [attempt("a", 70), attempt("b", 70), attempt("c", 70)]

    entries = calculate_student_rankings("d1", roster, attempts).entries

    assert [e.student_id for e in entries] == ["c", "a", "b"]
    assert [e.rank_position for e in entries] == [1, 2, 3]


def test_ranks_are_dense_and_start_at_one():
    roster = [member(f"s{i:02d}") for i in range(15)]
    attempts = [attempt(f"s{i:02d}", (i * 7) % 11) for i in range(15)]

    entries = calculate_student_rankings("d1", roster, attempts).entries

    assert [e.rank_position for e in entries] == list(range(1, 16))
    pairs = [(e.total_points, e.average_score) for e in entries]
    assert pairs == sorted(pairs, reverse=True)


def test_same_input_gives_same_output():
    roster = [member("a"), member("b"), member("c")]
    attempts = [attempt("a", 10), attempt("b", 10), attempt("c", 30), attempt("a", 5)]

    first = calculate_student_rankings("d1", roster, attempts)
    second = calculate_student_rankings("d1", roster, attempts)

    assert first == second


def test_ineligible_attempts_are_skipped():
    roster = [member("a")]
    attempts = [
        attempt("a", 40),
        attempt("a", 90, submitted=False),
        attempt("a", None),
        attempt("a", 50, max_score=0),
        attempt("a", 50, max_score=-10),
        attempt("a", 50, max_score=None),
        attempt("a", -5),
        attempt("a", "NaN"),
        attempt("a", 50, max_score="Infinity"),
    ]

    entries = calculate_student_rankings("d1", roster, attempts).entries

    assert len(entries) == 1
    assert entries[0].exam_count == 1
    assert entries[0].total_points == Decimal("40.00")


def test_zero_score_is_eligible():
    assert is_eligible_attempt(attempt("a", 0)) is True


def test_students_without_eligible_attempts_and_outsiders_are_excluded():
    roster = [member("a"), member("b")]
    attempts = [attempt("a", 10), attempt("b", 10, submitted=False), attempt("stranger", 99)]

    result = calculate_student_rankings("d1", roster, attempts)

    assert [e.student_id for e in result.entries] == ["a"]
    assert result.total_students == 1


def test_empty_roster_gives_empty_result():
    result = calculate_student_rankings("d1", [], [attempt("a", 10)])
    assert result.entries == []
    assert result.total_students == 0


def test_scores_are_rounded_half_up_to_two_places():
    assert round_score(Decimal("2.345")) == Decimal("2.35")
    assert round_score(Decimal("2.344")) == Decimal("2.34")

    roster = [member("a")]
    attempts = [attempt("a", 10), attempt("a", 10), attempt("a", 11)]
    entry = calculate_student_rankings("d1", roster, attempts).entries[0]

    assert entry.total_points == Decimal("31.00")
    assert entry.average_score == Decimal("10.33")


def test_rounding_beyond_context_precision_raises():
    with pytest.raises(InvalidOperation):
        round_score(Decimal("1e30"))


def test_department_average_is_mean_of_student_averages():
    departments = [DepartmentRecord(id="x", name="X")]
    roster = [member("s1", "x"), member("s2", "x")]
    attempts = [attempt("s1", 80), attempt("s1", 80), attempt("s2", 100)]

    rankings = calculate_department_rankings(departments, roster, attempts)

    assert len(rankings) == 1
    dept = rankings[0]
    assert dept.average_score == Decimal("90.00")
    assert dept.total_department_score == Decimal("260.00")
    assert dept.active_student_count == 2
    assert dept.rank_position == 1


def test_departments_ranked_by_average_then_total():
    departments = [
        DepartmentRecord(id="low", name="Low"),
        DepartmentRecord(id="high", name="High"),
        DepartmentRecord(id="tied", name="Tied"),
    ]
    roster = [member("l1", "low"), member("h1", "high"), member("t1", "tied"), member("t2", "tied")]
    attempts = [attempt("l1", 50), attempt("h1", 90), attempt("t1", 90), attempt("t2", 90)]

    rankings = calculate_department_rankings(departments, roster, attempts)

    assert [d.department_id for d in rankings] == ["tied", "high", "low"]
    assert [d.rank_position for d in rankings] == [1, 2, 3]


def test_departments_without_active_students_or_directory_record_are_excluded():
    departments = [DepartmentRecord(id="a", name="A"), DepartmentRecord(id="empty", name="Empty")]
    roster = [member("s1", "a"), member("s2", "empty"), member("s3", "ghost")]
    attempts = [attempt("s1", 60), attempt("s2", 60, submitted=False), attempt("s3", 100)]

    rankings = calculate_department_rankings(departments, roster, attempts)

    assert [d.department_id for d in rankings] == ["a"]
    assert rankings[0].department_name == "A"
