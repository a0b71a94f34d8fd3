"""Pure ranking rules: graded attempts in, ordered aggregates out. No I/O."""
from collections import OrderedDict
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Optional

from app.schemas.leaderboard import (
    DepartmentAggregate, DepartmentRecord, GradedAttempt, RankingResult,
    RosterMember, StudentAggregate
)

TWO_PLACES = Decimal("0.01")


def _to_decimal(value: Any) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    return None


def _finite(value: Any) -> Optional[Decimal]:
    number = _to_decimal(value)
    if number is None or not number.is_finite():
        return None
    return number


def is_eligible_attempt(attempt: GradedAttempt) -> bool:
    if attempt.is_submitted is not True:
        return False
    total_score = _finite(attempt.total_score)
    max_score = _finite(attempt.max_score)
    if total_score is None or max_score is None:
        return False
    return total_score >= 0 and max_score > 0


def round_score(value: Decimal) -> Decimal:
    """Two decimal places, half away from zero. Raises InvalidOperation past the context precision."""
    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


class _StudentTotals:
    __slots__ = ("student_id", "student_name", "total_points", "exam_count")

    def __init__(self, student_id: str, student_name: str):
        self.student_id = student_id
        self.student_name = student_name
        self.total_points = Decimal(0)
        self.exam_count = 0

    @property
    def average(self) -> Decimal:
        return self.total_points / self.exam_count


def _accumulate(roster: Iterable[RosterMember], attempts: Iterable[GradedAttempt]) -> List[_StudentTotals]:
    """Per-student totals, in roster order, for students with at least one eligible attempt."""
    totals: "OrderedDict[str, _StudentTotals]" = OrderedDict(
        (member.user_id, _StudentTotals(member.user_id, member.full_name)) for member in roster
    )
    for attempt in attempts:
        stats = totals.get(attempt.student_id)
        if stats is None or not is_eligible_attempt(attempt):
            continue
        stats.total_points += _to_decimal(attempt.total_score)
        stats.exam_count += 1
    return [stats for stats in totals.values() if stats.exam_count > 0]


def calculate_student_rankings(
    department_id: str,
    roster: Iterable[RosterMember],
    attempts: Iterable[GradedAttempt]
) -> RankingResult:
    active = _accumulate(roster, attempts)

    # Stable sort: students equal on both keys keep roster order
    ordered = sorted(active, key=lambda s: (s.total_points, s.average), reverse=True)

    entries = [
        StudentAggregate(
            student_id=stats.student_id,
            student_name=stats.student_name,
            department_id=department_id,
            total_points=round_score(stats.total_points),
            average_score=round_score(stats.average),
            exam_count=stats.exam_count,
            rank_position=index + 1
        )
        for index, stats in enumerate(ordered)
    ]
    return RankingResult(entries=entries, total_students=len(entries))


def calculate_department_rankings(
    departments: Iterable[DepartmentRecord],
    roster: Iterable[RosterMember],
    attempts: Iterable[GradedAttempt]
) -> List[DepartmentAggregate]:
    """Rank departments by the mean of their students' own averages.

    Departments without a directory record or without any active student are left out.
    """
    directory = {department.id: department for department in departments}

    members_by_department: Dict[str, List[RosterMember]] = OrderedDict()
    for member in roster:
        if member.department_id in directory:
            members_by_department.setdefault(member.department_id, []).append(member)

    attempts = list(attempts)
    department_stats = []
    for department_id, members in members_by_department.items():
        active = _accumulate(members, attempts)
        if not active:
            continue
        total_score = sum((s.total_points for s in active), Decimal(0))
        average = sum((s.average for s in active), Decimal(0)) / len(active)
        department_stats.append((directory[department_id], total_score, average, len(active)))

    department_stats.sort(key=lambda d: (d[2], d[1]), reverse=True)

    return [
        DepartmentAggregate(
            department_id=department.id,
            department_name=department.name,
            total_department_score=round_score(total_score),
            average_score=round_score(average),
            active_student_count=active_count,
            rank_position=index + 1
        )
        for index, (department, total_score, average, active_count) in enumerate(department_stats)
    ]
