from typing import List, Sequence
from sqlalchemy.orm import Session

from app.crud.base import CRUDBase
from app.models.exam_attempt import ExamAttempt

class CRUDExamAttempt(CRUDBase[ExamAttempt]):

    def get_submitted_by_students(self, db: Session, *, student_ids: Sequence[str]) -> List[ExamAttempt]:
        """Single "in" query; callers keep student_ids within the store's batch limit."""
        if not student_ids:
            return []
        return (
            db.query(ExamAttempt)
            .filter(
                ExamAttempt.student_id.in_(list(student_ids)),
                ExamAttempt.is_submitted.is_(True)
            )
            .order_by(ExamAttempt.id)
            .all()
        )

    def count_submitted(self, db: Session) -> int:
        return db.query(ExamAttempt).filter(ExamAttempt.is_submitted.is_(True)).count()


exam_attempt = CRUDExamAttempt(ExamAttempt)
