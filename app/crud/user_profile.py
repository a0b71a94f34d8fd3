from typing import List
from sqlalchemy.orm import Session

from app.core.constants import RoleEnum
from app.crud.base import CRUDBase
from app.models.user_profile import UserProfile

class CRUDUserProfile(CRUDBase[UserProfile]):

    def get_students_by_department(self, db: Session, *, department_id: str) -> List[UserProfile]:
        return (
            db.query(UserProfile)
            .filter(
                UserProfile.department_id == department_id,
                UserProfile.role == RoleEnum.STUDENT.value
            )
            .order_by(UserProfile.id)
            .all()
        )

    def get_all_students(self, db: Session) -> List[UserProfile]:
        return (
            db.query(UserProfile)
            .filter(UserProfile.role == RoleEnum.STUDENT.value)
            .order_by(UserProfile.id)
            .all()
        )

    def count_students(self, db: Session) -> int:
        return db.query(UserProfile).filter(UserProfile.role == RoleEnum.STUDENT.value).count()


user_profile = CRUDUserProfile(UserProfile)
