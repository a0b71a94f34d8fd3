from typing import List
from sqlalchemy.orm import Session

from app.crud.base import CRUDBase
from app.models.department import Department

class CRUDDepartment(CRUDBase[Department]):

    def get_all(self, db: Session) -> List[Department]:
        return db.query(Department).order_by(Department.id).all()


department = CRUDDepartment(Department)
