from typing import Any, Dict, List
from sqlalchemy.orm import Session

from app.crud.base import CRUDBase
from app.models.security_log import SecurityLog

class CRUDSecurityLog(CRUDBase[SecurityLog]):

    def create(self, db: Session, *, obj_in: Dict[str, Any]) -> SecurityLog:
        db_obj = SecurityLog(**obj_in)
        db.add(db_obj)
        db.commit()
        db.refresh(db_obj)
        return db_obj

    def get_by_user(self, db: Session, *, user_id: str) -> List[SecurityLog]:
        """Read side of the append-only audit log, for forensics and tests; the service never reads it."""
        return (
            db.query(SecurityLog)
            .filter(SecurityLog.user_id == user_id)
            .order_by(SecurityLog.id)
            .all()
        )


security_log = CRUDSecurityLog(SecurityLog)
