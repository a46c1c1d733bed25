"""账户 CRUD：用户组成员的基础查询。"""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.packages.eperson.crud.base import CRUDBase
from app.packages.eperson.models.eperson import EPerson


class CRUDEPerson(CRUDBase[EPerson]):
    def get_by_email(self, db: Session, email: str) -> Optional[EPerson]:
        """按邮箱查询账户，忽略大小写。"""
        with self.guard("find eperson by email"):
            return (
                self.query(db)
                .filter(func.lower(EPerson.email) == email.strip().lower())
                .first()
            )


eperson_crud = CRUDEPerson(EPerson)
