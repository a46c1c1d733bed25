"""CRUD 基类：为各实体提供通用的数据访问方法。"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Generic, Iterator, List, Optional, Type, TypeVar

from sqlalchemy.exc import DBAPIError, MultipleResultsFound
from sqlalchemy.orm import Query, Session

from app.packages.eperson.core.exceptions import MultipleGroupsFoundError, StorageError
from app.packages.eperson.models.base import Base

ModelType = TypeVar("ModelType", bound=Base)

logger = logging.getLogger(__name__)


class CRUDBase(Generic[ModelType]):
    """封装常见的查询、创建与保存逻辑，减少重复代码。"""

    def __init__(self, model: Type[ModelType]):
        self.model = model

    def get(self, db: Session, id: Any) -> Optional[ModelType]:
        with self.guard(f"get {self.model.__name__}"):
            return self.query(db).filter(self.model.id == id).first()

    def get_multi(self, db: Session, *, skip: int = 0, limit: int = 100) -> List[ModelType]:
        with self.guard(f"list {self.model.__name__}"):
            return self.query(db).offset(skip).limit(limit).all()

    def create(self, db: Session, obj_in: Dict[str, Any], *, auto_commit: bool = True) -> ModelType:
        db_obj = self.model(**obj_in)
        return self.save(db, db_obj, auto_commit=auto_commit)

    def save(self, db: Session, db_obj: ModelType, *, auto_commit: bool = True) -> ModelType:
        with self.guard(f"save {self.model.__name__}"):
            db.add(db_obj)
            if auto_commit:
                db.commit()
                db.refresh(db_obj)
            else:
                db.flush()
        return db_obj

    def delete(self, db: Session, db_obj: ModelType, *, auto_commit: bool = False) -> None:
        """删除实体。默认只 flush，事务由调用方负责提交。"""
        with self.guard(f"delete {self.model.__name__}"):
            db.delete(db_obj)
            if auto_commit:
                try:
                    db.commit()
                except Exception:
                    db.rollback()
                    raise
            else:
                db.flush()

    def query(self, db: Session) -> Query:
        return db.query(self.model)

    @contextmanager
    def guard(self, action: str) -> Iterator[None]:
        """把驱动层异常转换为 StorageError，多结果异常转换为 MultipleGroupsFoundError。

        不做任何重试；原始异常通过 ``raise ... from`` 保留。
        """
        try:
            yield
        except MultipleResultsFound as exc:
            raise MultipleGroupsFoundError(f"{action}: expected at most one row") from exc
        except DBAPIError as exc:
            logger.error("Storage failure during %s: %s", action, exc.orig, extra={"action": action})
            raise StorageError(f"{action} failed") from exc
