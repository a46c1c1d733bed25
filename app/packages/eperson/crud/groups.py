"""用户组 CRUD：按名称、成员、元数据查询用户组，以及分页检索与级联删除。

所有方法都运行在调用方提供的 Session 中；除显式说明外不提交事务。
"""

from __future__ import annotations

import logging
import uuid
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import delete, exists, func, or_, select
from sqlalchemy.orm import Session

from app.packages.eperson.core.constants import GROUP_SORT_COLUMNS
from app.packages.eperson.core.exceptions import InvalidSortColumnError
from app.packages.eperson.crud.base import CRUDBase
from app.packages.eperson.crud.metadata_query import (
    OPERATOR_EQUALS,
    OPERATOR_LIKE,
    MetadataQuery,
)
from app.packages.eperson.models.base import epersongroup2eperson, group2group, group2groupcache
from app.packages.eperson.models.eperson import EPerson
from app.packages.eperson.models.group import Group
from app.packages.eperson.models.metadata import MetadataField

logger = logging.getLogger(__name__)


class CRUDGroup(CRUDBase[Group]):
    """封装用户组相关的全部数据库查询。"""

    def find_by_name(self, db: Session, name: str) -> Optional[Group]:
        """按名称精确（区分大小写）查询。"""
        with self.guard("find group by name"):
            return self.query(db).filter(Group.name == name).one_or_none()

    def find_by_name_and_eperson(
        self, db: Session, name: Optional[str], eperson: Optional[EPerson]
    ) -> Optional[Group]:
        """查询名称为 name 且 eperson 为直接成员或经缓存传递的成员的用户组。

        name 或 eperson 缺失时直接返回 None，不访问数据库。
        """
        if name is None or eperson is None:
            return None

        direct_member = exists().where(
            epersongroup2eperson.c.eperson_group_id == Group.id,
            epersongroup2eperson.c.eperson_id == eperson.id,
        )
        nested_member = exists().where(
            group2groupcache.c.parent_id == Group.id,
            group2groupcache.c.child_id == epersongroup2eperson.c.eperson_group_id,
            epersongroup2eperson.c.eperson_id == eperson.id,
        )
        with self.guard("find group by name and eperson"):
            return (
                self.query(db)
                .filter(Group.name == name, or_(direct_member, nested_member))
                .one_or_none()
            )

    def find_by_eperson(self, db: Session, eperson: EPerson) -> List[Group]:
        """仅返回 eperson 为直接成员的用户组。"""
        with self.guard("find groups by eperson"):
            return (
                self.query(db)
                .filter(Group.epeople.any(EPerson.id == eperson.id))
                .order_by(Group.name, Group.id)
                .all()
            )

    def find_by_metadata_field(
        self, db: Session, search_value: str, field: MetadataField
    ) -> Optional[Group]:
        builder = (
            MetadataQuery(Group)
            .join_fields([field])
            .where_value([field], OPERATOR_EQUALS, search_value)
        )
        with self.guard(f"find group by {field}"):
            return builder.build(db).one_or_none()

    def find_all(
        self,
        db: Session,
        sort_fields: Optional[Sequence[MetadataField]] = None,
        sort_column: Optional[str] = None,
    ) -> List[Group]:
        """返回全部用户组，优先按元数据字段排序，否则按 sort_column 排序。"""
        sort_fields = list(sort_fields or [])
        builder = MetadataQuery(Group).join_fields(sort_fields)
        if sort_fields:
            builder.order_by_fields(sort_fields)
        elif sort_column:
            builder.order_by_columns(self._sort_column(sort_column))
        with self.guard("find all groups"):
            return builder.build(db).all()

    def search(
        self,
        db: Session,
        query: Optional[str],
        query_fields: Sequence[MetadataField],
        offset: int = -1,
        limit: int = -1,
        *,
        sort_fields: Optional[Sequence[MetadataField]] = None,
    ) -> List[Group]:
        """按元数据子串检索用户组；offset/limit 为负数时不分页。

        同时出现在 query_fields 与 sort_fields 中的字段只联接一次；多值的排序字段
        按最小取值排序，每个组只出现一次，结果条数与 search_result_count 一致。
        """
        builder = self._search_query(query, query_fields, count=False, sort_fields=sort_fields)
        builder.order_by_columns(Group.name, Group.id).paginate(offset, limit)
        with self.guard("search groups"):
            return builder.build(db).all()

    def search_result_count(
        self, db: Session, query: Optional[str], query_fields: Sequence[MetadataField]
    ) -> int:
        builder = self._search_query(query, query_fields, count=True)
        with self.guard("count group search results"):
            return int(builder.build(db).scalar() or 0)

    def delete(self, db: Session, db_obj: Group, *, auto_commit: bool = False) -> None:
        """先用 DML 清理 group2group 中引用该组的所有边，再删除实体本身。

        会话中已加载的父组与子组的嵌套集合一并过期，避免它们继续引用被删除的组。
        """
        with self.guard("flush pending group changes"):
            db.flush()
        for parent in list(db_obj.parent_groups):
            db.expire(parent, ["groups"])
        for child in list(db_obj.groups):
            db.expire(child, ["parent_groups"])
        with self.guard("delete group2group edges"):
            result = db.execute(
                delete(group2group).where(
                    or_(group2group.c.parent_id == db_obj.id, group2group.c.child_id == db_obj.id)
                )
            )
        # 内存中的嵌套集合已与数据库不一致，交给 ORM 重新加载
        db.expire(db_obj, ["groups", "parent_groups"])
        logger.info(
            "Deleting group %s (%s nesting edges removed)",
            db_obj.id,
            result.rowcount,
            extra={"group_id": str(db_obj.id), "edges_removed": result.rowcount},
        )
        super().delete(db, db_obj, auto_commit=auto_commit)

    def get_group2group_results(
        self, db: Session, flush_queries: bool = False
    ) -> List[Tuple[uuid.UUID, uuid.UUID]]:
        """返回所有直接嵌套边 (parent_id, child_id)。"""
        with self.guard("load group2group edges"):
            if flush_queries:
                db.flush()
            rows = db.execute(select(group2group.c.parent_id, group2group.c.child_id)).all()
        return [(row.parent_id, row.child_id) for row in rows]

    def get_empty_groups(self, db: Session) -> List[Group]:
        """没有直接成员的用户组（不考虑子组成员）。"""
        with self.guard("find empty groups"):
            return self.query(db).filter(~Group.epeople.any()).order_by(Group.name, Group.id).all()

    def count_rows(self, db: Session) -> int:
        with self.guard("count groups"):
            return int(db.query(func.count(Group.id)).scalar() or 0)

    def _search_query(
        self,
        query: Optional[str],
        query_fields: Sequence[MetadataField],
        *,
        count: bool,
        sort_fields: Optional[Sequence[MetadataField]] = None,
    ) -> MetadataQuery:
        query_fields = list(query_fields or [])
        sort_fields = list(sort_fields or [])

        builder = MetadataQuery(Group, count=count)
        builder.join_fields(query_fields + sort_fields)
        if query:
            builder.where_value(query_fields, OPERATOR_LIKE, query)
        if sort_fields:
            builder.order_by_fields(sort_fields)
        return builder

    @staticmethod
    def _sort_column(name: str):
        if name not in GROUP_SORT_COLUMNS:
            raise InvalidSortColumnError(f"unsupported group sort column: {name!r}")
        return getattr(Group, name)


group_crud = CRUDGroup(Group)
