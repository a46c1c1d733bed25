"""用户组服务：封装成员管理、嵌套关系维护与嵌套缓存重建。

服务层同样不提交事务，只在需要时 flush，提交由调用方决定。
"""

from __future__ import annotations

import logging
import uuid
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Set, Tuple

from sqlalchemy import delete, insert, select
from sqlalchemy.orm import Session

from app.packages.eperson.core.constants import (
    GROUP_DESCRIPTION_FIELD,
    GROUP_TITLE_FIELD,
    HTTP_STATUS_NOT_FOUND,
)
from app.packages.eperson.core.exceptions import (
    AppException,
    GroupCycleError,
    GroupNameConflictError,
    PermanentGroupError,
)
from app.packages.eperson.crud.groups import group_crud
from app.packages.eperson.crud.metadata_fields import metadata_field_crud
from app.packages.eperson.models.base import group2groupcache
from app.packages.eperson.models.eperson import EPerson
from app.packages.eperson.models.group import Group
from app.packages.eperson.models.metadata import MetadataField, MetadataValue

logger = logging.getLogger(__name__)


class GroupService:
    """聚合用户组管理相关的业务能力。"""

    def create(
        self,
        db: Session,
        name: str,
        *,
        description: Optional[str] = None,
        permanent: bool = False,
    ) -> Group:
        name = name.strip()
        if not name:
            raise AppException("用户组名称不能为空")
        if group_crud.find_by_name(db, name) is not None:
            raise GroupNameConflictError(f"用户组名称已存在：{name}")

        group = Group(name=name, permanent=permanent)
        self._set_metadata(db, group, self._field(db, GROUP_TITLE_FIELD), name)
        if description:
            self._set_metadata(db, group, self._field(db, GROUP_DESCRIPTION_FIELD), description)
        return group_crud.save(db, group, auto_commit=False)

    def get_description(self, db: Session, group: Group) -> Optional[str]:
        return group.get_metadata(self._field(db, GROUP_DESCRIPTION_FIELD))

    def add_member(self, db: Session, group: Group, eperson: EPerson) -> None:
        if eperson not in group.epeople:
            group.epeople.append(eperson)
            db.flush()

    def remove_member(self, db: Session, group: Group, eperson: EPerson) -> None:
        if eperson in group.epeople:
            group.epeople.remove(eperson)
            db.flush()

    def add_group(self, db: Session, parent: Group, child: Group) -> None:
        """把 child 嵌套到 parent 下，并重建嵌套缓存。"""
        if parent.id == child.id:
            raise GroupCycleError("用户组不能嵌套自身")
        if self._is_descendant(db, ancestor=child, descendant=parent):
            raise GroupCycleError(f"嵌套 {child.name} 到 {parent.name} 会形成环")
        if child in parent.groups:
            return
        parent.groups.append(child)
        db.flush()
        self.rethink_group_cache(db)

    def remove_group(self, db: Session, parent: Group, child: Group) -> None:
        if child not in parent.groups:
            return
        parent.groups.remove(child)
        db.flush()
        self.rethink_group_cache(db)

    def is_member(self, db: Session, group_name: Optional[str], eperson: Optional[EPerson]) -> bool:
        """直接成员或通过子组（按缓存）间接成员都视为成员。"""
        return group_crud.find_by_name_and_eperson(db, group_name, eperson) is not None

    def delete(self, db: Session, group: Group) -> None:
        if group.permanent:
            raise PermanentGroupError(f"系统保留用户组不可删除：{group.name}")
        group_crud.delete(db, group)
        self.rethink_group_cache(db)

    def rethink_group_cache(self, db: Session) -> int:
        """根据 group2group 重新计算传递闭包并整体替换 group2groupcache。

        返回写入的缓存行数。
        """
        edges = group_crud.get_group2group_results(db, flush_queries=True)
        closure = self._transitive_closure(edges)
        rows = [
            {"parent_id": parent_id, "child_id": child_id}
            for parent_id, children in closure.items()
            for child_id in children
        ]

        with group_crud.guard("rebuild group2groupcache"):
            db.execute(delete(group2groupcache))
            if rows:
                db.execute(insert(group2groupcache), rows)
        logger.debug("Rebuilt group cache: %d edges -> %d cache rows", len(edges), len(rows))
        return len(rows)

    def get_cache(self, db: Session) -> List[Tuple[uuid.UUID, uuid.UUID]]:
        with group_crud.guard("load group2groupcache"):
            rows = db.execute(select(group2groupcache.c.parent_id, group2groupcache.c.child_id)).all()
        return [(row.parent_id, row.child_id) for row in rows]

    def search(
        self, db: Session, query: Optional[str], offset: int = -1, limit: int = -1
    ) -> List[Group]:
        """查询串是 UUID 时按主键查找，否则在 dc.title 上做子串检索。"""
        group_id = self._parse_uuid(query)
        if group_id is not None:
            group = group_crud.get(db, group_id)
            return [group] if group is not None else []
        title = self._field(db, GROUP_TITLE_FIELD)
        return group_crud.search(db, query, [title], offset, limit)

    def search_result_count(self, db: Session, query: Optional[str]) -> int:
        group_id = self._parse_uuid(query)
        if group_id is not None:
            return 1 if group_crud.get(db, group_id) is not None else 0
        title = self._field(db, GROUP_TITLE_FIELD)
        return group_crud.search_result_count(db, query, [title])

    @staticmethod
    def _transitive_closure(
        edges: Iterable[Tuple[uuid.UUID, uuid.UUID]],
    ) -> Dict[uuid.UUID, Set[uuid.UUID]]:
        children: Dict[uuid.UUID, Set[uuid.UUID]] = defaultdict(set)
        for parent_id, child_id in edges:
            children[parent_id].add(child_id)

        closure: Dict[uuid.UUID, Set[uuid.UUID]] = {}
        for parent_id in list(children):
            seen: Set[uuid.UUID] = set()
            stack = list(children[parent_id])
            while stack:
                current = stack.pop()
                if current in seen:
                    continue
                seen.add(current)
                stack.extend(children.get(current, ()))
            seen.discard(parent_id)
            closure[parent_id] = seen
        return closure

    def _is_descendant(self, db: Session, *, ancestor: Group, descendant: Group) -> bool:
        edges = group_crud.get_group2group_results(db, flush_queries=True)
        closure = self._transitive_closure(edges)
        return descendant.id in closure.get(ancestor.id, set())

    @staticmethod
    def _parse_uuid(value: Optional[str]) -> Optional[uuid.UUID]:
        if not value:
            return None
        try:
            return uuid.UUID(value.strip())
        except ValueError:
            return None

    @staticmethod
    def _field(db: Session, field_key: Tuple[str, str, Optional[str]]) -> MetadataField:
        schema, element, qualifier = field_key
        field = metadata_field_crud.find_by_element(db, schema, element, qualifier)
        if field is None:
            raise AppException(
                f"元数据字段未注册：{schema}.{element}", HTTP_STATUS_NOT_FOUND
            )
        return field

    @staticmethod
    def _set_metadata(db: Session, group: Group, field: MetadataField, value: str) -> None:
        for existing in [v for v in group.metadata_values if v.metadata_field_id == field.id]:
            group.metadata_values.remove(existing)
        group.metadata_values.append(
            MetadataValue(metadata_field_id=field.id, text_value=value, place=0)
        )


group_service = GroupService()
