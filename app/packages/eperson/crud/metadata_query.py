"""元数据查询构建器：按字段联接元数据取值，组合过滤、排序与分页。

查询由以下部分组成：
- 投影：实体本身或 ``count(distinct id)``；
- 联接：每个元数据字段一个 LEFT OUTER JOIN，别名 ``mv_<id>`` 与绑定参数名
  ``field_<id>`` 都取自字段主键，同一字段只联接一次；
- 过滤：任一查询字段的取值满足条件（精确匹配或不区分大小写的子串匹配）；
- 排序：按排序字段取值的最小值，或退回到实体自身的列；
- 分页：offset/limit 为负数时表示不限制。

所有用户输入都通过 ``bindparam`` 绑定，不会拼接进查询文本。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import and_, bindparam, distinct, false, func, or_
from sqlalchemy.orm import Query, Session, aliased

from app.packages.eperson.models.metadata import MetadataField, MetadataValue

QUERY_PARAM = "query_param"
LIKE_ESCAPE = "\\"

OPERATOR_EQUALS = "="
OPERATOR_LIKE = "like"


def escape_like(value: str) -> str:
    """转义 LIKE 通配符，使用户输入按字面量匹配。"""
    return (
        value.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


@dataclass
class _FieldJoin:
    field: MetadataField
    alias: Any
    param: str


class MetadataQuery:
    """为某个带元数据的实体构建一次性查询。"""

    def __init__(self, model: Any, *, count: bool = False) -> None:
        self.model = model
        self.count = count
        self._joins: Dict[int, _FieldJoin] = {}
        self._criteria: Optional[Any] = None
        self._order_by: List[Any] = []
        self._params: Dict[str, Any] = {}
        self._offset = -1
        self._limit = -1

    @property
    def params(self) -> Dict[str, Any]:
        return dict(self._params)

    @property
    def joined_fields(self) -> List[MetadataField]:
        return [join.field for join in self._joins.values()]

    def join_fields(self, fields: Sequence[MetadataField]) -> "MetadataQuery":
        """按插入顺序联接字段；重复字段复用已有别名与参数。"""
        for field in fields:
            if field.id in self._joins:
                continue
            # 名称取自字段主键：扁平化的 schema_element_qualifier 可能重名
            param = f"field_{field.id}"
            alias = aliased(MetadataValue, name=f"mv_{field.id}")
            self._joins[field.id] = _FieldJoin(field=field, alias=alias, param=param)
            self._params[param] = field.id
        return self

    def where_value(
        self, fields: Sequence[MetadataField], operator: str, value: str
    ) -> "MetadataQuery":
        """要求至少一个字段的取值满足 operator。字段必须已经联接。"""
        if operator not in (OPERATOR_EQUALS, OPERATOR_LIKE):
            raise ValueError(f"unsupported metadata operator: {operator!r}")

        predicates = []
        for field in fields:
            column = self._join_for(field).alias.text_value
            if operator == OPERATOR_EQUALS:
                predicates.append(column == bindparam(QUERY_PARAM))
            else:
                predicates.append(
                    func.lower(column).like(func.lower(bindparam(QUERY_PARAM)), escape=LIKE_ESCAPE)
                )

        if not predicates:
            # 没有可匹配的字段时条件恒为假
            self._criteria = false()
            return self

        if operator == OPERATOR_LIKE:
            self._params[QUERY_PARAM] = f"%{escape_like(value)}%"
        else:
            self._params[QUERY_PARAM] = value
        self._criteria = or_(*predicates)
        return self

    def order_by_fields(self, fields: Sequence[MetadataField]) -> "MetadataQuery":
        for field in fields:
            # 多值字段取最小值排序，保证每个实体只占一行
            self._order_by.append(func.min(self._join_for(field).alias.text_value))
        return self

    def order_by_columns(self, *columns: Any) -> "MetadataQuery":
        self._order_by.extend(columns)
        return self

    def paginate(self, offset: int = -1, limit: int = -1) -> "MetadataQuery":
        self._offset = offset
        self._limit = limit
        return self

    def build(self, db: Session) -> Query:
        """组装 SQLAlchemy Query 并绑定所有参数。"""
        if self.count:
            query = db.query(func.count(distinct(self.model.id))).select_from(self.model)
        else:
            query = db.query(self.model)

        for join in self._joins.values():
            query = query.outerjoin(
                join.alias,
                and_(
                    join.alias.dspace_object_id == self.model.id,
                    join.alias.metadata_field_id == bindparam(join.param),
                ),
            )

        if self._criteria is not None:
            query = query.filter(self._criteria)

        if self.count:
            return query.params(**self._params)

        # 多值字段会放大行数，按主键分组去重
        if self._joins:
            query = query.group_by(self.model.id)
        if self._order_by:
            query = query.order_by(*self._order_by)
        if self._offset >= 0:
            query = query.offset(self._offset)
        if self._limit >= 0:
            query = query.limit(self._limit)
        return query.params(**self._params)

    def _join_for(self, field: MetadataField) -> _FieldJoin:
        try:
            return self._joins[field.id]
        except KeyError as exc:
            raise ValueError(f"metadata field {field} is not joined") from exc
