"""元数据查询构建器测试：联接去重、参数绑定与分页子句。"""

import pytest
from sqlalchemy.orm import Session

from app.packages.eperson.crud.metadata_query import (
    OPERATOR_LIKE,
    QUERY_PARAM,
    MetadataQuery,
    escape_like,
)
from app.packages.eperson.models.group import Group


def test_escape_like_escapes_wildcards():
    assert escape_like("50%_off\\") == "50\\%\\_off\\\\"
    assert escape_like("plain") == "plain"


def test_shared_query_and_sort_field_joined_once(db: Session, title_field):
    builder = (
        MetadataQuery(Group)
        .join_fields([title_field])
        .join_fields([title_field])
        .where_value([title_field], OPERATOR_LIKE, "abc")
        .order_by_fields([title_field])
    )
    sql = str(builder.build(db).statement)

    assert sql.count("LEFT OUTER JOIN") == 1
    assert builder.joined_fields == [title_field]
    assert builder.params == {f"field_{title_field.id}": title_field.id, QUERY_PARAM: "%abc%"}


def test_join_order_follows_insertion(db: Session, title_field, description_field):
    builder = MetadataQuery(Group).join_fields([description_field, title_field, description_field])
    assert builder.joined_fields == [description_field, title_field]


def test_search_value_is_bound_not_interpolated(db: Session, title_field):
    hostile = "x' OR '1'='1"
    builder = MetadataQuery(Group).join_fields([title_field]).where_value(
        [title_field], OPERATOR_LIKE, hostile
    )
    sql = str(builder.build(db).statement)

    assert hostile not in sql
    assert f":{QUERY_PARAM}" in sql


def test_negative_offset_and_limit_emit_no_clause(db: Session, title_field):
    sql = str(MetadataQuery(Group).join_fields([title_field]).paginate(-1, -1).build(db).statement)
    assert "LIMIT" not in sql
    assert "OFFSET" not in sql


def test_count_query_never_paginates(db: Session, title_field):
    builder = MetadataQuery(Group, count=True).join_fields([title_field]).paginate(5, 5)
    sql = str(builder.build(db).statement)

    assert "count(DISTINCT" in sql
    assert "LIMIT" not in sql
    assert "OFFSET" not in sql


def test_where_value_requires_joined_field(db: Session, title_field):
    with pytest.raises(ValueError):
        MetadataQuery(Group).where_value([title_field], OPERATOR_LIKE, "abc")


def test_where_value_rejects_unknown_operator(db: Session, title_field):
    builder = MetadataQuery(Group).join_fields([title_field])
    with pytest.raises(ValueError):
        builder.where_value([title_field], "regex", "abc")


def test_metadata_field_str(title_field):
    assert str(title_field) == "dc.title"


def test_listing_groups_by_id_and_sorts_on_min_value(db: Session, title_field):
    builder = MetadataQuery(Group).join_fields([title_field]).order_by_fields([title_field])
    sql = str(builder.build(db).statement)

    assert "GROUP BY epersongroup.id" in sql
    assert f"min(mv_{title_field.id}.text_value)" in sql


def test_fields_are_named_by_id(db: Session, title_field, description_field):
    builder = MetadataQuery(Group).join_fields([title_field, description_field])
    sql = str(builder.build(db).statement)

    assert f"mv_{title_field.id}" in sql
    assert f"mv_{description_field.id}" in sql
    assert QUERY_PARAM not in builder.params
    assert set(builder.params) == {f"field_{title_field.id}", f"field_{description_field.id}"}
