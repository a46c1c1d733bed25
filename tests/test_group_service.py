"""用户组服务测试：成员管理、嵌套缓存与检索。"""

import pytest
from sqlalchemy.orm import Session

from app.packages.eperson.core.constants import ADMIN_GROUP
from app.packages.eperson.core.exceptions import (
    AppException,
    GroupCycleError,
    GroupNameConflictError,
    PermanentGroupError,
)
from app.packages.eperson.crud.groups import group_crud
from app.packages.eperson.services.group_service import GroupService, group_service


def test_create_stores_title_and_description(db: Session, make_group, title_field):
    group = make_group("Metadata Editors", description="Edits metadata")

    assert group.get_metadata(title_field) == "Metadata Editors"
    assert group_service.get_description(db, group) == "Edits metadata"


def test_create_rejects_duplicate_and_blank_names(db: Session, make_group):
    make_group("Unique")
    with pytest.raises(GroupNameConflictError):
        group_service.create(db, "Unique")
    with pytest.raises(AppException):
        group_service.create(db, "   ")


def test_add_and_remove_member(db: Session, make_group, make_eperson):
    person = make_eperson()
    group = make_group("Members")

    group_service.add_member(db, group, person)
    group_service.add_member(db, group, person)
    assert [p.id for p in group.epeople] == [person.id]
    assert group_service.is_member(db, "Members", person)

    group_service.remove_member(db, group, person)
    assert not group_service.is_member(db, "Members", person)


def test_nesting_rebuilds_transitive_cache(db: Session, make_group):
    top = make_group("L1")
    middle = make_group("L2")
    bottom = make_group("L3")

    group_service.add_group(db, top, middle)
    group_service.add_group(db, middle, bottom)

    cache = set(group_service.get_cache(db))
    assert cache == {(top.id, middle.id), (middle.id, bottom.id), (top.id, bottom.id)}

    group_service.remove_group(db, middle, bottom)
    assert set(group_service.get_cache(db)) == {(top.id, middle.id)}


def test_transitive_membership_through_several_levels(db: Session, make_group, make_eperson):
    person = make_eperson()
    top = make_group("Top Level")
    middle = make_group("Mid Level")
    bottom = make_group("Low Level")
    group_service.add_member(db, bottom, person)
    group_service.add_group(db, top, middle)
    group_service.add_group(db, middle, bottom)

    assert group_service.is_member(db, "Top Level", person)
    assert group_service.is_member(db, "Mid Level", person)
    assert group_service.is_member(db, "Low Level", person)


def test_add_group_refuses_cycles(db: Session, make_group):
    first = make_group("A")
    second = make_group("B")
    group_service.add_group(db, first, second)

    with pytest.raises(GroupCycleError):
        group_service.add_group(db, first, first)
    with pytest.raises(GroupCycleError):
        group_service.add_group(db, second, first)


def test_delete_refuses_permanent_group(db: Session):
    admin = group_crud.find_by_name(db, ADMIN_GROUP)
    assert admin is not None
    with pytest.raises(PermanentGroupError):
        group_service.delete(db, admin)


def test_delete_clears_edges_and_cache(db: Session, make_group):
    parent = make_group("P")
    target = make_group("T")
    child = make_group("C")
    group_service.add_group(db, parent, target)
    group_service.add_group(db, target, child)
    target_id = target.id

    group_service.delete(db, target)

    assert all(target_id not in pair for pair in group_crud.get_group2group_results(db))
    assert all(target_id not in pair for pair in group_service.get_cache(db))


def test_delete_refreshes_loaded_parent_and_child(db: Session, make_group):
    parent = make_group("P")
    target = make_group("T")
    child = make_group("C")
    other = make_group("O")
    group_service.add_group(db, parent, target)
    group_service.add_group(db, target, child)

    group_service.delete(db, target)
    group_service.add_group(db, parent, other)

    assert {g.id for g in parent.groups} == {other.id}
    assert child.parent_groups == []
    assert set(group_crud.get_group2group_results(db)) == {(parent.id, other.id)}


def test_search_by_uuid_and_title(db: Session, make_group):
    group = make_group("Findable Group")
    make_group("Another group")

    assert group_service.search(db, str(group.id)) == [group]
    assert group_service.search_result_count(db, str(group.id)) == 1
    assert [g.name for g in group_service.search(db, "findable")] == ["Findable Group"]
    assert group_service.search_result_count(db, "group") == 2


def test_transitive_closure_handles_diamonds():
    edges = [("a", "b"), ("a", "c"), ("b", "d"), ("c", "d")]
    closure = GroupService._transitive_closure(edges)

    assert closure["a"] == {"b", "c", "d"}
    assert closure["b"] == {"d"}
    assert "d" not in closure
