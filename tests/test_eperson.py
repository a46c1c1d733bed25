"""账户 CRUD 测试。"""

from sqlalchemy.orm import Session

from app.packages.eperson.crud.eperson import eperson_crud
from app.packages.eperson.crud.metadata_fields import metadata_field_crud


def test_create_and_lookup_by_email(db: Session):
    person = eperson_crud.create(db, {"email": "Jane.Doe@example.org"}, auto_commit=False)

    assert eperson_crud.get(db, person.id) is person
    assert eperson_crud.get_by_email(db, "jane.doe@EXAMPLE.org") is person
    assert eperson_crud.get_by_email(db, "nobody@example.org") is None


def test_metadata_field_lookup_by_string(db: Session, title_field):
    assert metadata_field_crud.find_by_string(db, "dc.title") is title_field
    assert metadata_field_crud.find_by_string(db, "dc.title.alternative") is None
    assert metadata_field_crud.find_by_string(db, "title") is None
