"""测试夹具：为 pytest 提供隔离的 SQLite 数据库与按用例回滚的会话。"""

import os
import uuid
from typing import Callable, Generator, Optional

TEST_DB_PATH = os.path.join(os.path.dirname(__file__), "test.db")
TEST_DATABASE_URL = f"sqlite:///{TEST_DB_PATH}"

# 必须在导入 app 之前设置，避免创建 PostgreSQL 引擎
os.environ["DATABASE_URL"] = TEST_DATABASE_URL

import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402

from app.packages.eperson.core.constants import GROUP_DESCRIPTION_FIELD, GROUP_TITLE_FIELD  # noqa: E402
from app.packages.eperson.crud.metadata_fields import metadata_field_crud  # noqa: E402
from app.packages.eperson.db import session as db_session  # noqa: E402
from app.packages.eperson.db.init_db import init_db  # noqa: E402
from app.packages.eperson.models.base import Base  # noqa: E402
from app.packages.eperson.models.eperson import EPerson  # noqa: E402
from app.packages.eperson.models.group import Group  # noqa: E402
from app.packages.eperson.models.metadata import MetadataField  # noqa: E402
from app.packages.eperson.services.group_service import group_service  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def setup_test_database() -> Generator[None, None, None]:
    """创建隔离的 SQLite 测试数据库，并在会话结束后清理。"""
    if os.path.exists(TEST_DB_PATH):
        os.remove(TEST_DB_PATH)

    engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    db_session.engine = engine
    db_session.SessionLocal = TestingSessionLocal

    Base.metadata.create_all(bind=engine)
    init_db()
    yield

    engine.dispose()
    if os.path.exists(TEST_DB_PATH):
        os.remove(TEST_DB_PATH)


@pytest.fixture()
def db() -> Generator[Session, None, None]:
    """每个用例一个会话；数据访问层从不提交，结束时整体回滚。"""
    session = db_session.SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture()
def title_field(db: Session) -> MetadataField:
    field = metadata_field_crud.find_by_element(db, *GROUP_TITLE_FIELD)
    assert field is not None
    return field


@pytest.fixture()
def description_field(db: Session) -> MetadataField:
    field = metadata_field_crud.find_by_element(db, *GROUP_DESCRIPTION_FIELD)
    assert field is not None
    return field


@pytest.fixture()
def make_group(db: Session) -> Callable[..., Group]:
    def _make(name: str, description: Optional[str] = None) -> Group:
        return group_service.create(db, name, description=description)

    return _make


@pytest.fixture()
def make_eperson(db: Session) -> Callable[..., EPerson]:
    def _make(email: Optional[str] = None) -> EPerson:
        person = EPerson(email=email or f"user_{uuid.uuid4().hex[:8]}@example.org")
        db.add(person)
        db.flush()
        return person

    return _make
