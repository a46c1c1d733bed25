"""Database bootstrapping utilities."""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from app.packages.eperson.core.constants import (
    DC_SCHEMA,
    DC_SCHEMA_NAMESPACE,
    DEFAULT_METADATA_FIELDS,
    PERMANENT_GROUPS,
)
from app.packages.eperson.crud.groups import group_crud
from app.packages.eperson.crud.metadata_fields import metadata_field_crud
from app.packages.eperson.db import session as db_session
from app.packages.eperson.models.base import Base
from app.packages.eperson.models.group import Group
from app.packages.eperson.models.metadata import MetadataSchema

logger = logging.getLogger(__name__)


def init_db() -> None:
    """Create all database tables if they do not exist and seed baseline data."""
    Base.metadata.create_all(bind=db_session.engine)

    session = db_session.SessionLocal()
    try:
        _seed_metadata_registry(session)
        _seed_permanent_groups(session)
        session.commit()
    except Exception:
        session.rollback()
        logger.exception("Failed to seed default data during database initialization")
        raise
    finally:
        session.close()


def _seed_metadata_registry(db: Session) -> None:
    """Ensure the ``dc`` schema and the fields used by groups exist."""
    schema = db.query(MetadataSchema).filter(MetadataSchema.name == DC_SCHEMA).first()
    if schema is None:
        schema = MetadataSchema(name=DC_SCHEMA, namespace=DC_SCHEMA_NAMESPACE)
        db.add(schema)
        db.flush()

    for schema_name, element, qualifier in DEFAULT_METADATA_FIELDS:
        if schema_name == schema.name:
            metadata_field_crud.get_or_create(db, schema, element, qualifier)


def _seed_permanent_groups(db: Session) -> None:
    for name in PERMANENT_GROUPS:
        if group_crud.find_by_name(db, name) is None:
            group_crud.save(db, Group(name=name, permanent=True), auto_commit=False)
            logger.info("Created permanent group %s", name)


if __name__ == "__main__":  # pragma: no cover - manual bootstrap entry point
    from app.packages.eperson.core.logger import setup_logging

    setup_logging()
    init_db()
