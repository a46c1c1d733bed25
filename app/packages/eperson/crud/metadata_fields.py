"""元数据字段 CRUD：按 schema/element/qualifier 定位字段注册项。"""

from typing import Optional

from sqlalchemy.orm import Session

from app.packages.eperson.crud.base import CRUDBase
from app.packages.eperson.models.metadata import MetadataField, MetadataSchema


class CRUDMetadataField(CRUDBase[MetadataField]):
    """提供字段注册表的便捷查询方法。"""

    def find_by_element(
        self, db: Session, schema: str, element: str, qualifier: Optional[str] = None
    ) -> Optional[MetadataField]:
        query = (
            self.query(db)
            .join(MetadataSchema, MetadataField.metadata_schema_id == MetadataSchema.id)
            .filter(MetadataSchema.name == schema, MetadataField.element == element)
        )
        if qualifier is None:
            query = query.filter(MetadataField.qualifier.is_(None))
        else:
            query = query.filter(MetadataField.qualifier == qualifier)
        with self.guard(f"find metadata field {schema}.{element}"):
            return query.one_or_none()

    def find_by_string(self, db: Session, name: str) -> Optional[MetadataField]:
        """解析 ``schema.element[.qualifier]`` 形式的字段名。"""
        parts = [part for part in name.strip().split(".") if part]
        if len(parts) not in (2, 3):
            return None
        schema, element = parts[0], parts[1]
        qualifier = parts[2] if len(parts) == 3 else None
        return self.find_by_element(db, schema, element, qualifier)

    def get_or_create(
        self, db: Session, schema: MetadataSchema, element: str, qualifier: Optional[str] = None
    ) -> MetadataField:
        field = self.find_by_element(db, schema.name, element, qualifier)
        if field is None:
            field = self.save(
                db,
                MetadataField(schema=schema, element=element, qualifier=qualifier),
                auto_commit=False,
            )
        return field


metadata_field_crud = CRUDMetadataField(MetadataField)
