"""元数据模型：schema 注册表、字段注册表以及挂在用户组上的字段取值。"""

import uuid
from typing import List, Optional

from sqlalchemy import ForeignKey, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.packages.eperson.models.base import Base


class MetadataSchema(Base):
    __tablename__ = "metadataschemaregistry"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(32), unique=True)
    namespace: Mapped[str] = mapped_column(String(256), unique=True)

    fields: Mapped[List["MetadataField"]] = relationship("MetadataField", back_populates="schema")


class MetadataField(Base):
    """带类型、具名的属性槽，例如 ``dc.description``。"""

    __tablename__ = "metadatafieldregistry"
    __table_args__ = (UniqueConstraint("metadata_schema_id", "element", "qualifier"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    metadata_schema_id: Mapped[int] = mapped_column(
        ForeignKey("metadataschemaregistry.id"), index=True
    )
    element: Mapped[str] = mapped_column(String(64))
    qualifier: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    scope_note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    schema: Mapped["MetadataSchema"] = relationship("MetadataSchema", back_populates="fields")

    def __str__(self) -> str:
        parts = [self.schema.name, self.element]
        if self.qualifier:
            parts.append(self.qualifier)
        return ".".join(parts)


class MetadataValue(Base):
    __tablename__ = "metadatavalue"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    dspace_object_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("epersongroup.id", ondelete="CASCADE"), index=True
    )
    metadata_field_id: Mapped[int] = mapped_column(
        ForeignKey("metadatafieldregistry.id"), index=True
    )
    text_value: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    text_lang: Mapped[Optional[str]] = mapped_column(String(24), nullable=True)
    place: Mapped[int] = mapped_column(Integer, default=0)

    dspace_object: Mapped["Group"] = relationship("Group", back_populates="metadata_values")
    metadata_field: Mapped["MetadataField"] = relationship("MetadataField")
