"""用户组模型：命名的账户集合，可通过 group2group 相互嵌套。"""

from typing import List, Optional

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import expression

from app.packages.eperson.models.base import (
    Base,
    TimestampMixin,
    UUIDPkMixin,
    epersongroup2eperson,
    group2group,
)


class Group(UUIDPkMixin, TimestampMixin, Base):
    """用户组实体。名称在存储层不强制唯一，但作为查询键使用。"""

    __tablename__ = "epersongroup"

    name: Mapped[str] = mapped_column(String(250), index=True)
    permanent: Mapped[bool] = mapped_column(
        Boolean, server_default=expression.false(), default=False, nullable=False
    )

    epeople: Mapped[List["EPerson"]] = relationship(
        "EPerson",
        secondary=epersongroup2eperson,
        primaryjoin="Group.id == epersongroup2eperson.c.eperson_group_id",
        secondaryjoin="EPerson.id == epersongroup2eperson.c.eperson_id",
        back_populates="groups",
    )
    # 直接子组
    groups: Mapped[List["Group"]] = relationship(
        "Group",
        secondary=group2group,
        primaryjoin="Group.id == group2group.c.parent_id",
        secondaryjoin="Group.id == group2group.c.child_id",
        back_populates="parent_groups",
    )
    parent_groups: Mapped[List["Group"]] = relationship(
        "Group",
        secondary=group2group,
        primaryjoin="Group.id == group2group.c.child_id",
        secondaryjoin="Group.id == group2group.c.parent_id",
        back_populates="groups",
    )
    metadata_values: Mapped[List["MetadataValue"]] = relationship(
        "MetadataValue",
        back_populates="dspace_object",
        cascade="all, delete-orphan",
        order_by="MetadataValue.place",
    )

    def get_metadata(self, field: "MetadataField") -> Optional[str]:
        """返回指定字段的第一个取值。"""
        for value in self.metadata_values:
            if value.metadata_field_id == field.id:
                return value.text_value
        return None

    def __repr__(self) -> str:
        return f"Group(id={self.id!s}, name={self.name!r})"
