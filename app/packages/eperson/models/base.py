"""模型基类：统一声明式基类、通用时间戳字段与用户组相关的关联表。

本模块集中提供：
- Base：SQLAlchemy 声明式基类，带统一命名约定；
- TimestampMixin：`create_time`、`update_time`；
- UUIDPkMixin：客户端生成的 UUID 主键；
- 三个关联表：
  * epersongroup2eperson：用户组的直接成员；
  * group2group：用户组之间的直接嵌套（父 -> 子）；
  * group2groupcache：嵌套关系的传递闭包缓存，由服务层重建。
"""

import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, MetaData, Table, Uuid, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata_obj = MetaData(naming_convention=convention)


class Base(DeclarativeBase):
    """全局声明式基类，附带一致的命名约定，便于迁移与调试。"""

    metadata = metadata_obj


class TimestampMixin:
    """通用时间戳字段，为记录新增、更新提供审计能力。"""

    create_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    update_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class UUIDPkMixin:
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)


epersongroup2eperson = Table(
    "epersongroup2eperson",
    Base.metadata,
    Column(
        "eperson_group_id",
        Uuid,
        ForeignKey("epersongroup.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    ),
    Column(
        "eperson_id",
        Uuid,
        ForeignKey("eperson.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    ),
)

# 直接嵌套边；删除用户组前由 GroupDAO.delete 以 DML 语句清理
group2group = Table(
    "group2group",
    Base.metadata,
    Column("parent_id", Uuid, ForeignKey("epersongroup.id"), primary_key=True, index=True),
    Column("child_id", Uuid, ForeignKey("epersongroup.id"), primary_key=True, index=True),
)

# 传递闭包缓存：每个祖先组到其所有后代组各一行（不含自身）
group2groupcache = Table(
    "group2groupcache",
    Base.metadata,
    Column(
        "parent_id",
        Uuid,
        ForeignKey("epersongroup.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    ),
    Column(
        "child_id",
        Uuid,
        ForeignKey("epersongroup.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    ),
)
