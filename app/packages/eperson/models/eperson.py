"""账户模型：仅作为用户组成员被引用。"""

from typing import List, Optional

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.packages.eperson.models.base import Base, TimestampMixin, UUIDPkMixin, epersongroup2eperson


class EPerson(UUIDPkMixin, TimestampMixin, Base):
    __tablename__ = "eperson"

    email: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    netid: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, unique=True)

    groups: Mapped[List["Group"]] = relationship(
        "Group",
        secondary=epersongroup2eperson,
        primaryjoin="EPerson.id == epersongroup2eperson.c.eperson_id",
        secondaryjoin="Group.id == epersongroup2eperson.c.eperson_group_id",
        back_populates="epeople",
    )

    def __repr__(self) -> str:
        return f"EPerson(id={self.id!s}, email={self.email!r})"
