"""模型包初始化，便于统一导入 ORM 实体并触发模型注册。"""

from app.packages.eperson.models.eperson import EPerson
from app.packages.eperson.models.group import Group
from app.packages.eperson.models.metadata import MetadataField, MetadataSchema, MetadataValue

__all__ = [
    "EPerson",
    "Group",
    "MetadataField",
    "MetadataSchema",
    "MetadataValue",
]
