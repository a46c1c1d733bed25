"""EPerson 业务包：用户组及其成员、嵌套关系的数据访问层。"""

from app.packages.types import AppPackage

from .core.config import get_settings
from .core.logger import logger, setup_logging
from .crud.groups import group_crud
from .db.init_db import init_db
from .services.group_service import group_service

package = AppPackage(
    name="eperson",
    get_settings=get_settings,
    setup_logging=setup_logging,
    logger=logger,
    init_db=init_db,
    group_crud=group_crud,
    group_service=group_service,
)

__all__ = ["package", "group_crud", "group_service", "get_settings"]
