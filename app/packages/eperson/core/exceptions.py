"""异常处理模块：定义用户组数据访问层统一的业务异常。

数据访问层本身不做任何用户可见的提示，所有异常都交由上层服务转换。
"""

from typing import Any

from app.packages.eperson.core.constants import (
    HTTP_STATUS_BAD_REQUEST,
    HTTP_STATUS_CONFLICT,
    HTTP_STATUS_FORBIDDEN,
    HTTP_STATUS_INTERNAL_SERVER_ERROR,
)


class AppException(Exception):
    """携带统一结构（msg/code/data）的业务异常。"""

    def __init__(self, msg: str, code: int = HTTP_STATUS_BAD_REQUEST, data: Any = None) -> None:
        super().__init__(msg)
        self.msg = msg
        self.code = code
        self.data = data


class StorageError(AppException):
    """数据库连接或执行失败；原始 SQLAlchemy 异常保存在 ``__cause__`` 中。"""

    def __init__(self, msg: str, data: Any = None) -> None:
        super().__init__(msg, HTTP_STATUS_INTERNAL_SERVER_ERROR, data)


class MultipleGroupsFoundError(AppException):
    """期望唯一结果的查询返回了多条用户组记录。"""

    def __init__(self, msg: str, data: Any = None) -> None:
        super().__init__(msg, HTTP_STATUS_CONFLICT, data)


class InvalidSortColumnError(AppException):
    pass


class GroupNameConflictError(AppException):
    def __init__(self, msg: str, data: Any = None) -> None:
        super().__init__(msg, HTTP_STATUS_CONFLICT, data)


class GroupCycleError(AppException):
    """嵌套关系会导致用户组成环（含自身嵌套）。"""


class PermanentGroupError(AppException):
    def __init__(self, msg: str, data: Any = None) -> None:
        super().__init__(msg, HTTP_STATUS_FORBIDDEN, data)
