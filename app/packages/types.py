"""业务包元数据定义。"""

from __future__ import annotations

from dataclasses import dataclass
from logging import Logger
from typing import Any, Callable


@dataclass(frozen=True)
class AppPackage:
    """描述一个业务包暴露给宿主应用的必要接口。"""

    name: str
    get_settings: Callable[[], object]
    setup_logging: Callable[[], None]
    logger: Logger
    init_db: Callable[[], None]
    group_crud: Any
    group_service: Any
