"""业务包元数据定义。"""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import Logger
from typing import Callable, Sequence

from fastapi import APIRouter


@dataclass(frozen=True)
class AppPackage:
    """描述一个业务包暴露给主应用的必要接口。

    ``startup_hooks`` 在 ``init_db`` 之后依次执行，单个钩子失败只记录日志；
    ``middlewares`` 为 ASGI 中间件类，按声明顺序注册。
    """

    name: str
    api_router: APIRouter
    get_settings: Callable[[], object]
    setup_logging: Callable[[], None]
    logger: Logger
    init_db: Callable[[], None]
    create_response: Callable[..., dict]
    http_exception_handler: Callable[..., object]
    generic_exception_handler: Callable[..., object]
    startup_hooks: Sequence[Callable[[], None]] = field(default_factory=tuple)
    middlewares: Sequence[type] = field(default_factory=tuple)
