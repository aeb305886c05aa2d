"""云盘业务包：文件/文件夹树、回收站、星标与存储用量。"""

from app.packages.types import AppPackage

from .api.v1 import api_router
from .core.config import get_settings
from .core.events import init_storage_events
from .core.exceptions import generic_exception_handler, http_exception_handler
from .core.logger import logger, setup_logging
from .core.responses import create_response
from .db.init_db import init_db
from .middleware.request_id import RequestIdMiddleware
from .services.deletion_queue import drain_pending_deletions

package = AppPackage(
    name="drive",
    api_router=api_router,
    get_settings=get_settings,
    setup_logging=setup_logging,
    logger=logger,
    init_db=init_db,
    create_response=create_response,
    http_exception_handler=http_exception_handler,
    generic_exception_handler=generic_exception_handler,
    startup_hooks=(init_storage_events, drain_pending_deletions),
    middlewares=(RequestIdMiddleware,),
)

__all__ = ["package", "api_router", "get_settings"]
