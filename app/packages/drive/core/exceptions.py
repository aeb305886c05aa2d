"""异常处理模块：定义统一的业务异常与响应格式。"""

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse

from app.packages.drive.core.constants import (
    HTTP_STATUS_BAD_REQUEST,
    HTTP_STATUS_INTERNAL_SERVER_ERROR,
    HTTP_STATUS_NOT_FOUND,
    HTTP_STATUS_UNAUTHORIZED,
)
from app.packages.drive.core.logger import logger


class AppException(HTTPException):
    """携带统一响应结构的业务异常，方便在全局处理中转换响应体。"""

    def __init__(self, msg: str, code: int = HTTP_STATUS_BAD_REQUEST, data=None) -> None:
        super().__init__(status_code=code, detail=msg)
        self.data = data


class UnauthorizedException(AppException):
    """当前请求没有可识别的文件归属用户。"""

    def __init__(self, msg: str = "缺少认证信息") -> None:
        super().__init__(msg, HTTP_STATUS_UNAUTHORIZED)


class NodeNotFoundException(AppException):
    """节点不存在或不属于当前用户。两种情况合并，避免向其他用户泄露节点是否存在。"""

    def __init__(self, msg: str = "文件或文件夹不存在") -> None:
        super().__init__(msg, HTTP_STATUS_NOT_FOUND)


class WrongNodeTypeException(AppException):
    """对文件执行了文件夹操作，或反之。"""

    def __init__(self, msg: str) -> None:
        super().__init__(msg, HTTP_STATUS_BAD_REQUEST)


class TreeStructureException(AppException):
    """目录树结构异常（出现环或层级超限），属于服务端数据问题。"""

    def __init__(self, msg: str = "目录结构异常，操作已取消") -> None:
        super().__init__(msg, HTTP_STATUS_INTERNAL_SERVER_ERROR)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:  # pragma: no cover - framework glue
    """将 FastAPI 的 ``HTTPException`` 转换为统一响应格式。"""
    payload = {"msg": exc.detail, "data": getattr(exc, "data", None), "code": exc.status_code}
    return JSONResponse(status_code=exc.status_code, content=payload, headers=getattr(exc, "headers", None))


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:  # pragma: no cover - framework glue
    """兜底处理：将未捕获异常转换为标准的 500 响应结构，细节只写入服务端日志。"""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    payload = {
        "msg": "服务器内部错误",
        "data": None,
        "code": HTTP_STATUS_INTERNAL_SERVER_ERROR,
    }
    return JSONResponse(status_code=HTTP_STATUS_INTERNAL_SERVER_ERROR, content=payload)
