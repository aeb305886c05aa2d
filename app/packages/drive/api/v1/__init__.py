"""API v1 汇总路由：统一挂载所有版本化的子路由。"""

from fastapi import APIRouter

from app.packages.drive.api.v1.endpoints import files, folders, user

api_router = APIRouter()
api_router.include_router(files.router)
api_router.include_router(folders.router)
api_router.include_router(user.router)
