"""API v1 汇总路由：统一挂载所有版本化的子路由。"""

from fastapi import APIRouter

from app.packages.filestore.api.v1.endpoints import file_versions, files, objects, orphaned_objects

api_router = APIRouter()
api_router.include_router(files.router)
api_router.include_router(file_versions.router)
api_router.include_router(orphaned_objects.router)
api_router.include_router(objects.router)
