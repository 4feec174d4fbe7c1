"""应用入口：负责创建 FastAPI 实例并绑定生命周期事件。"""

from typing import Any

from fastapi import FastAPI, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.middleware.request_id import RequestIdMiddleware
from app.packages import get_active_package

package = get_active_package()
package.setup_logging()
settings = package.get_settings()
logger = package.logger
api_router = package.api_router
create_response = package.create_response

app = FastAPI(title=settings.project_name, debug=settings.debug)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)
app.add_middleware(RequestIdMiddleware)

for exc_class, handler in package.exception_handlers.items():
    app.add_exception_handler(exc_class, handler)


@app.on_event("startup")
async def startup_event() -> None:
    """初始化数据库与对象存储客户端，确认服务可用后输出成功日志。"""
    package.startup(app)
    logger.info(
        "SUCCESS - Application running at http://127.0.0.1:%s (storage=%s)",
        settings.app_port,
        settings.storage_type,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request, exc):  # pragma: no cover - framework glue
    """统一处理请求体验证失败的场景。"""
    def _serialize(obj: Any) -> Any:
        if isinstance(obj, Exception):
            return str(obj)
        if isinstance(obj, dict):
            return {key: _serialize(value) for key, value in obj.items()}
        if isinstance(obj, list):
            return [_serialize(item) for item in obj]
        return obj

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=create_response("请求参数验证失败", _serialize(exc.errors()), status.HTTP_422_UNPROCESSABLE_ENTITY),
    )


@app.get("/health")
async def health_check() -> dict:
    return create_response("OK", {"status": "healthy"})


app.include_router(api_router, prefix=settings.api_v1_str)
