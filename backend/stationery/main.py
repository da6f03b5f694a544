from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from stationery.api.api_v1.api import api_router
from stationery.core.config import settings
from stationery.core.exceptions import InvalidPayload, PortalError
from stationery.core.logging_config import setup_logging, get_logger
from stationery.services import build_services
from stationery.services.scheduler import init_scheduler, shutdown_scheduler
from stationery.db.session import SessionLocal, engine
from stationery.db.init_db import ensure_tables_exist

# 初始化日志系统
setup_logging(settings.LOG_LEVEL, settings.LOG_DIR)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    # 启动时
    logger.info("🚀 应用启动中...")

    await ensure_tables_exist(engine)
    logger.info("📊 数据库表已就绪")

    services = build_services(SessionLocal, config=settings)
    app.state.services = services
    logger.info(f"🪟 下单窗口初始状态: {'开放' if services.gate.is_open else '关闭'}")

    init_scheduler(services.gate, settings)
    yield
    # 关闭时
    logger.info("🛑 应用关闭中...")
    shutdown_scheduler()
    # 等待未完成的通知分发，超时放弃
    await services.events.drain(timeout=5)
    await services.notifications.wait_deliveries()
    await engine.dispose()

app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    description="部门文具申领 - 下单、签字单据、审批",
    lifespan=lifespan
)

# CORS配置
if settings.BACKEND_CORS_ORIGINS:
    logger.info(f"配置CORS，允许的源: {settings.BACKEND_CORS_ORIGINS}")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[str(origin) for origin in settings.BACKEND_CORS_ORIGINS],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.exception_handler(PortalError)
async def portal_error_handler(request: Request, exc: PortalError):
    """业务异常 → {"error": kind, "detail": reason}"""
    logger.info(f"⚠️ {request.method} {request.url.path} → {exc.kind}: {exc.reason}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """请求格式错误同样按 InvalidPayload 返回"""
    problems = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()
    )
    error = InvalidPayload(f"请求数据无效: {problems}")
    logger.info(f"⚠️ {request.method} {request.url.path} → {error.kind}: {problems}")
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


logger.info(f"注册API路由，前缀: {settings.API_V1_STR}")
app.include_router(api_router, prefix=settings.API_V1_STR)


@app.get("/")
async def root():
    return {"message": settings.PROJECT_NAME}


@app.get("/health")
async def health():
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="127.0.0.1", port=8000, log_level="info")
