# salesdash/api/app.py
import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import uvicorn

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    logger.info("Starting Sales Report API")

    try:
        # 初始化配置
        from config.settings import get_settings
        get_settings()

        # 初始化引擎
        from salesdash.engine.core import SalesReportEngine
        app.state.engine = SalesReportEngine()
        logger.info("Engine initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize engine: {e}")
        app.state.engine = None

    yield

    # 清理资源
    logger.info("Shutting down Sales Report API")
    engine = getattr(app.state, 'engine', None)
    if engine is not None:
        db = getattr(engine.repository, 'db', None)
        if db is not None:
            db.close()
    app.state.engine = None


# 创建FastAPI应用
app = FastAPI(
    title="Sales Report API",
    description="销售周/月/季度对比报表API",
    version=API_VERSION,
    lifespan=lifespan
)

# CORS配置
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # 生产环境应该设置具体的域名
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 导入路由
from salesdash.api.routes import router

# 添加路由
app.include_router(router, prefix="/api/v1")


# 全局异常处理
@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "message": str(exc), "path": request.url.path}
    )


@app.get("/")
async def root():
    """服务信息与入口链接"""
    return {
        "name": app.title,
        "version": API_VERSION,
        "status": "running",
        "endpoints": {
            "sales_report": "/api/v1/reports/sales",
            "default_quarter": "/api/v1/reports/quarters/default",
            "month_validation": "/api/v1/reports/validation",
            "docs": "/docs",
            "health": "/health",
        },
    }


# 健康检查
@app.get("/health")
async def health_check():
    """健康检查端点"""
    engine = getattr(app.state, 'engine', None)
    health_status = {
        "status": "healthy",
        "version": API_VERSION,
        "engine_status": "running" if engine else "not initialized",
    }

    if engine:
        health_status["data_source"] = "clickhouse" if getattr(engine.repository, 'db', None) else "mock"
        health_status["cached_reports"] = len(engine.cache)
    else:
        health_status["status"] = "degraded"
        health_status["message"] = "Engine not initialized"

    return health_status


def main():
    """命令行入口：salesdash-api"""
    import os

    uvicorn.run(
        "salesdash.api.app:app",
        host=os.getenv("API_HOST", "0.0.0.0"),
        port=int(os.getenv("API_PORT", 8000)),
        reload=os.getenv("API_RELOAD", "").lower() in ("1", "true", "yes"),
        log_level="info"
    )


if __name__ == "__main__":
    main()
