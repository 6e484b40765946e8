"""API依赖项"""
import logging
from fastapi import HTTPException, Request

from salesdash.engine.core import SalesReportEngine

logger = logging.getLogger(__name__)


def get_engine(request: Request) -> SalesReportEngine:
    """从应用状态获取报表引擎（由lifespan创建）"""
    engine = getattr(request.app.state, 'engine', None)
    if engine is None:
        logger.error("Report engine not initialized")
        raise HTTPException(status_code=503, detail="Report engine not available")
    return engine
