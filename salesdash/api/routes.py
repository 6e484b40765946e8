from fastapi import APIRouter, Query, HTTPException, Depends
from typing import List
import logging

from salesdash.api.schemas import (
    SalesReportRequest,
    SalesReportResponse,
    QuarterInfo,
    CacheClearResponse,
    MonthValidationRequest,
    MonthValidationResponse
)
from salesdash.api.dependencies import get_engine
from salesdash.data.repositories import OrderFetchError
from salesdash.engine.core import SalesReportEngine
from salesdash.reporting.periods import ReportRequestError

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/reports/sales", response_model=SalesReportResponse)
async def create_sales_report(
        request: SalesReportRequest,
        engine: SalesReportEngine = Depends(get_engine)
):
    """生成周/月/季度销售对比报表"""
    try:
        report = await engine.build_report(request.model_dump())
    except ReportRequestError as e:
        logger.warning(f"Invalid report request: {e}")
        raise HTTPException(status_code=400, detail=str(e))
    except OrderFetchError as e:
        logger.error(f"Order fetch failed: {e}")
        raise HTTPException(status_code=502, detail=str(e))

    cached = report.pop('cached', False)
    return SalesReportResponse(success=True, data=report, cached=cached)


@router.post("/reports/validation", response_model=MonthValidationResponse)
async def validate_month(
        request: MonthValidationRequest,
        engine: SalesReportEngine = Depends(get_engine)
):
    """核对某月的周汇总与月数据"""
    try:
        result = await engine.validate_month(request.year, request.month, request.refinement_mode)
    except ReportRequestError as e:
        logger.warning(f"Invalid validation request: {e}")
        raise HTTPException(status_code=400, detail=str(e))
    except OrderFetchError as e:
        logger.error(f"Order fetch failed: {e}")
        raise HTTPException(status_code=502, detail=str(e))

    return MonthValidationResponse(success=True, data=result)


@router.get("/reports/quarters/default", response_model=QuarterInfo)
async def get_default_quarter(engine: SalesReportEngine = Depends(get_engine)):
    """默认季度（上一个完整季度）"""
    return engine.default_quarter()


@router.get("/reports/quarters", response_model=List[QuarterInfo])
async def list_quarters(
        year: int = Query(..., ge=1970, le=9999, description="年份"),
        engine: SalesReportEngine = Depends(get_engine)
):
    """某年的季度选项"""
    return engine.quarter_options(year)


@router.delete("/reports/cache", response_model=CacheClearResponse)
async def clear_report_cache(engine: SalesReportEngine = Depends(get_engine)):
    """清空季报缓存"""
    return CacheClearResponse(success=True, cleared=engine.clear_cache())
