from pydantic import BaseModel, Field
from typing import List, Dict, Any, Optional


# 请求模型
class SalesReportRequest(BaseModel):
    """销售对比报表请求"""
    year: int = Field(..., description="年份")
    unit: str = Field("week", description="报表单位：week/month/quarter")
    week: Optional[int] = Field(None, description="ISO周数（周报）")
    start_date: Optional[str] = Field(None, description="周开始日期 YYYY-MM-DD（周报）")
    end_date: Optional[str] = Field(None, description="周结束日期 YYYY-MM-DD（周报）")
    refinement_mode: str = Field("full", description="周范围：full / clipped-to-month")
    month: Optional[int] = Field(None, description="月份（月报）")
    quarter: Optional[int] = Field(None, description="季度（季报）")


# 响应模型
class SalesReportResponse(BaseModel):
    """销售对比报表响应"""
    success: bool
    data: Dict[str, Any]
    cached: bool = False


class QuarterInfo(BaseModel):
    """季度选项"""
    year: int
    quarter: int
    label: str
    months: List[int]
    days: int
    is_future: bool


class CacheClearResponse(BaseModel):
    """清空缓存响应"""
    success: bool
    cleared: int


class MonthValidationRequest(BaseModel):
    """月度周汇总核对请求"""
    year: int = Field(..., description="年份")
    month: int = Field(..., description="月份 1-12")
    refinement_mode: str = Field("full", description="周范围：full / clipped-to-month")


class MonthValidationResponse(BaseModel):
    """月度周汇总核对响应"""
    success: bool
    data: Dict[str, Any]
