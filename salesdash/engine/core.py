# salesdash/engine/core.py
import copy
import asyncio
import logging
from typing import Dict, Any, List, Optional, Union
from datetime import datetime

from ..data.models import Order
from ..reporting.cache import ReportCache
from ..reporting.classifier import Classifier, ClassificationConfig
from ..reporting.periods import (
    ReportRequest, ReportPeriods, UNIT_QUARTER, REFINEMENT_FULL, validate_request, resolve_periods,
    validate_month_request, start_of_day, end_of_day,
    default_quarter, quarter_months, quarter_label, quarter_period, is_future_quarter
)
from .pipelines import SlicePipeline, BRAND_COMPARISON, CHANNEL_COMPARISON
from .validation import MonthValidator, query_range

logger = logging.getLogger(__name__)

QUARTERLY_CACHE_KIND = 'quarterly'


def get_repository(repo_class, mock_class, settings=None):
    """获取订单数据仓库（如果连接失败则使用模拟）"""
    if settings is not None and not settings.has_clickhouse():
        logger.info("Mock data enabled, using mock order repository")
        return mock_class()
    try:
        repo = repo_class()
        # 测试连接
        if hasattr(repo, 'db') and repo.db:
            repo.db.client  # 触发连接
        return repo
    except Exception as e:
        logger.warning(f"Failed to connect to database, using mock data: {e}")
        return mock_class()


class SalesReportEngine:
    """销售对比报表引擎"""

    def __init__(self, repository=None, classifier: Optional[Classifier] = None,
                 cache: Optional[ReportCache] = None):
        if repository is None or classifier is None or cache is None:
            from config.settings import get_settings
            settings = get_settings()
        if repository is None:
            # 延迟导入以避免循环依赖
            from ..data.repositories import OrderRepository
            from ..data.mock_repository import MockOrderRepository
            repository = get_repository(OrderRepository, MockOrderRepository, settings)
        if classifier is None:
            classifier = Classifier(ClassificationConfig.from_dict(settings.classification))
        if cache is None:
            cache = ReportCache(settings.report.cache_ttl_seconds, settings.report.cache_max_entries)

        self.repository = repository
        self.classifier = classifier
        self.cache = cache
        self.pipeline = SlicePipeline(classifier)
        self.validator = MonthValidator(self.pipeline)

    async def build_report(self, request: Union[ReportRequest, Dict[str, Any]]) -> Dict[str, Any]:
        """生成报表；季报命中缓存时直接返回"""
        if isinstance(request, dict):
            request = ReportRequest.from_dict(request)
        validate_request(request)

        cache_key = None
        if request.unit == UNIT_QUARTER:
            cache_key = self.cache.make_key(QUARTERLY_CACHE_KIND, request.year, request.quarter)
            cached = self.cache.get(cache_key)
            if cached is not None:
                logger.info(f"Report cache hit: {cache_key}")
                return {**copy.deepcopy(cached), 'cached': True}

        start_time = datetime.now()
        periods = resolve_periods(request)
        named = periods.named()
        logger.info(
            f"Building {request.unit} report for {request.year}-{request.period_index}: " +
            ", ".join(f"{name}={period.start_date}..{period.end_date}" for name, period in named)
        )

        # 各周期并发获取，任一失败则整个请求失败
        results = await asyncio.gather(*[
            self.repository.fetch_orders(period.start, period.end) for _, period in named
        ])
        period_orders = {name: orders for (name, _), orders in zip(named, results)}
        for name, orders in period_orders.items():
            logger.info(f"Fetched {len(orders)} orders for {name} period")

        include_weeks = request.unit == UNIT_QUARTER
        report = await asyncio.to_thread(self._assemble, periods, period_orders, include_weeks)

        if cache_key is not None:
            # 缓存独立副本，调用方修改返回结果不影响缓存
            self.cache.set(cache_key, copy.deepcopy(report))
            logger.info(f"Report cached: {cache_key}")

        logger.info(f"Report built in {(datetime.now() - start_time).total_seconds():.2f}s")
        return {**report, 'cached': False}

    def _assemble(self, periods: ReportPeriods, period_orders: Dict[str, List[Order]],
                  include_weeks: bool) -> Dict[str, Any]:
        """运行全部切片并组装报表（CPU密集，在工作线程中执行）"""
        slices = self.pipeline.run(period_orders, include_weeks=include_weeks)
        return {
            'unit': periods.current.unit,
            'period': periods.to_dict(),
            'summary': slices['grand_total'].comparison(),
            'channel_comparison': {
                key: slices[name].comparison() for key, name in CHANNEL_COMPARISON.items()
            },
            'brand_comparison': {
                key: slices[name].comparison() for key, name in BRAND_COMPARISON.items()
            },
            'slices': {name: result.detail() for name, result in slices.items()},
        }

    async def validate_month(self, year: int, month: int, refinement_mode: str = REFINEMENT_FULL) -> Dict[str, Any]:
        """核对某月的周汇总与月数据"""
        mode = validate_month_request(year, month, refinement_mode)
        first, last = query_range(year, month)
        logger.info(f"Validating {year}-{month:02d} weeks ({mode}), orders {first}..{last}")

        orders = await self.repository.fetch_orders(start_of_day(first), end_of_day(last))
        logger.info(f"Fetched {len(orders)} orders for month validation")
        return await asyncio.to_thread(self.validator.validate, year, month, orders, mode)

    @staticmethod
    def quarter_info(year: int, quarter: int, today=None) -> Dict[str, Any]:
        return {
            'year': year,
            'quarter': quarter,
            'label': quarter_label(year, quarter),
            'months': quarter_months(quarter),
            'days': quarter_period(year, quarter).days,
            'is_future': is_future_quarter(year, quarter, today),
        }

    def default_quarter(self, today=None) -> Dict[str, Any]:
        """默认季度（上一个完整季度）"""
        return self.quarter_info(*default_quarter(today), today=today)

    def quarter_options(self, year: int, today=None) -> list:
        """某年四个季度的选项，未来季度标记为不可选"""
        return [self.quarter_info(year, quarter, today) for quarter in range(1, 5)]

    def clear_cache(self) -> int:
        count = self.cache.clear()
        logger.info(f"Report cache cleared ({count} entries)")
        return count
