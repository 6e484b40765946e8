from typing import Dict, Any, List, Optional, Tuple
from dataclasses import dataclass
import logging

from ..data.models import Order
from ..reporting.aggregator import OrderAggregator, AggregationResult
from ..reporting.classifier import Classifier, RETAIL, WHOLESALE, BRAND_PRIMARY, BRAND_PARTNER, BRAND_OTHER
from ..reporting.comparator import compare_totals, merge_rows
from ..reporting.periods import PERIOD_CURRENT, PERIOD_PREVIOUS, PERIOD_PREVIOUS_YEAR

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SliceSpec:
    """品牌/站点类型切片

    brands 为 None 表示不按品牌过滤；否则按顺序拼接各品牌的订单。
    channel 为 None 表示不按站点类型过滤。
    """
    name: str
    brands: Optional[Tuple[str, ...]] = None
    channel: Optional[str] = None


SLICES = [
    SliceSpec('all'),
    SliceSpec('retail', channel=RETAIL),
    SliceSpec('wholesale', channel=WHOLESALE),
    SliceSpec('primary_brand', brands=(BRAND_PRIMARY,)),
    SliceSpec('primary_retail', brands=(BRAND_PRIMARY,), channel=RETAIL),
    SliceSpec('primary_wholesale', brands=(BRAND_PRIMARY,), channel=WHOLESALE),
    SliceSpec('partner_brand', brands=(BRAND_PARTNER,)),
    SliceSpec('other_brand', brands=(BRAND_OTHER,)),
    # 三个品牌拼接，不属于任何品牌的站点不计入
    SliceSpec('grand_total', brands=(BRAND_PRIMARY, BRAND_PARTNER, BRAND_OTHER)),
]

BRAND_COMPARISON = {
    'primary': 'primary_brand',
    'primary_retail': 'primary_retail',
    'primary_wholesale': 'primary_wholesale',
    'partner': 'partner_brand',
    'other': 'other_brand',
}
CHANNEL_COMPARISON = {
    'retail': 'retail',
    'wholesale': 'wholesale',
}

# 明细合并使用的自然键
BREAKDOWN_KEYS = (
    ('by_site', 'site_id'),
    ('by_country', 'country'),
    ('by_product_group', 'product_group'),
)


@dataclass
class SliceResult:
    """单个切片在各周期的聚合结果"""
    spec: SliceSpec
    periods: Dict[str, AggregationResult]

    @property
    def has_year_over_year(self) -> bool:
        return PERIOD_PREVIOUS_YEAR in self.periods

    def comparison(self) -> Dict[str, Any]:
        return compare_totals(
            self.periods[PERIOD_CURRENT].summary,
            self.periods[PERIOD_PREVIOUS].summary,
            self.periods[PERIOD_PREVIOUS_YEAR].summary if self.has_year_over_year else None
        )

    def detail(self) -> Dict[str, Any]:
        """切片明细块"""
        current = self.periods[PERIOD_CURRENT]
        previous = self.periods[PERIOD_PREVIOUS]
        previous_year = self.periods.get(PERIOD_PREVIOUS_YEAR)

        block = {'summary': self.comparison()}
        for attr, key in BREAKDOWN_KEYS:
            block[attr] = merge_rows(
                getattr(current, attr),
                getattr(previous, attr),
                key,
                getattr(previous_year, attr) if previous_year is not None else None
            )

        block['daily_trends'] = current.by_day
        block['previous_daily_trends'] = previous.by_day
        if previous_year is not None:
            block['previous_year_daily_trends'] = previous_year.by_day

        if current.by_week is not None:
            block['weekly_trends'] = current.by_week
            block['previous_weekly_trends'] = previous.by_week or []
            if previous_year is not None:
                block['previous_year_weekly_trends'] = previous_year.by_week or []
        return block


class SlicePipeline:
    """切片管道：选取订单 -> 聚合"""

    def __init__(self, classifier: Classifier, slices: Optional[List[SliceSpec]] = None):
        self.classifier = classifier
        self.aggregator = OrderAggregator(classifier)
        self.slices = slices if slices is not None else SLICES

    def select(self, spec: SliceSpec, orders: List[Order]) -> List[Order]:
        """选取切片订单：先按品牌，再按站点类型"""
        if spec.brands is None:
            selected = orders
        else:
            brand_of = {id(order): self.classifier.brand_group(order.site_name) for order in orders}
            selected = [
                order
                for brand in spec.brands
                for order in orders
                if brand_of[id(order)] == brand
            ]

        if spec.channel is not None:
            selected = [order for order in selected if self.classifier.channel_type(order.site_name) == spec.channel]
        return selected

    def run_slice(self, spec: SliceSpec, period_orders: Dict[str, List[Order]],
                  include_weeks: bool = False) -> SliceResult:
        periods = {}
        for period_name, orders in period_orders.items():
            selected = self.select(spec, orders)
            periods[period_name] = self.aggregator.aggregate(selected, include_weeks=include_weeks)
        logger.debug(
            f"Slice {spec.name}: " +
            ", ".join(f"{name}={len(result.by_day)} days" for name, result in periods.items())
        )
        return SliceResult(spec=spec, periods=periods)

    def run(self, period_orders: Dict[str, List[Order]], include_weeks: bool = False) -> Dict[str, SliceResult]:
        """对全部切片运行聚合"""
        return {
            spec.name: self.run_slice(spec, period_orders, include_weeks)
            for spec in self.slices
        }
