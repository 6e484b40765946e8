"""订单聚合

对单一周期、单一分类切片的订单做汇总，并生成按站点、国家、SPU、日期、ISO周的明细。

去重规则：订单数与销售额在每个分组内按订单去重（同一订单重复出现只计一次），
销量始终按每条订单商品累加。
"""
import logging
import math
from datetime import datetime
from typing import Dict, Any, List, Optional, Callable
from dataclasses import dataclass, field

from ..data.models import Order
from .classifier import Classifier, RETAIL, WHOLESALE
from .countries import country_name
from .periods import iso_week, week_bounds

logger = logging.getLogger(__name__)


@dataclass
class Summary:
    """切片汇总"""
    total_orders: int = 0
    total_revenue: float = 0.0
    total_quantity: float = 0

    @property
    def avg_order_value(self) -> float:
        return self.total_revenue / self.total_orders if self.total_orders > 0 else 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total_orders': self.total_orders,
            'total_revenue': self.total_revenue,
            'total_quantity': self.total_quantity,
            'avg_order_value': self.avg_order_value,
        }


@dataclass
class AggregationResult:
    """单周期聚合结果"""
    summary: Summary
    by_site: List[Dict[str, Any]] = field(default_factory=list)
    by_country: List[Dict[str, Any]] = field(default_factory=list)
    by_product_group: List[Dict[str, Any]] = field(default_factory=list)
    by_day: List[Dict[str, Any]] = field(default_factory=list)
    by_week: Optional[List[Dict[str, Any]]] = None


def _channel_totals() -> Dict[str, Any]:
    return {
        'orders': 0,
        'revenue': 0.0,
        'quantity': 0,
        'retail_orders': 0,
        'retail_revenue': 0.0,
        'retail_quantity': 0,
        'wholesale_orders': 0,
        'wholesale_revenue': 0.0,
        'wholesale_quantity': 0,
    }


def rank_by_revenue(rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """按销售额降序排序并编排名（同额保持原顺序）"""
    rows = sorted(rows, key=lambda row: row['revenue'], reverse=True)
    for index, row in enumerate(rows):
        row['rank'] = index + 1
    return rows


class OrderAggregator:
    """订单聚合器"""

    def __init__(self, classifier: Classifier):
        self.classifier = classifier

    def _order_quantities(self, order: Order, channel: Optional[str]) -> List[tuple]:
        """订单内每条商品的 (SPU, 换算销量)"""
        return [
            (self.classifier.product_group(item), self.classifier.converted_quantity(item, channel))
            for item in order.items
        ]

    def summarize(self, orders: List[Order]) -> Summary:
        """汇总订单数、销售额与换算销量"""
        summary = Summary()
        seen = set()

        for order in orders:
            if order.dedup_key not in seen:
                seen.add(order.dedup_key)
                summary.total_orders += 1
                summary.total_revenue += order.total

            channel = self.classifier.channel_type(order.site_name)
            for _, quantity in self._order_quantities(order, channel):
                summary.total_quantity += quantity

        return summary

    def by_site(self, orders: List[Order]) -> List[Dict[str, Any]]:
        """按站点聚合（未知站点类型的订单不计入）"""
        sites: Dict[str, Dict[str, Any]] = {}
        seen = set()

        for order in orders:
            site_name = order.site_name or 'Unknown'
            channel = self.classifier.channel_type(site_name)
            if channel is None:
                continue

            row = sites.get(order.site_id)
            if row is None:
                row = sites[order.site_id] = {
                    'site_id': order.site_id,
                    'site_name': site_name,
                    'channel_type': channel,
                    'orders': 0,
                    'revenue': 0.0,
                    'quantity': 0,
                }

            if order.dedup_key not in seen:
                seen.add(order.dedup_key)
                row['orders'] += 1
                row['revenue'] += order.total

            for _, quantity in self._order_quantities(order, channel):
                row['quantity'] += quantity

        rows = rank_by_revenue(list(sites.values()))
        total_revenue = sum(row['revenue'] for row in rows)
        for row in rows:
            row['revenue_percentage'] = row['revenue'] * 100 / total_revenue if total_revenue > 0 else 0
        return rows

    def by_country(self, orders: List[Order]) -> List[Dict[str, Any]]:
        """按收货国家（缺失时用账单国家）聚合"""
        countries: Dict[str, Dict[str, Any]] = {}
        seen = set()

        for order in orders:
            country = order.country
            channel = self.classifier.channel_type(order.site_name)

            row = countries.get(country)
            if row is None:
                row = countries[country] = {
                    'country': country,
                    'country_name': country_name(country),
                    'orders': 0,
                    'revenue': 0.0,
                    'quantity': 0,
                    'retail_quantity': 0,
                    'wholesale_quantity': 0,
                    'sites': {},
                }

            if order.dedup_key not in seen:
                seen.add(order.dedup_key)
                row['orders'] += 1
                row['revenue'] += order.total
            row['sites'][order.site_name] = None

            for _, quantity in self._order_quantities(order, channel):
                row['quantity'] += quantity
                if channel == RETAIL:
                    row['retail_quantity'] += quantity
                elif channel == WHOLESALE:
                    row['wholesale_quantity'] += quantity

        rows = rank_by_revenue(list(countries.values()))
        for row in rows:
            row['sites'] = list(row['sites'])
        return rows

    def by_product_group(self, orders: List[Order]) -> List[Dict[str, Any]]:
        """按SPU聚合，销售额取订单商品金额"""
        groups: Dict[str, Dict[str, Any]] = {}
        seen = set()

        # 未换算销量，只用于判断展示倍数
        raw_quantities: Dict[str, Dict[str, float]] = {}

        for order in orders:
            channel = self.classifier.channel_type(order.site_name)
            for item, (group, quantity) in zip(order.items, self._order_quantities(order, channel)):
                row = groups.get(group)
                if row is None:
                    row = groups[group] = {
                        'product_group': group,
                        'orders': 0,
                        'revenue': 0.0,
                        'quantity': 0,
                        'retail_quantity': 0,
                        'wholesale_quantity': 0,
                        'is_special_group': self.classifier.is_special_group(group),
                    }

                # 同一订单包含多条同SPU商品时订单只计一次
                if (group, order.dedup_key) not in seen:
                    seen.add((group, order.dedup_key))
                    row['orders'] += 1
                row['revenue'] += item.total
                row['quantity'] += quantity
                raw = raw_quantities.setdefault(group, {RETAIL: 0, WHOLESALE: 0})
                if channel == RETAIL:
                    row['retail_quantity'] += quantity
                    raw[RETAIL] += item.quantity
                elif channel == WHOLESALE:
                    row['wholesale_quantity'] += quantity
                    raw[WHOLESALE] += item.quantity

        rows = rank_by_revenue(list(groups.values()))
        for row in rows:
            # 展示用倍数取原始销量占优的站点类型
            raw = raw_quantities[row['product_group']]
            dominant = RETAIL if raw[RETAIL] >= raw[WHOLESALE] else WHOLESALE
            row['multiplier'] = self.classifier.quantity_multiplier(row['product_group'], dominant)
        return rows

    def _trend(self, orders: List[Order], bucket_of: Callable[[Order], str],
               new_row: Callable[[str, Order], Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
        """按时间桶累计订单、销售额与零售/批发拆分"""
        buckets: Dict[str, Dict[str, Any]] = {}
        seen = set()

        for order in orders:
            key = bucket_of(order)
            channel = self.classifier.channel_type(order.site_name)

            row = buckets.get(key)
            if row is None:
                row = buckets[key] = new_row(key, order)

            if (key, order.dedup_key) not in seen:
                seen.add((key, order.dedup_key))
                row['orders'] += 1
                row['revenue'] += order.total
                if channel in (RETAIL, WHOLESALE):
                    row[f'{channel}_orders'] += 1
                    row[f'{channel}_revenue'] += order.total

            for _, quantity in self._order_quantities(order, channel):
                row['quantity'] += quantity
                if channel in (RETAIL, WHOLESALE):
                    row[f'{channel}_quantity'] += quantity

        return buckets

    def by_day(self, orders: List[Order]) -> List[Dict[str, Any]]:
        """按UTC日期聚合，日期升序"""
        buckets = self._trend(
            orders,
            lambda order: order.created_date,
            lambda key, order: {'date': key, **_channel_totals()}
        )
        return [buckets[key] for key in sorted(buckets)]

    def by_week(self, orders: List[Order]) -> List[Dict[str, Any]]:
        """按ISO周聚合（季报使用）"""

        def week_key(order: Order) -> str:
            iso_year, week = iso_week(order.created_at.date())
            return f"{iso_year}-W{week:02d}"

        def new_row(key: str, order: Order) -> Dict[str, Any]:
            day = order.created_at.date()
            iso_year, week = iso_week(day)
            monday, sunday = week_bounds(day)
            return {
                'week': week,
                'iso_year': iso_year,
                'week_key': key,
                'week_label': f"{monday.month}月第{math.ceil(monday.day / 7)}周",
                'start_date': monday.isoformat(),
                'end_date': sunday.isoformat(),
                **_channel_totals(),
            }

        buckets = self._trend(orders, week_key, new_row)
        return [buckets[key] for key in sorted(buckets)]

    def aggregate(self, orders: List[Order], include_weeks: bool = False) -> AggregationResult:
        """完整聚合：汇总 + 四个明细（季报额外按周）"""
        started = datetime.now()
        result = AggregationResult(
            summary=self.summarize(orders),
            by_site=self.by_site(orders),
            by_country=self.by_country(orders),
            by_product_group=self.by_product_group(orders),
            by_day=self.by_day(orders),
            by_week=self.by_week(orders) if include_weeks else None
        )
        logger.debug(
            f"Aggregated {len(orders)} orders in {(datetime.now() - started).total_seconds():.3f}s"
        )
        return result
