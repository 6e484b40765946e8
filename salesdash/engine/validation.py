"""月度数据核对

把一个月拆成它涉及的ISO周，分别统计各周与整月的订单数、销售额与换算销量，
再比较周汇总与月数据。full 模式下跨月的周会带入相邻月份的订单，差异属正常；
clipped-to-month 模式下各周截断到月份边界，周汇总应与月数据一致。
"""
import logging
from datetime import date
from typing import Dict, Any, List, Tuple

from ..data.models import Order
from ..reporting.comparator import diff_percent
from ..reporting.periods import REFINEMENT_FULL, MonthWeek, month_bounds, weeks_in_month
from .pipelines import SlicePipeline

logger = logging.getLogger(__name__)

VALIDATION_SLICES = (
    'all', 'primary_brand', 'primary_retail', 'primary_wholesale', 'partner_brand', 'other_brand'
)
METRICS = ('orders', 'revenue', 'quantity')
MONTH_NAMES = ['一月', '二月', '三月', '四月', '五月', '六月',
               '七月', '八月', '九月', '十月', '十一月', '十二月']


def query_range(year: int, month: int) -> Tuple[date, date]:
    """核对需要的订单日期范围（包含跨月周的完整日期）"""
    weeks = weeks_in_month(year, month)
    return weeks[0].start, weeks[-1].end


def orders_between(orders: List[Order], start: date, end: date) -> List[Order]:
    first, last = start.isoformat(), end.isoformat()
    return [order for order in orders if first <= order.created_date <= last]


def _zero_totals() -> Dict[str, float]:
    return {'orders': 0, 'revenue': 0.0, 'quantity': 0}


class MonthValidator:
    """周汇总与月数据核对"""

    def __init__(self, pipeline: SlicePipeline, slice_names=VALIDATION_SLICES):
        self.pipeline = pipeline
        specs = {spec.name: spec for spec in pipeline.slices}
        self.slices = [specs[name] for name in slice_names]

    def slice_totals(self, orders: List[Order]) -> Dict[str, Dict[str, float]]:
        """各切片的订单数/销售额/换算销量（销售额保留两位小数）"""
        totals = {}
        for spec in self.slices:
            summary = self.pipeline.aggregator.summarize(self.pipeline.select(spec, orders))
            totals[spec.name] = {
                'orders': summary.total_orders,
                'revenue': round(summary.total_revenue, 2),
                'quantity': summary.total_quantity,
            }
        return totals

    def _week_row(self, week: MonthWeek, orders: List[Order], month_start: date, month_end: date,
                  refinement_mode: str) -> Dict[str, Any]:
        start, end = week.effective_range(month_start, month_end, refinement_mode)
        return {
            'week': week.week,
            'start_date': week.start.isoformat(),
            'end_date': week.end.isoformat(),
            'effective_start_date': start.isoformat(),
            'effective_end_date': end.isoformat(),
            'is_partial': week.is_partial,
            'slices': self.slice_totals(orders_between(orders, start, end)),
        }

    def _weekly_sum(self, weeks: List[Dict[str, Any]]) -> Dict[str, Dict[str, float]]:
        total = {spec.name: _zero_totals() for spec in self.slices}
        for week in weeks:
            for name, values in week['slices'].items():
                row = total[name]
                row['orders'] += values['orders']
                row['revenue'] = round(row['revenue'] + values['revenue'], 2)
                row['quantity'] += values['quantity']
        return total

    @staticmethod
    def _difference(weekly: Dict[str, float], monthly: Dict[str, float]) -> Dict[str, Any]:
        diff = {
            'orders': weekly['orders'] - monthly['orders'],
            'revenue': round(weekly['revenue'] - monthly['revenue'], 2),
            'quantity': weekly['quantity'] - monthly['quantity'],
        }
        for metric in METRICS:
            diff[f'{metric}_percent'] = diff_percent(weekly[metric], monthly[metric])
        return diff

    def validate(self, year: int, month: int, orders: List[Order],
                 refinement_mode: str = REFINEMENT_FULL) -> Dict[str, Any]:
        """orders 需覆盖 query_range 返回的完整日期范围"""
        month_start, month_end = month_bounds(year, month)
        weeks = weeks_in_month(year, month)

        week_rows = [
            self._week_row(week, orders, month_start, month_end, refinement_mode) for week in weeks
        ]
        weekly_sum = self._weekly_sum(week_rows)
        monthly = self.slice_totals(orders_between(orders, month_start, month_end))
        difference = {name: self._difference(weekly_sum[name], monthly[name]) for name in monthly}

        overall = difference['all']
        is_valid = overall['orders'] == 0 and abs(overall['revenue']) < 0.01 and overall['quantity'] == 0
        spills_over = refinement_mode == REFINEMENT_FULL and any(week.is_partial for week in weeks)

        notes = []
        if spills_over:
            notes.append('注意：该月包含跨月的周，周汇总数据可能超出月份范围')
        if overall['orders'] != 0:
            notes.append(f"订单数差异: {overall['orders']:+}")
        if abs(overall['revenue']) >= 0.01:
            notes.append(f"销售额差异: {overall['revenue']:+.2f}")
        if overall['quantity'] != 0:
            notes.append(f"销量差异: {overall['quantity']:+}")

        if is_valid:
            notes.insert(0, '✓ 数据验证通过：周报汇总与月报数据一致')
        elif spills_over:
            notes.insert(0, '⚠ 因跨月周导致数据差异，属于正常情况')

        logger.info(f"Month validation {year}-{month:02d} ({refinement_mode}): valid={is_valid}")
        return {
            'period': {
                'year': year,
                'month': month,
                'month_name': MONTH_NAMES[month - 1],
                'start_date': month_start.isoformat(),
                'end_date': month_end.isoformat(),
                'refinement_mode': refinement_mode,
            },
            'weeks': week_rows,
            'weekly_sum': weekly_sum,
            'monthly': monthly,
            'difference': difference,
            'is_valid': is_valid,
            'notes': notes,
        }
