"""周期对比与增长率格式化

增长率字符串格式：一位小数，非负数带 "+"，负数不加符号；
明细行带 "%" 后缀，汇总级别不带。
"""
import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Any, List, Optional

from .aggregator import Summary

logger = logging.getLogger(__name__)

ROW_METRICS = ('orders', 'revenue', 'quantity')
SUMMARY_METRICS = (
    ('orders', 'total_orders'),
    ('revenue', 'total_revenue'),
    ('quantity', 'total_quantity'),
    ('avg_order_value', 'avg_order_value'),
)

_ONE_DECIMAL = Decimal('0.1')
_TWO_DECIMALS = Decimal('0.01')


def _to_fixed(value: float, quantum: Decimal = _ONE_DECIMAL) -> str:
    # 按浮点数精确值舍入，与前端 toFixed 一致
    return str(Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP))


def _signed(value: float, text: str) -> str:
    if value >= 0:
        return '+' + text.lstrip('-')
    return text


def format_growth(current: float, previous: float, with_percent: bool = True) -> str:
    """计算增长率并格式化，如 "+12.5%" / "-3.0%" / "0.0%" """
    suffix = '%' if with_percent else ''
    if previous == 0:
        return ('+100.0' if current > 0 else '0.0') + suffix

    growth = (current - previous) / previous * 100
    return _signed(growth, _to_fixed(growth)) + suffix


def diff_percent(actual: float, expected: float) -> str:
    """核对差异百分比，两位小数，如 "+1.25%"；基准为0时返回 "0.00%" 或 "∞" """
    if expected == 0:
        return '0.00%' if actual == 0 else '∞'
    diff = (actual - expected) / expected * 100
    return _signed(diff, _to_fixed(diff, _TWO_DECIMALS)) + '%'


def summary_growth(current: Summary, previous: Summary) -> Dict[str, str]:
    """汇总级增长率（无%后缀）"""
    current_values = current.to_dict()
    previous_values = previous.to_dict()
    return {
        metric: format_growth(current_values[field], previous_values[field], with_percent=False)
        for metric, field in SUMMARY_METRICS
    }


def compare_totals(current: Summary, previous: Summary,
                   previous_year: Optional[Summary] = None) -> Dict[str, Any]:
    """汇总对比块：current / previous / growth（以及去年同期）"""
    result = {
        'current': current.to_dict(),
        'previous': previous.to_dict(),
        'growth': summary_growth(current, previous),
    }
    if previous_year is not None:
        result['previous_year'] = previous_year.to_dict()
        result['year_over_year_growth'] = summary_growth(current, previous_year)
    return result


def _index(rows: Optional[List[Dict[str, Any]]], key: str) -> Dict[Any, Dict[str, Any]]:
    return {row[key]: row for row in (rows or [])}


def merge_rows(current: List[Dict[str, Any]], previous: List[Dict[str, Any]], key: str,
               previous_year: Optional[List[Dict[str, Any]]] = None) -> List[Dict[str, Any]]:
    """按自然键合并当期与对比期明细，缺失的对比行按0处理

    只输出当期出现的键；previous_year 为 None 时不生成同比字段。
    """
    previous_index = _index(previous, key)
    previous_year_index = _index(previous_year, key) if previous_year is not None else None

    merged = []
    for row in current:
        out = dict(row)
        counterpart = previous_index.get(row[key], {})
        for metric in ROW_METRICS:
            value = counterpart.get(metric, 0)
            out[f'previous_{metric}'] = value
            out[f'{metric}_growth'] = format_growth(row.get(metric, 0), value)

        if previous_year_index is not None:
            counterpart = previous_year_index.get(row[key], {})
            for metric in ROW_METRICS:
                value = counterpart.get(metric, 0)
                out[f'previous_year_{metric}'] = value
                out[f'yoy_{metric}_growth'] = format_growth(row.get(metric, 0), value)

        merged.append(out)
    return merged
