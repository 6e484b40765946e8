"""报表周期计算

把报表请求（周/月/季度）解析为当期、上期以及去年同期的UTC时间范围。
周报只有当期与上期；月报、季报额外包含去年同期。
"""
import logging
import math
import calendar
from datetime import date, datetime, time, timedelta, timezone
from typing import Dict, Any, List, Optional, Tuple
from dataclasses import dataclass

logger = logging.getLogger(__name__)

UNIT_WEEK = 'week'
UNIT_MONTH = 'month'
UNIT_QUARTER = 'quarter'
REPORT_UNITS = (UNIT_WEEK, UNIT_MONTH, UNIT_QUARTER)

REFINEMENT_FULL = 'full'
REFINEMENT_CLIPPED = 'clipped-to-month'
# 兼容旧前端传入的 "monthly"
REFINEMENT_ALIASES = {'monthly': REFINEMENT_CLIPPED}
REFINEMENT_MODES = (REFINEMENT_FULL, REFINEMENT_CLIPPED)

PERIOD_CURRENT = 'current'
PERIOD_PREVIOUS = 'previous'
PERIOD_PREVIOUS_YEAR = 'previous_year'

_END_OF_DAY = time(23, 59, 59, 999000)


class ReportRequestError(ValueError):
    """报表请求参数错误"""


def format_instant(value: datetime) -> str:
    """格式化为带毫秒的ISO-8601 UTC时间，如 2025-03-03T00:00:00.000Z"""
    value = value.astimezone(timezone.utc)
    return value.strftime('%Y-%m-%dT%H:%M:%S.') + f"{value.microsecond // 1000:03d}Z"


def start_of_day(day: date) -> datetime:
    return datetime.combine(day, time(0, 0), tzinfo=timezone.utc)


def end_of_day(day: date) -> datetime:
    return datetime.combine(day, _END_OF_DAY, tzinfo=timezone.utc)


def iso_week(day: date) -> Tuple[int, int]:
    """ISO-8601 周年与周数（年末日期可能属于下一年第1周）"""
    iso_year, week, _ = day.isocalendar()
    return iso_year, week


def week_bounds(day: date) -> Tuple[date, date]:
    """所在ISO周的周一与周日"""
    monday = day - timedelta(days=day.weekday())
    return monday, monday + timedelta(days=6)


def month_bounds(year: int, month: int) -> Tuple[date, date]:
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def clip_to_month(start: date, end: date) -> Tuple[date, date]:
    """将周范围截断到周起始日所在月份内"""
    month_start, month_end = month_bounds(start.year, start.month)
    return max(start, month_start), min(end, month_end)


def previous_month(year: int, month: int) -> Tuple[int, int]:
    if month == 1:
        return year - 1, 12
    return year, month - 1


def previous_quarter(year: int, quarter: int) -> Tuple[int, int]:
    if quarter == 1:
        return year - 1, 4
    return year, quarter - 1


def quarter_months(quarter: int) -> List[int]:
    """季度包含的月份，如 Q1 -> [1, 2, 3]"""
    start_month = (quarter - 1) * 3 + 1
    return [start_month, start_month + 1, start_month + 2]


def quarter_label(year: int, quarter: int) -> str:
    return f"{year}年 Q{quarter}"


def current_quarter(today: Optional[date] = None) -> Tuple[int, int]:
    today = today or datetime.now(timezone.utc).date()
    return today.year, math.ceil(today.month / 3)


def default_quarter(today: Optional[date] = None) -> Tuple[int, int]:
    """默认选中上一个完整季度"""
    return previous_quarter(*current_quarter(today))


def is_future_quarter(year: int, quarter: int, today: Optional[date] = None) -> bool:
    current_year, current_q = current_quarter(today)
    return (year, quarter) > (current_year, current_q)


@dataclass(frozen=True)
class Period:
    """报表周期（闭区间）"""
    year: int
    unit: str
    index: int
    start: datetime
    end: datetime

    @property
    def start_date(self) -> str:
        return self.start.strftime('%Y-%m-%d')

    @property
    def end_date(self) -> str:
        return self.end.strftime('%Y-%m-%d')

    @property
    def days(self) -> int:
        return (self.end.date() - self.start.date()).days + 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            'year': self.year,
            'unit': self.unit,
            self.unit: self.index,
            'start': format_instant(self.start),
            'end': format_instant(self.end),
            'start_date': self.start_date,
            'end_date': self.end_date,
        }


@dataclass(frozen=True)
class ReportPeriods:
    """当期、上期与可选的去年同期"""
    current: Period
    previous: Period
    previous_year: Optional[Period] = None

    @property
    def has_year_over_year(self) -> bool:
        return self.previous_year is not None

    def named(self) -> List[Tuple[str, Period]]:
        periods = [(PERIOD_CURRENT, self.current), (PERIOD_PREVIOUS, self.previous)]
        if self.previous_year is not None:
            periods.append((PERIOD_PREVIOUS_YEAR, self.previous_year))
        return periods

    def to_dict(self) -> Dict[str, Any]:
        return {name: period.to_dict() for name, period in self.named()}


@dataclass
class ReportRequest:
    """报表请求"""
    year: int
    unit: str = UNIT_WEEK
    week: Optional[int] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    refinement_mode: str = REFINEMENT_FULL
    month: Optional[int] = None
    quarter: Optional[int] = None

    @property
    def period_index(self) -> Optional[int]:
        return {UNIT_WEEK: self.week, UNIT_MONTH: self.month, UNIT_QUARTER: self.quarter}.get(self.unit)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReportRequest":
        if data.get('year') is None:
            raise ReportRequestError("year is required")
        fields = ('year', 'unit', 'week', 'start_date', 'end_date', 'refinement_mode', 'month', 'quarter')
        values = {key: data[key] for key in fields if data.get(key) is not None}
        return cls(**values)


def _parse_day(value: Optional[str], field_name: str) -> date:
    if not value:
        raise ReportRequestError(f"{field_name} is required for week reports")
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        raise ReportRequestError(f"{field_name} must be a YYYY-MM-DD date, got {value!r}") from None


def _require_int(value: Any, field_name: str, low: int, high: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ReportRequestError(f"{field_name} must be an integer")
    if value < low or value > high:
        raise ReportRequestError(f"{field_name} must be between {low} and {high}, got {value}")
    return value


def validate_request(request: ReportRequest) -> ReportRequest:
    """校验请求参数，返回规范化后的请求（在任何数据查询之前调用）"""
    if request.unit not in REPORT_UNITS:
        raise ReportRequestError(f"unit must be one of {', '.join(REPORT_UNITS)}, got {request.unit!r}")

    _require_int(request.year, 'year', 1970, 9999)
    mode = REFINEMENT_ALIASES.get(request.refinement_mode, request.refinement_mode)
    if mode not in REFINEMENT_MODES:
        raise ReportRequestError(f"refinement_mode must be one of {', '.join(REFINEMENT_MODES)}")
    request.refinement_mode = mode

    if request.unit == UNIT_WEEK:
        _require_int(request.week, 'week', 1, 53)
        start = _parse_day(request.start_date, 'start_date')
        end = _parse_day(request.end_date, 'end_date')
        if end < start:
            raise ReportRequestError("end_date must not be earlier than start_date")
    elif request.unit == UNIT_MONTH:
        _require_int(request.month, 'month', 1, 12)
    else:
        _require_int(request.quarter, 'quarter', 1, 4)

    return request


def _day_period(year: int, unit: str, index: int, start: date, end: date) -> Period:
    return Period(year=year, unit=unit, index=index, start=start_of_day(start), end=end_of_day(end))


def month_period(year: int, month: int) -> Period:
    first, last = month_bounds(year, month)
    return _day_period(year, UNIT_MONTH, month, first, last)


def quarter_period(year: int, quarter: int) -> Period:
    if quarter < 1 or quarter > 4:
        raise ReportRequestError("quarter must be between 1 and 4")
    months = quarter_months(quarter)
    first, _ = month_bounds(year, months[0])
    _, last = month_bounds(year, months[-1])
    return _day_period(year, UNIT_QUARTER, quarter, first, last)


def week_periods(request: ReportRequest) -> ReportPeriods:
    """周报：调用方给定周范围，上期为整体前移7天"""
    start = _parse_day(request.start_date, 'start_date')
    end = _parse_day(request.end_date, 'end_date')
    clipped = request.refinement_mode == REFINEMENT_CLIPPED

    current_start, current_end = clip_to_month(start, end) if clipped else (start, end)
    current = _day_period(request.year, UNIT_WEEK, request.week, current_start, current_end)

    previous_start = start - timedelta(days=7)
    previous_end = previous_start + timedelta(days=6)
    if clipped:
        previous_start, previous_end = clip_to_month(previous_start, previous_end)
    previous_iso_year, previous_week = iso_week(start - timedelta(days=7))
    previous = _day_period(previous_iso_year, UNIT_WEEK, previous_week, previous_start, previous_end)

    return ReportPeriods(current=current, previous=previous)


def resolve_periods(request: ReportRequest) -> ReportPeriods:
    """解析请求对应的全部对比周期"""
    validate_request(request)

    if request.unit == UNIT_WEEK:
        periods = week_periods(request)
    elif request.unit == UNIT_MONTH:
        periods = ReportPeriods(
            current=month_period(request.year, request.month),
            previous=month_period(*previous_month(request.year, request.month)),
            previous_year=month_period(request.year - 1, request.month)
        )
    else:
        periods = ReportPeriods(
            current=quarter_period(request.year, request.quarter),
            previous=quarter_period(*previous_quarter(request.year, request.quarter)),
            previous_year=quarter_period(request.year - 1, request.quarter)
        )

    logger.debug(f"Resolved {request.unit} periods: {periods.to_dict()}")
    return periods


@dataclass(frozen=True)
class MonthWeek:
    """与某月有交集的ISO周（周一至周日）"""
    week: int
    start: date
    end: date
    is_partial: bool

    def effective_range(self, month_start: date, month_end: date, refinement_mode: str) -> Tuple[date, date]:
        """统计使用的日期范围：full 为整周，clipped-to-month 截断到月份边界"""
        if refinement_mode == REFINEMENT_CLIPPED:
            return max(self.start, month_start), min(self.end, month_end)
        return self.start, self.end


def weeks_in_month(year: int, month: int) -> List[MonthWeek]:
    """某月涉及的全部ISO周，跨月的周标记为 is_partial"""
    month_start, month_end = month_bounds(year, month)
    monday, _ = week_bounds(month_start)

    weeks = []
    while monday <= month_end:
        sunday = monday + timedelta(days=6)
        weeks.append(MonthWeek(
            week=iso_week(monday)[1],
            start=monday,
            end=sunday,
            is_partial=monday < month_start or sunday > month_end
        ))
        monday += timedelta(days=7)
    return weeks


def validate_month_request(year: Any, month: Any, refinement_mode: str = REFINEMENT_FULL) -> str:
    """校验月度核对参数，返回规范化后的周范围模式"""
    _require_int(year, 'year', 1970, 9999)
    _require_int(month, 'month', 1, 12)
    mode = REFINEMENT_ALIASES.get(refinement_mode, refinement_mode)
    if mode not in REFINEMENT_MODES:
        raise ReportRequestError(f"refinement_mode must be one of {', '.join(REFINEMENT_MODES)}")
    return mode
