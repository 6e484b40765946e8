import math
from datetime import datetime, timezone
from typing import List, Optional, Dict, Any
from dataclasses import dataclass, field


def parse_amount(value: Any) -> float:
    """解析金额字段，无法解析时返回0"""
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(amount) or math.isinf(amount):
        return 0.0
    return amount


def parse_quantity(value: Any) -> int:
    """解析数量字段，无法解析时返回0"""
    amount = parse_amount(value)
    return int(amount)


def parse_timestamp(value: Any) -> datetime:
    """解析订单创建时间，无时区信息时按UTC处理"""
    if isinstance(value, datetime):
        parsed = value
    elif hasattr(value, 'to_pydatetime'):
        parsed = value.to_pydatetime()
    else:
        text = str(value).strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        parsed = datetime.fromisoformat(text)

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    text = str(value).strip()
    return text or None


@dataclass
class LineItem:
    """订单商品模型"""
    sku: Optional[str]
    name: Optional[str]
    quantity: int
    total: float

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "LineItem":
        return cls(
            sku=_optional_text(record.get('sku')),
            name=_optional_text(record.get('name')),
            quantity=parse_quantity(record.get('quantity')),
            total=parse_amount(record.get('total'))
        )


@dataclass
class Order:
    """订单模型（包含订单商品）"""
    id: str
    site_id: str
    site_name: str
    created_at: datetime
    total: float
    status: str = 'completed'
    billing_country: Optional[str] = None
    shipping_country: Optional[str] = None
    items: List[LineItem] = field(default_factory=list)

    @property
    def dedup_key(self) -> tuple:
        """订单去重键（订单号仅在站点内唯一）"""
        return (self.site_id, self.id)

    @property
    def country(self) -> str:
        return self.shipping_country or self.billing_country or 'Unknown'

    @property
    def created_date(self) -> str:
        """UTC日历日期 YYYY-MM-DD"""
        return self.created_at.strftime('%Y-%m-%d')

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Order":
        items = [
            item if isinstance(item, LineItem) else LineItem.from_record(item)
            for item in (record.get('items') or [])
        ]
        return cls(
            id=str(record.get('id')),
            site_id=str(record.get('site_id') or ''),
            site_name=_optional_text(record.get('site_name')) or '',
            created_at=parse_timestamp(record.get('created_at')),
            total=parse_amount(record.get('total')),
            status=_optional_text(record.get('status')) or 'completed',
            billing_country=_optional_text(record.get('billing_country')),
            shipping_country=_optional_text(record.get('shipping_country')),
            items=items
        )
