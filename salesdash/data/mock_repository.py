# salesdash/data/mock_repository.py
import numpy as np
from datetime import datetime, timedelta, timezone
from typing import List
import logging

from .models import Order, LineItem

logger = logging.getLogger(__name__)

MOCK_SITES = [
    # (site_id, site_name, 日均订单数, 国家)
    ('1', 'store-us', 40, ['US', 'CA']),
    ('2', 'store-de', 18, ['DE', 'AT', 'CH']),
    ('3', 'store-es', 15, ['ES', 'PT']),
    ('4', 'store-uk', 12, ['GB', 'IE']),
    ('5', 'store-wholesale', 3, ['US', 'DE', 'FR']),
    ('6', 'partner-shop', 8, ['FR', 'IT']),
    ('7', 'outlet-shop', 4, ['NL', 'BE']),
]

MOCK_PRODUCTS = [
    # (sku, name, 单价)
    ('MAT-001-BLK', 'Yoga Mat - Black', 39.9),
    ('MAT-001-BLU', 'Yoga Mat - Blue', 39.9),
    ('BTL-750', 'Water Bottle, 750ml', 19.5),
    ('BAG-TOTE-01', 'Tote Bag - Canvas', 24.0),
    ('SB-2025', 'Surprise Box Set', 59.0),
    ('SOCK-GRIP-M', 'Grip Socks - M', 12.0),
]


class MockOrderRepository:
    """模拟订单数据仓库（用于开发和演示）"""

    def __init__(self):
        logger.info("Using mock order repository (no database connection)")
        self.db = None  # 兼容接口

    def generate_orders(self, start: datetime, end: datetime) -> List[Order]:
        """按周期起点生成确定性的模拟订单"""
        rng = np.random.default_rng(int(start.timestamp()))
        orders = []
        day = start.astimezone(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)

        while day <= end:
            # 周末订单更多
            weekend_factor = 1.3 if day.weekday() >= 5 else 1.0
            for site_id, site_name, daily_orders, countries in MOCK_SITES:
                count = int(rng.poisson(daily_orders * weekend_factor))
                for _ in range(count):
                    created_at = day + timedelta(seconds=int(rng.integers(0, 86400)))
                    if created_at < start or created_at > end:
                        continue

                    items = []
                    for product_index in rng.choice(len(MOCK_PRODUCTS), size=int(rng.integers(1, 4)), replace=False):
                        sku, name, price = MOCK_PRODUCTS[product_index]
                        quantity = int(rng.integers(1, 4))
                        items.append(LineItem(sku=sku, name=name, quantity=quantity, total=round(price * quantity, 2)))

                    orders.append(Order(
                        id=str(len(orders) + 1000),
                        site_id=site_id,
                        site_name=site_name,
                        created_at=created_at,
                        total=round(sum(item.total for item in items), 2),
                        status='completed' if rng.random() < 0.9 else 'processing',
                        billing_country=str(rng.choice(countries)),
                        shipping_country=str(rng.choice(countries)) if rng.random() < 0.95 else None,
                        items=items
                    ))
            day += timedelta(days=1)

        return orders

    async def fetch_orders(self, start: datetime, end: datetime) -> List[Order]:
        """生成 [start, end] 内的模拟订单"""
        orders = self.generate_orders(start, end)
        logger.info(f"Generated {len(orders)} mock orders from {start} to {end}")
        return orders
