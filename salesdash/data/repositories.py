import math
import asyncio
import logging
from typing import List, Optional, Dict, Tuple
from datetime import datetime
import pandas as pd

from .connectors import ClickHouseConnector
from .models import Order, LineItem

logger = logging.getLogger(__name__)


class OrderFetchError(RuntimeError):
    """订单数据获取失败（整个报表请求失败）"""


class BaseRepository:
    """基础数据仓库类"""

    def __init__(self, db: Optional[ClickHouseConnector] = None, report_config=None):
        if report_config is None:
            from config.settings import get_settings
            report_config = get_settings().report
        self.db = db or ClickHouseConnector()
        self.config = report_config


class OrderRepository(BaseRepository):
    """订单数据仓库"""

    def _where(self) -> str:
        return """
        WHERE created_at >= {start:DateTime64(3, 'UTC')}
            AND created_at <= {end:DateTime64(3, 'UTC')}
            AND status IN {statuses:Array(String)}
        """

    def _params(self, start: datetime, end: datetime) -> Dict:
        return {
            'start': start,
            'end': end,
            'statuses': list(self.config.accepted_statuses)
        }

    def count_orders(self, start: datetime, end: datetime) -> int:
        """统计周期内符合状态的订单数"""
        query = f"SELECT count() FROM {self.config.orders_table}" + self._where()
        rows = self.db.execute(query, self._params(start, end))
        return int(rows[0][0]) if rows else 0

    def get_order_page(self, start: datetime, end: datetime, offset: int) -> pd.DataFrame:
        """按创建时间分页获取订单"""
        query = f"""
        SELECT
            id,
            site_id,
            site_name,
            created_at,
            total,
            status,
            billing_country,
            shipping_country
        FROM {self.config.orders_table}
        """ + self._where() + """
        ORDER BY created_at, site_id, id
        LIMIT {limit:UInt32} OFFSET {offset:UInt32}
        """
        params = self._params(start, end)
        params.update({'limit': self.config.page_size, 'offset': offset})
        return self.db.execute_df(query, params)

    def get_order_items(self, orders: pd.DataFrame) -> pd.DataFrame:
        """获取一页订单的全部订单商品"""
        query = f"""
        SELECT
            site_id,
            order_id,
            sku,
            name,
            quantity,
            total
        FROM {self.config.order_items_table}
        WHERE order_id IN {{order_ids:Array(String)}}
            AND site_id IN {{site_ids:Array(String)}}
        """
        params = {
            'order_ids': orders['id'].astype(str).unique().tolist(),
            'site_ids': orders['site_id'].astype(str).unique().tolist()
        }
        return self.db.execute_df(query, params)

    @staticmethod
    def build_orders(orders: pd.DataFrame, items: pd.DataFrame) -> List[Order]:
        """订单行与商品行组装为 Order 对象"""
        grouped: Dict[Tuple[str, str], List[LineItem]] = {}
        if not items.empty:
            items = items.assign(site_id=items['site_id'].astype(str), order_id=items['order_id'].astype(str))
            for (site_id, order_id), group in items.groupby(['site_id', 'order_id'], sort=False):
                grouped[(site_id, order_id)] = [
                    LineItem.from_record(record) for record in group.to_dict('records')
                ]

        result = []
        for record in orders.to_dict('records'):
            order = Order.from_record(record)
            order.items = grouped.get(order.dedup_key, [])
            result.append(order)
        return result

    async def _fetch_page(self, start: datetime, end: datetime, offset: int,
                          semaphore: asyncio.Semaphore) -> List[Order]:
        async with semaphore:
            orders = await asyncio.to_thread(self.get_order_page, start, end, offset)
            if orders.empty:
                return []
            items = await asyncio.to_thread(self.get_order_items, orders)
        return self.build_orders(orders, items)

    async def fetch_orders(self, start: datetime, end: datetime) -> List[Order]:
        """获取 [start, end] 内的订单（含订单商品），分页并发受限"""
        try:
            total = await asyncio.to_thread(self.count_orders, start, end)
            pages = math.ceil(total / self.config.page_size)
            logger.info(f"Fetching {total} orders in {pages} pages from {start} to {end}")

            semaphore = asyncio.Semaphore(self.config.max_concurrent_pages)
            results = await asyncio.gather(*[
                self._fetch_page(start, end, page * self.config.page_size, semaphore)
                for page in range(pages)
            ])
        except Exception as e:
            logger.error(f"Failed to fetch orders from {start} to {end}: {e}")
            raise OrderFetchError(f"Failed to fetch orders from {start} to {end}: {e}") from e

        return [order for page in results for order in page]
