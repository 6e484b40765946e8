# salesdash/data/connectors.py
import logging
from typing import List, Dict, Any, Optional
import pandas as pd

logger = logging.getLogger(__name__)


class ClickHouseConnector:
    """ClickHouse数据库连接器"""

    def __init__(self, config=None):
        if config is None:
            from config.settings import get_settings
            config = get_settings().clickhouse
        self.settings = config
        self._client = None
        self._connection_failed = False

    @property
    def client(self):
        """获取客户端实例（懒加载）"""
        if self._client is None and not self._connection_failed:
            try:
                import clickhouse_connect
                # 分页查询在多个线程中并发执行，不能共用会话
                self._client = clickhouse_connect.get_client(
                    host=self.settings.host,
                    port=self.settings.port,
                    username=self.settings.user,
                    password=self.settings.password,
                    database=self.settings.database,
                    secure=False,
                    autogenerate_session_id=False
                )
                logger.info(f"Connected to ClickHouse: {self.settings.host}:{self.settings.port}")
            except Exception as e:
                logger.error(f"Failed to connect to ClickHouse: {e}")
                self._connection_failed = True
                raise ConnectionError(f"Cannot connect to ClickHouse: {e}") from e

        if self._connection_failed:
            raise ConnectionError("ClickHouse connection has failed previously")

        return self._client

    def execute(self, query: str, params: Optional[Dict[str, Any]] = None) -> List[tuple]:
        """执行查询"""
        try:
            logger.debug(f"Executing query: {query[:100]}...")
            result = self.client.query(query, parameters=params or {})
            return result.result_rows
        except Exception as e:
            logger.error(f"Query execution failed: {e}")
            raise

    def execute_df(self, query: str, params: Optional[Dict[str, Any]] = None) -> pd.DataFrame:
        """执行查询并返回DataFrame"""
        try:
            logger.debug(f"Executing query: {query[:100]}...")
            return self.client.query_df(query, parameters=params or {})
        except Exception as e:
            logger.error(f"Query execution failed: {e}")
            raise

    def close(self):
        """关闭连接"""
        if self._client:
            self._client.close()
            self._client = None
            self._connection_failed = False
            logger.info("ClickHouse connection closed")
