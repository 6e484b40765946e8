# config/settings.py
import os
import json
import logging
from typing import Dict, Any, List, Optional
from pathlib import Path
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "SALESDASH_CONFIG_PATH"
PROJECT_ROOT = Path(__file__).parent.parent

# 配置文件中可用的键及默认值，每个键都可以用同名环境变量覆盖
DEFAULT_CONFIG: Dict[str, Any] = {
    "CLICKHOUSE_HOST": "localhost",
    "CLICKHOUSE_PORT": 8123,
    "CLICKHOUSE_DATABASE": "dw",
    "CLICKHOUSE_USER": "default",
    "CLICKHOUSE_PASSWORD": "",
    "LOG_LEVEL": "INFO",
    "LOG_FILE": "logs/sales_report.log",
    "REPORT_CACHE_TTL_SECONDS": 300,
    "REPORT_CACHE_MAX_ENTRIES": 10,
    "ORDER_PAGE_SIZE": 1000,
    "ORDER_MAX_CONCURRENT_PAGES": 5,
    "ORDER_ACCEPTED_STATUSES": ["completed", "processing"],
    "ORDERS_TABLE": "dw.orders",
    "ORDER_ITEMS_TABLE": "dw.order_items",
    "USE_MOCK_DATA": False,
    "CLASSIFICATION": {},
}


@dataclass
class ClickHouseConfig:
    """ClickHouse数据库配置"""
    host: str
    port: int
    database: str
    user: str
    password: str


@dataclass
class AppConfig:
    """应用程序配置"""
    log_level: str
    log_file: str


@dataclass
class ReportConfig:
    """报表配置"""
    cache_ttl_seconds: int = 300
    cache_max_entries: int = 10
    page_size: int = 1000
    max_concurrent_pages: int = 5
    accepted_statuses: List[str] = field(default_factory=lambda: ['completed', 'processing'])
    orders_table: str = "dw.orders"
    order_items_table: str = "dw.order_items"
    use_mock_data: bool = False


def _coerce(raw: str, default: Any) -> Any:
    """按默认值类型转换环境变量字符串"""
    if isinstance(default, bool):
        return raw.strip().lower() in ("1", "true", "yes", "on")
    if isinstance(default, int):
        try:
            return int(raw)
        except ValueError:
            raise ValueError(f"Expected an integer, got {raw!r}") from None
    if isinstance(default, list):
        return [part.strip() for part in raw.split(",") if part.strip()]
    return raw


class Settings:
    """配置管理类：JSON配置文件 + 环境变量覆盖"""

    def __init__(self, config_path: Optional[str] = None, setup_logging: bool = True):
        self._config_path = config_path or self._find_config_file()
        self._config = self._read_config_file()

        self.clickhouse = ClickHouseConfig(
            host=self.get("CLICKHOUSE_HOST"),
            port=self.get("CLICKHOUSE_PORT"),
            database=self.get("CLICKHOUSE_DATABASE"),
            user=self.get("CLICKHOUSE_USER"),
            password=self.get("CLICKHOUSE_PASSWORD")
        )
        self.app = AppConfig(log_level=self.get("LOG_LEVEL"), log_file=self.get("LOG_FILE"))
        self.report = ReportConfig(
            cache_ttl_seconds=self.get("REPORT_CACHE_TTL_SECONDS"),
            cache_max_entries=self.get("REPORT_CACHE_MAX_ENTRIES"),
            page_size=self.get("ORDER_PAGE_SIZE"),
            max_concurrent_pages=self.get("ORDER_MAX_CONCURRENT_PAGES"),
            accepted_statuses=list(self.get("ORDER_ACCEPTED_STATUSES")),
            orders_table=self.get("ORDERS_TABLE"),
            order_items_table=self.get("ORDER_ITEMS_TABLE"),
            use_mock_data=self.get("USE_MOCK_DATA")
        )
        # 分类表只从配置文件读取（结构化数据）
        self.classification: Dict[str, Any] = self._config.get("CLASSIFICATION") or {}

        if setup_logging:
            self._setup_logging()

    @staticmethod
    def _find_config_file() -> str:
        env_path = os.getenv(CONFIG_ENV_VAR)
        if env_path and os.path.exists(env_path):
            return env_path

        candidates = [
            PROJECT_ROOT / "config" / "config.json",
            Path.cwd() / "config" / "config.json",
            Path.home() / ".salesdash" / "config.json"
        ]
        for candidate in candidates:
            if candidate.exists():
                return str(candidate)

        logger.warning(f"No config file found, using defaults (looked in {[str(c) for c in candidates]})")
        return str(candidates[0])

    def _read_config_file(self) -> Dict[str, Any]:
        try:
            with open(self._config_path, "r", encoding="utf-8") as f:
                loaded = json.load(f)
        except FileNotFoundError:
            return dict(DEFAULT_CONFIG)
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON in {self._config_path}: {e}; using defaults")
            return dict(DEFAULT_CONFIG)

        unknown = set(loaded) - set(DEFAULT_CONFIG)
        if unknown:
            logger.warning(f"Ignoring unknown config keys: {sorted(unknown)}")
        logger.info(f"Config loaded from {self._config_path}")
        return {**DEFAULT_CONFIG, **loaded}

    def get(self, key: str) -> Any:
        """读取配置值，同名环境变量优先"""
        default = DEFAULT_CONFIG[key]
        raw = os.getenv(key)
        if raw:
            return _coerce(raw, default)
        return self._config.get(key, default)

    def _setup_logging(self):
        """设置日志（文件 + 控制台）"""
        log_file = Path(self.app.log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)

        logging.basicConfig(
            level=getattr(logging, str(self.app.log_level).upper(), logging.INFO),
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            handlers=[
                logging.FileHandler(log_file, encoding='utf-8'),
                logging.StreamHandler()
            ]
        )

    def has_clickhouse(self) -> bool:
        """是否使用ClickHouse（未开启模拟数据且配置了主机）"""
        return bool(self.clickhouse.host) and not self.report.use_mock_data


# 单例模式
_settings = None


def get_settings() -> Settings:
    """获取全局配置实例"""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
