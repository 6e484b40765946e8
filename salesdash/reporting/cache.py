"""进程内报表结果缓存（固定TTL、固定容量）"""
import time
import logging
import threading
from typing import Any, Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)

CACHE_TTL_SECONDS = 300  # 5 minutes
CACHE_MAX_ENTRIES = 10


class ReportCache:
    """报表缓存

    读取时检查TTL，过期条目直接淘汰；写入时如已满，淘汰最早写入的条目。
    """

    def __init__(self, ttl_seconds: float = CACHE_TTL_SECONDS, max_entries: int = CACHE_MAX_ENTRIES,
                 clock: Callable[[], float] = time.monotonic):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: Dict[str, Tuple[Any, float]] = {}
        self._lock = threading.Lock()

    @staticmethod
    def make_key(kind: str, year: int, index: int) -> str:
        return f"{kind}-{year}-{index}"

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, stored_at = entry
            if self._clock() - stored_at < self.ttl_seconds:
                return value
            del self._entries[key]
            logger.debug(f"Cache entry expired: {key}")
            return None

    def set(self, key: str, value: Any):
        with self._lock:
            self._entries.pop(key, None)
            if len(self._entries) >= self.max_entries:
                oldest = next(iter(self._entries))
                del self._entries[oldest]
                logger.debug(f"Cache full, evicted {oldest}")
            self._entries[key] = (value, self._clock())

    def clear(self) -> int:
        """清空缓存，返回清除的条目数"""
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            return count

    def __len__(self) -> int:
        return len(self._entries)
