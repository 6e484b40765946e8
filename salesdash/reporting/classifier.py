"""站点/品牌/SPU分类与销量换算

所有查表函数都是配置对象的纯函数，替换 ClassificationConfig 即可更换站点表、
SPU映射与换算规则，不影响聚合与对比逻辑。
"""
import re
import logging
from functools import lru_cache
from typing import Dict, Any, List, Optional
from dataclasses import dataclass, field

from ..data.models import LineItem

logger = logging.getLogger(__name__)

RETAIL = 'retail'
WHOLESALE = 'wholesale'

BRAND_PRIMARY = 'primary'
BRAND_PARTNER = 'partner'
BRAND_OTHER = 'other'

SPU_MODES = ('series', 'full', 'before-comma', 'sku-prefix', 'custom')
UNKNOWN_GROUP = 'Unknown'
WILDCARD = '*'
GROUP_CACHE_SIZE = 4096

_UNICODE_SPACES = re.compile(r"[\s\u00A0\u1680\u2000-\u200B\u202F\u205F\u3000\uFEFF]")
_SKU_SEPARATORS = ('-', '_', ' ', '.')

DEFAULT_NAME_MAPPING = {
    # Surprise Box 系列及多语言版本统一映射
    'Surprise Box': 'Surprise Box',
    'Surprise Box Set': 'Surprise Box',
    'SurpriseBox': 'Surprise Box',
    'SurpriseBoxSet': 'Surprise Box',
    'Caja Sorpresa': 'Surprise Box',
    'Überraschungsbox': 'Surprise Box',
    'Boîte Surprise': 'Surprise Box',
    'Coffret Surprise': 'Surprise Box',
    'Caixa Surpresa': 'Surprise Box',
}


def normalize_product_name(name: Optional[str]) -> str:
    """统一Unicode空格并合并连续空格"""
    if not name:
        return ''
    text = _UNICODE_SPACES.sub(' ', name.strip())
    return re.sub(r'\s+', ' ', text).strip()


def extract_sku_prefix(sku: Optional[str], prefix_length: Optional[int] = None) -> str:
    """SKU前缀：指定长度截取，否则取第一个分隔符之前的部分"""
    if not sku:
        return UNKNOWN_GROUP
    sku = sku.strip()
    if prefix_length and prefix_length > 0:
        return sku[:prefix_length].upper()

    cut = len(sku)
    for sep in _SKU_SEPARATORS:
        index = sku.find(sep)
        if 0 < index < cut:
            cut = index
    return sku[:cut].upper()


def _before(text: str, sep: str) -> Optional[str]:
    index = text.find(sep)
    if index > 0:
        return text[:index].strip()
    return None


def _series_name(text: str) -> str:
    return _before(text, '-') or _before(text, ',') or text


@dataclass
class ClassificationConfig:
    """分类表配置"""
    retail_sites: List[str] = field(default_factory=lambda: [
        'store-us', 'store-es', 'store-co', 'store-de', 'store-glo', 'store-uk', 'store-fr'
    ])
    wholesale_sites: List[str] = field(default_factory=lambda: [
        'store-co-wholesale', 'store-wholesale'
    ])
    primary_brand_sites: List[str] = field(default_factory=lambda: ['store-'])
    partner_brand_sites: List[str] = field(default_factory=lambda: ['partner-'])
    excluded_sites: List[str] = field(default_factory=lambda: ['test', 'staging'])
    spu_mode: str = 'series'
    sku_prefix_length: Optional[int] = None
    custom_separator: Optional[str] = None
    custom_pattern: Optional[str] = None
    name_mapping: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_NAME_MAPPING))
    special_group: str = 'Surprise Box'
    multiplier_rules: Dict[str, float] = field(default_factory=lambda: {
        'Surprise Box@retail': 6,
        '*@wholesale': 10,
    })

    def __post_init__(self):
        if self.spu_mode not in SPU_MODES:
            raise ValueError(f"Unknown SPU extraction mode: {self.spu_mode}")
        for key, value in self.multiplier_rules.items():
            if '@' not in key:
                raise ValueError(f"Multiplier rule key must look like 'group@channel', got {key!r}")
            if float(value) <= 0:
                raise ValueError(f"Multiplier for {key!r} must be positive, got {value}")

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ClassificationConfig":
        if not data:
            return cls()
        known = set(cls.__dataclass_fields__)
        unknown = set(data) - known
        if unknown:
            logger.warning(f"Ignoring unknown classification keys: {sorted(unknown)}")
        return cls(**{k: v for k, v in data.items() if k in known})


def _matches(site_name: str, entries: List[str]) -> bool:
    return any(site_name == entry or entry in site_name for entry in entries)


class Classifier:
    """订单与订单商品的业务维度分类"""

    def __init__(self, config: Optional[ClassificationConfig] = None):
        self.config = config or ClassificationConfig()
        cfg = self.config
        self._retail = [s.lower().strip() for s in cfg.retail_sites]
        self._wholesale = [s.lower().strip() for s in cfg.wholesale_sites]
        self._primary = [s.lower().strip() for s in cfg.primary_brand_sites]
        self._partner = [s.lower().strip() for s in cfg.partner_brand_sites]
        self._excluded = [s.lower().strip() for s in cfg.excluded_sites]
        self._pattern = re.compile(cfg.custom_pattern) if cfg.custom_pattern else None

        # 映射表预先规范化，部分匹配时按key长度降序
        self._mapping = [
            (normalize_product_name(key), value) for key, value in cfg.name_mapping.items()
        ]
        self._mapping_by_length = sorted(self._mapping, key=lambda kv: len(kv[0]), reverse=True)
        # 同一商品名/SKU在一次报表中会被多个切片反复分类
        self._group_of = lru_cache(maxsize=GROUP_CACHE_SIZE)(self._extract_group)

    def channel_type(self, site_name: Optional[str]) -> Optional[str]:
        """站点类型：retail / wholesale / None（未知站点）"""
        if not site_name:
            return None
        name = site_name.lower().strip()
        # 批发站点名通常包含零售站点名，先判断批发
        if _matches(name, self._wholesale):
            return WHOLESALE
        if _matches(name, self._retail):
            return RETAIL
        return None

    def brand_group(self, site_name: Optional[str]) -> Optional[str]:
        """品牌分组：primary / partner / other；排除的站点返回 None"""
        name = (site_name or '').lower().strip()
        if not name or _matches(name, self._excluded):
            return None
        if _matches(name, self._primary):
            return BRAND_PRIMARY
        if _matches(name, self._partner):
            return BRAND_PARTNER
        return BRAND_OTHER

    def product_group(self, item: LineItem) -> str:
        """从商品名称/SKU提取SPU"""
        return self._group_of(item.name, item.sku)

    def _extract_group(self, raw_name: Optional[str], sku: Optional[str]) -> str:
        name = normalize_product_name(raw_name or UNKNOWN_GROUP)
        if not name:
            return UNKNOWN_GROUP

        mapped = self._lookup_mapping(name)
        if mapped is not None:
            return mapped

        mode = self.config.spu_mode
        if mode == 'series':
            return _series_name(name)
        if mode == 'before-comma':
            return _before(name, ',') or name
        if mode == 'sku-prefix':
            if sku:
                return extract_sku_prefix(sku, self.config.sku_prefix_length)
            return _before(name, '-') or name
        if mode == 'custom':
            if self.config.custom_separator:
                head = _before(name, self.config.custom_separator)
                if head:
                    return head
            if self._pattern:
                match = self._pattern.search(name)
                if match and match.groups() and match.group(1):
                    return match.group(1).strip()
            return name
        return name

    def _lookup_mapping(self, name: str) -> Optional[str]:
        if not self._mapping:
            return None
        for key, value in self._mapping:
            if key == name:
                return value
        lowered = name.lower()
        for key, value in self._mapping:
            if key.lower() == lowered:
                return value
        for key, value in self._mapping_by_length:
            if key and key.lower() in lowered:
                return value
        return None

    def is_special_group(self, group: str) -> bool:
        return group == self.config.special_group

    def quantity_multiplier(self, group: str, channel: Optional[str]) -> float:
        """换算倍数：group@channel > group@* > *@channel > 1"""
        if channel is None:
            return 1
        rules = self.config.multiplier_rules
        for key in (f"{group}@{channel}", f"{group}@{WILDCARD}", f"{WILDCARD}@{channel}"):
            if key in rules:
                return rules[key]
        return 1

    def converted_quantity(self, item: LineItem, channel: Optional[str]) -> float:
        """按订单自身站点类型换算商品销量"""
        group = self.product_group(item)
        return item.quantity * self.quantity_multiplier(group, channel)
