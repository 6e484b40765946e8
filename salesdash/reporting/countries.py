"""国家代码（ISO 3166-1 alpha-2）到中文名称"""
from typing import Optional

COUNTRY_NAMES = {
    # 北美
    'US': '美国', 'CA': '加拿大', 'MX': '墨西哥',
    # 欧洲
    'GB': '英国', 'DE': '德国', 'FR': '法国', 'IT': '意大利', 'ES': '西班牙',
    'NL': '荷兰', 'BE': '比利时', 'AT': '奥地利', 'CH': '瑞士', 'SE': '瑞典',
    'NO': '挪威', 'DK': '丹麦', 'FI': '芬兰', 'IE': '爱尔兰', 'PT': '葡萄牙',
    'GR': '希腊', 'PL': '波兰', 'CZ': '捷克', 'HU': '匈牙利', 'RO': '罗马尼亚',
    'BG': '保加利亚', 'HR': '克罗地亚', 'SK': '斯洛伐克', 'SI': '斯洛文尼亚',
    'LT': '立陶宛', 'LV': '拉脱维亚', 'EE': '爱沙尼亚', 'LU': '卢森堡',
    'MT': '马耳他', 'CY': '塞浦路斯', 'UA': '乌克兰', 'RU': '俄罗斯',
    # 亚太
    'CN': '中国', 'JP': '日本', 'KR': '韩国', 'TW': '台湾', 'HK': '香港',
    'MO': '澳门', 'SG': '新加坡', 'MY': '马来西亚', 'TH': '泰国', 'VN': '越南',
    'PH': '菲律宾', 'ID': '印度尼西亚', 'IN': '印度', 'AU': '澳大利亚',
    'NZ': '新西兰',
    # 中东
    'AE': '阿联酋', 'SA': '沙特阿拉伯', 'IL': '以色列', 'TR': '土耳其',
    'QA': '卡塔尔', 'KW': '科威特',
    # 南美
    'BR': '巴西', 'AR': '阿根廷', 'CL': '智利', 'CO': '哥伦比亚', 'PE': '秘鲁',
    'UY': '乌拉圭',
    # 非洲
    'ZA': '南非', 'EG': '埃及', 'NG': '尼日利亚', 'MA': '摩洛哥', 'KE': '肯尼亚',
}


def country_name(code: Optional[str]) -> str:
    """中文国家名称，未收录的代码原样返回（大写）"""
    upper = (code or '').upper().strip()
    if not upper or upper == 'UNKNOWN':
        return '未知'
    return COUNTRY_NAMES.get(upper, upper)
