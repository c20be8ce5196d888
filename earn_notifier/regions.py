"""
Регионы и навыки Earn.

Единая точка канонизации строковых enum-значений. Применяется на входе
(чтение листингов и подписчиков), чтобы внутри пайплайна сравнения были
точными по каноническим формам.
"""

import re
from typing import Any, Iterable, Optional, Tuple

GLOBAL_REGION = 'GLOBAL'
ALL_SKILLS = 'ALL'

# Канонический код → отображаемое название
REGIONS = {
    'INDIA': 'India',
    'VIETNAM': 'Vietnam',
    'GERMANY': 'Germany',
    'TURKEY': 'Turkey',
    'MEXICO': 'Mexico',
    'UK': 'UK',
    'UAE': 'UAE',
    'NIGERIA': 'Nigeria',
    'ISRAEL': 'Israel',
    'BRAZIL': 'Brazil',
    'MALAYSIA': 'Malaysia',
    'BALKAN': 'Balkan',
    'PHILIPPINES': 'Philippines',
    'JAPAN': 'Japan',
    'FRANCE': 'France',
    'CANADA': 'Canada',
    'SINGAPORE': 'Singapore',
    'POLAND': 'Poland',
    'KOREA': 'Korea',
    'IRELAND': 'Ireland',
    'UKRAINE': 'Ukraine',
    'ARGENTINA': 'Argentina',
    'USA': 'USA',
    'SPAIN': 'Spain',
}

REGION_FLAGS = {
    'INDIA': '🇮🇳',
    'VIETNAM': '🇻🇳',
    'GERMANY': '🇩🇪',
    'TURKEY': '🇹🇷',
    'MEXICO': '🇲🇽',
    'UK': '🇬🇧',
    'UAE': '🇦🇪',
    'NIGERIA': '🇳🇬',
    'ISRAEL': '🇮🇱',
    'BRAZIL': '🇧🇷',
    'MALAYSIA': '🇲🇾',
    'BALKAN': '🇧🇦',  # Босния и Герцеговина как представитель региона
    'PHILIPPINES': '🇵🇭',
    'JAPAN': '🇯🇵',
    'FRANCE': '🇫🇷',
    'CANADA': '🇨🇦',
    'SINGAPORE': '🇸🇬',
    'POLAND': '🇵🇱',
    'KOREA': '🇰🇷',
    'IRELAND': '🇮🇪',
    'UKRAINE': '🇺🇦',
    'ARGENTINA': '🇦🇷',
    'USA': '🇺🇸',
    'SPAIN': '🇪🇸',
}

GLOBE = '🌍'

SKILLS = (
    'FRONTEND',
    'BACKEND',
    'MOBILE',
    'BLOCKCHAIN',
    'DESIGN',
    'CONTENT',
    'COMMUNITY',
    'GROWTH',
    'OTHER',
    ALL_SKILLS,
)

_SEPARATORS = re.compile(r'[\s\-]+')


def normalize_region(value: Optional[Any]) -> str:
    """
    Канонический код региона.

    "  india " → "INDIA", "United-Kingdom" → "UNITED_KINGDOM", None → "GLOBAL".
    """
    if value is None:
        return GLOBAL_REGION

    text = _SEPARATORS.sub('_', str(value).strip()).upper()
    return text or GLOBAL_REGION


def normalize_skill(value: Any) -> str:
    """Канонический навык: верхний регистр без пробелов по краям."""
    return str(value).strip().upper()


def normalize_skills(values: Optional[Iterable[Any]]) -> Tuple[str, ...]:
    """
    Канонический список навыков без дублей (порядок сохраняется).

    Earn хранит skills в JSON: либо список строк, либо список объектов
    {"skills": "Backend", "subskills": [...]}. Всё остальное → пустой список.
    """
    if not isinstance(values, (list, tuple, set, frozenset)):
        return ()

    result = []
    for item in values:
        if isinstance(item, dict):
            item = item.get('skills')
        if item is None:
            continue
        skill = normalize_skill(item)
        if skill and skill not in result:
            result.append(skill)

    return tuple(result)


def region_display_name(region: Optional[str]) -> str:
    """Название региона для сообщений."""
    code = normalize_region(region)
    if code == GLOBAL_REGION:
        return 'Global'
    return REGIONS.get(code, code.replace('_', ' ').title())


def region_flag(region: Optional[str]) -> str:
    """Эмодзи флага региона (глобус для GLOBAL и неизвестных)."""
    return REGION_FLAGS.get(normalize_region(region), GLOBE)


def is_known_region(region: str) -> bool:
    return region == GLOBAL_REGION or region in REGIONS


__all__ = [
    'GLOBAL_REGION',
    'ALL_SKILLS',
    'REGIONS',
    'REGION_FLAGS',
    'SKILLS',
    'normalize_region',
    'normalize_skill',
    'normalize_skills',
    'region_display_name',
    'region_flag',
    'is_known_region',
]
