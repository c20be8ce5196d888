"""
Шаблоны сообщений по типам изменений.

HTML-подмножество Telegram: <b> и <a href>. Пользовательский текст
(название, спонсор, токен) экранируется.
"""

import html
import math
from datetime import datetime
from typing import Any, Dict, Optional, Union

from earn_notifier.models import ChangeType, ListingType, parse_datetime, utcnow
from earn_notifier.regions import GLOBAL_REGION, GLOBE, normalize_region, region_display_name, region_flag

TYPE_GLYPHS = {
    ListingType.PROJECT.value: '💼',
    ListingType.BOUNTY.value: '⚡',
}

CTA_TEXT = 'View on Superteam Earn'


class UnknownChangeTypeError(ValueError):
    """Тип изменения без шаблона."""


def _esc(value: Any) -> str:
    return html.escape(str(value), quote=False)


def format_amount(value: Optional[float]) -> str:
    """1500.0 → '1,500', 99.5 → '99.50'."""
    if value is None:
        return 'N/A'
    value = float(value)
    if value.is_integer():
        return f"{value:,.0f}"
    return f"{value:,.2f}"


def format_payout(payload: Dict[str, Any]) -> str:
    """Сумма: фиксированная или диапазон 'min ~ max'."""
    compensation = str(payload.get('compensation_type') or 'fixed').lower()
    if compensation == 'fixed':
        return format_amount(payload.get('payout'))

    low = payload.get('min_reward_ask')
    high = payload.get('max_reward_ask')
    if low is not None and high is not None:
        return f"{format_amount(low)} ~ {format_amount(high)}"
    if low is not None:
        return f"{format_amount(low)}+"
    if high is not None:
        return f"up to {format_amount(high)}"
    return 'Variable'


def format_skills(skills) -> str:
    if not skills:
        return ' · N/A'
    return '\n'.join(f" · {_esc(str(skill).replace('_', ' ').capitalize())}" for skill in skills)


def format_time_left(deadline: Optional[datetime], now: datetime) -> str:
    """'Due in N hour(s)' до суток (с округлением вверх), дальше 'Due in N day(s)'."""
    if deadline is None:
        return 'No deadline'

    seconds = (deadline - now).total_seconds()
    if seconds <= 0:
        return 'Expired'

    hours = seconds / 3600
    if hours < 24:
        count = max(1, math.ceil(hours))
        return f"Due in {count} hour{'s' if count != 1 else ''}"

    days = int(hours // 24)
    return f"Due in {days} day{'s' if days != 1 else ''}"


def format_date(value: Optional[datetime]) -> str:
    if value is None:
        return 'N/A'
    return value.strftime('%b %d, %Y')


def format_region(region: Optional[str]) -> str:
    return f"{_esc(region_display_name(region))} {region_flag(region)}"


def format_region_line(region: Optional[str]) -> str:
    if normalize_region(region) == GLOBAL_REGION:
        return f"Available Worldwide {GLOBE}"
    return f"Regional Listing, available for {format_region(region)}"


def _type_name(payload: Dict[str, Any]) -> str:
    return str(payload.get('type') or ListingType.BOUNTY.value).lower()


def _title_link(payload: Dict[str, Any]) -> str:
    link = html.escape(payload.get('link') or '', quote=True)
    return f'<a href="{link}"><b>{_esc(payload.get("name") or "")}</b></a>'


def _details(payload: Dict[str, Any], now: datetime) -> str:
    """Общая часть: сумма, навыки, дедлайн, регион, ссылка."""
    token = _esc(payload.get('token') or '')
    link = html.escape(payload.get('link') or '', quote=True)
    deadline = parse_datetime(payload.get('deadline'))

    amount = ' '.join(part for part in (format_payout(payload), token) if part)

    return (
        f"<b>{amount}</b>\n\n"
        f"Required Skills:\n{format_skills(payload.get('skills_needed'))}\n\n"
        f"⏳ {format_time_left(deadline, now)}\n\n"
        f"{format_region_line(payload.get('region'))}\n\n"
        f'👉 <a href="{link}">{CTA_TEXT}</a>'
    )


def _render_new_listing(payload: Dict[str, Any], now: datetime) -> str:
    type_name = _type_name(payload)
    glyph = TYPE_GLYPHS.get(type_name, TYPE_GLYPHS[ListingType.BOUNTY.value])
    return (
        f"{glyph} <b>{type_name.capitalize()}</b> by <b>{_esc(payload.get('sponsor_name') or '')}</b>\n\n"
        f"{_title_link(payload)}\n\n"
        f"{_details(payload, now)}"
    )


def _render_region_updated(payload: Dict[str, Any], now: datetime) -> str:
    type_name = _type_name(payload)
    glyph = TYPE_GLYPHS.get(type_name, TYPE_GLYPHS[ListingType.BOUNTY.value])
    return (
        f"📍 The region for a {type_name} you might be interested in has been updated!\n\n"
        f"{glyph} {_title_link(payload)} by <b>{_esc(payload.get('sponsor_name') or '')}</b>\n\n"
        f"<b>Old Region:</b> {format_region(payload.get('old_region'))}\n"
        f"<b>New Region:</b> {format_region(payload.get('region'))}\n\n"
        f"{_details(payload, now)}"
    )


def _render_deadline_updated(payload: Dict[str, Any], now: datetime) -> str:
    type_name = _type_name(payload)
    glyph = TYPE_GLYPHS.get(type_name, TYPE_GLYPHS[ListingType.BOUNTY.value])
    return (
        f"⏳ The deadline for a {type_name} you might be interested in has been updated!\n\n"
        f"{glyph} {_title_link(payload)} by <b>{_esc(payload.get('sponsor_name') or '')}</b>\n\n"
        f"<b>Old Deadline:</b> {format_date(parse_datetime(payload.get('old_deadline')))}\n"
        f"<b>New Deadline:</b> {format_date(parse_datetime(payload.get('deadline')))}\n\n"
        f"{_details(payload, now)}"
    )


RENDERERS = {
    ChangeType.NEW_LISTING: _render_new_listing,
    ChangeType.REGION_UPDATED: _render_region_updated,
    ChangeType.DEADLINE_UPDATED: _render_deadline_updated,
}


def render_notification(
    change_type: Union[ChangeType, str],
    payload: Dict[str, Any],
    now: Optional[datetime] = None
) -> str:
    """
    Текст уведомления.

    Raises:
        UnknownChangeTypeError: тип изменения без шаблона
    """
    try:
        change_type = ChangeType(change_type)
    except ValueError:
        raise UnknownChangeTypeError(f"Unknown notification type: {change_type}") from None

    now = now or utcnow()
    return RENDERERS[change_type](payload, now)


__all__ = [
    'render_notification',
    'UnknownChangeTypeError',
    'format_payout',
    'format_time_left',
    'format_region_line',
]
