"""
Recipient Matching

Фильтры подписчиков: тип, регион, навыки, минимальное вознаграждение.
"""

from .recipient_resolver import RecipientResolver, match_subscriber

__all__ = ['RecipientResolver', 'match_subscriber']
