"""
Change Detection

Snapshot-diff детектор: новые листинги, смена региона, смена дедлайна.
"""

from .change_detector import ChangeDetector, detect_changes

__all__ = ['ChangeDetector', 'detect_changes']
