"""Counting cash by Vietnamese dong denominations"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Optional

from backend.core.exceptions import BusinessRuleError

DENOMINATIONS = [500000, 200000, 100000, 50000, 20000, 10000, 5000, 2000, 1000, 500, 200]


@dataclass(frozen=True)
class CashCount:
    counts: Dict[int, int]
    total: Decimal
    target: Optional[Decimal] = None

    @property
    def difference(self) -> Optional[Decimal]:
        if self.target is None:
            return None
        return self.total - self.target

    @property
    def state(self) -> Optional[str]:
        difference = self.difference
        if difference is None:
            return None
        if difference == 0:
            return 'match'
        return 'surplus' if difference > 0 else 'shortage'

    def as_dict(self):
        return {
            'counts': {str(k): v for k, v in self.counts.items()},
            'total': self.total,
            'target': self.target,
            'difference': self.difference,
            'state': self.state,
        }


def normalize_counts(counts) -> Dict[int, int]:
    """
    Turn {denomination: count} with string or int keys into an int dict
    covering every denomination. Unknown denominations and negative or
    fractional counts are rejected.
    """
    normalized = {denomination: 0 for denomination in DENOMINATIONS}
    for key, value in (counts or {}).items():
        try:
            denomination = int(key)
        except (TypeError, ValueError):
            raise BusinessRuleError(f'Unknown denomination: {key}')
        if denomination not in normalized:
            raise BusinessRuleError(f'Unknown denomination: {key}')
        if value in (None, ''):
            value = 0
        if isinstance(value, bool) or not isinstance(value, (int, str)):
            raise BusinessRuleError(f'Count for {denomination} must be a whole number')
        try:
            count = int(value)
        except (TypeError, ValueError):
            raise BusinessRuleError(f'Count for {denomination} must be a whole number')
        if count < 0:
            raise BusinessRuleError(f'Count for {denomination} cannot be negative')
        normalized[denomination] = count
    return normalized


def count_cash(counts, target=None) -> CashCount:
    """Sum of denomination x count, compared with an optional target amount"""
    normalized = normalize_counts(counts)
    total = Decimal(sum(denomination * count for denomination, count in normalized.items()))
    if target is not None:
        target = Decimal(str(target))
    return CashCount(normalized, total, target)
