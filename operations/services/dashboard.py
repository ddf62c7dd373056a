"""
Expense chart data for the stakeholder dashboard.
"""
from __future__ import annotations

import calendar
from collections import OrderedDict
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional

from rest_framework.exceptions import ValidationError

from ..models import Transaction, TransactionCategory

CATEGORY_COLORS = {
    'FOOD': '#22c55e',
    'MEDICAL_SUPPLIES': '#3b82f6',
    'SALARIES': '#f59e0b',
    'OPERATIONAL': '#a855f7',
    'UTILITIES': '#ef4444',
}
DEFAULT_COLOR = '#94a3b8'
UNCATEGORIZED = 'UNCATEGORIZED'

MONTH_NAMES = (
    'Januari', 'Februari', 'Maret', 'April', 'Mei', 'Juni',
    'Juli', 'Agustus', 'September', 'Oktober', 'November', 'Desember',
)

GROUP_BY_CHOICES = ('category', 'month')


def month_bounds(value: str):
    """``YYYY-MM`` to the first and last day of that month."""
    try:
        year, month = (int(p) for p in value.split('-'))
        first = date(year, month, 1)
    except ValueError:
        raise ValidationError({'month': ['Expected YYYY-MM']})
    return first, date(year, month, calendar.monthrange(year, month)[1])


def month_label(key: str) -> str:
    year, month = key.split('-')
    return f'{MONTH_NAMES[int(month) - 1]} {year}'


def _whole(amount: Decimal) -> int:
    return int(amount.quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def expense_chart(group_by: str = 'category', month: Optional[str] = None,
                  category: Optional[str] = None) -> List[Dict]:
    if group_by not in GROUP_BY_CHOICES:
        raise ValidationError({'groupBy': [f'Expected one of {", ".join(GROUP_BY_CHOICES)}']})

    qs = Transaction.objects.filter(transaction_type=Transaction.TYPE_EXPENSE).select_related('category')
    if month:
        first, last = month_bounds(month)
        qs = qs.filter(transaction_date__gte=first, transaction_date__lte=last)
    if category:
        match = TransactionCategory.objects.filter(name=category).first()
        if match:
            qs = qs.filter(category=match)

    totals: Dict[str, Decimal] = OrderedDict()
    if group_by == 'category':
        for t in qs.order_by('created_at', 'transaction_code'):
            key = t.category.name if t.category else UNCATEGORIZED
            totals[key] = totals.get(key, Decimal('0')) + t.amount
        return [
            {'name': key.replace('_', ' '), 'value': _whole(amount), 'fill': CATEGORY_COLORS.get(key, DEFAULT_COLOR)}
            for key, amount in totals.items()
        ]

    for t in qs:
        key = f'{t.transaction_date:%Y-%m}'
        totals[key] = totals.get(key, Decimal('0')) + t.amount
    return [
        {'name': month_label(key), 'value': _whole(totals[key]), 'fill': f'hsl({(i * 60) % 360}, 70%, 50%)'}
        for i, key in enumerate(sorted(totals))
    ]


def available_filters() -> Dict[str, List[str]]:
    months = sorted(
        {f'{d:%Y-%m}' for d in Transaction.objects.filter(transaction_type=Transaction.TYPE_EXPENSE)
            .values_list('transaction_date', flat=True)},
        reverse=True,
    )
    categories = list(
        TransactionCategory.objects.filter(type='EXPENSE').order_by('name').values_list('name', flat=True)
    )
    return {'availableMonths': months, 'availableCategories': categories}
