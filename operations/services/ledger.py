from decimal import Decimal
from typing import Optional

from django.db.models import Q, Sum

from ..models import REFERENCE_REQUEST, Transaction


def filter_transactions(*, type: Optional[str] = None, category_id=None, start_date=None,
                        end_date=None, search: Optional[str] = None):
    qs = Transaction.objects.select_related('category', 'created_by')
    if type:
        qs = qs.filter(transaction_type=type)
    if category_id:
        qs = qs.filter(category_id=category_id)
    if start_date:
        qs = qs.filter(transaction_date__gte=start_date)
    if end_date:
        qs = qs.filter(transaction_date__lte=end_date)
    if search:
        qs = qs.filter(Q(transaction_code__icontains=search) | Q(description__icontains=search))
    return qs.order_by('-transaction_date', '-created_at')


def totals_by_type():
    """Sum of amounts per transaction type over the whole ledger."""
    rows = Transaction.objects.values('transaction_type').annotate(total=Sum('amount')).order_by('transaction_type')
    return [
        {'type': r['transaction_type'], 'total': str((r['total'] or Decimal('0')).quantize(Decimal('0.01')))}
        for r in rows
    ]


def for_request(request_id):
    return Transaction.objects.filter(reference_type=REFERENCE_REQUEST, reference_id=request_id)
