"""
Human-readable document codes (``REQ-20250101-001``, ``TRX-...``).

Every prefix has one counter row per calendar day. The row is locked
while it is incremented, so two concurrent callers never receive the
same code.
"""
from __future__ import annotations

from datetime import date
from typing import Optional

from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from ..models import DailySequence

REQUEST_PREFIX = 'REQ'
TRANSACTION_PREFIX = 'TRX'
INVENTORY_PREFIX = 'INV'
PATIENT_PREFIX = 'PAT'


def format_code(prefix: str, day: date, value: int) -> str:
    return f"{prefix}-{day:%Y%m%d}-{value:03d}"


def _ensure_counter(prefix: str, day: date) -> None:
    if DailySequence.objects.filter(prefix=prefix, day=day).exists():
        return
    try:
        with transaction.atomic():
            DailySequence.objects.create(prefix=prefix, day=day, last_value=0)
    except IntegrityError:
        # created by a concurrent caller
        pass


@transaction.atomic
def next_value(prefix: str, day: Optional[date] = None) -> int:
    day = day or timezone.localdate()
    _ensure_counter(prefix, day)
    counter = DailySequence.objects.select_for_update().get(prefix=prefix, day=day)
    DailySequence.objects.filter(pk=counter.pk).update(last_value=F('last_value') + 1)
    counter.refresh_from_db(fields=['last_value'])
    return counter.last_value


def next_code(prefix: str, day: Optional[date] = None) -> str:
    """Allocate the next code for ``prefix`` on ``day`` (today by default)."""
    day = day or timezone.localdate()
    return format_code(prefix, day, next_value(prefix, day))
