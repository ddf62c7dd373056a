from typing import List, Optional

from django.conf import settings
from django.core.cache import cache

from ..models import TransactionCategory

CACHE_PREFIX = 'categories'


def _cache_key(type_filter: Optional[str]) -> str:
    return f'{CACHE_PREFIX}:type={type_filter or ""}'


def _serialize(c: TransactionCategory) -> dict:
    return {
        'id': str(c.id),
        'name': c.name,
        'type': c.type,
        'code': c.code,
        'description': c.description,
    }


def active_categories(type_filter: Optional[str] = None) -> List[dict]:
    """Active categories ordered by name, cached per type filter."""
    ck = _cache_key(type_filter)
    cached = cache.get(ck)
    if cached is not None:
        return cached
    qs = TransactionCategory.objects.filter(is_active=True)
    if type_filter:
        qs = qs.filter(type=type_filter)
    data = [_serialize(c) for c in qs.order_by('name')]
    cache.set(ck, data, settings.CATEGORY_CACHE_SECONDS)
    return data


def invalidate() -> None:
    cache.delete_many([_cache_key(t) for t in (None, 'REVENUE', 'EXPENSE')])
