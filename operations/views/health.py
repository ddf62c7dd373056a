import logging

from django.db import connections
from django.http import JsonResponse

logger = logging.getLogger(__name__)


def healthz(request):
    try:
        with connections['default'].cursor() as c:
            c.execute('SELECT 1')
            row = c.fetchone()
        return JsonResponse({'success': True, 'db': bool(row and row[0] == 1)})
    except Exception as e:
        logger.error('Health check failed: %s', e)
        return JsonResponse({'success': False, 'error': 'Database unavailable'}, status=503)
