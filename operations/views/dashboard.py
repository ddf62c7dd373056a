"""
Dashboard chart endpoint.

Returns expense totals grouped by category or by month, ready for the
front-end chart component (``name``/``value``/``fill``), together with
the filter values the chart's dropdowns offer.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..serializers.queries import ChartQuerySerializer
from ..services.dashboard import available_filters, expense_chart


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def chart_data(request):
    q = ChartQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    data = expense_chart(vd['groupBy'], month=vd.get('month'), category=vd.get('category'))
    return Response({'success': True, 'data': data, 'filters': available_filters()})
