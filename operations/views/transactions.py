"""
Ledger and reference-data endpoints (read only).

Ledger rows are written exclusively by request settlement.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..models import Transaction
from ..serializers.queries import CategoryQuerySerializer, TransactionListQuerySerializer
from ..services import ledger
from ..services.categories import active_categories
from .common import display_name, iso, money


def _serialize(t: Transaction) -> dict:
    return {
        'id': str(t.id),
        'transactionCode': t.transaction_code,
        'transactionType': t.transaction_type,
        'categoryId': str(t.category_id) if t.category_id else None,
        'categoryName': t.category.name if t.category else None,
        'amount': money(t.amount),
        'transactionDate': iso(t.transaction_date),
        'referenceType': t.reference_type,
        'referenceId': str(t.reference_id) if t.reference_id else None,
        'description': t.description,
        'proofDocumentUrl': t.proof_document_url,
        'createdByUserId': t.created_by_id,
        'creatorName': display_name(t.created_by),
        'creatorEmail': t.created_by.email if t.created_by else None,
        'createdAt': iso(t.created_at),
    }


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def transactions_list(request):
    q = TransactionListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    rows = ledger.filter_transactions(
        type=vd.get('type'),
        category_id=vd.get('categoryId'),
        start_date=vd.get('startDate'),
        end_date=vd.get('endDate'),
        search=vd.get('search'),
    )
    return Response({
        'success': True,
        'data': [_serialize(t) for t in rows],
        'categories': active_categories(),
        'summary': ledger.totals_by_type(),
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def transaction_categories(request):
    q = CategoryQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    return Response({'success': True, 'data': active_categories(q.validated_data.get('type'))})
