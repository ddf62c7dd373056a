"""
URL mappings for the back-office API.

Paths have no trailing slash; ``APPEND_SLASH`` is off so clients must
call them exactly as listed.
"""
from django.urls import path, include

from .auth_views import (
    active_organization_view,
    jwt_logout_view,
    jwt_refresh_view,
    login_view,
    me_view,
)
from .views import health
from .views.approvals import approvals_view
from .views.audit_logs import audit_logs
from .views.dashboard import chart_data
from .views.inventory import inventory_detail, inventory_list, inventory_movements
from .views.patients import patients_view
from .views.requests import request_detail, requests_view
from .views.rooms import rooms_view
from .views.transactions import transaction_categories, transactions_list


urlpatterns = [
    path('', include('django_prometheus.urls')),
    path('healthz', health.healthz, name='healthz'),
    # Authentication
    path('api/auth/login', login_view, name='login_view'),
    path('api/auth/refresh', jwt_refresh_view, name='jwt_refresh_view'),
    path('api/auth/logout', jwt_logout_view, name='jwt_logout_view'),
    path('api/auth/me', me_view, name='me_view'),
    path('api/auth/active-organization', active_organization_view, name='active_organization_view'),
    # Requests & approvals
    path('api/requests', requests_view, name='requests'),
    path('api/requests/<uuid:pk>', request_detail, name='request_detail'),
    path('api/approvals', approvals_view, name='approvals'),
    # Inventory
    path('api/inventory', inventory_list, name='inventory'),
    path('api/inventory/<uuid:pk>', inventory_detail, name='inventory_detail'),
    path('api/inventory/<uuid:pk>/movements', inventory_movements, name='inventory_movements'),
    # Ledger & reference data
    path('api/transactions', transactions_list, name='transactions'),
    path('api/transaction-categories', transaction_categories, name='transaction_categories'),
    path('api/dashboard/chart-data', chart_data, name='chart_data'),
    # Patients & rooms
    path('api/patients', patients_view, name='patients'),
    path('api/rooms', rooms_view, name='rooms'),
    # Audit
    path('api/audit-logs', audit_logs, name='audit_logs'),
]
