"""
Django admin registrations for the operations models.

Ledger rows, stock movements and audit records are append-only, so their
admin pages are read-only; status changes on requests and approvals go
through the API where the approval rules are enforced.
"""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import (
    Approval,
    AuditLog,
    DailySequence,
    Facility,
    InventoryItem,
    InventoryMovement,
    Member,
    Organization,
    Patient,
    Request,
    RequestItem,
    Room,
    RoomFacility,
    Transaction,
    TransactionCategory,
    User,
)


class ReadOnlyAdmin(admin.ModelAdmin):
    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


class MemberInline(admin.TabularInline):
    model = Member
    extra = 0


@admin.register(Organization)
class OrganizationAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'slug', 'created_at')
    search_fields = ('name', 'slug')
    inlines = [MemberInline]


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ('username', 'email', 'active_organization', 'is_staff', 'is_superuser')
    list_filter = ('is_staff', 'is_superuser', 'active_organization')
    fieldsets = BaseUserAdmin.fieldsets + (('Organization', {'fields': ('active_organization',)}),)


@admin.register(Member)
class MemberAdmin(admin.ModelAdmin):
    list_display = ('user', 'organization', 'role', 'created_at')
    list_filter = ('organization', 'role')
    search_fields = ('user__username', 'organization__name')


@admin.register(TransactionCategory)
class TransactionCategoryAdmin(admin.ModelAdmin):
    list_display = ('code', 'name', 'type', 'is_active')
    list_filter = ('type', 'is_active')
    search_fields = ('code', 'name')


@admin.register(Facility)
class FacilityAdmin(admin.ModelAdmin):
    list_display = ('name', 'additional_price', 'is_active')


class RoomFacilityInline(admin.TabularInline):
    model = RoomFacility
    extra = 0


@admin.register(Room)
class RoomAdmin(admin.ModelAdmin):
    list_display = ('room_number', 'room_type', 'capacity', 'base_rate', 'status', 'is_active')
    list_filter = ('room_type', 'status', 'is_active')
    search_fields = ('room_number', 'description')
    inlines = [RoomFacilityInline]


@admin.register(Patient)
class PatientAdmin(admin.ModelAdmin):
    list_display = ('patient_code', 'name', 'gender', 'birth_date', 'phone', 'created_at')
    list_filter = ('gender',)
    search_fields = ('patient_code', 'name', 'phone')


@admin.register(InventoryItem)
class InventoryItemAdmin(admin.ModelAdmin):
    list_display = ('item_code', 'name', 'category', 'quantity_on_hand', 'minimum_stock',
                    'average_unit_cost', 'is_active')
    list_filter = ('category', 'is_active')
    search_fields = ('item_code', 'name')
    readonly_fields = ('item_code',)


@admin.register(InventoryMovement)
class InventoryMovementAdmin(ReadOnlyAdmin):
    list_display = ('inventory_item', 'movement_type', 'quantity', 'unit_cost', 'reference_type',
                    'performed_by', 'movement_date')
    list_filter = ('movement_type', 'reference_type')
    search_fields = ('inventory_item__item_code', 'inventory_item__name', 'notes')


@admin.register(Transaction)
class TransactionAdmin(ReadOnlyAdmin):
    list_display = ('transaction_code', 'transaction_type', 'category', 'amount', 'transaction_date', 'created_by')
    list_filter = ('transaction_type', 'category')
    search_fields = ('transaction_code', 'description')
    date_hierarchy = 'transaction_date'


class RequestItemInline(admin.TabularInline):
    model = RequestItem
    extra = 0
    can_delete = False


class ApprovalInline(admin.TabularInline):
    model = Approval
    extra = 0
    can_delete = False
    readonly_fields = ('approval_level', 'role_name', 'approver', 'status', 'comments', 'timeout_at', 'approved_at')


@admin.register(Request)
class RequestAdmin(admin.ModelAdmin):
    list_display = ('request_code', 'request_type', 'requester', 'amount', 'status', 'priority', 'created_at')
    list_filter = ('request_type', 'status', 'priority')
    search_fields = ('request_code', 'description', 'requester__username')
    readonly_fields = ('request_code', 'status')
    inlines = [RequestItemInline, ApprovalInline]


@admin.register(Approval)
class ApprovalAdmin(ReadOnlyAdmin):
    list_display = ('request', 'approval_level', 'role_name', 'status', 'approver', 'timeout_at', 'approved_at')
    list_filter = ('status', 'role_name', 'approval_level')
    search_fields = ('request__request_code',)


@admin.register(DailySequence)
class DailySequenceAdmin(ReadOnlyAdmin):
    list_display = ('prefix', 'day', 'last_value')
    list_filter = ('prefix',)


@admin.register(AuditLog)
class AuditLogAdmin(ReadOnlyAdmin):
    list_display = ('created_at', 'action', 'resource_type', 'resource_id', 'user', 'organization', 'severity')
    list_filter = ('action', 'resource_type', 'severity')
    search_fields = ('resource_id', 'description', 'user__username')
