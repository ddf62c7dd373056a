"""
Database models for the yayasan back-office.

The models cover tenancy (organizations and role memberships), reference
data (transaction categories, rooms, facilities), patient registration,
the inventory catalog and its movement ledger, the financial ledger and
the request/approval workflow that ties spending and stock changes to a
chain of sign-offs.
"""
from __future__ import annotations

import uuid

from django.contrib.auth.models import AbstractUser
from django.db import models


REFERENCE_REQUEST = 'REQUEST'


class Organization(models.Model):
    """A tenant (foundation, clinic) that users hold roles in."""
    name = models.CharField(max_length=255)
    slug = models.SlugField(max_length=100, unique=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"{self.name} ({self.slug})"


class User(AbstractUser):
    """Custom user with the organization currently selected in the session.

    Roles are not stored on the user: a user holds one role per
    organization through :class:`Member`.
    """
    active_organization = models.ForeignKey(
        Organization, null=True, blank=True, on_delete=models.SET_NULL, related_name='+'
    )

    def __str__(self) -> str:
        return self.get_full_name() or self.username


class Member(models.Model):
    """Links a user to an organization with a role inside it."""
    ROLE_OWNER = 'owner'
    ROLE_KETUA = 'KETUA'
    ROLE_BENDAHARA = 'BENDAHARA'
    ROLE_SEKRETARIS = 'SEKRETARIS'
    ROLE_CHOICES = [
        (ROLE_OWNER, 'Owner'),
        ('admin', 'Admin'),
        ('member', 'Member'),
        (ROLE_KETUA, 'Ketua'),
        (ROLE_BENDAHARA, 'Bendahara'),
        (ROLE_SEKRETARIS, 'Sekretaris'),
        ('OPERASIONAL', 'Operasional'),
        ('PENGADAAN', 'Pengadaan'),
        ('NURSE', 'Nurse'),
    ]
    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name='members')
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='memberships')
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default='member')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = [('organization', 'user')]

    def __str__(self) -> str:
        return f"{self.user} in {self.organization} as {self.role}"


# ---------------------------------------------------------------------------
# Reference data
# ---------------------------------------------------------------------------

class TransactionCategory(models.Model):
    TYPE_CHOICES = [('REVENUE', 'Revenue'), ('EXPENSE', 'Expense')]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=100, unique=True)
    type = models.CharField(max_length=10, choices=TYPE_CHOICES)
    code = models.CharField(max_length=20, unique=True)
    description = models.TextField(blank=True, null=True)
    is_active = models.BooleanField(default=True, db_index=True)

    class Meta:
        verbose_name_plural = 'transaction categories'

    def __str__(self) -> str:
        return f"{self.name} ({self.code})"


class Facility(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=100, unique=True)
    additional_price = models.DecimalField(max_digits=15, decimal_places=2, default=0)
    description = models.TextField(blank=True, null=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name_plural = 'facilities'

    def __str__(self) -> str:
        return self.name


class Room(models.Model):
    TYPE_CHOICES = [('VIP', 'VIP'), ('STANDARD', 'Standard'), ('ICU', 'ICU')]
    STATUS_CHOICES = [
        ('AVAILABLE', 'Available'),
        ('OCCUPIED', 'Occupied'),
        ('MAINTENANCE', 'Maintenance'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    room_number = models.CharField(max_length=20, unique=True)
    room_type = models.CharField(max_length=10, choices=TYPE_CHOICES)
    capacity = models.PositiveIntegerField(default=1)
    base_rate = models.DecimalField(max_digits=15, decimal_places=2)
    status = models.CharField(max_length=15, choices=STATUS_CHOICES, default='AVAILABLE', db_index=True)
    description = models.TextField(blank=True, null=True)
    is_active = models.BooleanField(default=True)
    facilities = models.ManyToManyField(Facility, through='RoomFacility', related_name='rooms')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"{self.room_number} ({self.room_type})"


class RoomFacility(models.Model):
    room = models.ForeignKey(Room, on_delete=models.CASCADE)
    facility = models.ForeignKey(Facility, on_delete=models.CASCADE)
    added_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = [('room', 'facility')]


class Patient(models.Model):
    GENDER_CHOICES = [('MALE', 'Male'), ('FEMALE', 'Female'), ('OTHER', 'Other')]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    patient_code = models.CharField(max_length=30, unique=True)
    name = models.CharField(max_length=255)
    birth_date = models.DateField()
    gender = models.CharField(max_length=10, choices=GENDER_CHOICES)
    address = models.TextField(blank=True, null=True)
    phone = models.CharField(max_length=32, blank=True, null=True)
    emergency_contact = models.CharField(max_length=255, blank=True, null=True)
    emergency_phone = models.CharField(max_length=32, blank=True, null=True)
    medical_notes = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"{self.name} ({self.patient_code})"


# ---------------------------------------------------------------------------
# Inventory
# ---------------------------------------------------------------------------

class InventoryItem(models.Model):
    """A stock-keeping unit with its on-hand quantity and weighted-average cost.

    ``quantity_on_hand`` has no floor: an OUT movement may push it below zero.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    item_code = models.CharField(max_length=30, unique=True)
    name = models.CharField(max_length=255)
    category = models.CharField(max_length=50, db_index=True)
    unit = models.CharField(max_length=20)
    quantity_on_hand = models.IntegerField(default=0)
    minimum_stock = models.IntegerField(default=0)
    average_unit_cost = models.DecimalField(max_digits=15, decimal_places=2, default=0)
    is_active = models.BooleanField(default=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"{self.name} ({self.item_code})"


class InventoryMovement(models.Model):
    """Append-only stock ledger row. OUT rows carry a negative quantity."""
    TYPE_IN = 'IN'
    TYPE_OUT = 'OUT'
    TYPE_ADJUSTMENT = 'ADJUSTMENT'
    TYPE_CHOICES = [(TYPE_IN, 'In'), (TYPE_OUT, 'Out'), (TYPE_ADJUSTMENT, 'Adjustment')]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    inventory_item = models.ForeignKey(InventoryItem, on_delete=models.PROTECT, related_name='movements')
    movement_type = models.CharField(max_length=12, choices=TYPE_CHOICES)
    quantity = models.IntegerField()
    unit_cost = models.DecimalField(max_digits=15, decimal_places=2, null=True, blank=True)
    reference_type = models.CharField(max_length=20, blank=True, null=True)
    reference_id = models.UUIDField(blank=True, null=True)
    performed_by = models.ForeignKey(User, on_delete=models.PROTECT, related_name='inventory_movements')
    notes = models.TextField(blank=True, null=True)
    movement_date = models.DateTimeField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['inventory_item', 'movement_date']),
            models.Index(fields=['reference_type', 'reference_id']),
        ]

    def __str__(self) -> str:
        return f"{self.movement_type} {self.quantity} of {self.inventory_item_id}"


# ---------------------------------------------------------------------------
# Ledger
# ---------------------------------------------------------------------------

class Transaction(models.Model):
    """Append-only financial ledger entry."""
    TYPE_CAPITAL_INJECTION = 'CAPITAL_INJECTION'
    TYPE_REVENUE = 'REVENUE'
    TYPE_EXPENSE = 'EXPENSE'
    TYPE_CHOICES = [
        (TYPE_CAPITAL_INJECTION, 'Capital injection'),
        (TYPE_REVENUE, 'Revenue'),
        (TYPE_EXPENSE, 'Expense'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    transaction_code = models.CharField(max_length=30, unique=True)
    transaction_type = models.CharField(max_length=20, choices=TYPE_CHOICES, db_index=True)
    category = models.ForeignKey(
        TransactionCategory, null=True, blank=True, on_delete=models.PROTECT, related_name='transactions'
    )
    amount = models.DecimalField(max_digits=15, decimal_places=2)
    transaction_date = models.DateField(db_index=True)
    reference_type = models.CharField(max_length=20, blank=True, null=True)
    reference_id = models.UUIDField(blank=True, null=True)
    description = models.TextField(blank=True, null=True)
    proof_document_url = models.URLField(max_length=500, blank=True, null=True)
    created_by = models.ForeignKey(User, on_delete=models.PROTECT, related_name='transactions_created')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [models.Index(fields=['reference_type', 'reference_id'])]

    def __str__(self) -> str:
        return f"{self.transaction_code} {self.transaction_type} {self.amount}"


# ---------------------------------------------------------------------------
# Requests & approvals
# ---------------------------------------------------------------------------

class RequestType(models.TextChoices):
    TRANSACTION = 'TRANSACTION', 'Transaction'
    INVENTORY = 'INVENTORY', 'Inventory'
    PROCUREMENT = 'PROCUREMENT', 'Procurement'


class TransactionSubtype(models.TextChoices):
    REVENUE = 'REVENUE', 'Revenue'
    EXPENSE = 'EXPENSE', 'Expense'
    CAPITAL_INJECTION = 'CAPITAL_INJECTION', 'Capital injection'


class Request(models.Model):
    """A spending, stock-movement or procurement request awaiting sign-off.

    Status leaves PENDING exactly once, driven by its approval chain, and
    never goes back.
    """
    STATUS_PENDING = 'PENDING'
    STATUS_APPROVED = 'APPROVED'
    STATUS_REJECTED = 'REJECTED'
    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_APPROVED, 'Approved'),
        (STATUS_REJECTED, 'Rejected'),
    ]
    PRIORITY_CHOICES = [
        ('LOW', 'Low'),
        ('MEDIUM', 'Medium'),
        ('HIGH', 'High'),
        ('URGENT', 'Urgent'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    request_code = models.CharField(max_length=30, unique=True)
    request_type = models.CharField(max_length=20, choices=RequestType.choices, db_index=True)
    requester = models.ForeignKey(User, on_delete=models.PROTECT, related_name='requests')
    transaction_subtype = models.CharField(
        max_length=20, choices=TransactionSubtype.choices, blank=True, null=True
    )
    expense_category = models.ForeignKey(
        TransactionCategory, null=True, blank=True, on_delete=models.PROTECT, related_name='requests'
    )
    amount = models.DecimalField(max_digits=15, decimal_places=2, default=0)
    description = models.TextField()
    justification = models.TextField(blank=True, null=True)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default='MEDIUM')
    needed_by_date = models.DateField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"{self.request_code} {self.request_type} [{self.status}]"


class RequestItem(models.Model):
    """A line of a request. Negative quantity means stock going out."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    request = models.ForeignKey(Request, on_delete=models.CASCADE, related_name='items')
    inventory_item = models.ForeignKey(
        InventoryItem, null=True, blank=True, on_delete=models.SET_NULL, related_name='request_items'
    )
    item_name = models.CharField(max_length=255)
    quantity = models.IntegerField()
    unit = models.CharField(max_length=20)
    unit_price = models.DecimalField(max_digits=15, decimal_places=2)
    total_price = models.DecimalField(max_digits=15, decimal_places=2)
    specifications = models.TextField(blank=True, null=True)

    def __str__(self) -> str:
        return f"{self.item_name} x{self.quantity}"


class Approval(models.Model):
    """One level of a request's approval chain."""
    STATUS_PENDING = 'PENDING'
    STATUS_APPROVED = 'APPROVED'
    STATUS_REJECTED = 'REJECTED'
    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_APPROVED, 'Approved'),
        (STATUS_REJECTED, 'Rejected'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    request = models.ForeignKey(Request, on_delete=models.CASCADE, related_name='approvals')
    approval_level = models.PositiveSmallIntegerField()
    role_name = models.CharField(max_length=20)
    approver = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='approvals_resolved'
    )
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_PENDING)
    comments = models.TextField(blank=True, null=True)
    timeout_at = models.DateTimeField(blank=True, null=True)
    approved_at = models.DateTimeField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['approval_level']
        unique_together = [('request', 'approval_level')]
        indexes = [
            models.Index(fields=['role_name', 'status', 'approval_level']),
        ]

    def __str__(self) -> str:
        return f"{self.request_id} L{self.approval_level} {self.role_name} [{self.status}]"


# ---------------------------------------------------------------------------
# Infrastructure
# ---------------------------------------------------------------------------

class DailySequence(models.Model):
    """Counter row backing ``PREFIX-YYYYMMDD-NNN`` codes, one per prefix and day."""
    prefix = models.CharField(max_length=10)
    day = models.DateField()
    last_value = models.PositiveIntegerField(default=0)

    class Meta:
        unique_together = [('prefix', 'day')]

    def __str__(self) -> str:
        return f"{self.prefix}-{self.day:%Y%m%d}: {self.last_value}"


class AuditLog(models.Model):
    SEVERITY_INFO = 'INFO'
    SEVERITY_WARNING = 'WARNING'
    SEVERITY_CRITICAL = 'CRITICAL'
    SEVERITY_CHOICES = [
        (SEVERITY_INFO, 'Info'),
        (SEVERITY_WARNING, 'Warning'),
        (SEVERITY_CRITICAL, 'Critical'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='audit_logs')
    organization = models.ForeignKey(
        Organization, on_delete=models.SET_NULL, null=True, blank=True, related_name='audit_logs'
    )
    action = models.CharField(max_length=64)
    resource_type = models.CharField(max_length=32)
    resource_id = models.CharField(max_length=64)
    ip_address = models.GenericIPAddressField(blank=True, null=True)
    user_agent = models.TextField(blank=True, null=True)
    description = models.TextField()
    old_values = models.JSONField(blank=True, null=True)
    new_values = models.JSONField(blank=True, null=True)
    metadata = models.JSONField(blank=True, null=True)
    severity = models.CharField(max_length=10, choices=SEVERITY_CHOICES, default=SEVERITY_INFO)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['action', 'created_at']),
            models.Index(fields=['resource_type', 'resource_id', 'created_at']),
        ]

    def __str__(self):
        return f"{self.action}:{self.resource_type}/{self.resource_id}@{self.created_at:%F %T}"
