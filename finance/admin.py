from django.contrib import admin

from .models import (
    AccountPayable,
    AccountReceivable,
    AuditLog,
    CostCenter,
    CreditPaymentAllocation,
    CustomerCreditPayment,
    PayableAttachment,
    PayablePayment,
)


@admin.register(AccountReceivable)
class AccountReceivableAdmin(admin.ModelAdmin):
    list_display = ('customer', 'sale', 'amount', 'paid_amount', 'due_date', 'status', 'paid_at')
    list_filter = ('status', 'due_date', 'store')
    search_fields = ('customer__name', 'customer__document', 'sale__sale_number', 'notes')
    ordering = ('due_date', 'pk')
    readonly_fields = ('paid_amount', 'status', 'paid_at', 'paid_by', 'version', 'created_by', 'created_at', 'updated_at')


class CreditPaymentAllocationInline(admin.TabularInline):
    model = CreditPaymentAllocation
    extra = 0
    can_delete = False
    readonly_fields = ('receivable', 'amount', 'paid_amount_before', 'paid_amount_after')

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(CustomerCreditPayment)
class CustomerCreditPaymentAdmin(admin.ModelAdmin):
    list_display = ('created_at', 'customer', 'amount', 'payment_method', 'created_by', 'allocation_id')
    list_filter = ('payment_method',)
    search_fields = ('customer__name', 'customer__document', 'notes', 'allocation_id')
    inlines = [CreditPaymentAllocationInline]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(CostCenter)
class CostCenterAdmin(admin.ModelAdmin):
    list_display = ('code', 'name', 'active')
    list_filter = ('active',)
    search_fields = ('code', 'name', 'description')


class PayablePaymentInline(admin.TabularInline):
    model = PayablePayment
    extra = 0
    readonly_fields = ('payment_date', 'amount_paid', 'payment_method', 'notes', 'receipt', 'paid_by', 'created_at')
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


class PayableAttachmentInline(admin.TabularInline):
    model = PayableAttachment
    extra = 0
    readonly_fields = ('filename', 'file_size', 'mime_type', 'uploaded_by', 'created_at')

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(AccountPayable)
class AccountPayableAdmin(admin.ModelAdmin):
    list_display = ('description', 'supplier', 'cost_center', 'amount', 'due_date', 'payment_type', 'status')
    list_filter = ('status', 'payment_type', 'due_date', 'cost_center')
    search_fields = ('description', 'supplier__name', 'observations', 'barcode')
    ordering = ('due_date', 'pk')
    readonly_fields = ('created_by', 'created_at', 'updated_at')
    inlines = [PayablePaymentInline, PayableAttachmentInline]


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ('created_at', 'table_name', 'record_id', 'action', 'user')
    list_filter = ('table_name', 'action')
    search_fields = ('record_id',)
    readonly_fields = ('table_name', 'record_id', 'action', 'old_values', 'new_values', 'user', 'created_at')

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
