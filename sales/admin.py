from django.contrib import admin

from .models import CashRegisterClosing, CashRegisterMovement, PaymentMethod, Sale, SaleItem, SalePayment


@admin.register(PaymentMethod)
class PaymentMethodAdmin(admin.ModelAdmin):
	list_display = ('name', 'code', 'active', 'allow_installments', 'max_installments')
	list_filter = ('active', 'allow_installments')
	search_fields = ('name', 'code')


class SaleItemInline(admin.TabularInline):
	model = SaleItem
	extra = 0
	fields = ('product', 'product_name', 'quantity', 'unit_price', 'discount_amount', 'total')
	readonly_fields = fields
	can_delete = False


class SalePaymentInline(admin.TabularInline):
	model = SalePayment
	extra = 0
	fields = ('payment_method', 'amount', 'installments', 'is_credit')
	readonly_fields = fields
	can_delete = False


@admin.register(Sale)
class SaleAdmin(admin.ModelAdmin):
	list_display = ('sale_number', 'store', 'customer', 'status', 'payment_status', 'total', 'created_at')
	list_filter = ('status', 'payment_status', 'store', 'delivery_type', 'created_at')
	search_fields = ('sale_number', 'customer__name', 'customer__document')
	readonly_fields = (
		'sale_number',
		'subtotal',
		'discount_amount',
		'total',
		'amount_paid',
		'amount_credit',
		'completed_at',
		'cancelled_at',
		'cancelled_by',
		'cancellation_reason',
	)
	inlines = [SaleItemInline, SalePaymentInline]

	def has_add_permission(self, request):
		return False


class CashRegisterMovementInline(admin.TabularInline):
	model = CashRegisterMovement
	extra = 0
	fields = ('movement_type', 'amount', 'reason', 'created_by', 'created_at')
	readonly_fields = fields
	can_delete = False


@admin.register(CashRegisterClosing)
class CashRegisterClosingAdmin(admin.ModelAdmin):
	list_display = ('closing_date', 'store', 'status', 'opening_balance', 'cash_expected', 'cash_counted', 'difference')
	list_filter = ('status', 'store')
	date_hierarchy = 'closing_date'
	readonly_fields = (
		'opened_by',
		'opened_at',
		'closed_by',
		'closed_at',
		'cash_expected',
		'card_expected',
		'pix_expected',
		'credit_expected',
		'other_expected',
		'difference',
	)
	inlines = [CashRegisterMovementInline]
