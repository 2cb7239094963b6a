from django.contrib import admin

from .models import Client, CustomerCreditHistory, DeliveryAddress


class DeliveryAddressInline(admin.StackedInline):
	model = DeliveryAddress
	extra = 0


class CustomerCreditHistoryInline(admin.TabularInline):
	model = CustomerCreditHistory
	extra = 0
	can_delete = False
	fields = ('created_at', 'action_type', 'old_value', 'new_value', 'reference_type', 'reference_id', 'notes', 'created_by')
	readonly_fields = fields

	def has_add_permission(self, request, obj=None):
		return False


@admin.register(Client)
class ClientAdmin(admin.ModelAdmin):
	list_display = ('name', 'formatted_document', 'phone', 'email', 'credit_limit', 'active')
	list_filter = ('active', 'document_type', 'state')
	search_fields = ('name', 'document', 'email', 'phone')
	readonly_fields = ('created_at', 'updated_at', 'updated_by')
	inlines = [DeliveryAddressInline, CustomerCreditHistoryInline]

	def save_model(self, request, obj, form, change):
		obj.updated_by = request.user
		super().save_model(request, obj, form, change)


@admin.register(CustomerCreditHistory)
class CustomerCreditHistoryAdmin(admin.ModelAdmin):
	list_display = ('created_at', 'customer', 'action_type', 'old_value', 'new_value', 'reference_type', 'reference_id', 'created_by')
	list_filter = ('action_type', 'reference_type')
	search_fields = ('customer__name', 'customer__document', 'notes')

	def has_add_permission(self, request):
		return False

	def has_change_permission(self, request, obj=None):
		return False

	def has_delete_permission(self, request, obj=None):
		return False
