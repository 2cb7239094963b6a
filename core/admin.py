from django.contrib import admin

from .models import SalesConfiguration, Store, UserRoleAssignment, UserStoreAccess


class UserStoreAccessInline(admin.TabularInline):
	model = UserStoreAccess
	extra = 0
	autocomplete_fields = ('user',)


@admin.register(Store)
class StoreAdmin(admin.ModelAdmin):
	list_display = ('code', 'name', 'cnpj', 'phone', 'active', 'pdv_auto_print', 'pdv_print_format', 'pdv_max_discount_percent')
	list_filter = ('active', 'pdv_auto_print', 'pdv_print_format')
	search_fields = ('code', 'name', 'cnpj', 'email')
	readonly_fields = ('created_at', 'updated_at')
	inlines = [UserStoreAccessInline]


@admin.register(UserRoleAssignment)
class UserRoleAssignmentAdmin(admin.ModelAdmin):
	list_display = ('user', 'role', 'assigned_at', 'assigned_by')
	list_filter = ('role',)
	search_fields = ('user__username', 'user__email', 'user__first_name')
	readonly_fields = ('assigned_at', 'assigned_by')

	def save_model(self, request, obj, form, change):
		if not change:
			obj.assigned_by = request.user
		super().save_model(request, obj, form, change)


@admin.register(SalesConfiguration)
class SalesConfigurationAdmin(admin.ModelAdmin):
	list_display = ('credit_due_days', 'quote_search_limit', 'updated_at', 'updated_by')
	readonly_fields = ('updated_at', 'updated_by')

	def has_add_permission(self, request):
		return not SalesConfiguration.objects.exists()

	def save_model(self, request, obj, form, change):
		obj.updated_by = request.user
		super().save_model(request, obj, form, change)
