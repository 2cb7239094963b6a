from django.contrib import admin

from .models import (
    Brand,
    Category,
    Product,
    ProductPricing,
    ProductStock,
    StockMovement,
    StockReceipt,
    Supplier,
    Unit,
)


@admin.register(Supplier)
class SupplierAdmin(admin.ModelAdmin):
    list_display = ("name", "document", "phone", "email", "active")
    list_filter = ("active", "person_type")
    search_fields = ("name", "document", "email")


@admin.register(Brand, Category)
class NamedLookupAdmin(admin.ModelAdmin):
    list_display = ("name",)
    search_fields = ("name",)


@admin.register(Unit)
class UnitAdmin(admin.ModelAdmin):
    list_display = ("abbreviation", "name")
    search_fields = ("abbreviation", "name")


class ProductPricingInline(admin.TabularInline):
    model = ProductPricing
    extra = 0
    fields = ("store", "cost_price", "sale_price", "valid_from", "valid_until", "is_current")
    readonly_fields = ("valid_from", "valid_until", "is_current")
    ordering = ("-valid_from",)

    def has_change_permission(self, request, obj=None):
        return False


class ProductStockInline(admin.TabularInline):
    model = ProductStock
    extra = 0
    fields = ("store", "quantity", "min_quantity", "max_quantity")
    readonly_fields = ("quantity",)


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("internal_code", "name", "ean", "brand", "category", "unit", "active")
    list_filter = ("active", "brand", "category")
    search_fields = ("name", "ean", "=internal_code")
    readonly_fields = ("internal_code", "created_at", "updated_at")
    ordering = ("name",)
    inlines = [ProductPricingInline, ProductStockInline]


@admin.register(StockMovement)
class StockMovementAdmin(admin.ModelAdmin):
    list_display = ("created_at", "product", "store", "movement_type", "quantity", "reference_type", "reference_id", "created_by")
    list_filter = ("movement_type", "reference_type", "store")
    search_fields = ("product__name", "=product__internal_code", "notes")
    ordering = ("-created_at",)

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(StockReceipt)
class StockReceiptAdmin(admin.ModelAdmin):
    list_display = ("created_at", "product", "store", "supplier", "quantity", "cost_price", "sale_price", "previous_sale_price")
    list_filter = ("store",)
    search_fields = ("product__name", "supplier__name", "notes")
    readonly_fields = ("previous_sale_price", "created_by", "created_at")

    def has_add_permission(self, request):
        return False
