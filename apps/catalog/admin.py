# apps/catalog/admin.py
from django.contrib import admin
from .models import Category, Brand, Supplier, Product, ProductVariant


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ("name", "slug", "parent", "is_active", "sort_order")
    list_filter = ("is_active", "parent")
    search_fields = ("name", "slug")
    prepopulated_fields = {"slug": ("name",)}
    ordering = ("sort_order", "name")


@admin.register(Brand)
class BrandAdmin(admin.ModelAdmin):
    list_display = ("name", "slug", "is_active")
    search_fields = ("name", "slug")
    prepopulated_fields = {"slug": ("name",)}
    list_filter = ("is_active",)


@admin.register(Supplier)
class SupplierAdmin(admin.ModelAdmin):
    list_display = ("name", "code", "contact_name", "email", "lead_time_days", "is_active")
    search_fields = ("name", "code", "contact_name", "email")
    list_filter = ("is_active",)


class ProductVariantInline(admin.TabularInline):
    model = ProductVariant
    extra = 0
    fields = ("sku", "name", "min_stock_level", "reorder_point", "is_active")


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = (
        "sku",
        "name",
        "category",
        "brand",
        "supplier",
        "status",
        "min_stock_level",
    )
    search_fields = ("sku", "name", "barcode")
    list_filter = ("status", "type", "category", "brand", "supplier")
    readonly_fields = ("created_at", "updated_at")
    inlines = [ProductVariantInline]
