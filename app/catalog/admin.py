"""Catalog admin configuration."""

from django.contrib import admin

from catalog.models import Buyer, Product, Seller


@admin.register(Seller)
class SellerAdmin(admin.ModelAdmin):
    list_display = ["id", "name", "email", "is_active", "created_at"]
    list_filter = ["is_active"]
    search_fields = ["id", "name", "email"]
    readonly_fields = ["id", "created_at", "updated_at"]


@admin.register(Buyer)
class BuyerAdmin(admin.ModelAdmin):
    list_display = ["id", "email", "name", "is_active", "created_at"]
    list_filter = ["is_active"]
    search_fields = ["id", "name", "email"]
    readonly_fields = ["id", "created_at", "updated_at"]


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ["id", "title", "seller_id", "price", "currency", "is_published", "sales_count"]
    list_filter = ["is_published", "currency"]
    search_fields = ["id", "title", "seller_id"]
    readonly_fields = ["id", "sales_count", "created_at", "updated_at"]
