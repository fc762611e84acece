from django.contrib import admin
from django.utils.html import format_html

from .models import Category, Order, OrderItem, Product, ProductVariant


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ('name', 'slug')
    prepopulated_fields = {'slug': ('name',)}


class ProductVariantInline(admin.TabularInline):
    model = ProductVariant
    extra = 1


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'category', 'is_active', 'created_at', 'preview_image')
    list_filter = ('is_active', 'category')
    search_fields = ('name',)
    inlines = [ProductVariantInline]

    def preview_image(self, obj):
        if obj.image:
            return format_html('<img src="{}" width="80" style="border-radius:8px;" />', obj.image_url)
        return "No Image"
    preview_image.short_description = "Image"


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    readonly_fields = ('variant', 'quantity', 'icing_flavor', 'custom_message', 'price_at_purchase')
    can_delete = False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ('id', 'customer_name', 'customer_phone', 'total_amount', 'status', 'mpesa_receipt', 'created_at')
    list_filter = ('status', 'created_at')
    search_fields = ('first_name', 'last_name', 'email', 'customer_phone', 'id')
    readonly_fields = ('total_amount', 'checkout_request_id', 'created_at')
    inlines = [OrderItemInline]

    actions = ['mark_as_paid', 'mark_as_pending', 'mark_as_failed']

    def mark_as_paid(self, request, queryset):
        queryset.update(status=Order.PAID)
    mark_as_paid.short_description = "Mark as Paid"

    def mark_as_pending(self, request, queryset):
        queryset.update(status=Order.PENDING)
    mark_as_pending.short_description = "Mark as Pending"

    def mark_as_failed(self, request, queryset):
        queryset.update(status=Order.FAILED)
    mark_as_failed.short_description = "Mark as Failed"

    def has_delete_permission(self, request, obj=None):
        # Orders are never deleted, only moved between statuses.
        return False
