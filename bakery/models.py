from decimal import Decimal

from cloudinary.models import CloudinaryField
from django.conf import settings
from django.db import models
from django.utils import timezone


# ------------------------------
# CATEGORY MODEL
# ------------------------------
class Category(models.Model):
    name = models.CharField(max_length=100)
    slug = models.SlugField(max_length=120, unique=True)

    class Meta:
        ordering = ['name']
        verbose_name_plural = "categories"

    def __str__(self):
        return self.name


# ------------------------------
# PRODUCT MODEL
# ------------------------------
class Product(models.Model):
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True)

    image = CloudinaryField('image', folder='products/', null=True, blank=True)

    category = models.ForeignKey(
        Category,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="products"
    )

    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-id']

    def __str__(self):
        return self.name

    @property
    def image_url(self):
        if self.image:
            return self.image.url
        return settings.PRODUCT_PLACEHOLDER_IMAGE


class ProductVariant(models.Model):
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='variants')
    weight_label = models.CharField(max_length=50)
    price = models.DecimalField(max_digits=10, decimal_places=2)

    class Meta:
        ordering = ['price']

    def __str__(self):
        return f"{self.product.name} ({self.weight_label})"


# ------------------------------
# ORDER MODEL
# ------------------------------
class Order(models.Model):
    PENDING = 'PENDING'
    PAID = 'PAID'
    FAILED = 'FAILED'

    STATUS_CHOICES = [
        (PENDING, 'Pending (awaiting payment)'),
        (PAID, 'Paid'),
        (FAILED, 'Failed'),
    ]

    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100, blank=True)
    email = models.EmailField(blank=True)
    whatsapp_number = models.CharField(max_length=20, blank=True)
    # The M-Pesa number the STK push goes to.
    customer_phone = models.CharField(max_length=20, db_index=True)

    total_amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal('0.00')
    )

    status = models.CharField(
        max_length=20,
        choices=STATUS_CHOICES,
        default=PENDING
    )

    mpesa_receipt = models.CharField(max_length=50, blank=True)
    checkout_request_id = models.CharField(max_length=100, null=True, blank=True, unique=True)

    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ['-id']

    def __str__(self):
        return f"Order #{self.id or 'unsaved'} - {self.customer_name}"

    @property
    def customer_name(self):
        return f"{self.first_name} {self.last_name}".strip()

    def get_total_price(self):
        total = Decimal('0.00')
        for item in self.items.all():
            total += item.line_total
        return total.quantize(Decimal('0.01'))


class OrderItem(models.Model):
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='items')
    variant = models.ForeignKey(ProductVariant, on_delete=models.PROTECT, related_name='order_items')
    quantity = models.PositiveIntegerField(default=1)
    icing_flavor = models.CharField(max_length=100, blank=True)
    custom_message = models.CharField(max_length=255, blank=True)
    # Frozen copy of the variant price; later price edits must not reach it.
    price_at_purchase = models.DecimalField(max_digits=10, decimal_places=2)

    def __str__(self):
        return f"{self.variant} × {self.quantity}"

    @property
    def line_total(self):
        return self.price_at_purchase * self.quantity
