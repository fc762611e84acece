"""
Catalog queries and admin mutations for products, variants and categories.

Storage errors are not caught here; they propagate to the view.
"""
import logging
from decimal import Decimal

from django.db import transaction
from django.db.models import DecimalField, F, Min, ProtectedError, Value
from django.db.models.functions import Coalesce

from .exceptions import NotFound
from .models import Category, Product, ProductVariant
from .store_utils import category_slug

logger = logging.getLogger(__name__)


def _with_listing_fields(queryset):
    return queryset.annotate(
        starting_price=Coalesce(
            Min('variants__price'),
            Value(Decimal('0')),
            output_field=DecimalField(max_digits=10, decimal_places=2),
        ),
        category_name=F('category__name'),
    ).order_by('-id')


# -------------------------------
# Reads
# -------------------------------
def list_active():
    return list(_with_listing_fields(Product.objects.filter(is_active=True)))


def list_by_category(category_id):
    # category__isnull=False keeps inner-join semantics for orphaned products.
    queryset = Product.objects.filter(
        is_active=True,
        category_id=category_id,
        category__isnull=False,
    )
    return list(_with_listing_fields(queryset))


def get_product(product_id):
    try:
        return Product.objects.select_related('category').get(pk=product_id, is_active=True)
    except (Product.DoesNotExist, ValueError, TypeError):
        raise NotFound(f"Product {product_id} not found")


def list_variants(product_id):
    return list(ProductVariant.objects.filter(product_id=product_id).order_by('price'))


def get_variant(variant_id):
    try:
        return ProductVariant.objects.select_related('product').get(pk=variant_id)
    except (ProductVariant.DoesNotExist, ValueError, TypeError):
        raise NotFound(f"Variant {variant_id} not found")


def list_categories():
    return list(Category.objects.order_by('name'))


def get_category(category_id):
    try:
        return Category.objects.get(pk=category_id)
    except (Category.DoesNotExist, ValueError, TypeError):
        raise NotFound(f"Category {category_id} not found")


# -------------------------------
# Admin mutations
# -------------------------------
def create_product(name, description="", category_id=None, image=None):
    product = Product.objects.create(
        name=name,
        description=description,
        category_id=category_id or None,
        image=image,
        is_active=True,
    )
    logger.info("Created product %s (%s)", product.pk, product.name)
    return product


def create_variant(product_id, weight_label, price):
    return ProductVariant.objects.create(product_id=product_id, weight_label=weight_label, price=price)


def update_product(product_id, name, description="", category_id=None, image=None):
    """
    Overwrite the editable fields of a product. ``image`` is only replaced
    when a new one is given.
    """
    product = get_product(product_id)
    product.name = name
    product.description = description
    product.category_id = category_id or None
    if image:
        product.image = image
    product.save()
    return product


def update_variant_price(variant_id, price):
    return ProductVariant.objects.filter(pk=variant_id).update(price=price)


def delete_product(product_id):
    """
    Delete a product and its variants. A product whose variants appear on
    placed orders is deactivated instead so receipts stay readable.

    Returns True when the row was removed, False when it was deactivated.
    """
    try:
        with transaction.atomic():
            deleted, _ = Product.objects.filter(pk=product_id).delete()
    except ProtectedError:
        Product.objects.filter(pk=product_id).update(is_active=False)
        logger.info("Product %s is referenced by orders; deactivated instead of deleted", product_id)
        return False
    if not deleted:
        raise NotFound(f"Product {product_id} not found")
    return True


def create_category(name):
    return Category.objects.create(name=name.strip(), slug=category_slug(name))


def delete_category(category_id):
    return Category.objects.filter(pk=category_id).delete()[0]
