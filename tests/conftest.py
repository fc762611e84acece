from decimal import Decimal

import pytest

from bakery import cart
from bakery.models import Category, Order, Product, ProductVariant


@pytest.fixture
def category(db):
    return Category.objects.create(name="Birthday Cakes", slug="birthday-cakes")


@pytest.fixture
def make_product(db):
    def _make(name="Black Forest", category=None, prices=(), is_active=True):
        product = Product.objects.create(
            name=name,
            description=f"{name} sponge",
            category=category,
            is_active=is_active,
        )
        for i, price in enumerate(prices, start=1):
            ProductVariant.objects.create(product=product, weight_label=f"{i} Kg", price=Decimal(price))
        return product
    return _make


@pytest.fixture
def product(make_product, category):
    return make_product(category=category, prices=("4000", "2500"))


@pytest.fixture
def make_order(db):
    def _make(phone="0712345678", status=Order.PENDING, **kwargs):
        fields = {
            "first_name": "Achieng",
            "last_name": "Otieno",
            "email": "achieng@example.com",
            "customer_phone": phone,
            "total_amount": Decimal("2500.00"),
            "status": status,
        }
        fields.update(kwargs)
        return Order.objects.create(**fields)
    return _make


@pytest.fixture
def staff_user(django_user_model):
    return django_user_model.objects.create_user(username="baker", password="s3cret-pass!", is_staff=True)


@pytest.fixture
def staff_client(client, staff_user):
    client.force_login(staff_user)
    return client


@pytest.fixture
def put_in_cart(client):
    def _put(*lines):
        client.cookies[cart.COOKIE_NAME] = cart.write(list(lines))
    return _put


def line_for(variant, quantity=1, **kwargs):
    return cart.CartLine(
        variant_id=variant.pk,
        product_name=f"{variant.product.name} ({variant.weight_label})",
        image_url="/static/img/cake-placeholder.svg",
        price=variant.price,
        quantity=quantity,
        **kwargs,
    )


@pytest.fixture
def cart_line():
    return line_for
