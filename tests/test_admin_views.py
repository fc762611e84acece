from decimal import Decimal

import pytest
from django.conf import settings
from django.core.management import CommandError, call_command
from django.template import Context, Template

from bakery.models import Category, Order, OrderItem, Product, ProductVariant
from bakery.store_utils import category_slug, parse_int, parse_price

pytestmark = pytest.mark.django_db


# -------------------------------
# Gate and login
# -------------------------------
@pytest.mark.parametrize("url", [
    "/admin/dashboard/",
    "/admin/categories/",
    "/admin/products/",
    "/admin/products/add/",
    "/admin/orders/view/?id=1",
])
def test_back_office_pages_need_login(client, url):
    response = client.get(url)
    assert response.status_code == 302
    assert response["Location"] == "/admin/login/"


def test_non_staff_users_are_turned_away(client, django_user_model):
    shopper = django_user_model.objects.create_user(username="shopper", password="pw-12345!")
    client.force_login(shopper)

    assert client.get("/admin/dashboard/")["Location"] == "/admin/login/"


def test_login_issues_opaque_session_cookie(client, staff_user):
    response = client.post("/admin/login/", {"username": "baker", "password": "s3cret-pass!"})

    assert response.status_code == 302
    assert response["Location"] == "/admin/dashboard/"
    cookie = response.cookies[settings.SESSION_COOKIE_NAME]
    assert settings.SESSION_COOKIE_NAME == "admin_session"
    assert cookie["httponly"]
    assert cookie.value != str(staff_user.pk)
    assert client.get("/admin/dashboard/").status_code == 200


@pytest.mark.parametrize("password", ["wrong", ""])
def test_bad_login_redirects_with_error(client, staff_user, password):
    response = client.post("/admin/login/", {"username": "baker", "password": password})

    assert response["Location"] == "/admin/login/?error=true"
    assert client.get("/admin/login/?error=true").context["error"] is True


def test_logout_ends_session(staff_client):
    staff_client.post("/admin/logout/")
    assert staff_client.get("/admin/dashboard/").status_code == 302


# -------------------------------
# Orders
# -------------------------------
def test_dashboard_lists_newest_orders_first(staff_client, make_order):
    older = make_order()
    newer = make_order(first_name="Wanjiru")

    response = staff_client.get("/admin/dashboard/")

    assert response.status_code == 200
    assert [o.pk for o in response.context["orders"]] == [newer.pk, older.pk]


def test_status_update(staff_client, make_order):
    order = make_order()

    response = staff_client.post("/admin/order/status/", {"order_id": order.pk, "status": "PAID"})

    assert response["Location"] == "/admin/dashboard/"
    order.refresh_from_db()
    assert order.status == Order.PAID


def test_status_update_rejects_unknown_status(staff_client, make_order):
    order = make_order()

    response = staff_client.post("/admin/order/status/", {"order_id": order.pk, "status": "SHIPPED"})

    assert response.status_code == 400
    order.refresh_from_db()
    assert order.status == Order.PENDING


def test_order_detail_shows_line_items(staff_client, make_order, product):
    order = make_order()
    variant = product.variants.order_by("price").first()
    OrderItem.objects.create(
        order=order, variant=variant, quantity=2, price_at_purchase=Decimal("2500"),
        icing_flavor="Chocolate", custom_message="Congrats",
    )

    response = staff_client.get(f"/admin/orders/view/?id={order.pk}")

    assert response.status_code == 200
    (item,) = response.context["items"]
    assert item.product_name == "Black Forest"
    assert item.weight_label == "2 Kg"
    assert item.line_total == Decimal("5000")
    assert "Congrats" in response.content.decode()


def test_order_detail_for_missing_order_is_404(staff_client):
    assert staff_client.get("/admin/orders/view/?id=9999").status_code == 404


# -------------------------------
# Categories
# -------------------------------
def test_add_and_delete_category(staff_client):
    response = staff_client.post("/admin/categories/add/", {"name": "Wedding Cakes"})
    assert response["Location"] == "/admin/categories/"

    category = Category.objects.get()
    assert category.slug == "wedding-cakes"

    staff_client.post("/admin/categories/delete/", {"id": category.pk})
    assert not Category.objects.exists()


def test_add_category_requires_name(staff_client):
    assert staff_client.post("/admin/categories/add/", {"name": " "}).status_code == 400


def test_deleting_category_keeps_its_products(staff_client, product, category):
    staff_client.post("/admin/categories/delete/", {"id": category.pk})

    product.refresh_from_db()
    assert product.category is None


# -------------------------------
# Products
# -------------------------------
def test_add_product_with_sizes(staff_client, category):
    response = staff_client.post("/admin/products/add/", {
        "name": "Red Velvet",
        "description": "Cream cheese frosting",
        "category_id": category.pk,
        "weight_1": "1 Kg", "price_1": "2500",
        "weight_2": "2 Kg", "price_2": "4500.50",
        "weight_3": "", "price_3": "",
    })

    assert response["Location"] == "/admin/products/"
    product = Product.objects.get(name="Red Velvet")
    assert product.category == category
    assert product.is_active
    assert not product.image
    assert [(v.weight_label, v.price) for v in product.variants.order_by("price")] == [
        ("1 Kg", Decimal("2500.00")),
        ("2 Kg", Decimal("4500.50")),
    ]


@pytest.mark.parametrize("form", [
    {"name": "", "weight_1": "1 Kg", "price_1": "100"},
    {"name": "Lemon", "weight_1": "1 Kg", "price_1": "cheap"},
])
def test_add_product_rejects_bad_input(staff_client, form):
    assert staff_client.post("/admin/products/add/", form).status_code == 400
    assert not Product.objects.exists()


def test_edit_product_updates_fields_and_prices(staff_client, product, make_product):
    small, large = product.variants.order_by("price")
    stranger = make_product("Lemon", prices=("900",)).variants.get()

    response = staff_client.post("/admin/products/edit/", {
        "id": product.pk,
        "name": "Black Forest Deluxe",
        "description": "More cherries",
        "category_id": "",
        f"price_{small.pk}": "2600",
        f"price_{stranger.pk}": "1",
    })

    assert response["Location"] == "/admin/products/"
    product.refresh_from_db()
    assert product.name == "Black Forest Deluxe"
    assert product.category is None
    assert ProductVariant.objects.get(pk=small.pk).price == Decimal("2600.00")
    assert ProductVariant.objects.get(pk=large.pk).price == Decimal("4000.00")
    assert ProductVariant.objects.get(pk=stranger.pk).price == Decimal("900.00")


def test_edit_form_renders(staff_client, product):
    response = staff_client.get(f"/admin/products/edit/?id={product.pk}")

    assert response.status_code == 200
    assert len(response.context["variants"]) == 2


def test_delete_product_removes_it_and_its_sizes(staff_client, product):
    staff_client.post("/admin/products/delete/", {"id": product.pk})

    assert not Product.objects.exists()
    assert not ProductVariant.objects.exists()


def test_delete_ordered_product_hides_it_instead(staff_client, product, make_order):
    order = make_order()
    OrderItem.objects.create(
        order=order, variant=product.variants.first(), quantity=1, price_at_purchase=Decimal("4000"),
    )

    response = staff_client.post("/admin/products/delete/", {"id": product.pk})

    assert response.status_code == 302
    product.refresh_from_db()
    assert product.is_active is False
    assert order.items.count() == 1


# -------------------------------
# Django admin
# -------------------------------
def test_django_admin_order_actions(admin_client, make_order):
    first, second = make_order(), make_order()

    response = admin_client.post("/site-admin/bakery/order/", {
        "action": "mark_as_paid",
        "_selected_action": [first.pk, second.pk],
    })

    assert response.status_code == 302
    assert set(Order.objects.values_list("status", flat=True)) == {Order.PAID}


def test_django_admin_cannot_delete_orders(admin_client, make_order):
    order = make_order()
    response = admin_client.get(f"/site-admin/bakery/order/{order.pk}/delete/")
    assert response.status_code == 403


# -------------------------------
# seed_admin command
# -------------------------------
def test_seed_admin_creates_staff_user(monkeypatch, django_user_model):
    monkeypatch.setenv("ADMIN_USERNAME", "owner")
    monkeypatch.setenv("ADMIN_PASSWORD", "cake-boss-2024")

    call_command("seed_admin")

    user = django_user_model.objects.get(username="owner")
    assert user.is_staff
    assert user.check_password("cake-boss-2024")


def test_seed_admin_updates_password(monkeypatch, staff_user):
    monkeypatch.setenv("ADMIN_USERNAME", "baker")
    monkeypatch.setenv("ADMIN_PASSWORD", "new-pass-123!")

    call_command("seed_admin")

    staff_user.refresh_from_db()
    assert staff_user.check_password("new-pass-123!")


def test_seed_admin_requires_environment(monkeypatch):
    monkeypatch.delenv("ADMIN_USERNAME", raising=False)
    monkeypatch.setenv("ADMIN_PASSWORD", "x")

    with pytest.raises(CommandError):
        call_command("seed_admin")


# -------------------------------
# Helpers
# -------------------------------
@pytest.mark.parametrize("value, expected", [
    (Decimal("2500"), "KSh 2,500.00"),
    ("1234.5", "KSh 1,234.50"),
    (None, "KSh 0.00"),
    ("abc", "KSh 0.00"),
])
def test_ksh_filter(value, expected):
    rendered = Template("{% load currency_filters %}{{ value|ksh }}").render(Context({"value": value}))
    assert rendered == expected


def test_parse_helpers():
    assert parse_int("12") == 12
    assert parse_int("x", default=5) == 5
    assert parse_int(None) == 0
    assert parse_price(" 99.999 ") == Decimal("100.00")
    assert parse_price("-1") is None
    assert parse_price("NaN") is None
    assert parse_price("") is None
    assert category_slug(" Wedding Cakes ") == "wedding-cakes"
