"""
Back office: order management and catalog editing for shop staff.
"""
import logging
from functools import wraps

from django.contrib.auth import authenticate, login, logout
from django.http import HttpResponseBadRequest
from django.shortcuts import redirect, render, reverse
from django.views.decorators.http import require_GET, require_POST

from . import catalog, orders
from .exceptions import ValidationError
from .models import Order
from .store_utils import parse_int, parse_price

logger = logging.getLogger(__name__)

MAX_NEW_VARIANTS = 3


def admin_required(view):
    """Only logged-in staff get through; everyone else goes to the login page."""
    @wraps(view)
    def wrapper(request, *args, **kwargs):
        user = request.user
        if not (user.is_authenticated and user.is_staff):
            return redirect('backoffice_login')
        return view(request, *args, **kwargs)
    return wrapper


# -------------------------------
# Authentication
# -------------------------------
def login_view(request):
    if request.method == 'POST':
        user = authenticate(
            request,
            username=request.POST.get('username', ''),
            password=request.POST.get('password', ''),
        )
        if user is None or not user.is_staff:
            logger.info("Failed back office login for %r", request.POST.get('username', ''))
            return redirect(f"{reverse('backoffice_login')}?error=true")
        login(request, user)
        return redirect('backoffice_dashboard')

    return render(request, 'bakery/admin/login.html', {
        'title': "Admin Login",
        'error': request.GET.get('error') == 'true',
    })


@require_POST
def logout_view(request):
    logout(request)
    return redirect('backoffice_login')


# -------------------------------
# Orders
# -------------------------------
@admin_required
@require_GET
def dashboard(request):
    return render(request, 'bakery/admin/dashboard.html', {
        'title': "Dashboard",
        'orders': orders.list_orders(),
        'statuses': Order.STATUS_CHOICES,
    })


@admin_required
@require_POST
def update_order_status(request):
    order_id = parse_int(request.POST.get('order_id'))
    try:
        orders.update_status(order_id, request.POST.get('status', ''))
    except ValidationError as e:
        return HttpResponseBadRequest(str(e))
    return redirect('backoffice_dashboard')


@admin_required
@require_GET
def order_detail(request):
    order = orders.get_order(parse_int(request.GET.get('id')))
    return render(request, 'bakery/admin/order_detail.html', {
        'title': "Order Details",
        'order': order,
        'items': orders.get_order_items(order.pk),
    })


# -------------------------------
# Categories
# -------------------------------
@admin_required
@require_GET
def categories(request):
    return render(request, 'bakery/admin/categories.html', {
        'title': "Manage Categories",
        'categories': catalog.list_categories(),
    })


@admin_required
@require_POST
def add_category(request):
    name = request.POST.get('name', '').strip()
    if not name:
        return HttpResponseBadRequest("Category name is required")
    catalog.create_category(name)
    return redirect('backoffice_categories')


@admin_required
@require_POST
def delete_category(request):
    catalog.delete_category(parse_int(request.POST.get('id')))
    return redirect('backoffice_categories')


# -------------------------------
# Products
# -------------------------------
def _product_fields(data):
    name = data.get('name', '').strip()
    if not name:
        raise ValidationError("Product name is required")
    return {
        'name': name,
        'description': data.get('description', '').strip(),
        'category_id': parse_int(data.get('category_id')) or None,
    }


def _new_variants(data):
    variants = []
    for i in range(1, MAX_NEW_VARIANTS + 1):
        weight = data.get(f'weight_{i}', '').strip()
        raw_price = data.get(f'price_{i}', '').strip()
        if not weight or not raw_price:
            continue
        price = parse_price(raw_price)
        if price is None:
            raise ValidationError(f"Invalid price for {weight}")
        variants.append((weight, price))
    return variants


def _price_updates(data):
    updates = []
    for key, value in data.items():
        if not key.startswith('price_'):
            continue
        variant_id = parse_int(key[len('price_'):])
        price = parse_price(value)
        if variant_id <= 0 or price is None:
            raise ValidationError(f"Invalid price for variant {key[len('price_'):]}")
        updates.append((variant_id, price))
    return updates


@admin_required
@require_GET
def products(request):
    return render(request, 'bakery/admin/products.html', {
        'title': "Manage Products",
        'products': catalog.list_active(),
    })


@admin_required
def add_product(request):
    if request.method == 'POST':
        try:
            fields = _product_fields(request.POST)
            variants = _new_variants(request.POST)
        except ValidationError as e:
            return HttpResponseBadRequest(str(e))

        product = catalog.create_product(image=request.FILES.get('image'), **fields)
        for weight, price in variants:
            catalog.create_variant(product.pk, weight, price)
        return redirect('backoffice_products')

    return render(request, 'bakery/admin/product_form.html', {
        'title': "Add New Cake",
        'categories': catalog.list_categories(),
        'new_variant_slots': range(1, MAX_NEW_VARIANTS + 1),
    })


@admin_required
def edit_product(request):
    if request.method == 'POST':
        product_id = parse_int(request.POST.get('id'))
        try:
            fields = _product_fields(request.POST)
            updates = _price_updates(request.POST)
        except ValidationError as e:
            return HttpResponseBadRequest(str(e))

        product = catalog.update_product(product_id, image=request.FILES.get('image'), **fields)
        owned = {variant.pk for variant in catalog.list_variants(product.pk)}
        for variant_id, price in updates:
            if variant_id in owned:
                catalog.update_variant_price(variant_id, price)
        return redirect('backoffice_products')

    product = catalog.get_product(parse_int(request.GET.get('id')))
    return render(request, 'bakery/admin/product_form.html', {
        'title': "Edit Product",
        'product': product,
        'variants': catalog.list_variants(product.pk),
        'categories': catalog.list_categories(),
    })


@admin_required
@require_POST
def delete_product(request):
    catalog.delete_product(parse_int(request.POST.get('id')))
    return redirect('backoffice_products')
