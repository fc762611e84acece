import json
import logging

from django.db import DatabaseError, IntegrityError, transaction
from django.http import HttpResponseBadRequest, JsonResponse
from django.shortcuts import redirect, render, reverse
from django.views.decorators.http import require_GET, require_POST

from . import cart, catalog, orders
from .exceptions import NotFound, PaymentError, ValidationError
from .models import Order
from .mpesa import DarajaClient
from .notifications import dispatch_order_emails
from .payments import ACKNOWLEDGEMENT, handle_callback
from .store_utils import parse_int

logger = logging.getLogger(__name__)


# -------------------------------
# Basic Pages
# -------------------------------
def home(request):
    return render(request, 'bakery/home.html', {
        'title': "Home",
        'products': catalog.list_active(),
    })


def all_cakes(request):
    return render(request, 'bakery/category.html', {
        'title': "All Cakes",
        'products': catalog.list_active(),
    })


def category_view(request):
    category_id = parse_int(request.GET.get('id'))
    category = catalog.get_category(category_id)
    return render(request, 'bakery/category.html', {
        'title': category.name,
        'category': category,
        'products': catalog.list_by_category(category.pk),
    })


def product_detail(request):
    product = catalog.get_product(parse_int(request.GET.get('id')))
    return render(request, 'bakery/product.html', {
        'title': product.name,
        'product': product,
        'variants': catalog.list_variants(product.pk),
    })


# -------------------------------
# CART SYSTEM
# -------------------------------
def _cart_line_from_form(data):
    product_id = parse_int(data.get('product_id'))
    variant_id = parse_int(data.get('variant_id'))
    quantity = parse_int(data.get('quantity'), default=1)

    if variant_id <= 0 or quantity < 1:
        raise ValidationError("Please select a size")

    try:
        variant = catalog.get_variant(variant_id)
    except NotFound:
        raise ValidationError("That size is no longer available")
    if product_id and variant.product_id != product_id:
        raise ValidationError("That size does not belong to this cake")

    product = catalog.get_product(variant.product_id)
    return cart.CartLine(
        variant_id=variant.pk,
        product_name=f"{product.name} ({variant.weight_label})",
        image_url=product.image_url,
        price=variant.price,
        quantity=quantity,
        message=data.get('message', '').strip(),
        icing=data.get('icing', '').strip(),
    )


@require_POST
def add_to_cart(request):
    try:
        line = _cart_line_from_form(request.POST)
    except ValidationError as e:
        return HttpResponseBadRequest(str(e))

    lines = cart.add_line(cart.get_cart(request), line)
    return cart.save_cart(redirect('cart'), lines)


@require_GET
def cart_view(request):
    lines = cart.get_cart(request)
    return render(request, 'bakery/cart.html', {
        'title': "Your Cart",
        'items': lines,
        'total': cart.total(lines),
    })


@require_POST
def remove_from_cart(request):
    variant_id = parse_int(request.POST.get('variant_id'))
    lines = cart.remove_line(cart.get_cart(request), variant_id)
    return cart.save_cart(redirect('cart'), lines)


@require_POST
def update_cart_item(request):
    variant_id = parse_int(request.POST.get('variant_id'))
    action = request.POST.get('action')

    lines = cart.get_cart(request)
    if action == 'increase':
        lines = cart.change_quantity(lines, variant_id, 1)
    elif action == 'decrease':
        lines = cart.change_quantity(lines, variant_id, -1)
    return cart.save_cart(redirect('cart'), lines)


# -------------------------------
# CHECKOUT
# -------------------------------
def _customer_from_form(data):
    customer = orders.CustomerInfo(
        first_name=data.get('first_name', '').strip(),
        last_name=data.get('last_name', '').strip(),
        email=data.get('email', '').strip(),
        whatsapp_number=data.get('whatsapp', '').strip(),
        customer_phone=data.get('mpesa_phone', '').strip(),
    )
    if not customer.first_name or not customer.customer_phone:
        raise ValidationError("Name and Phone are required")
    return customer


def _order_items_from_cart(lines):
    """
    Turn cart lines into order items, freezing each variant's current price.
    Every line must still point at a real variant.
    """
    items = []
    for line in lines:
        if line.quantity < 1:
            raise ValidationError("Quantities must be at least 1")
        try:
            variant = catalog.get_variant(line.variant_id)
        except NotFound:
            raise ValidationError(f"{line.product_name} is no longer available")
        items.append(orders.NewOrderItem(
            variant_id=variant.pk,
            quantity=line.quantity,
            price_at_purchase=variant.price,
            icing_flavor=line.icing,
            custom_message=line.message,
        ))
    return items


def checkout(request):
    lines = cart.get_cart(request)
    if not lines:
        return redirect('cakes')

    if request.method == 'POST':
        try:
            customer = _customer_from_form(request.POST)
            items = _order_items_from_cart(lines)
        except ValidationError as e:
            return HttpResponseBadRequest(str(e))

        # StorageError propagates as a 500.
        order_id = orders.create_order(customer, items)
        transaction.on_commit(lambda: dispatch_order_emails(order_id))

        response = redirect(f"{reverse('payment')}?order_id={order_id}")
        return cart.clear_cart(response)

    return render(request, 'bakery/checkout.html', {
        'title': "Checkout",
        'items': lines,
        'total': cart.total(lines),
    })


# -------------------------------
# PAYMENT
# -------------------------------
def _request_stk_push(order):
    try:
        response = DarajaClient.from_settings().stk_push(order.customer_phone, order.total_amount, order.pk)
    except PaymentError as e:
        # The order stays PENDING; revisiting this page retries the push.
        logger.error("Mpesa Error for order %s: %s", order.pk, e)
        return False

    checkout_request_id = response.get("CheckoutRequestID")
    if checkout_request_id:
        try:
            orders.record_checkout_request(order.pk, checkout_request_id)
        except IntegrityError:
            # The push went out; callbacks can still match on phone.
            logger.error("CheckoutRequestID %s already used; not stored on order %s", checkout_request_id, order.pk)
    return True


@require_GET
def payment(request):
    order = orders.get_order(parse_int(request.GET.get('order_id')))

    push_sent = False
    if order.status == Order.PENDING:
        push_sent = _request_stk_push(order)

    return render(request, 'bakery/payment.html', {
        'title': "Processing Payment",
        'order': order,
        'push_sent': push_sent,
    })


# -------------------------------
# API (M-Pesa callback & status polling)
# -------------------------------
@require_POST
def mpesa_callback(request):
    try:
        payload = json.loads(request.body)
    except ValueError:
        logger.warning("Error decoding M-Pesa callback body")
        payload = None

    if payload is not None:
        try:
            handle_callback(payload)
        except DatabaseError:
            logger.exception("Error updating DB from callback")
        except Exception:
            logger.exception("Unexpected error handling M-Pesa callback")

    # Always acknowledge so the gateway does not redeliver.
    return JsonResponse(ACKNOWLEDGEMENT)


@require_GET
def order_status(request):
    try:
        status = orders.status_of(parse_int(request.GET.get('id')))
    except NotFound:
        status = "ERROR"
    return JsonResponse({'status': status})
