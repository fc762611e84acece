# bakery/store_utils.py
from decimal import Decimal, InvalidOperation

from . import cart


def get_cart_count(request):
    """
    Returns the total item count in the cookie cart.
    """
    return cart.count(cart.get_cart(request))


def category_slug(name):
    # "Wedding Cakes" -> "wedding-cakes"
    return name.strip().lower().replace(" ", "-")


def parse_int(value, default=0):
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def parse_price(value):
    try:
        price = Decimal(str(value).strip())
    except (InvalidOperation, TypeError):
        return None
    if not price.is_finite() or price < 0:
        return None
    return price.quantize(Decimal('0.01'))
