"""
Cookie-backed shopping cart.

The cart never touches the database: the list of lines is serialized into
a signed, compressed value stored in the ``crave_cart`` cookie. Anything
that cannot be decoded (missing, tampered with, expired after 24 hours)
reads back as an empty cart.
"""
import logging
from dataclasses import asdict, dataclass, replace
from decimal import Decimal, InvalidOperation

from django.core import signing

logger = logging.getLogger(__name__)

COOKIE_NAME = "crave_cart"
COOKIE_MAX_AGE = 24 * 60 * 60
SIGNING_SALT = "bakery.cart"


@dataclass(frozen=True)
class CartLine:
    variant_id: int
    product_name: str
    image_url: str
    price: Decimal
    quantity: int
    message: str = ""
    icing: str = ""

    @property
    def line_total(self):
        return self.price * self.quantity

    def to_dict(self):
        data = asdict(self)
        data["price"] = str(self.price)
        return data

    @classmethod
    def from_dict(cls, data):
        return cls(
            variant_id=int(data["variant_id"]),
            product_name=str(data.get("product_name", "")),
            image_url=str(data.get("image_url", "")),
            price=Decimal(str(data["price"])),
            quantity=int(data["quantity"]),
            message=str(data.get("message", "")),
            icing=str(data.get("icing", "")),
        )


# -------------------------------
# Codec
# -------------------------------
def read(value):
    if not value:
        return []
    try:
        payload = signing.loads(value, salt=SIGNING_SALT, max_age=COOKIE_MAX_AGE)
        return [CartLine.from_dict(entry) for entry in payload]
    except signing.BadSignature:
        # SignatureExpired is a BadSignature too.
        logger.info("Discarding unreadable or expired cart cookie")
        return []
    except (KeyError, TypeError, ValueError, InvalidOperation):
        logger.info("Discarding malformed cart cookie")
        return []


def write(lines):
    return signing.dumps([line.to_dict() for line in lines], salt=SIGNING_SALT, compress=True)


# -------------------------------
# Line operations (pure, return new lists)
# -------------------------------
def add_line(lines, new_line):
    merged = []
    found = False
    for line in lines:
        if not found and line.variant_id == new_line.variant_id:
            line = replace(line, quantity=line.quantity + new_line.quantity)
            found = True
        merged.append(line)
    if not found:
        merged.append(new_line)
    return merged


def remove_line(lines, variant_id):
    return [line for line in lines if line.variant_id != variant_id]


def change_quantity(lines, variant_id, delta):
    changed = []
    for line in lines:
        if line.variant_id == variant_id:
            line = replace(line, quantity=max(1, line.quantity + delta))
        changed.append(line)
    return changed


def total(lines):
    return sum((line.line_total for line in lines), Decimal('0'))


def count(lines):
    return sum(line.quantity for line in lines)


# -------------------------------
# HTTP helpers
# -------------------------------
def get_cart(request):
    return read(request.COOKIES.get(COOKIE_NAME))


def save_cart(response, lines):
    response.set_cookie(
        COOKIE_NAME,
        write(lines),
        max_age=COOKIE_MAX_AGE,
        path="/",
        httponly=True,
        samesite="Lax",
    )
    return response


def clear_cart(response):
    response.delete_cookie(COOKIE_NAME, path="/")
    return response
