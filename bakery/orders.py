"""
Order persistence: atomic creation, status changes and receipt rows.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal

from django.db import DatabaseError, transaction
from django.utils import timezone

from .exceptions import NotFound, StorageError, ValidationError
from .models import Order, OrderItem

logger = logging.getLogger(__name__)

VALID_STATUSES = {choice for choice, _ in Order.STATUS_CHOICES}


@dataclass(frozen=True)
class CustomerInfo:
    first_name: str
    last_name: str
    email: str
    whatsapp_number: str
    customer_phone: str


@dataclass(frozen=True)
class NewOrderItem:
    variant_id: int
    quantity: int
    price_at_purchase: Decimal
    icing_flavor: str = ""
    custom_message: str = ""


@dataclass(frozen=True)
class OrderDetailItem:
    product_name: str
    image_url: str
    weight_label: str
    quantity: int
    price: Decimal
    icing: str
    message: str

    @property
    def line_total(self):
        return self.price * self.quantity


def order_total(items):
    return sum((item.price_at_purchase * item.quantity for item in items), Decimal('0'))


def create_order(customer, items):
    """
    Insert an order and all of its items in one transaction.

    The status is always PENDING and the timestamp is taken from the server
    clock. If any insert fails nothing is written and StorageError is raised.
    """
    try:
        with transaction.atomic():
            order = Order.objects.create(
                first_name=customer.first_name,
                last_name=customer.last_name,
                email=customer.email,
                whatsapp_number=customer.whatsapp_number,
                customer_phone=customer.customer_phone,
                total_amount=order_total(items),
                status=Order.PENDING,
                created_at=timezone.now(),
            )
            for item in items:
                OrderItem.objects.create(
                    order=order,
                    variant_id=item.variant_id,
                    quantity=item.quantity,
                    icing_flavor=item.icing_flavor,
                    custom_message=item.custom_message,
                    price_at_purchase=item.price_at_purchase,
                )
    except DatabaseError as exc:
        logger.exception("Failed to create order for %s", customer.customer_phone)
        raise StorageError("Failed to place order") from exc

    logger.info("Order %s created (%s items, total %s)", order.pk, len(items), order.total_amount)
    return order.pk


def list_orders():
    return list(Order.objects.order_by('-id'))


def get_order(order_id):
    try:
        return Order.objects.get(pk=order_id)
    except (Order.DoesNotExist, ValueError, TypeError):
        raise NotFound(f"Order {order_id} not found")


def status_of(order_id):
    status = Order.objects.filter(pk=order_id).values_list('status', flat=True).first()
    if status is None:
        raise NotFound(f"Order {order_id} not found")
    return status


def update_status(order_id, status):
    # Any known status may overwrite any other; there are no transition rules.
    if status not in VALID_STATUSES:
        raise ValidationError(f"Unknown order status {status!r}")
    updated = Order.objects.filter(pk=order_id).update(status=status)
    if not updated:
        raise NotFound(f"Order {order_id} not found")
    logger.info("Order %s status set to %s", order_id, status)


def record_checkout_request(order_id, checkout_request_id):
    # Raises IntegrityError if another order already holds this id.
    with transaction.atomic():
        Order.objects.filter(pk=order_id).update(checkout_request_id=checkout_request_id)


def get_order_items(order_id):
    rows = (
        OrderItem.objects
        .filter(order_id=order_id)
        .select_related('variant__product')
        .order_by('id')
    )
    return [
        OrderDetailItem(
            product_name=row.variant.product.name,
            image_url=row.variant.product.image_url,
            weight_label=row.variant.weight_label,
            quantity=row.quantity,
            price=row.price_at_purchase,
            icing=row.icing_flavor,
            message=row.custom_message,
        )
        for row in rows
    ]
