"""
Order emails: a receipt for the customer and an alert for the shop.

Sending happens on a small background executor after the order has been
committed, so a slow or failing mail server never holds up checkout.
"""
import logging
from concurrent.futures import ThreadPoolExecutor

from anymail.message import AnymailMessage
from django.conf import settings
from django.db import close_old_connections
from django.template.loader import render_to_string

from . import orders

logger = logging.getLogger(__name__)

_executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="order-mail")


def admin_recipients():
    raw_admins = getattr(settings, "ADMIN_NOTIFICATION_EMAILS", None)
    if isinstance(raw_admins, str):
        recipient_list = [e.strip() for e in raw_admins.split(",") if e.strip()]
    elif isinstance(raw_admins, (list, tuple)):
        recipient_list = [e.strip() for e in raw_admins if e and e.strip()]
    else:
        recipient_list = []

    if not recipient_list:
        recipient_list = [settings.DEFAULT_FROM_EMAIL]

    seen = set()
    clean_recipients = []
    for r in recipient_list:
        low = r.lower()
        if low not in seen:
            clean_recipients.append(r)
            seen.add(low)
    return clean_recipients


def _send(template, subject, to, ctx):
    plain = render_to_string(f"bakery/emails/{template}.txt", ctx)
    html = render_to_string(f"bakery/emails/{template}.html", ctx)
    msg = AnymailMessage(
        subject=subject,
        body=plain,
        from_email=settings.DEFAULT_FROM_EMAIL,
        to=to,
    )
    msg.attach_alternative(html, "text/html")
    msg.send()


def send_order_emails(order_id):
    """
    Render and send both order emails. Each failure is logged and does not
    stop the other message.
    """
    order = orders.get_order(order_id)
    ctx = {
        "order": order,
        "items": orders.get_order_items(order_id),
        "name": order.customer_name or "Customer",
        "site_url": settings.SITE_URL,
    }

    sent = 0
    if order.email:
        try:
            _send("customer_receipt", f"Order Confirmation - {settings.SHOP_NAME} #{order.id}", [order.email], ctx)
            sent += 1
        except Exception:
            logger.exception("Failed to send customer email for order %s", order_id)

    recipients = admin_recipients()
    try:
        _send("admin_alert", f"New Order Alert! #{order.id}", recipients, ctx)
        sent += 1
    except Exception:
        logger.exception("Failed to send admin email for order %s to %s", order_id, recipients)
    return sent


def _run(order_id):
    try:
        return send_order_emails(order_id)
    finally:
        close_old_connections()


def _log_failure(future):
    exc = future.exception()
    if exc is not None:
        logger.error("Order email task failed", exc_info=(type(exc), exc, exc.__traceback__))


def dispatch_order_emails(order_id):
    """Queue the order emails and return the Future."""
    future = _executor.submit(_run, order_id)
    future.add_done_callback(_log_failure)
    logger.info("Queued order emails for order %s", order_id)
    return future
