"""
STK push callback handling.

The gateway posts the outcome of a push to us some time after the payment
page rendered. A successful result marks one pending order as PAID; any
other result is logged and dropped, leaving the order PENDING.
"""
import logging
from dataclasses import dataclass

from django.conf import settings
from django.db import transaction

from .models import Order
from .mpesa import normalize_phone

logger = logging.getLogger(__name__)

ACKNOWLEDGEMENT = {"ResultCode": 0, "ResultDesc": "Accepted"}


@dataclass(frozen=True)
class StkResult:
    merchant_request_id: str
    checkout_request_id: str
    result_code: int
    result_desc: str
    metadata: dict

    @property
    def succeeded(self):
        return self.result_code == 0


def metadata_value_to_str(value):
    # Phone numbers arrive as JSON numbers (sometimes floats); keep plain digits.
    if isinstance(value, bool) or value is None:
        return ""
    if isinstance(value, float):
        return f"{value:.0f}"
    return str(value).strip()


def _result_code(value):
    # Whole numbers only; 0.5 must not read as success.
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def parse_callback(payload):
    """
    Pull the stkCallback block out of a decoded callback body.
    Returns None when the body does not have the expected shape.
    """
    try:
        callback = payload["Body"]["stkCallback"]
        result_code = _result_code(callback["ResultCode"])
    except (KeyError, TypeError):
        return None
    if result_code is None:
        return None

    raw_metadata = callback.get("CallbackMetadata") or {}
    if not isinstance(raw_metadata, dict):
        return None
    items = raw_metadata.get("Item") or []
    if not isinstance(items, list):
        return None

    metadata = {}
    for item in items:
        if not isinstance(item, dict) or not isinstance(item.get("Name"), str):
            return None
        metadata[item["Name"]] = item.get("Value")

    return StkResult(
        merchant_request_id=str(callback.get("MerchantRequestID") or ""),
        checkout_request_id=str(callback.get("CheckoutRequestID") or ""),
        result_code=result_code,
        result_desc=str(callback.get("ResultDesc") or ""),
        metadata=metadata,
    )


def phone_variants(phone):
    country_code = settings.MPESA_COUNTRY_CODE
    variants = {phone, normalize_phone(phone, country_code)}
    if phone.startswith(country_code):
        variants.add("0" + phone[len(country_code):])
    return variants


def mark_paid(phone, checkout_request_id="", receipt=""):
    """
    Flip one PENDING order to PAID.

    A CheckoutRequestID we stored decides the order on its own: if that order
    is no longer PENDING the callback is a redelivery and nothing changes. The
    same goes for a receipt already recorded on any order. Only an unknown id
    falls back to the most recent PENDING order for the paying phone number.
    """
    with transaction.atomic():
        if receipt and Order.objects.filter(mpesa_receipt=receipt).exists():
            logger.info("Receipt %s already recorded; ignoring redelivered callback", receipt)
            return None

        order = None
        if checkout_request_id:
            order = Order.objects.select_for_update().filter(checkout_request_id=checkout_request_id).first()
            if order is not None and order.status != Order.PENDING:
                logger.info("Request %s already settled on order %s", checkout_request_id, order.pk)
                return None
        if order is None and phone:
            order = (
                Order.objects.select_for_update()
                .filter(status=Order.PENDING, customer_phone__in=phone_variants(phone))
                .order_by('-id')
                .first()
            )
        if order is None:
            return None

        order.status = Order.PAID
        if receipt:
            order.mpesa_receipt = receipt
        order.save(update_fields=['status', 'mpesa_receipt'])
    return order


def handle_callback(payload):
    result = parse_callback(payload)
    if result is None:
        logger.warning("Ignoring malformed M-Pesa callback: %r", payload)
        return None

    if not result.succeeded:
        logger.info(
            "Payment failed or cancelled. Code: %s (%s) request %s",
            result.result_code, result.result_desc, result.checkout_request_id,
        )
        return None

    phone = metadata_value_to_str(result.metadata.get("PhoneNumber"))
    receipt = metadata_value_to_str(result.metadata.get("MpesaReceiptNumber"))
    logger.info("Payment confirmed via callback for phone %s", phone)

    order = mark_paid(phone, result.checkout_request_id, receipt)
    if order is None:
        logger.warning(
            "No pending order matched callback (phone %s, request %s)",
            phone, result.checkout_request_id,
        )
    else:
        logger.info("Order %s marked PAID (receipt %s)", order.pk, receipt or "-")
    return order
