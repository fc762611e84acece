from decimal import Decimal, InvalidOperation

from django import template
from django.conf import settings

register = template.Library()


@register.filter
def ksh(value):
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, TypeError):
        amount = Decimal('0')
    return f"{settings.CURRENCY_LABEL} {amount:,.2f}"
