import logging

from django.db import DatabaseError
from django.utils import timezone

from . import catalog
from .store_utils import get_cart_count

logger = logging.getLogger(__name__)


def storefront(request):
    """Navbar categories, cart badge and footer year for every page."""
    try:
        categories = catalog.list_categories()
    except DatabaseError:
        logger.exception("Error fetching categories")
        categories = []
    return {
        'nav_categories': categories,
        'cart_count': get_cart_count(request),
        'current_year': timezone.now().year,
    }
