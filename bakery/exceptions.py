from django.http import Http404


class NotFound(Http404):
    """A product, variant, category or order that does not exist."""


class ValidationError(Exception):
    """Bad customer or admin input. Rendered as HTTP 400."""


class StorageError(Exception):
    """A database failure while writing an order. The transaction was rolled back."""


class PaymentError(Exception):
    pass


class AuthError(PaymentError):
    """The gateway refused our credentials or returned no token."""


class GatewayError(PaymentError):
    def __init__(self, message, status_code=None, body=""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body

    def __str__(self):
        base = super().__str__()
        if self.status_code is not None:
            return f"{base} (HTTP {self.status_code}): {self.body}"
        return base
