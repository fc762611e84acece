"""
Safaricom Daraja client: OAuth token and Lipa na M-Pesa STK push.
"""
import base64
import logging

import requests
from django.conf import settings
from django.utils import timezone

from .exceptions import AuthError, GatewayError

logger = logging.getLogger(__name__)

TOKEN_PATH = "/oauth/v1/generate?grant_type=client_credentials"
STK_PUSH_PATH = "/mpesa/stkpush/v1/processrequest"
TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"


def normalize_phone(phone, country_code="254"):
    """
    Rewrite a local number to international form: 0712345678 -> 254712345678.
    Numbers already carrying the country code pass through unchanged.
    """
    phone = str(phone).strip().replace(" ", "")
    if phone.startswith("+"):
        phone = phone[1:]
    if phone.startswith("0"):
        return country_code + phone[1:]
    return phone


def build_password(shortcode, passkey, timestamp):
    return base64.b64encode(f"{shortcode}{passkey}{timestamp}".encode()).decode()


class DarajaClient:
    def __init__(self, consumer_key, consumer_secret, shortcode, passkey, callback_url,
                 base_url="https://sandbox.safaricom.co.ke", timeout=30,
                 transaction_desc="Payment for Cake", country_code="254", session=None):
        self.consumer_key = consumer_key
        self.consumer_secret = consumer_secret
        self.shortcode = shortcode
        self.passkey = passkey
        self.callback_url = callback_url
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transaction_desc = transaction_desc
        self.country_code = country_code
        self.session = session or requests.Session()

    @classmethod
    def from_settings(cls, session=None):
        return cls(
            consumer_key=settings.MPESA_CONSUMER_KEY,
            consumer_secret=settings.MPESA_CONSUMER_SECRET,
            shortcode=settings.MPESA_SHORTCODE,
            passkey=settings.MPESA_PASSKEY,
            callback_url=settings.MPESA_CALLBACK_URL,
            base_url=settings.MPESA_BASE_URL,
            timeout=settings.MPESA_TIMEOUT,
            transaction_desc=settings.MPESA_TRANSACTION_DESC,
            country_code=settings.MPESA_COUNTRY_CODE,
            session=session,
        )

    def get_access_token(self):
        try:
            resp = self.session.get(
                self.base_url + TOKEN_PATH,
                auth=(self.consumer_key, self.consumer_secret),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise AuthError(f"auth request failed: {exc}") from exc

        if resp.status_code != 200:
            raise AuthError(f"auth failed: {resp.text}")
        try:
            token = resp.json()["access_token"]
        except (ValueError, KeyError, TypeError) as exc:
            raise AuthError("auth response carried no access_token") from exc
        if not token:
            raise AuthError("auth response carried an empty access_token")
        return token

    def stk_push(self, phone, amount, order_id, timestamp=None):
        """
        Ask the gateway to prompt ``phone`` for ``amount``.

        Returns the decoded gateway response, which includes the
        CheckoutRequestID echoed back later in the callback.
        """
        token = self.get_access_token()

        phone = normalize_phone(phone, self.country_code)
        timestamp = timestamp or timezone.localtime().strftime(TIMESTAMP_FORMAT)
        payload = {
            "BusinessShortCode": self.shortcode,
            "Password": build_password(self.shortcode, self.passkey, timestamp),
            "Timestamp": timestamp,
            "TransactionType": "CustomerPayBillOnline",
            # The gateway only takes whole currency units.
            "Amount": int(amount),
            "PartyA": phone,
            "PartyB": self.shortcode,
            "PhoneNumber": phone,
            "CallBackURL": self.callback_url,
            "AccountReference": f"Order-{order_id}",
            "TransactionDesc": self.transaction_desc,
        }

        try:
            resp = self.session.post(
                self.base_url + STK_PUSH_PATH,
                json=payload,
                headers={"Authorization": f"Bearer {token}"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise GatewayError(f"STK push request failed: {exc}") from exc

        if resp.status_code != 200:
            raise GatewayError("STK push failed", status_code=resp.status_code, body=resp.text)

        logger.info("STK push accepted for order %s (%s)", order_id, phone)
        try:
            return resp.json()
        except ValueError:
            return {}
