import base64
from decimal import Decimal
from unittest import mock

import pytest
import requests

from bakery.exceptions import AuthError, GatewayError
from bakery.mpesa import DarajaClient, build_password, normalize_phone

SHORTCODE = "174379"
PASSKEY = "bfb279f9aa9bdbcf158e97dd71a467cd2e0c893059b10f78e6b72ada1ed2c919"


def fake_response(status_code=200, payload=None, text=""):
    resp = mock.Mock(status_code=status_code, text=text)
    if payload is None:
        resp.json.side_effect = ValueError("No JSON")
    else:
        resp.json.return_value = payload
    return resp


@pytest.fixture
def session():
    session = mock.Mock()
    session.get.return_value = fake_response(payload={"access_token": "tok123", "expires_in": "3599"})
    session.post.return_value = fake_response(payload={
        "MerchantRequestID": "29115-34620561-1",
        "CheckoutRequestID": "ws_CO_191220191020363925",
        "ResponseCode": "0",
    })
    return session


@pytest.fixture
def client(session):
    return DarajaClient(
        consumer_key="key",
        consumer_secret="secret",
        shortcode=SHORTCODE,
        passkey=PASSKEY,
        callback_url="https://shop.example.com/api/callback/mpesa",
        base_url="https://sandbox.safaricom.co.ke/",
        session=session,
    )


@pytest.mark.parametrize("raw, expected", [
    ("0712345678", "254712345678"),
    ("254712345678", "254712345678"),
    ("+254712345678", "254712345678"),
    (" 0712 345 678 ", "254712345678"),
])
def test_normalize_phone(raw, expected):
    assert normalize_phone(raw) == expected


def test_build_password_is_base64_of_shortcode_passkey_timestamp():
    password = build_password(SHORTCODE, PASSKEY, "20240101120000")
    assert base64.b64decode(password).decode() == f"{SHORTCODE}{PASSKEY}20240101120000"


def test_get_access_token_uses_basic_auth(client, session):
    assert client.get_access_token() == "tok123"

    url = session.get.call_args.args[0]
    assert url == "https://sandbox.safaricom.co.ke/oauth/v1/generate?grant_type=client_credentials"
    assert session.get.call_args.kwargs["auth"] == ("key", "secret")
    assert session.get.call_args.kwargs["timeout"] == 30


def test_get_access_token_rejects_bad_status(client, session):
    session.get.return_value = fake_response(status_code=400, text="Bad credentials")
    with pytest.raises(AuthError, match="Bad credentials"):
        client.get_access_token()


def test_get_access_token_rejects_malformed_body(client, session):
    session.get.return_value = fake_response(payload={"error": "nope"})
    with pytest.raises(AuthError):
        client.get_access_token()

    session.get.return_value = fake_response()
    with pytest.raises(AuthError):
        client.get_access_token()


def test_get_access_token_wraps_network_errors(client, session):
    session.get.side_effect = requests.ConnectionError("unreachable")
    with pytest.raises(AuthError):
        client.get_access_token()


def test_stk_push_builds_gateway_request(client, session):
    result = client.stk_push("0712345678", Decimal("2500.75"), 42, timestamp="20240101120000")

    assert result["CheckoutRequestID"] == "ws_CO_191220191020363925"
    url = session.post.call_args.args[0]
    kwargs = session.post.call_args.kwargs
    payload = kwargs["json"]

    assert url == "https://sandbox.safaricom.co.ke/mpesa/stkpush/v1/processrequest"
    assert kwargs["headers"]["Authorization"] == "Bearer tok123"
    assert payload["Amount"] == 2500
    assert payload["PartyA"] == payload["PhoneNumber"] == "254712345678"
    assert payload["PartyB"] == payload["BusinessShortCode"] == SHORTCODE
    assert payload["AccountReference"] == "Order-42"
    assert payload["TransactionType"] == "CustomerPayBillOnline"
    assert payload["Timestamp"] == "20240101120000"
    assert payload["Password"] == build_password(SHORTCODE, PASSKEY, "20240101120000")
    assert payload["CallBackURL"] == "https://shop.example.com/api/callback/mpesa"


def test_stk_push_generates_timestamp(client, session):
    client.stk_push("254712345678", 100, 1)
    timestamp = session.post.call_args.kwargs["json"]["Timestamp"]
    assert len(timestamp) == 14 and timestamp.isdigit()


def test_stk_push_failure_carries_response_body(client, session):
    session.post.return_value = fake_response(status_code=500, text='{"errorMessage": "Bad Request - Invalid PhoneNumber"}')

    with pytest.raises(GatewayError) as excinfo:
        client.stk_push("0712345678", 100, 7)

    assert excinfo.value.status_code == 500
    assert "Invalid PhoneNumber" in excinfo.value.body
    assert "Invalid PhoneNumber" in str(excinfo.value)


def test_stk_push_does_not_post_without_token(client, session):
    session.get.return_value = fake_response(status_code=401, text="Unauthorized")
    with pytest.raises(AuthError):
        client.stk_push("0712345678", 100, 7)
    session.post.assert_not_called()


def test_stk_push_wraps_timeouts(client, session):
    session.post.side_effect = requests.Timeout("read timed out")
    with pytest.raises(GatewayError):
        client.stk_push("0712345678", 100, 7)


def test_from_settings(settings):
    settings.MPESA_CONSUMER_KEY = "live-key"
    settings.MPESA_SHORTCODE = "600000"
    settings.MPESA_TIMEOUT = 12

    client = DarajaClient.from_settings(session=mock.Mock())

    assert client.consumer_key == "live-key"
    assert client.shortcode == "600000"
    assert client.timeout == 12
