"""M-Pesa Daraja client: access tokens, STK Push and B2C payment requests.

Calls are synchronous and bounded by `mpesa_http_timeout_seconds`. Transport
failures are retried once; answers from the gateway, including error answers,
are never retried.

https://developer.safaricom.co.ke/APIs
"""

import base64
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

import httpx

from jobpay.common.config import Settings
from jobpay.common.errors import AuthError, ProviderError, TransportError
from jobpay.common.logging import logger
from jobpay.common.metrics import gateway_request_duration_seconds, retries_total


TOKEN_PATH = "/oauth/v1/generate?grant_type=client_credentials"
STK_PUSH_PATH = "/mpesa/stkpush/v1/processrequest"
B2C_PAYMENT_PATH = "/mpesa/b2c/v1/paymentrequest"

STK_CALLBACK_PATH = "/callbacks/job-payment"
B2C_RESULT_PATH = "/callbacks/dispatch-payment-result"
B2C_QUEUE_TIMEOUT_PATH = "/callbacks/dispatch-queue-timeout"

# Daraja timestamps are local Nairobi time; Kenya has no DST.
EAST_AFRICA_TIME = timezone(timedelta(hours=3), "EAT")
TOKEN_EXPIRY_MARGIN_SECONDS = 60
TRANSPORT_ATTEMPTS = 2


def basic_credentials(key: str, secret: str) -> str:
    return base64.b64encode(f"{key}:{secret}".encode("utf-8")).decode("ascii")


def gateway_timestamp(now: datetime | None = None) -> str:
    """Format `now` as the `YYYYmmddHHMMSS` EAT timestamp the gateway expects."""

    now = now or datetime.now(timezone.utc)
    return now.astimezone(EAST_AFRICA_TIME).strftime("%Y%m%d%H%M%S")


def stk_password(short_code: str, passkey: str, timestamp: str) -> str:
    """Base64 of short code + passkey + timestamp, as required by STK Push."""

    return base64.b64encode(f"{short_code}{passkey}{timestamp}".encode("utf-8")).decode("ascii")


def send_with_retry(send: Callable[[], httpx.Response], endpoint: str, service_name: str) -> httpx.Response:
    """Run `send`, retrying once on transport-level failure only."""

    last_exc: httpx.TransportError | None = None
    for attempt in range(1, TRANSPORT_ATTEMPTS + 1):
        start = time.perf_counter()
        try:
            return send()
        except httpx.TransportError as exc:
            last_exc = exc
            if attempt < TRANSPORT_ATTEMPTS:
                retries_total.labels(service=service_name, dependency="mpesa").inc()
                logger.warning("mpesa transport failure endpoint=%s attempt=%s error=%s", endpoint, attempt, exc)
        finally:
            gateway_request_duration_seconds.labels(service=service_name, endpoint=endpoint).observe(
                max(0.0, time.perf_counter() - start)
            )
    raise TransportError(f"Could not reach M-Pesa ({endpoint}): {last_exc}") from last_exc


def _json_body(response: httpx.Response) -> dict[str, Any] | None:
    try:
        body = response.json()
    except ValueError:
        return None
    return body if isinstance(body, dict) else None


class TokenProvider:
    """Exchanges consumer key/secret for a short-lived bearer token.

    With a cache (anything exposing Redis `get`/`setex`) the token is reused
    until shortly before it expires; without one every call fetches a fresh
    token.
    """

    def __init__(self, settings: Settings, client: httpx.Client, cache=None) -> None:
        self.settings = settings
        self.client = client
        self.cache = cache

    @property
    def cache_key(self) -> str:
        return f"mpesa:access_token:{self.settings.mpesa_env}"

    def _cached(self) -> str | None:
        if self.cache is None:
            return None
        try:
            return self.cache.get(self.cache_key)
        except Exception as exc:
            logger.warning("token_cache_read_failed: %s", exc)
            return None

    def _store(self, token: str, expires_in) -> None:
        if self.cache is None:
            return
        try:
            ttl = int(expires_in) - TOKEN_EXPIRY_MARGIN_SECONDS
        except (TypeError, ValueError):
            return
        if ttl <= 0:
            return
        try:
            self.cache.setex(self.cache_key, ttl, token)
        except Exception as exc:
            logger.warning("token_cache_write_failed: %s", exc)

    def obtain_token(self) -> str:
        cached = self._cached()
        if cached:
            return cached

        key = self.settings.mpesa_consumer_key
        secret = self.settings.mpesa_consumer_secret
        if not key or not secret:
            raise AuthError("M-Pesa consumer key/secret are not configured.")

        url = f"{self.settings.gateway_base_url}{TOKEN_PATH}"
        headers = {"Authorization": f"Basic {basic_credentials(key, secret)}"}
        try:
            response = send_with_retry(
                lambda: self.client.get(url, headers=headers),
                "oauth",
                self.settings.service_name,
            )
        except TransportError as exc:
            raise AuthError(str(exc)) from exc

        body = _json_body(response) or {}
        token = body.get("access_token")
        if not token:
            logger.error("mpesa token response without access_token status=%s", response.status_code)
            raise AuthError()
        self._store(token, body.get("expires_in"))
        return token


class MpesaGateway:
    """Builds and submits payment requests to the Daraja API."""

    def __init__(
        self,
        settings: Settings,
        client: httpx.Client,
        token_provider: TokenProvider,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.settings = settings
        self.client = client
        self.token_provider = token_provider
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def _post(self, path: str, endpoint: str, payload: dict[str, Any]) -> dict[str, Any]:
        """POST one request and return the parsed body.

        Raises `TransportError` when no parseable body arrives and
        `ProviderError` when the body carries an `errorMessage`.
        """

        token = self.token_provider.obtain_token()
        url = f"{self.settings.gateway_base_url}{path}"
        headers = {"Authorization": f"Bearer {token}", "Content-Type": "application/json"}
        response = send_with_retry(
            lambda: self.client.post(url, headers=headers, json=payload),
            endpoint,
            self.settings.service_name,
        )
        body = _json_body(response)
        if body is None:
            raise TransportError(f"Unparseable M-Pesa response (HTTP {response.status_code}).")
        if "errorMessage" in body:
            raise ProviderError(f"Error from M-Pesa: {body['errorMessage']}")
        return body

    def stk_push_payload(self, phone: str, amount: int) -> dict[str, Any]:
        s = self.settings
        timestamp = gateway_timestamp(self.clock())
        return {
            "BusinessShortCode": s.mpesa_business_short_code,
            "Password": stk_password(s.mpesa_business_short_code, s.mpesa_passkey, timestamp),
            "Timestamp": timestamp,
            "TransactionType": "CustomerPayBillOnline",
            "Amount": amount,
            "PartyA": phone,
            "PartyB": s.mpesa_business_short_code,
            "PhoneNumber": phone,
            "CallBackURL": s.callback_url(STK_CALLBACK_PATH),
            "AccountReference": s.mpesa_account_reference,
            "TransactionDesc": s.mpesa_transaction_desc,
        }

    def stk_push(self, phone: str, amount: int) -> dict[str, Any]:
        """Send a Lipa Na M-Pesa Online (STK Push) request."""

        return self._post(STK_PUSH_PATH, "stkpush", self.stk_push_payload(phone, amount))

    def b2c_payload(self, phone: str, amount: int, remarks: str, occasion: str | None = None) -> dict[str, Any]:
        s = self.settings
        return {
            "InitiatorName": s.mpesa_initiator_name,
            "SecurityCredential": s.mpesa_security_credential,
            "CommandID": "BusinessPayment",
            "Amount": amount,
            "PartyA": s.mpesa_business_short_code,
            "PartyB": phone,
            "Remarks": remarks,
            "QueueTimeOutURL": s.callback_url(B2C_QUEUE_TIMEOUT_PATH),
            "ResultURL": s.callback_url(B2C_RESULT_PATH),
            "Occasion": occasion or "",
        }

    def b2c_payment(self, phone: str, amount: int, remarks: str, occasion: str | None = None) -> dict[str, Any]:
        """Send a Business To Customer payout request."""

        return self._post(B2C_PAYMENT_PATH, "b2c", self.b2c_payload(phone, amount, remarks, occasion))
