"""
Razorpay gateway — orders through the official SDK, plus HMAC signatures.

Signatures (hex HMAC-SHA256):
  checkout callback → key_secret     over "<order_id>|<payment_id>"
  webhook           → webhook_secret over the raw request body

The SDK is synchronous (requests underneath); calls run in a worker thread.
"""

import asyncio
import hashlib
import hmac
import logging

import razorpay
from razorpay.errors import BadRequestError, ServerError
from razorpay.errors import GatewayError as RazorpayGatewayError

from config import settings

logger = logging.getLogger(__name__)

# requests' transport errors subclass OSError
SDK_ERRORS = (BadRequestError, ServerError, RazorpayGatewayError, OSError)


class GatewayConfigError(Exception):
    """Credentials or secrets missing; raised before any network call."""

    status_code = 503


class GatewayError(Exception):
    """Razorpay rejected the request or could not be reached."""

    status_code = 500

    def __init__(self, message: str, detail: str | None = None):
        super().__init__(message)
        self.detail = detail


# ── Signatures ─────────────────────────────────────────────

def _hmac_hex(secret: str, message: bytes) -> str:
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


def payment_signature(secret: str, order_id: str, payment_id: str) -> str:
    return _hmac_hex(secret, f"{order_id}|{payment_id}".encode())


def webhook_signature(secret: str, body: bytes) -> str:
    return _hmac_hex(secret, body)


def verify_payment_signature(secret: str, order_id: str, payment_id: str, signature: str) -> bool:
    expected = payment_signature(secret, order_id, payment_id)
    return hmac.compare_digest(expected, signature or "")


def verify_webhook_signature(secret: str, body: bytes, signature: str | None) -> bool:
    expected = webhook_signature(secret, body)
    return hmac.compare_digest(expected, signature or "")


# ── Orders API ─────────────────────────────────────────────

class RazorpayClient:
    def __init__(self, key_id: str, key_secret: str, sdk: razorpay.Client | None = None):
        self.key_id = key_id
        self.key_secret = key_secret
        self._sdk = sdk

    @property
    def configured(self) -> bool:
        return bool(self.key_id and self.key_secret)

    @property
    def sdk(self) -> razorpay.Client:
        if not self.configured:
            raise GatewayConfigError("Payment gateway configuration missing")
        if self._sdk is None:
            self._sdk = razorpay.Client(auth=(self.key_id, self.key_secret))
        return self._sdk

    async def _call(self, action: str, fn, *args) -> dict:
        try:
            return await asyncio.to_thread(fn, *args)
        except SDK_ERRORS as e:
            msg = e.args[0] if e.args else str(e)
            logger.error("Razorpay %s failed: %s", action, msg)
            raise GatewayError("Payment gateway error", str(msg)) from e

    async def create_order(
        self,
        amount: int,
        currency: str,
        receipt: str,
        notes: dict[str, str] | None = None,
    ) -> dict:
        """
        Create an order. Returns the order entity ({"id", "amount", "currency", ...}).

        Raises GatewayConfigError when keys are missing and GatewayError when
        Razorpay rejects the call or cannot be reached.
        """
        payload = {
            "amount": amount,
            "currency": currency,
            "receipt": receipt,
            "notes": notes or {},
        }
        return await self._call("order create", self.sdk.order.create, payload)

    async def fetch_order(self, order_id: str) -> dict:
        """The order entity as Razorpay stores it, notes included."""
        return await self._call("order fetch", self.sdk.order.fetch, order_id)


def get_gateway() -> RazorpayClient:
    """FastAPI dependency for the gateway client."""
    return RazorpayClient(settings.RAZORPAY_KEY_ID, settings.RAZORPAY_KEY_SECRET)
