"""
Payment Service - Razorpay integration.

Handles:
- Gateway order creation
- Payment signature verification
"""

import hashlib
import hmac
from decimal import Decimal
from typing import Any

import httpx
from loguru import logger

from app.core.config import settings
from app.core.exceptions import PaymentGatewayError, ValidationError


class PaymentService:
    """
    Razorpay payment service.

    The browser collects card details against a gateway order created here,
    then posts back the gateway's payment id, order id and signature for
    verification.

    Usage:
        payment = PaymentService()
        order = await payment.create_gateway_order(Decimal("31.25"), "ORD1A2B3C4D")
    """

    def __init__(
        self,
        key_id: str | None = None,
        key_secret: str | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Initialize payment service.

        Args:
            key_id: Gateway key id (or from env)
            key_secret: Gateway key secret (or from env)
            http_client: Client to reuse; a short-lived one is opened per call otherwise
        """
        self.key_id = key_id or settings.razorpay_key_id
        self.key_secret = key_secret or settings.razorpay_key_secret
        self.api_base = f"{settings.razorpay_api_url.rstrip('/')}/v1"
        self._client = http_client

        if not self.key_secret:
            logger.warning(
                "RAZORPAY_KEY_SECRET not configured. "
                "Payment signature verification will fail!"
            )

    @property
    def publishable_key(self) -> str:
        return settings.razorpay_publishable_key

    async def _send(
        self,
        client: httpx.AsyncClient,
        path: str,
        payload: dict[str, Any],
    ) -> dict[str, Any]:
        response = await client.post(
            f"{self.api_base}{path}",
            json=payload,
            auth=(self.key_id, self.key_secret),
            timeout=settings.payment_timeout,
        )
        response.raise_for_status()
        return response.json()

    async def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        if self._client is not None:
            return await self._send(self._client, path, payload)
        async with httpx.AsyncClient() as client:
            return await self._send(client, path, payload)

    async def create_gateway_order(
        self,
        amount: Decimal,
        receipt: str,
        notes: dict[str, Any] | None = None,
        currency: str | None = None,
    ) -> dict[str, Any]:
        """
        Create a remote order keyed by the merchant correlation id.

        Args:
            amount: Amount in major currency units
            receipt: Merchant correlation id
            notes: Extra key/value data stored on the gateway order
            currency: Currency code (defaults to the shop currency)

        Returns:
            Gateway order (id, amount, currency, receipt, status, ...)

        Raises:
            ValidationError: Amount is less than one minor unit
            PaymentGatewayError: Gateway unreachable or rejected the request
        """
        # Gateway expects the amount in minor units (paise / cents)
        amount_minor = int((amount * 100).to_integral_value())
        if amount_minor < 1:
            raise ValidationError(
                "Amount must be positive",
                details={"amount": ["Must be at least 0.01"]},
            )

        try:
            return await self._post(
                "/orders",
                {
                    "amount": amount_minor,
                    "currency": (currency or settings.shop_currency).upper(),
                    "receipt": receipt,
                    "notes": notes or {},
                },
            )
        except httpx.HTTPStatusError as e:
            logger.error(
                f"Gateway rejected order {receipt}: "
                f"{e.response.status_code} {e.response.text}"
            )
            raise PaymentGatewayError() from e
        except httpx.RequestError as e:
            logger.error(f"Gateway request failed for order {receipt}: {e}")
            raise PaymentGatewayError() from e

    def generate_signature(self, gateway_order_id: str, payment_id: str) -> str:
        """HMAC-SHA256 over ``<order_id>|<payment_id>`` as lowercase hex."""
        return hmac.new(
            self.key_secret.encode(),
            f"{gateway_order_id}|{payment_id}".encode(),
            hashlib.sha256,
        ).hexdigest()

    def verify_signature(
        self,
        gateway_order_id: str,
        payment_id: str,
        signature: str,
    ) -> bool:
        """
        Check a payment signature posted back by the checkout widget.

        Returns:
            True if signature is valid, False otherwise
        """
        if not self.key_secret:
            logger.error("Gateway key secret not configured")
            return False

        expected = self.generate_signature(gateway_order_id, payment_id)

        # Constant-time comparison to prevent timing attacks
        is_valid = hmac.compare_digest(expected.encode(), signature.encode())
        if not is_valid:
            logger.warning(
                f"Payment signature mismatch for gateway order {gateway_order_id}"
            )
        return is_valid


def get_payment_service() -> PaymentService:
    """FastAPI dependency providing the payment service."""
    return PaymentService()
