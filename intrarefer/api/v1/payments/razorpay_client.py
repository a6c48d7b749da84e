"""
Razorpay payment gateway integration
"""

import asyncio
import logging
from functools import partial
from typing import Any, Dict, Optional

import razorpay
import requests
from razorpay.errors import BadRequestError, GatewayError, ServerError

from intrarefer.core.config import settings
from intrarefer.core.exceptions import (
    GatewayNotConfiguredException,
    PaymentGatewayException,
    PaymentGatewayTimeoutException,
)

logger = logging.getLogger(__name__)

class RazorpayClient:
    """
    Razorpay API client wrapper

    The SDK is blocking, so calls run in the default executor with a
    bounded request timeout. Gateway error text is logged, never returned.
    """

    def __init__(self, key_id: str, key_secret: str, timeout: float):
        self.key_id = key_id
        self.timeout = timeout
        self.client = razorpay.Client(auth=(key_id, key_secret))

    def _call(self, operation: str, func, *args, **kwargs) -> Dict[str, Any]:
        try:
            return func(*args, timeout=self.timeout, **kwargs)
        except requests.exceptions.Timeout:
            logger.error(f"Razorpay {operation} timed out after {self.timeout}s")
            raise PaymentGatewayTimeoutException()
        except (BadRequestError, GatewayError, ServerError) as e:
            logger.error(f"Razorpay {operation} failed: {str(e)}")
            raise PaymentGatewayException()
        except requests.exceptions.RequestException as e:
            logger.error(f"Razorpay {operation} transport error: {str(e)}")
            raise PaymentGatewayException()

    async def _run(self, operation: str, func, *args, **kwargs) -> Dict[str, Any]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, partial(self._call, operation, func, *args, **kwargs))

    async def create_order(
        self,
        amount: int,
        currency: str = "INR",
        receipt: Optional[str] = None,
        notes: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Create Razorpay order

        Args:
            amount: Amount in smallest currency unit (paise for INR)
            currency: Currency code
            receipt: Receipt number
            notes: Additional notes

        Returns:
            Razorpay order details
        """
        order_data = {
            "amount": amount,
            "currency": currency,
            "receipt": receipt or "",
            "notes": notes or {}
        }
        return await self._run("order.create", self.client.order.create, data=order_data)

    async def create_refund(
        self,
        payment_id: str,
        amount: Optional[int] = None,
        notes: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Refund a captured payment

        Args:
            payment_id: Razorpay payment ID
            amount: Refund amount (None for full refund)
            notes: Additional notes

        Returns:
            Refund details
        """
        refund_data: Dict[str, Any] = {}
        if amount is not None:
            refund_data["amount"] = amount
        if notes:
            refund_data["notes"] = notes

        return await self._run("payment.refund", self.client.payment.refund, payment_id, refund_data)

def get_payment_gateway() -> RazorpayClient:
    """Gateway dependency; 503 when credentials are not configured"""
    if not settings.gateway_configured:
        raise GatewayNotConfiguredException()

    return RazorpayClient(
        key_id=settings.RAZORPAY_KEY_ID,
        key_secret=settings.RAZORPAY_KEY_SECRET,
        timeout=settings.RAZORPAY_TIMEOUT_SECONDS
    )
