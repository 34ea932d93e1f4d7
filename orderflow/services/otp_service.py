"""
OTP Service for delivery hand-off.

A numeric code is issued when the order is created and handed to the
purchaser only. The delivery agent types in the code the purchaser reads
out; a match moves the order from on_the_way to delivered.

Sending the code by SMS or email is left to an external channel.
"""

import hmac
import logging
import secrets
from datetime import datetime, timezone
from typing import Optional

from orderflow.config import settings
from orderflow.core.exceptions import (
    NotFoundError,
    OtpAttemptsExceededError,
    OtpMismatchError,
)
from orderflow.models.order import Order, OrderStatus, order_key
from orderflow.services.kv_store import KeyValueStore
from orderflow.services.order_state_machine import validate_transition

logger = logging.getLogger(__name__)


class OTPService:
    """
    Service for issuing and verifying hand-off OTPs.
    """

    def __init__(
        self,
        store: KeyValueStore,
        otp_length: Optional[int] = None,
        max_attempts: Optional[int] = None,
    ):
        self.store = store
        self.otp_length = otp_length or settings.OTP_LENGTH
        self.max_attempts = max_attempts or settings.OTP_MAX_ATTEMPTS

    def issue(self) -> str:
        """Generate a uniformly random numeric OTP of fixed length."""
        return str(secrets.randbelow(10 ** self.otp_length)).zfill(self.otp_length)

    async def verify(self, order_id: str, otp_code: str) -> Order:
        """
        Verify the OTP for an order and mark it delivered.

        Every write is guarded on both the status and the attempt counter
        that were read, so concurrent wrong guesses are each counted once
        and the limit holds exactly. A lost write re-reads and retries.

        Raises:
            NotFoundError: order does not exist
            InvalidStateError: order is not on_the_way (including already delivered)
            OtpAttemptsExceededError: too many wrong codes for this order
            OtpMismatchError: code does not match
        """
        key = order_key(order_id)
        submitted = (otp_code or "").strip().encode()

        while True:
            data = await self.store.get(key)
            if data is None:
                raise NotFoundError("Order not found")

            order = Order.from_store(data)
            validate_transition(order.status, OrderStatus.DELIVERED)

            if order.otp_attempts >= self.max_attempts:
                logger.warning(f"OTP attempts exhausted for {key}")
                raise OtpAttemptsExceededError()

            guard = {
                "status": OrderStatus.ON_THE_WAY.value,
                "otpAttempts": order.otp_attempts,
            }

            if not hmac.compare_digest(order.otp_code.encode(), submitted):
                failed = order.model_copy(update={"otp_attempts": order.otp_attempts + 1})
                if not await self.store.compare_and_set(key, guard, failed.to_store()):
                    continue
                remaining = self.max_attempts - failed.otp_attempts
                logger.warning(f"Invalid OTP attempt for {key}, {remaining} left")
                raise OtpMismatchError(f"Invalid OTP. {remaining} attempts remaining.")

            delivered = order.model_copy(update={
                "status": OrderStatus.DELIVERED,
                "delivered_at": datetime.now(timezone.utc),
            })
            if not await self.store.compare_and_set(key, guard, delivered.to_store()):
                continue

            logger.info(f"Order {key} delivered after OTP verification")
            return delivered
