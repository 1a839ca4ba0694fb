"""
Client for the external payment verification service.

Every request is authenticated with an HMAC signature over the current unix
timestamp:
    X-Timestamp: <unix seconds>
    X-Signature: base64(HMAC-SHA256(secret, timestamp))
The service treats any 2xx as "accepted"; everything else is a failure.
"""

import base64
import hashlib
import hmac
import time
import uuid
from datetime import datetime
from typing import Optional

import httpx

from passdesk.core.logging import get_logger
from passdesk.core.metrics import record_upstream_call

logger = get_logger(__name__)


class PaymentServiceError(Exception):
    pass


def sign_timestamp(timestamp: int, secret_key: str) -> str:
    digest = hmac.new(secret_key.encode("utf-8"), str(timestamp).encode("utf-8"), hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


class PaymentVerificationClient:
    def __init__(self, http: httpx.AsyncClient, url: Optional[str], secret_key: str, timeout: float = 10.0):
        self.http = http
        self.url = url
        self.secret_key = secret_key
        self.timeout = timeout

    def signed_headers(self, timestamp: Optional[int] = None) -> dict:
        if not self.secret_key:
            raise PaymentServiceError("PAYMENT_SERVICE_SECRET is not configured")
        timestamp = int(time.time()) if timestamp is None else timestamp
        return {
            "X-Timestamp": str(timestamp),
            "X-Signature": sign_timestamp(timestamp, self.secret_key),
            "Content-Type": "application/json",
        }

    async def confirm_cash_payment(
        self,
        pass_id: uuid.UUID,
        marked_by: str,
        operation_id: uuid.UUID,
        timestamp: datetime,
    ) -> None:
        """
        Ask the payment service to accept a cash payment for ``pass_id``.

        ``operation_id`` is fresh per attempt so the service can deduplicate
        retried deliveries of the same call. Raises PaymentServiceError on any
        non-2xx response, timeout or transport failure.
        """
        if not self.url:
            raise PaymentServiceError("PAYMENT_SERVICE_URL is not configured")

        body = {
            "pass_id": str(pass_id),
            "marked_by": marked_by,
            "timestamp": timestamp.isoformat(),
            "operation_id": str(operation_id),
        }
        try:
            response = await self.http.post(
                self.url, json=body, headers=self.signed_headers(), timeout=self.timeout
            )
        except httpx.TimeoutException as e:
            record_upstream_call("payments", "timeout")
            raise PaymentServiceError("payment service timed out") from e
        except httpx.HTTPError as e:
            record_upstream_call("payments", "transport_error")
            raise PaymentServiceError(f"payment service unreachable: {e}") from e

        if not response.is_success:
            record_upstream_call("payments", "http_error")
            raise PaymentServiceError(f"payment service responded with status {response.status_code}")

        record_upstream_call("payments", "success")
        logger.info("payment_service_accepted", pass_id=str(pass_id), operation_id=str(operation_id))
