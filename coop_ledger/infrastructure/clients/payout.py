"""Payout provider HTTP client (mobile money / bank transfer gateway)"""

import httpx
from typing import Optional, Protocol
from coop_ledger.config import settings
from coop_ledger.domain.exceptions import ProviderError
from coop_ledger.domain.models import PayoutResult
from coop_ledger.infrastructure.observability.metrics import payout_latency_histogram


class PayoutProvider(Protocol):
    """Anything that can pay one member. Must be idempotent per (payment_id, member_id)."""

    async def submit_payout(
        self,
        payment_id: str,
        member_id: str,
        amount: int,
        method: str,
        recipient_ref: Optional[str],
    ) -> PayoutResult: ...


def idempotency_key(payment_id: str, member_id: str) -> str:
    return f"{payment_id}:{member_id}"


class PayoutClient:
    """Client for the external payout gateway"""

    def __init__(self, base_url: str | None = None, timeout: float | None = None, transport: httpx.AsyncBaseTransport | None = None):
        self.base_url = base_url or settings.payout_api_base
        self.timeout = timeout or settings.payout_timeout_seconds
        self.transport = transport

    async def submit_payout(
        self,
        payment_id: str,
        member_id: str,
        amount: int,
        method: str,
        recipient_ref: Optional[str],
    ) -> PayoutResult:
        """
        Ask the gateway to pay one member.

        The Idempotency-Key header is derived from (payment_id, member_id) so a
        retried call never disburses twice.

        Returns:
            PayoutResult with success=False and a reason when the gateway
            declines the payout (4xx or an explicit "failed" reply)

        Raises:
            ProviderError: On timeout, network failure, 5xx or unreadable reply
        """
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                with payout_latency_histogram.time():
                    response = await client.post(
                        f"{self.base_url}/payouts",
                        json={
                            "payment_id": payment_id,
                            "member_id": member_id,
                            "amount": amount,
                            "method": method,
                            "recipient_ref": recipient_ref,
                        },
                        headers={"Idempotency-Key": idempotency_key(payment_id, member_id)},
                    )

                if 400 <= response.status_code < 500:
                    return PayoutResult(success=False, reason=f"rejected by provider ({response.status_code})")
                response.raise_for_status()
                data = response.json()

                if data["status"] == "success":
                    return PayoutResult(success=True, provider_transaction_id=data["provider_transaction_id"])
                return PayoutResult(success=False, reason=data.get("reason") or "declined by provider")

            except httpx.TimeoutException as e:
                raise ProviderError(f"Payout provider timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                raise ProviderError(f"Payout provider error: {e.response.status_code}") from e
            except httpx.RequestError as e:
                raise ProviderError(f"Payout provider unreachable: {e}") from e
            except (KeyError, ValueError, TypeError) as e:
                raise ProviderError(f"Invalid reply from payout provider: {e}") from e
