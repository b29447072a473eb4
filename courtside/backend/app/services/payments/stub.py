from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any

from .gateway import BasePaymentGateway

logger = logging.getLogger(__name__)


class StubGateway(BasePaymentGateway):
    """Local provider: hands out a checkout link and never talks to the network."""

    def create_payment(
        self,
        order_id: str,
        amount: Decimal,
        currency: str,
        description: str,
        return_url: str,
        metadata: dict[str, Any],
    ) -> dict[str, Any]:
        return {
            "order_id": order_id,
            "amount": str(amount),
            "currency": currency,
            "status": "pending",
            "confirmation_url": f"{return_url.rstrip('/')}/checkout/{order_id}",
            "description": description,
            "metadata": metadata,
        }

    def cancel_payment(self, order_id: str) -> None:
        logger.info("Stub payment canceled", extra={"order_id": order_id})
