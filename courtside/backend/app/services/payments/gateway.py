from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any
from ...config import Settings


class BasePaymentGateway(ABC):
    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    @abstractmethod
    def create_payment(
        self,
        order_id: str,
        amount: Decimal,
        currency: str,
        description: str,
        return_url: str,
        metadata: dict[str, Any],
    ) -> dict[str, Any]:
        raise NotImplementedError

    @abstractmethod
    def cancel_payment(self, order_id: str) -> None:
        raise NotImplementedError


def get_gateway(settings: Settings) -> BasePaymentGateway:
    if settings.payment_provider == "stub":
        from .stub import StubGateway

        return StubGateway(settings)
    raise ValueError(f"Unsupported payment provider {settings.payment_provider}")
