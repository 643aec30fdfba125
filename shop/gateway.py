# shop/gateway.py — cliente de "gateway order" (Razorpay SDK)
from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Optional

import razorpay
from razorpay.errors import BadRequestError, ServerError
from razorpay.errors import GatewayError as RazorpayGatewayError
import requests
from django.conf import settings

from .exceptions import ConfigurationError, GatewayError, InvalidAmount, InvalidInput

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GatewayOrder:
    gateway_order_id: str
    amount: int
    currency: str

    def as_response(self) -> Dict[str, Any]:
        return {"orderId": self.gateway_order_id, "amount": self.amount, "currency": self.currency}


def normalize_amount(value: Any) -> int:
    """Valor em menor unidade (paise). Arredonda para tolerar float (1.6 -> 2)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidAmount("Amount must be a valid number")
    if not math.isfinite(value):
        raise InvalidAmount("Amount must be a valid number")
    if value <= 0:
        raise InvalidAmount("Amount must be greater than 0")
    # round() do Python é "banker's rounding"; aqui queremos meio para cima
    rounded = int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    if rounded <= 0:
        raise InvalidAmount("Amount must be greater than 0")
    return rounded


def normalize_currency(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidInput("Currency must be a non-empty string")
    return value.strip().upper()


def _status_from_exception(exc: Exception) -> Optional[int]:
    for attr in ("status_code", "http_status"):
        code = getattr(exc, attr, None)
        if isinstance(code, int):
            return code
    response = getattr(exc, "response", None)
    code = getattr(response, "status_code", None)
    if isinstance(code, int):
        return code
    if isinstance(exc, BadRequestError):
        return 400
    return None


class RazorpayGateway:
    """Cria o recurso de pedido no Razorpay e devolve id/valor/moeda."""

    def __init__(self, key_id: str = "", key_secret: str = "", client: Any = None, timeout: Optional[float] = None):
        self.key_id = key_id
        self.key_secret = key_secret
        self.timeout = timeout
        self._client = client

    @property
    def client(self):
        if self._client is None:
            if not self.key_id or not self.key_secret:
                raise ConfigurationError(
                    "Razorpay environment variables are not configured. "
                    "Set RAZORPAY_KEY_ID and RAZORPAY_KEY_SECRET, then restart the server."
                )
            self._client = razorpay.Client(auth=(self.key_id, self.key_secret))
        return self._client

    def create_order(
        self,
        amount_minor_units: Any,
        currency: Any = "INR",
        receipt: Optional[str] = None,
        notes: Optional[Dict[str, Any]] = None,
    ) -> GatewayOrder:
        amount = normalize_amount(amount_minor_units)
        currency = normalize_currency(currency)
        if notes is not None and not isinstance(notes, dict):
            raise InvalidInput("Notes must be an object")

        client = self.client  # ConfigurationError antes de qualquer chamada de rede
        payload = {
            "amount": amount,
            "currency": currency,
            "receipt": receipt or f"receipt_{int(time.time() * 1000)}",
            "notes": notes or {},
        }
        try:
            if self.timeout:
                # kwargs extras seguem para session.post do SDK
                created = client.order.create(data=payload, timeout=self.timeout)
            else:
                created = client.order.create(data=payload)
        except (BadRequestError, RazorpayGatewayError, ServerError) as exc:
            logger.warning("Razorpay rejected order creation: receipt=%s", payload["receipt"])
            raise GatewayError(_status_from_exception(exc), str(exc) or "Razorpay API error") from exc
        except requests.RequestException as exc:
            logger.error("Razorpay unreachable: %s", exc.__class__.__name__)
            raise GatewayError(_status_from_exception(exc), "Razorpay API is unreachable") from exc

        logger.info("Razorpay order created: id=%s amount=%s currency=%s", created.get("id"), amount, currency)
        return GatewayOrder(
            gateway_order_id=str(created.get("id") or ""),
            amount=int(created.get("amount", amount)),
            currency=str(created.get("currency") or currency),
        )


def get_gateway() -> RazorpayGateway:
    return RazorpayGateway(
        key_id=getattr(settings, "RAZORPAY_KEY_ID", ""),
        key_secret=getattr(settings, "RAZORPAY_KEY_SECRET", ""),
        timeout=getattr(settings, "RAZORPAY_TIMEOUT", None),
    )
