# shop/lifecycle.py — motor de ciclo de vida do pedido
"""
Aplica mudanças de status sobre o pedido lido do repositório e grava o registro
mesclado de volta (leitura -> patch -> UPDATE condicional por `version`).

Regras:
- status novo != atual: acrescenta {status, timestamp, note} na trilha;
- primeira chegada em "shipped"/"delivered" (sem entrada anterior na trilha)
  preenche shipped_at/delivered_at; reentradas não sobrescrevem;
- tracking_number, shipping_provider e admin_notes mudam de forma independente
  ("" vira None);
- updated_at é renovado em toda escrita.

A validade da transição é um predicado plugável (ORDER_TRANSITION_POLICY).
O padrão aceita qualquer alvo, como o painel sempre permitiu.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from django.conf import settings
from django.utils import timezone
from django.utils.module_loading import import_string

from .exceptions import InvalidInput, InvalidTransition, OrderNotFound
from .models import Order
from .repository import ORDER_STATUSES, OrderRepository, get_repository, history_entry

logger = logging.getLogger(__name__)

TransitionPolicy = Callable[[str, str], bool]

# sentinela para "campo não enviado" (None significa limpar)
UNSET: Any = object()

# timestamps derivados da primeira chegada em cada status
DERIVED_TIMESTAMPS = {
    "shipped": "shipped_at",
    "delivered": "delivered_at",
}

TERMINAL_STATUSES = {"delivered", "cancelled"}

# o que o checkout (rota anônima) pode informar
CLIENT_PAYMENT_STATUSES = ("pending", "failed")
CLIENT_TARGET_STATUSES = ("pending", "cancelled")

_RANK = {"pending": 0, "paid": 1, "confirmed": 1, "shipped": 2, "delivered": 3}


def allow_any(current: str, new: str) -> bool:
    return True


def forward_only(current: str, new: str) -> bool:
    """Política estrita: nada sai de delivered/cancelled e não se anda para trás."""
    if current == new:
        return True
    if current in TERMINAL_STATUSES:
        return False
    if new == "cancelled":
        return True
    return _RANK.get(new, -1) >= _RANK.get(current, 0)


def load_policy(path: Optional[str] = None) -> TransitionPolicy:
    path = path or getattr(settings, "ORDER_TRANSITION_POLICY", "") or "shop.lifecycle.allow_any"
    return import_string(path)


def _blank_to_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidInput("Text fields must be strings")
    return value.strip() or None


class OrderLifecycle:
    def __init__(
        self,
        repository: Optional[OrderRepository] = None,
        policy: Optional[TransitionPolicy] = None,
        clock: Callable[[], datetime] = timezone.now,
    ):
        self.repository = repository if repository is not None else get_repository()
        self.policy = policy if policy is not None else load_policy()
        self.clock = clock

    def _transition(self, order: Order, new_status: str, note: str, now: datetime) -> Dict[str, Any]:
        """Patch de status para `order`; vazio se o status não muda."""
        if new_status not in ORDER_STATUSES:
            raise InvalidInput(f"Unknown status: {new_status}")
        if not self.policy(order.status, new_status):
            raise InvalidTransition(
                f"Cannot move order from {order.status} to {new_status}",
                order_id=str(order.id),
            )

        patch: Dict[str, Any] = {"status": new_status}
        if new_status == order.status:
            return patch

        derived = DERIVED_TIMESTAMPS.get(new_status)
        if derived and not order.has_reached(new_status) and getattr(order, derived) is None:
            patch[derived] = now

        history = list(order.status_history or [])
        history.append(history_entry(new_status, note, now))
        patch["status_history"] = history
        return patch

    def update(
        self,
        order_id: Any,
        status: Any = UNSET,
        tracking_number: Any = UNSET,
        shipping_provider: Any = UNSET,
        admin_notes: Any = UNSET,
        expected_version: Optional[int] = None,
    ) -> Order:
        """Atualização administrativa (PUT /admin/orders/{id})."""
        order = self.repository.get_by_id(order_id)
        now = self.clock()

        patch: Dict[str, Any] = {"updated_at": now}
        if status is not UNSET and status is not None:
            if not isinstance(status, str) or not status.strip():
                raise InvalidInput("Status must be a non-empty string")
            status = status.strip()
            patch.update(self._transition(order, status, f"Status updated to {status}", now))
        if tracking_number is not UNSET:
            patch["tracking_number"] = _blank_to_none(tracking_number)
        if shipping_provider is not UNSET:
            patch["shipping_provider"] = _blank_to_none(shipping_provider)
        if admin_notes is not UNSET:
            patch["admin_notes"] = _blank_to_none(admin_notes)

        version = order.version if expected_version is None else expected_version
        updated = self.repository.update(order.id, patch, expected_version=version)
        logger.info(
            "Order updated: order_id=%s status=%s->%s version=%s",
            order.id, order.status, updated.status, updated.version,
        )
        return updated

    def confirm_payment(self, order_id: Any, payment_id: str, note: str = "Payment received via Razorpay") -> Order:
        """Reconciliação de pagamento capturado; idempotente para pedidos já pagos."""
        order = self.repository.get_by_id(order_id)
        if order.payment_status == "paid":
            logger.info("Order already paid (idempotent): order_id=%s", order.id)
            return order

        now = self.clock()
        patch: Dict[str, Any] = {
            "payment_status": "paid",
            "payment_id": payment_id,
            "payment_date": now,
            "updated_at": now,
        }
        patch.update(self._transition(order, "confirmed", note, now))
        updated = self.repository.update(order.id, patch, expected_version=order.version)
        logger.info("Order confirmed: order_id=%s number=%s", updated.id, updated.order_number)
        return updated

    def fail_payment(self, order_id: Any, payment_id: Optional[str], reason: str = "Payment failed") -> Order:
        order = self.repository.get_by_id(order_id)
        if order.payment_status in ("paid", "failed"):
            logger.info(
                "Ignoring payment failure: order_id=%s payment_status=%s", order.id, order.payment_status
            )
            return order

        now = self.clock()
        note = f"Payment failed: {reason}"
        if payment_id:
            note = f"{note} (Payment ID: {payment_id})"
        patch: Dict[str, Any] = {"payment_status": "failed", "updated_at": now}
        if payment_id:
            patch["payment_id"] = payment_id
        patch.update(self._transition(order, "pending", note, now))
        if "status_history" not in patch:
            # continua "pending": registra a falha mesmo sem troca de status
            patch["status_history"] = list(order.status_history or []) + [history_entry("pending", note, now)]
        updated = self.repository.update(order.id, patch, expected_version=order.version)
        logger.info("Order payment failed: order_id=%s", updated.id)
        return updated

    def record_client_payment_result(
        self,
        order_id: Any,
        payment_status: str,
        gateway_order_id: Optional[str],
        status: Optional[str] = None,
        note: Optional[str] = None,
        buyer: Any = None,
    ) -> Order:
        """
        Falha/cancelamento informado pelo checkout (PUT /orders/draft).

        Rota anônima: quem chama prova posse do rascunho com o id do pedido no
        gateway (e, se o rascunho tem comprador, com a mesma sessão). Só mexe
        em rascunho ainda "pending" e só o leva a "pending" ou "cancelled".
        """
        if payment_status not in CLIENT_PAYMENT_STATUSES:
            raise InvalidInput("paymentStatus must be 'pending' or 'failed'")
        target = status or "pending"
        if target not in CLIENT_TARGET_STATUSES:
            raise InvalidInput("status must be 'pending' or 'cancelled'")

        order = self.repository.get_by_id(order_id)
        # divergência responde como inexistente para não revelar o pedido
        if not gateway_order_id or order.gateway_order_id != gateway_order_id:
            raise OrderNotFound(f"Order {order_id} not found", order_id=str(order_id))
        if order.user_id is not None and getattr(buyer, "pk", None) != order.user_id:
            raise OrderNotFound(f"Order {order_id} not found", order_id=str(order_id))
        if order.payment_status == "paid":
            raise InvalidTransition("Order is already paid", order_id=str(order.id))
        if order.status != "pending":
            raise InvalidTransition("Only pending draft orders can be updated", order_id=str(order.id))

        now = self.clock()
        message = note or f"Payment {payment_status}"
        patch: Dict[str, Any] = {"payment_status": payment_status, "updated_at": now}
        patch.update(self._transition(order, target, message, now))
        if "status_history" not in patch:
            patch["status_history"] = list(order.status_history or []) + [history_entry(target, message, now)]
        return self.repository.update(order.id, patch, expected_version=order.version)
