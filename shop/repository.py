# shop/repository.py — acesso tipado ao store de pedidos (Django ORM)
"""
Contrato consumido pelo motor de ciclo de vida:

    get_by_id(id)                   -> Order | OrderNotFound
    list(filter)                    -> [Order]  (máx. ADMIN_ORDERS_PAGE_LIMIT)
    update(id, patch, version?)     -> Order | OrderNotFound | ConflictError | PersistenceError
    create(draft)                   -> Order | OrderValidationError

Toda escrita incrementa `version`; com `expected_version` o UPDATE é
condicional (WHERE version = ?) e perde a corrida com ConflictError em vez de
sobrescrever a trilha de status de outro admin.
"""
from __future__ import annotations

import logging
import random
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from django.conf import settings
from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import F, Q
from django.utils import timezone

from .exceptions import (
    ConfigurationError,
    ConflictError,
    OrderNotFound,
    OrderValidationError,
    PersistenceError,
)
from .models import Order

logger = logging.getLogger(__name__)

ORDER_STATUSES = {code for code, _label in Order.STATUS_CHOICES}
PAYMENT_STATUSES = {code for code, _label in Order.PAYMENT_STATUS_CHOICES}

# Campos que podem mudar depois da criação (itens e valores são imutáveis)
MUTABLE_FIELDS = {
    "status",
    "status_history",
    "payment_status",
    "payment_id",
    "payment_date",
    "gateway_order_id",
    "tracking_number",
    "shipping_provider",
    "admin_notes",
    "shipped_at",
    "delivered_at",
    "updated_at",
}

ORDER_NUMBER_RETRIES = 5


def default_page_limit() -> int:
    return int(getattr(settings, "ADMIN_ORDERS_PAGE_LIMIT", 1000) or 1000)


@dataclass
class OrderFilter:
    status: Optional[str] = None
    payment_status: Optional[str] = None
    ready_to_ship: bool = False
    limit: Optional[int] = None

    @classmethod
    def ready_queue(cls) -> "OrderFilter":
        # fila do admin: pago OU confirmado
        return cls(ready_to_ship=True)


def history_entry(status: str, note: str, when: Optional[datetime] = None) -> Dict[str, str]:
    when = when or timezone.now()
    return {"status": status, "timestamp": when.isoformat(), "note": note}


class OrderRepository:
    def __init__(self, using: str = "default"):
        self.using = using

    # ---------- leitura ----------
    def _queryset(self):
        return Order.objects.using(self.using)

    @staticmethod
    def _coerce_id(order_id: Any) -> uuid.UUID:
        try:
            return order_id if isinstance(order_id, uuid.UUID) else uuid.UUID(str(order_id))
        except (TypeError, ValueError, AttributeError):
            raise OrderNotFound(f"Order {order_id} not found", order_id=order_id)

    def get_by_id(self, order_id: Any) -> Order:
        pk = self._coerce_id(order_id)
        try:
            return self._queryset().get(pk=pk)
        except Order.DoesNotExist:
            raise OrderNotFound(f"Order {order_id} not found", order_id=str(order_id))
        except DatabaseError as exc:
            raise PersistenceError("Failed to fetch order", order_id=str(order_id)) from exc

    def list(self, order_filter: Optional[OrderFilter] = None) -> List[Order]:
        order_filter = order_filter or OrderFilter.ready_queue()
        qs = self._queryset().all()
        if order_filter.ready_to_ship:
            qs = qs.filter(Q(payment_status="paid") | Q(status="confirmed"))
        if order_filter.status:
            qs = qs.filter(status=order_filter.status)
        if order_filter.payment_status:
            qs = qs.filter(payment_status=order_filter.payment_status)

        limit = min(order_filter.limit or default_page_limit(), default_page_limit())
        try:
            return list(qs.order_by("-created_at")[:limit])
        except DatabaseError as exc:
            raise PersistenceError("Failed to fetch orders") from exc

    def list_for_customer(self, user_id: Any = None, email: Optional[str] = None) -> List[Order]:
        """Histórico do cliente: por user_id; se nada vier, cai para o e-mail."""
        limit = default_page_limit()
        orders: List[Order] = []
        try:
            if user_id not in (None, ""):
                try:
                    orders = list(self._queryset().filter(user_id=int(user_id)).order_by("-created_at")[:limit])
                except (TypeError, ValueError):
                    orders = []
            if not orders and email:
                orders = list(self._queryset().filter(email__iexact=email.strip()).order_by("-created_at")[:limit])
        except DatabaseError as exc:
            raise PersistenceError("Failed to fetch orders") from exc
        return orders

    def find_by_payment(self, payment_id: Optional[str] = None, gateway_order_id: Optional[str] = None) -> Optional[Order]:
        try:
            order = None
            if payment_id:
                order = self._queryset().filter(payment_id=payment_id).order_by("-created_at").first()
            if order is None and gateway_order_id:
                order = self._queryset().filter(gateway_order_id=gateway_order_id).order_by("-created_at").first()
            return order
        except DatabaseError as exc:
            raise PersistenceError("Failed to look up order by payment") from exc

    # ---------- escrita ----------
    def update(self, order_id: Any, patch: Dict[str, Any], expected_version: Optional[int] = None) -> Order:
        unknown = set(patch) - MUTABLE_FIELDS
        if unknown:
            raise OrderValidationError("Fields cannot be updated", errors={f: "read-only" for f in sorted(unknown)})

        pk = self._coerce_id(order_id)
        values = dict(patch)
        values.setdefault("updated_at", timezone.now())

        qs = self._queryset().filter(pk=pk)
        if expected_version is not None:
            qs = qs.filter(version=expected_version)
        try:
            with transaction.atomic(using=self.using):
                rows = qs.update(version=F("version") + 1, **values)
        except DatabaseError as exc:
            logger.error("Order update failed: order_id=%s", order_id)
            raise PersistenceError("Failed to update order", order_id=str(order_id)) from exc

        if rows == 0:
            if self._queryset().filter(pk=pk).exists():
                logger.warning("Stale order write rejected: order_id=%s expected_version=%s", order_id, expected_version)
                raise ConflictError(
                    "Order was changed by another request; reload it and try again",
                    order_id=str(order_id),
                )
            raise OrderNotFound(f"Order {order_id} not found", order_id=str(order_id))
        return self.get_by_id(pk)

    def create(self, draft: Dict[str, Any]) -> Order:
        fields = validate_draft(draft)
        now = timezone.now()
        fields.setdefault(
            "status_history",
            [history_entry(fields["status"], draft.get("note") or "Order created", now)],
        )

        for attempt in range(ORDER_NUMBER_RETRIES):
            number = self._next_order_number(now, attempt)
            if self._queryset().filter(order_number=number).exists():
                logger.warning("Order number collision, retrying: %s", number)
                continue
            try:
                with transaction.atomic(using=self.using):
                    order = Order(order_number=number, **fields)
                    order.save(using=self.using)
                logger.info("Order created: id=%s number=%s status=%s", order.id, number, order.status)
                return order
            except IntegrityError:
                logger.warning("Duplicate order number on insert, retrying: %s", number)
                continue
            except DatabaseError as exc:
                raise PersistenceError("Order creation failed") from exc

        raise PersistenceError("Order creation failed: unable to generate unique order number. Please try again.")

    def _next_order_number(self, now: datetime, attempt: int) -> str:
        day = timezone.localtime(now).strftime("%Y%m%d")
        if attempt == 0:
            start = timezone.localtime(now).replace(hour=0, minute=0, second=0, microsecond=0)
            count = self._queryset().filter(created_at__gte=start).count()
            return f"ORD-{day}-{count + 1:05d}"
        millis = str(int(now.timestamp() * 1000))[-6:]
        return f"ORD-{day}-{millis}-{random.randint(0, 9999):04d}"


# ---------- validação do rascunho ----------
def _non_negative_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def _normalize_items(raw_items: Any, errors: Dict[str, Any]) -> List[Dict[str, Any]]:
    if not isinstance(raw_items, list) or not raw_items:
        errors["items"] = "Must be a non-empty list"
        return []

    items: List[Dict[str, Any]] = []
    for idx, it in enumerate(raw_items):
        if not isinstance(it, dict):
            errors[f"items[{idx}]"] = "Must be an object"
            continue
        product_id = it.get("productId", it.get("product_id", it.get("id")))
        price = it.get("priceCents", it.get("price_cents", it.get("price")))
        qty = it.get("quantity")
        if product_id in (None, ""):
            errors[f"items[{idx}].productId"] = "Required"
        if not _non_negative_int(price):
            errors[f"items[{idx}].priceCents"] = "Must be a non-negative integer"
        if not _non_negative_int(qty) or qty < 1:
            errors[f"items[{idx}].quantity"] = "Must be a positive integer"
        items.append({
            "productId": str(product_id) if product_id is not None else "",
            "title": str(it.get("title") or it.get("name") or ""),
            "priceCents": price,
            "quantity": qty,
        })
    return items


def validate_draft(draft: Dict[str, Any]) -> Dict[str, Any]:
    """Valida o rascunho e devolve os campos prontos para o modelo."""
    if not isinstance(draft, dict):
        raise OrderValidationError("Order draft must be an object")

    errors: Dict[str, Any] = {}
    email = draft.get("email")
    if not isinstance(email, str) or not email.strip():
        errors["email"] = "Required"

    items = _normalize_items(draft.get("items"), errors)
    line_total = sum(
        it["priceCents"] * it["quantity"]
        for it in items
        if _non_negative_int(it["priceCents"]) and _non_negative_int(it["quantity"])
    )

    subtotal = draft.get("subtotal_cents")
    shipping = draft.get("shipping_cents", 0)
    if subtotal is None:
        subtotal = line_total
    total = draft.get("total_cents")
    if total is None and _non_negative_int(subtotal) and _non_negative_int(shipping):
        total = subtotal + shipping

    for name, value in (("subtotalCents", subtotal), ("shippingCents", shipping), ("totalCents", total)):
        if not _non_negative_int(value):
            errors[name] = "Must be a non-negative integer"
    if not errors and total != subtotal + shipping:
        errors["totalCents"] = "Must equal subtotalCents + shippingCents"

    status = draft.get("status") or "pending"
    payment_status = draft.get("payment_status") or "pending"
    if status not in ORDER_STATUSES:
        errors["status"] = f"Unknown status: {status}"
    if payment_status not in PAYMENT_STATUSES:
        errors["paymentStatus"] = f"Unknown payment status: {payment_status}"

    if errors:
        raise OrderValidationError("Order draft is invalid", errors=errors)

    fields: Dict[str, Any] = {
        "email": email.strip(),
        "customer_name": (draft.get("customer_name") or "").strip(),
        "phone": draft.get("phone") or None,
        "address": draft.get("address") or {},
        "items": items,
        "subtotal_cents": subtotal,
        "shipping_cents": shipping,
        "total_cents": total,
        "status": status,
        "payment_status": payment_status,
        "payment_method": draft.get("payment_method") or "razorpay",
        "gateway_order_id": draft.get("gateway_order_id") or None,
        "payment_id": draft.get("payment_id") or None,
        "payment_date": draft.get("payment_date"),
        "customer_notes": draft.get("customer_notes") or None,
        "admin_notes": draft.get("admin_notes") or None,
        "user": draft.get("user"),
    }
    if draft.get("status_history") is not None:
        fields["status_history"] = list(draft["status_history"])
    return fields


def get_repository() -> OrderRepository:
    """Repositório privilegiado (credencial "service role")."""
    alias = getattr(settings, "ORDER_SERVICE_DB_ALIAS", None)
    if not alias or alias not in settings.DATABASES:
        raise ConfigurationError(
            "Service credential missing: set SERVICE_DATABASE_URL so order operations can reach the store."
        )
    return OrderRepository(using=alias)
