# shop/payments.py — Razorpay: criação do pedido no gateway, verificação da assinatura e webhook
from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

from django.conf import settings
from django.http import HttpRequest, JsonResponse
from django.utils import timezone

from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.permissions import AllowAny

from .exceptions import ConfigurationError, InvalidInput, InvalidWebhookSignature
from .gateway import get_gateway
from .lifecycle import OrderLifecycle
from .models import Order
from .repository import get_repository
from .responses import api_errors, verification_body
from .serializers import (
    DraftOrderSerializer,
    GatewayOrderRequestSerializer,
    PaymentVerificationSerializer,
    validated,
)
from .signature import ensure_valid_signature, verify_webhook_signature

logger = logging.getLogger(__name__)

VERIFIED_NOTE = "Payment received via Razorpay"
CAPTURED_NOTE = "Payment captured via Razorpay webhook"


# ======================================================================
# Utils
# ======================================================================
def _key_secret() -> str:
    secret = getattr(settings, "RAZORPAY_KEY_SECRET", "")
    if not secret:
        raise ConfigurationError(
            "RAZORPAY_KEY_SECRET is not configured. Set it in the server environment and restart."
        )
    return secret


def _webhook_secret() -> str:
    secret = getattr(settings, "RAZORPAY_WEBHOOK_SECRET", "")
    if not secret:
        raise ConfigurationError(
            "RAZORPAY_WEBHOOK_SECRET is not configured. Copy it from the Razorpay dashboard webhook settings."
        )
    return secret


def _buyer(request: HttpRequest):
    user = getattr(request, "user", None)
    if user is not None and getattr(user, "is_authenticated", False):
        return user
    return None


def _reconcile_checkout(
    request: HttpRequest,
    gateway_order_id: str,
    payment_id: str,
    draft_order_id: Optional[str],
    checkout_data: Optional[Dict[str, Any]],
) -> Order:
    """Depois da assinatura válida: confirma o rascunho ou grava o pedido já pago."""
    repository = get_repository()
    lifecycle = OrderLifecycle(repository=repository)

    if draft_order_id:
        draft = repository.get_by_id(draft_order_id)
        if draft.gateway_order_id and draft.gateway_order_id != gateway_order_id:
            raise InvalidInput("Draft order does not belong to this payment", order_id=str(draft.id))
        return lifecycle.confirm_payment(draft.id, payment_id, note=VERIFIED_NOTE)

    # replay do mesmo callback (ou webhook chegou antes): não duplica o pedido
    existing = repository.find_by_payment(payment_id=payment_id, gateway_order_id=gateway_order_id)
    if existing is not None:
        return lifecycle.confirm_payment(existing.id, payment_id, note=VERIFIED_NOTE)

    ser = DraftOrderSerializer(data=checkout_data or {}, context={"require_gateway_order": False})
    validated(ser)
    draft = ser.to_draft(user=_buyer(request))
    draft.update({
        "gateway_order_id": gateway_order_id,
        "payment_id": payment_id,
        "payment_status": "paid",
        "payment_date": timezone.now(),
        "status": "confirmed",
        "note": VERIFIED_NOTE,
    })
    return repository.create(draft)


# ======================================================================
# Endpoints
# ======================================================================
@api_view(["POST"])
@permission_classes([AllowAny])
@api_errors("payment.create_order")
def create_gateway_order(request: HttpRequest):
    """
    POST /payment/create-order
    Body: { "amountMinorUnits": 49900, "currency": "INR", "receipt"?: "...", "notes"?: {...} }
    Resposta 201: { "orderId": "order_...", "amount": 49900, "currency": "INR" }
    """
    data = validated(GatewayOrderRequestSerializer(data=request.data or {}))
    gateway_order = get_gateway().create_order(
        data["amount"],
        data.get("currency", "INR"),
        receipt=data.get("receipt") or None,
        notes=data.get("notes") or None,
    )
    return JsonResponse(gateway_order.as_response(), status=201)


@api_view(["POST"])
@permission_classes([AllowAny])
@api_errors("payment.verify", render=verification_body)
def verify_payment(request: HttpRequest):
    """
    POST /payment/verify
    Body: { "orderId", "paymentId", "signature" } (ou razorpay_order_id/razorpay_payment_id/razorpay_signature)
          + opcional "draftOrderId" | "checkoutData"
    Resposta: 200 { "ok": true } | 400 { "ok": false, "error": "Invalid payment signature" }
    """
    data = validated(PaymentVerificationSerializer(data=request.data or {}))
    secret = _key_secret()
    ensure_valid_signature(data["order_id"], data["payment_id"], data["signature"], secret)
    logger.info("Payment signature verified: gateway_order_id=%s", data["order_id"])

    body: Dict[str, Any] = {"ok": True}
    draft_order_id = data.get("draftOrderId")
    checkout_data = data.get("checkoutData")
    if draft_order_id or checkout_data:
        order = _reconcile_checkout(request, data["order_id"], data["payment_id"], draft_order_id, checkout_data)
        body.update({"orderId": str(order.id), "orderNumber": order.order_number})
    return JsonResponse(body)


@api_view(["POST"])
@authentication_classes([])
@permission_classes([AllowAny])
@api_errors("payment.webhook")
def razorpay_webhook(request: HttpRequest):
    """
    POST /payment/webhook — eventos do Razorpay (assinatura no header X-Razorpay-Signature).

    - payment.captured -> pedido pago/confirmado (idempotente)
    - payment.failed   -> paymentStatus=failed
    - demais eventos   -> apenas { "received": true }
    """
    secret = _webhook_secret()
    raw = request.body
    signature = request.META.get("HTTP_X_RAZORPAY_SIGNATURE", "")
    if not signature.strip() or not verify_webhook_signature(raw, signature, secret):
        raise InvalidWebhookSignature()

    try:
        payload = json.loads(raw or b"{}")
    except ValueError:
        raise InvalidInput("Invalid JSON payload")
    event = payload.get("event") if isinstance(payload, dict) else None
    event_payload = payload.get("payload") if isinstance(payload, dict) else None
    if not event or not isinstance(event_payload, dict):
        raise InvalidInput("Missing event or payload")

    if event not in ("payment.captured", "payment.failed"):
        logger.info("Razorpay webhook ignored: event=%s", event)
        return JsonResponse({"received": True})

    payment = event_payload.get("payment")
    entity = payment.get("entity") if isinstance(payment, dict) else None
    if not isinstance(entity, dict):
        entity = {}
    payment_id = entity.get("id")
    gateway_order_id = entity.get("order_id")
    if not payment_id or not isinstance(payment_id, str):
        raise InvalidInput("Missing payment entity", event=event)
    logger.info(
        "Razorpay webhook: event=%s payment_id=%s gateway_order_id=%s", event, payment_id, gateway_order_id
    )

    repository = get_repository()
    order = repository.find_by_payment(payment_id=payment_id, gateway_order_id=gateway_order_id)
    if order is None:
        # 200 para o Razorpay não reenviar um evento que nunca vai casar
        logger.warning("Razorpay webhook for unknown order: gateway_order_id=%s", gateway_order_id)
        return JsonResponse({"received": True, "matched": False})

    lifecycle = OrderLifecycle(repository=repository)
    if event == "payment.captured":
        order = lifecycle.confirm_payment(order.id, payment_id, note=CAPTURED_NOTE)
    else:
        reason = entity.get("error_description") or entity.get("error_reason") or "Payment failed"
        order = lifecycle.fail_payment(order.id, payment_id, reason=reason)

    return JsonResponse({
        "received": True,
        "matched": True,
        "orderId": str(order.id),
        "status": order.status,
        "paymentStatus": order.payment_status,
    })
