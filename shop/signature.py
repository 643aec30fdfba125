# shop/signature.py — verificação de assinatura do Razorpay (HMAC-SHA256)
from __future__ import annotations

import hashlib
import hmac
from typing import Union

from .exceptions import InvalidInput, InvalidSignature, VerificationError


def _require_text(name: str, value) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidInput(f"{name} is required and must be a non-empty string")
    return value


def _hex_hmac(secret: str, message: bytes) -> str:
    try:
        return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()
    except (TypeError, ValueError, AttributeError) as exc:
        raise VerificationError("Error generating expected signature") from exc


def _same_digest(expected: str, received: str) -> bool:
    try:
        expected_buf = expected.encode("utf-8")
        received_buf = received.encode("utf-8")
    except UnicodeEncodeError:
        return False
    # Tamanho depende só de entrada do chamador; checar antes é seguro
    if len(expected_buf) != len(received_buf):
        return False
    try:
        return hmac.compare_digest(expected_buf, received_buf)
    except TypeError as exc:
        raise VerificationError("Error during comparison") from exc


def verify_payment_signature(order_id: str, payment_id: str, signature: str, secret: str) -> bool:
    """
    Confere `signature` contra hex(HMAC_SHA256(secret, "order_id|payment_id")).

    Retorna apenas True/False; nunca expõe a assinatura esperada nem o segredo.
    Levanta InvalidInput para identificadores vazios e VerificationError se o
    próprio cálculo falhar (segredo ausente/inválido).
    """
    _require_text("orderId", order_id)
    _require_text("paymentId", payment_id)
    _require_text("signature", signature)
    if not isinstance(secret, str) or not secret:
        raise VerificationError("Razorpay key secret is not available")

    expected = _hex_hmac(secret, f"{order_id}|{payment_id}".encode("utf-8"))
    return _same_digest(expected, signature)


def verify_webhook_signature(body: Union[bytes, str], signature: str, secret: str) -> bool:
    """Mesmo esquema sobre o corpo bruto do webhook (header X-Razorpay-Signature)."""
    _require_text("signature", signature)
    if not isinstance(secret, str) or not secret:
        raise VerificationError("Webhook secret is not available")
    if isinstance(body, str):
        body = body.encode("utf-8")
    expected = _hex_hmac(secret, body or b"")
    return _same_digest(expected, signature.strip().lower())


def ensure_valid_signature(order_id: str, payment_id: str, signature: str, secret: str) -> None:
    if not verify_payment_signature(order_id, payment_id, signature, secret):
        raise InvalidSignature(order_id=order_id)
