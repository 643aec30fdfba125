# shop/tests/helpers.py — dados e assinaturas usados pelos testes
import hashlib
import hmac
import json
from typing import Any, Dict

from django.conf import settings
from django.contrib.auth import get_user_model

from shop.models import UserRole
from shop.repository import OrderRepository


def items(price_cents: int = 25000, quantity: int = 2):
    return [{"productId": "sku-tee-01", "title": "Oversized tee", "priceCents": price_cents, "quantity": quantity}]


def draft(**overrides) -> Dict[str, Any]:
    data = {
        "email": "buyer@example.com",
        "customer_name": "Asha Rao",
        "phone": "9876543210",
        "address": {"line1": "12 MG Road", "city": "Bengaluru", "pincode": "560001"},
        "items": items(),
        "subtotal_cents": 50000,
        "shipping_cents": 0,
        "total_cents": 50000,
        "gateway_order_id": "order_draft_001",
    }
    data.update(overrides)
    return data


def create_order(**overrides):
    return OrderRepository().create(draft(**overrides))


def checkout_body(**overrides) -> Dict[str, Any]:
    body = {
        "gatewayOrderId": "order_draft_001",
        "email": "buyer@example.com",
        "customerName": "Asha Rao",
        "phone": "9876543210",
        "address": {"line1": "12 MG Road", "city": "Bengaluru"},
        "items": items(),
        "subtotalCents": 50000,
        "shippingCents": 0,
        "totalCents": 50000,
    }
    body.update(overrides)
    return body


def payment_signature(order_id: str, payment_id: str, secret: str = None) -> str:
    secret = secret or settings.RAZORPAY_KEY_SECRET
    return hmac.new(secret.encode(), f"{order_id}|{payment_id}".encode(), hashlib.sha256).hexdigest()


def webhook_body(event: str, payment_id: str, gateway_order_id: str, **entity) -> bytes:
    payment = {"id": payment_id, "order_id": gateway_order_id, "amount": 50000, "currency": "INR"}
    payment.update(entity)
    return json.dumps({"event": event, "payload": {"payment": {"entity": payment}}}).encode()


def webhook_signature(body: bytes, secret: str = None) -> str:
    secret = secret or settings.RAZORPAY_WEBHOOK_SECRET
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


def make_user(username: str, role: str = None):
    user = get_user_model().objects.create_user(username=username, email=f"{username}@example.com", password="pw")
    if role:
        UserRole.objects.create(user=user, role=role)
    return user
