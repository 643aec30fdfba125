# shop/serializers.py — corpos de requisição (camelCase) e pedido serializado para leitura
# Os corpos chegam em camelCase; aliases do checkout Razorpay (razorpay_*) também valem.

from typing import Any, Dict

from rest_framework import serializers

from .exceptions import InvalidRequest
from .lifecycle import CLIENT_PAYMENT_STATUSES, CLIENT_TARGET_STATUSES
from .models import Order


def validated(serializer: serializers.Serializer) -> Dict[str, Any]:
    """is_valid() que vira InvalidRequest (400 com "fields") em vez de Response do DRF."""
    if not serializer.is_valid():
        raise InvalidRequest("Request body is invalid", errors=serializer.errors)
    return serializer.validated_data


# ===========================
#  PAGAMENTO
# ===========================
class GatewayOrderRequestSerializer(serializers.Serializer):
    # valores crus: normalize_amount/normalize_currency decidem (bool não é valor)
    amountMinorUnits = serializers.JSONField(required=False)
    amountCents = serializers.JSONField(required=False)
    amountPaise = serializers.JSONField(required=False)
    currency = serializers.JSONField(required=False, default="INR")
    receipt = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=40)
    notes = serializers.DictField(required=False, allow_null=True)

    def validate(self, attrs):
        amount = None
        for key in ("amountMinorUnits", "amountCents", "amountPaise"):
            if attrs.get(key) is not None:
                amount = attrs[key]
                break
        attrs["amount"] = amount
        return attrs


class PaymentVerificationSerializer(serializers.Serializer):
    orderId = serializers.JSONField(required=False)
    paymentId = serializers.JSONField(required=False)
    signature = serializers.JSONField(required=False)
    # nomes devolvidos pelo checkout do Razorpay
    razorpay_order_id = serializers.JSONField(required=False)
    razorpay_payment_id = serializers.JSONField(required=False)
    razorpay_signature = serializers.JSONField(required=False)

    draftOrderId = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    checkoutData = serializers.DictField(required=False, allow_null=True)

    def validate(self, attrs):
        attrs["order_id"] = attrs.get("orderId", attrs.get("razorpay_order_id"))
        attrs["payment_id"] = attrs.get("paymentId", attrs.get("razorpay_payment_id"))
        attrs["signature"] = attrs.get("signature", attrs.get("razorpay_signature"))
        return attrs


# ===========================
#  ADMIN
# ===========================
class AdminOrderUpdateSerializer(serializers.Serializer):
    status = serializers.CharField(required=False, allow_null=True)
    trackingNumber = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=120)
    shippingProvider = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=120)
    adminNotes = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    version = serializers.IntegerField(required=False, min_value=1)
    # nomes antigos do painel
    tracking_number = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=120)
    shipping_provider = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=120)
    admin_notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)

    def to_lifecycle_kwargs(self) -> Dict[str, Any]:
        data = self.validated_data
        mapping = {
            "status": "status",
            "tracking_number": "tracking_number",
            "trackingNumber": "tracking_number",
            "shipping_provider": "shipping_provider",
            "shippingProvider": "shipping_provider",
            "admin_notes": "admin_notes",
            "adminNotes": "admin_notes",
            "version": "expected_version",
        }
        # camelCase vem depois e prevalece
        return {target: data[source] for source, target in mapping.items() if source in data}


# ===========================
#  RASCUNHO DO CHECKOUT
# ===========================
class DraftItemSerializer(serializers.Serializer):
    productId = serializers.CharField()
    title = serializers.CharField(required=False, allow_blank=True, default="")
    priceCents = serializers.IntegerField(min_value=0)
    quantity = serializers.IntegerField(min_value=1)


class DraftOrderSerializer(serializers.Serializer):
    gatewayOrderId = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    razorpay_order_id = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    email = serializers.EmailField()
    customerName = serializers.CharField(required=False, allow_blank=True, default="")
    phone = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=20)
    address = serializers.DictField(required=False, default=dict)
    items = DraftItemSerializer(many=True, allow_empty=False)
    subtotalCents = serializers.IntegerField(required=False, min_value=0)
    shippingCents = serializers.IntegerField(required=False, min_value=0, default=0)
    totalCents = serializers.IntegerField(min_value=0)
    customerNotes = serializers.CharField(required=False, allow_blank=True, allow_null=True)

    def validate(self, attrs):
        # no checkout confirmado o id do gateway vem da assinatura verificada
        if self.context.get("require_gateway_order", True) and not (
            attrs.get("gatewayOrderId") or attrs.get("razorpay_order_id")
        ):
            raise serializers.ValidationError({"gatewayOrderId": "This field is required."})
        subtotal = attrs.get("subtotalCents")
        if subtotal is None:
            subtotal = sum(it["priceCents"] * it["quantity"] for it in attrs["items"])
            attrs["subtotalCents"] = subtotal
        if attrs["totalCents"] != subtotal + attrs["shippingCents"]:
            raise serializers.ValidationError({"totalCents": "Must equal subtotalCents + shippingCents"})
        return attrs

    def to_draft(self, user=None) -> Dict[str, Any]:
        """Campos snake_case esperados por OrderRepository.create."""
        data = self.validated_data
        return {
            "gateway_order_id": data.get("gatewayOrderId") or data.get("razorpay_order_id") or None,
            "email": data["email"],
            "customer_name": data.get("customerName") or "",
            "phone": data.get("phone") or None,
            "address": data.get("address") or {},
            "items": [dict(it) for it in data["items"]],
            "subtotal_cents": data["subtotalCents"],
            "shipping_cents": data.get("shippingCents", 0),
            "total_cents": data["totalCents"],
            "customer_notes": data.get("customerNotes") or None,
            "user": user,
        }


class DraftPaymentResultSerializer(serializers.Serializer):
    orderId = serializers.CharField()
    # prova de posse: o mesmo id de pedido do gateway usado no rascunho
    gatewayOrderId = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    razorpay_order_id = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    paymentStatus = serializers.ChoiceField(choices=list(CLIENT_PAYMENT_STATUSES))
    status = serializers.ChoiceField(choices=list(CLIENT_TARGET_STATUSES), required=False, allow_null=True)
    note = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=500)

    def validate(self, attrs):
        attrs["gateway_order_id"] = attrs.get("gatewayOrderId") or attrs.get("razorpay_order_id") or None
        if not attrs["gateway_order_id"]:
            raise serializers.ValidationError({"gatewayOrderId": "This field is required."})
        return attrs


# ===========================
#  PEDIDO (READ)
# ===========================
class OrderSerializer(serializers.ModelSerializer):
    orderNumber = serializers.CharField(source="order_number")
    userId = serializers.IntegerField(source="user_id", allow_null=True)
    customerName = serializers.CharField(source="customer_name")
    subtotalCents = serializers.IntegerField(source="subtotal_cents")
    shippingCents = serializers.IntegerField(source="shipping_cents")
    totalCents = serializers.IntegerField(source="total_cents")
    paymentMethod = serializers.CharField(source="payment_method")
    paymentStatus = serializers.CharField(source="payment_status")
    paymentId = serializers.CharField(source="payment_id", allow_null=True)
    gatewayOrderId = serializers.CharField(source="gateway_order_id", allow_null=True)
    paymentDate = serializers.DateTimeField(source="payment_date", allow_null=True)
    statusHistory = serializers.JSONField(source="status_history")
    trackingNumber = serializers.CharField(source="tracking_number", allow_null=True)
    shippingProvider = serializers.CharField(source="shipping_provider", allow_null=True)
    customerNotes = serializers.CharField(source="customer_notes", allow_null=True)
    adminNotes = serializers.CharField(source="admin_notes", allow_null=True)
    shippedAt = serializers.DateTimeField(source="shipped_at", allow_null=True)
    deliveredAt = serializers.DateTimeField(source="delivered_at", allow_null=True)
    createdAt = serializers.DateTimeField(source="created_at")
    updatedAt = serializers.DateTimeField(source="updated_at")

    class Meta:
        model = Order
        fields = [
            "id",
            "orderNumber",
            "userId",
            "customerName",
            "email",
            "phone",
            "address",
            "items",
            "subtotalCents",
            "shippingCents",
            "totalCents",
            "paymentMethod",
            "paymentStatus",
            "paymentId",
            "gatewayOrderId",
            "paymentDate",
            "status",
            "statusHistory",
            "trackingNumber",
            "shippingProvider",
            "customerNotes",
            "adminNotes",
            "shippedAt",
            "deliveredAt",
            "createdAt",
            "updatedAt",
            "version",
        ]
