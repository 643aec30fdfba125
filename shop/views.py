# shop/views.py — painel admin de pedidos, rascunho do checkout e histórico do cliente

from django.http import HttpRequest, JsonResponse
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny

from .access import admin_required
from .exceptions import InvalidInput, InvalidRequest
from .filters import AdminOrderFilter
from .lifecycle import OrderLifecycle
from .repository import OrderFilter, get_repository
from .responses import api_errors
from .serializers import (
    AdminOrderUpdateSerializer,
    DraftOrderSerializer,
    DraftPaymentResultSerializer,
    OrderSerializer,
    validated,
)


def health(_request):
    return JsonResponse({"service": "Storefront Orders", "status": "healthy"})


# -------------------------------------------------
# Admin: guarda própria (401/403), por isso AllowAny no DRF
# -------------------------------------------------
@api_view(["GET"])
@permission_classes([AllowAny])
@api_errors("admin.orders.list")
@admin_required
def admin_orders(request: HttpRequest):
    """
    GET /admin/orders?status=&paymentStatus=
    Sem filtros: fila de envio (pago OU confirmado), mais recentes primeiro.
    """
    filterset = AdminOrderFilter.from_query(request.query_params)
    if not filterset.is_valid():
        raise InvalidRequest("Unknown filter value", errors=filterset.errors)
    status = filterset.form.cleaned_data.get("status") or None
    payment_status = filterset.form.cleaned_data.get("paymentStatus") or None

    if status or payment_status:
        order_filter = OrderFilter(status=status, payment_status=payment_status)
    else:
        order_filter = OrderFilter.ready_queue()

    orders = get_repository().list(order_filter)
    return JsonResponse({"orders": OrderSerializer(orders, many=True).data})


@api_view(["GET", "PUT"])
@permission_classes([AllowAny])
@api_errors("admin.orders.detail")
@admin_required
def admin_order_detail(request: HttpRequest, order_id: str):
    if request.method == "PUT":
        ser = AdminOrderUpdateSerializer(data=request.data or {})
        validated(ser)
        order = OrderLifecycle().update(order_id, **ser.to_lifecycle_kwargs())
    else:
        order = get_repository().get_by_id(order_id)
    return JsonResponse({"order": OrderSerializer(order).data})


# -------------------------------------------------
# Checkout: rascunho antes do pagamento
# -------------------------------------------------
@api_view(["POST", "PUT"])
@permission_classes([AllowAny])
@api_errors("orders.draft")
def draft_order(request: HttpRequest):
    """
    POST /orders/draft — cria o pedido "pending" antes de abrir o checkout.
    PUT  /orders/draft — checkout informa falha/cancelamento do pagamento.
    """
    if request.method == "PUT":
        data = validated(DraftPaymentResultSerializer(data=request.data or {}))
        order = OrderLifecycle().record_client_payment_result(
            data["orderId"],
            data["paymentStatus"],
            data["gateway_order_id"],
            status=data.get("status") or None,
            note=data.get("note") or None,
            buyer=request.user if request.user.is_authenticated else None,
        )
        return JsonResponse({
            "orderId": str(order.id),
            "orderNumber": order.order_number,
            "status": order.status,
            "paymentStatus": order.payment_status,
        })

    ser = DraftOrderSerializer(data=request.data or {})
    validated(ser)
    user = request.user if request.user.is_authenticated else None
    draft = ser.to_draft(user=user)
    draft["note"] = "Order created, awaiting payment"
    order = get_repository().create(draft)
    return JsonResponse({"orderId": str(order.id), "orderNumber": order.order_number}, status=201)


# -------------------------------------------------
# Histórico do cliente
# -------------------------------------------------
@api_view(["GET"])
@permission_classes([AllowAny])
@api_errors("orders.list")
def customer_orders(request: HttpRequest):
    """GET /orders?email=&userId= — busca por usuário e cai para o e-mail."""
    qp = request.query_params
    email = (qp.get("email") or "").strip() or None
    user_id = (qp.get("userId") or qp.get("user_id") or "").strip() or None
    if not email and not user_id:
        raise InvalidInput("Email or userId parameter is required")

    orders = get_repository().list_for_customer(user_id=user_id, email=email)
    return JsonResponse({"orders": OrderSerializer(orders, many=True).data})
