# shop/urls.py — rotas do fluxo pedido/pagamento (sem barra final)

from django.urls import path

from . import payments, views

urlpatterns = [
    path("health", views.health, name="health"),

    # Razorpay
    path("payment/create-order", payments.create_gateway_order, name="payment-create-order"),
    path("payment/verify", payments.verify_payment, name="payment-verify"),
    path("payment/webhook", payments.razorpay_webhook, name="payment-webhook"),

    # Admin
    path("admin/orders", views.admin_orders, name="admin-orders"),
    path("admin/orders/<str:order_id>", views.admin_order_detail, name="admin-order-detail"),

    # Checkout / cliente
    path("orders/draft", views.draft_order, name="orders-draft"),
    path("orders", views.customer_orders, name="orders-list"),
]
