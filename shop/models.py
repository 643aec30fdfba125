# shop/models.py — pedidos (com trilha de status) e papéis de usuário
import uuid

from django.conf import settings
from django.db import models


# --------- Pedidos ---------
class Order(models.Model):
    STATUS_CHOICES = [
        ("pending", "Pending"),
        ("paid", "Paid"),
        ("confirmed", "Confirmed"),
        ("shipped", "Shipped"),
        ("delivered", "Delivered"),
        ("cancelled", "Cancelled"),
    ]

    PAYMENT_STATUS_CHOICES = [
        ("pending", "Pending"),
        ("paid", "Paid"),
        ("failed", "Failed"),
        ("refunded", "Refunded"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order_number = models.CharField(max_length=40, unique=True)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, related_name="orders", on_delete=models.SET_NULL, null=True, blank=True
    )

    # dados do cliente copiados no momento do pedido
    customer_name = models.CharField(max_length=255, blank=True, default="")
    email = models.EmailField(max_length=255, db_index=True)
    phone = models.CharField(max_length=20, null=True, blank=True)
    address = models.JSONField(default=dict, blank=True)

    # [{productId, title, priceCents, quantity}]: imutável após a criação
    items = models.JSONField(default=list)
    subtotal_cents = models.PositiveIntegerField(default=0)
    shipping_cents = models.PositiveIntegerField(default=0)
    total_cents = models.PositiveIntegerField(default=0, help_text="Total em paise/centavos")

    payment_method = models.CharField(max_length=30, blank=True, default="razorpay")
    payment_status = models.CharField(max_length=20, choices=PAYMENT_STATUS_CHOICES, default="pending", db_index=True)
    payment_id = models.CharField(max_length=120, null=True, blank=True, db_index=True)
    gateway_order_id = models.CharField(max_length=120, null=True, blank=True, db_index=True)
    payment_date = models.DateTimeField(null=True, blank=True)

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="pending", db_index=True)
    # [{status, timestamp, note}]: só cresce
    status_history = models.JSONField(default=list, blank=True)

    tracking_number = models.CharField(max_length=120, null=True, blank=True)
    shipping_provider = models.CharField(max_length=120, null=True, blank=True)
    customer_notes = models.TextField(null=True, blank=True)
    admin_notes = models.TextField(null=True, blank=True)

    shipped_at = models.DateTimeField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    # token de concorrência otimista (incrementado a cada escrita)
    version = models.PositiveIntegerField(default=1)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"Order {self.order_number} - {self.email} - {self.status}"

    def has_reached(self, status: str) -> bool:
        return any(isinstance(h, dict) and h.get("status") == status for h in (self.status_history or []))


# --------- Papéis (store de identidade) ---------
class UserRole(models.Model):
    ADMIN = "admin"

    user = models.OneToOneField(settings.AUTH_USER_MODEL, related_name="store_role", on_delete=models.CASCADE)
    role = models.CharField(max_length=30, default="customer")
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.user} <{self.role}>"
