# shop/admin.py
from django.contrib import admin

from .models import Order, UserRole


# ===============================
# Helpers de apresentação
# ===============================
def _money_fmt(cents) -> str:
    try:
        return f"₹ {int(cents or 0) / 100:,.2f}"
    except (TypeError, ValueError):
        return "—"


# ===============================
# Order
# ===============================
@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ("order_number", "email", "status", "payment_status", "total_fmt", "created_at")
    list_filter = ("status", "payment_status")
    search_fields = ("order_number", "email", "customer_name", "payment_id", "gateway_order_id")
    ordering = ("-created_at",)
    # mudanças de status passam pelo painel (/admin/orders) para manter a trilha
    readonly_fields = (
        "id",
        "order_number",
        "items",
        "subtotal_cents",
        "shipping_cents",
        "total_cents",
        "status",
        "status_history",
        "payment_status",
        "payment_id",
        "gateway_order_id",
        "payment_date",
        "shipped_at",
        "delivered_at",
        "created_at",
        "updated_at",
        "version",
    )

    def total_fmt(self, obj):
        return _money_fmt(obj.total_cents)
    total_fmt.short_description = "Total"

    def has_delete_permission(self, request, obj=None):
        # pedidos nunca são apagados
        return False


# ===============================
# UserRole
# ===============================
@admin.register(UserRole)
class UserRoleAdmin(admin.ModelAdmin):
    list_display = ("user", "role", "created_at")
    list_filter = ("role",)
    search_fields = ("user__username", "user__email")
