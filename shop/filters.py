# shop/filters.py — filtros da listagem admin (?status=&paymentStatus=)
import django_filters

from .models import Order


class AdminOrderFilter(django_filters.FilterSet):
    status = django_filters.ChoiceFilter(choices=Order.STATUS_CHOICES)
    paymentStatus = django_filters.ChoiceFilter(field_name="payment_status", choices=Order.PAYMENT_STATUS_CHOICES)

    class Meta:
        model = Order
        fields = []

    @classmethod
    def from_query(cls, query_params):
        data = query_params.copy()
        # nome antigo do painel
        if not data.get("paymentStatus") and data.get("payment_status"):
            data["paymentStatus"] = data["payment_status"]
        return cls(data, queryset=Order.objects.none())
