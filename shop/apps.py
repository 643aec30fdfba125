from django.apps import AppConfig


class ShopConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "shop"
    verbose_name = "Storefront orders & payments"

    def ready(self):
        # invalida o cache de papel admin quando a sessão muda
        from . import signals  # noqa: F401
