# storefront/urls.py — admin do Django fora de /admin/ (que é do painel de pedidos)
from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path("django-admin/", admin.site.urls),
    path("", include("shop.urls")),
]
