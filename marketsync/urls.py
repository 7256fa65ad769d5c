from django.contrib import admin
from django.urls import include, path

from marketsync.views.mercadolibre_auth import MercadoLibreCallbackView, MercadoLibreLoginView

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/v1/", include("marketsync.api.urls")),
    path("mercadolibre/login/", MercadoLibreLoginView.as_view(), name="mercadolibre-login"),
    path("mercadolibre/callback/", MercadoLibreCallbackView.as_view(), name="mercadolibre-callback"),
]
