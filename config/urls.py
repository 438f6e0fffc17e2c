"""
Root URL configuration.
"""

from django.urls import include, path

urlpatterns = [
    path("api/loyalty/", include("loyalty.urls")),
    path("api/promotions/", include("promotions.urls")),
    path("api/sales/", include("sales.urls")),
]
