"""
URL routing for the sales application API.
"""

from rest_framework.routers import DefaultRouter

from sales.views import SaleViewSet

router = DefaultRouter()
router.register(r"sales", SaleViewSet, basename="sales")
urlpatterns = router.urls
