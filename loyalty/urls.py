"""
URL routing for the loyalty application API.
"""

from rest_framework.routers import DefaultRouter

from loyalty.views import CustomerViewSet, TransactionHistoryViewSet

router = DefaultRouter()
router.register(r"customers", CustomerViewSet, basename="customers")
router.register(r"transactions", TransactionHistoryViewSet, basename="transactions")  # Read Only
urlpatterns = router.urls
