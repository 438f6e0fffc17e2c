"""
URL routing for the promotions application API.
"""

from rest_framework.routers import DefaultRouter

from promotions.views import CampaignViewSet, DiscountCodeViewSet

router = DefaultRouter()
router.register(r"discount-codes", DiscountCodeViewSet, basename="discount-codes")
router.register(r"campaigns", CampaignViewSet, basename="campaigns")
urlpatterns = router.urls
