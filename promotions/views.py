"""
API Views for the Promotions application.
"""

from rest_framework import filters, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from catalog.cart import build_cart
from promotions.matcher import CampaignMatcher
from promotions.models import Campaign, DiscountCode
from promotions.resolver import DiscountResolver
from promotions.serializers import (
    BulkCodeSerializer,
    CampaignSerializer,
    CartSerializer,
    DiscountCodeSerializer,
    DiscountVerdictSerializer,
    PersonalCodeSerializer,
    ValidateCodeSerializer,
)
from promotions.services import CampaignService, DiscountCodeService


class DiscountCodeViewSet(viewsets.ModelViewSet):
    """
    API endpoint for managing discount codes.
    """

    serializer_class = DiscountCodeSerializer
    queryset = DiscountCode.objects.prefetch_related("products").order_by("-created_at")

    filter_backends = [filters.SearchFilter]
    search_fields = ["code", "name"]

    @action(detail=False, methods=["post"])
    def validate(self, request):
        """
        POST /api/promotions/discount-codes/validate/
        Resolves a code against a cart without redeeming it.
        """
        serializer = ValidateCodeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        cart = build_cart(serializer.get_cart_items())
        verdict = DiscountResolver().resolve(
            serializer.validated_data["code"], cart, customer=serializer.validated_data.get("customer")
        )
        return Response(DiscountVerdictSerializer(verdict).data)

    @action(detail=False, methods=["post"])
    def bulk(self, request):
        return self._create_many(BulkCodeSerializer, request)

    @action(detail=False, methods=["post"])
    def personal(self, request):
        return self._create_many(PersonalCodeSerializer, request)

    @action(detail=True, methods=["post"])
    def toggle(self, request, pk=None):
        discount = DiscountCodeService().toggle_active(self.get_object())
        return Response(self.get_serializer(discount).data)

    @action(detail=True, methods=["post"], url_path="release-usage")
    def release_usage(self, request, pk=None):
        discount = DiscountCodeService().release_usage(self.get_object())
        return Response(self.get_serializer(discount).data)

    def _create_many(self, serializer_class, request):
        serializer = serializer_class(data=request.data)
        serializer.is_valid(raise_exception=True)
        codes = serializer.save()
        return Response(self.get_serializer(codes, many=True).data, status=status.HTTP_201_CREATED)


class CampaignViewSet(viewsets.ModelViewSet):
    """
    API endpoint for Campaigns. New campaigns start as drafts.
    """

    serializer_class = CampaignSerializer

    def get_queryset(self):
        queryset = Campaign.objects.prefetch_related("products", "categories").order_by("-start_date")
        campaign_status = self.request.query_params.get("status")
        if campaign_status:
            queryset = queryset.filter(status=campaign_status.upper())
        return queryset

    @action(detail=False, methods=["post"])
    def applicable(self, request):
        """
        POST /api/promotions/campaigns/applicable/
        Campaigns the cart qualifies for, best first.
        """
        serializer = CartSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        cart = build_cart(serializer.get_cart_items())
        verdicts = CampaignMatcher().find_applicable(cart, customer=serializer.validated_data.get("customer"))
        return Response(DiscountVerdictSerializer(verdicts, many=True).data)

    @action(detail=True, methods=["post"])
    def activate(self, request, pk=None):
        campaign = CampaignService().activate(self.get_object())
        return Response(self.get_serializer(campaign).data)

    @action(detail=True, methods=["post"])
    def pause(self, request, pk=None):
        campaign = CampaignService().pause(self.get_object())
        return Response(self.get_serializer(campaign).data)

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):
        campaign = CampaignService().cancel(self.get_object())
        return Response(self.get_serializer(campaign).data)
