"""
API Views for the Loyalty application.
"""

from rest_framework import filters, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response

from loyalty.models import Customer, LoyaltyTransaction
from loyalty.serializers import (
    AdjustmentSerializer,
    BonusSerializer,
    CustomerSerializer,
    CustomerSummarySerializer,
    LoyaltyTransactionSerializer,
)
from loyalty.services import LoyaltyService


class CustomerViewSet(viewsets.ReadOnlyModelViewSet):
    """
    API endpoint for viewing Customers and their loyalty standing.
    Profiles are created by the customer service; this API only moves points.
    """

    serializer_class = CustomerSerializer
    queryset = Customer.objects.all().order_by("name")

    # Enable search functionality (e.g., ?search=0501234567)
    filter_backends = [filters.SearchFilter]
    search_fields = ["name", "phone", "email"]

    @action(detail=True, methods=["get"])
    def summary(self, request, pk=None):
        """
        GET /api/loyalty/customers/{id}/summary/
        """
        serializer = CustomerSummarySerializer(self.get_object())
        return Response(serializer.data)

    @action(detail=True, methods=["get"])
    def history(self, request, pk=None):
        """
        GET /api/loyalty/customers/{id}/history/
        Full ledger of one customer, newest first.
        """
        customer = self.get_object()
        queryset = customer.loyalty_transactions.select_related("sale").order_by("-created_at", "-id")
        page = self.paginate_queryset(queryset)
        if page is not None:
            return self.get_paginated_response(LoyaltyTransactionSerializer(page, many=True).data)
        return Response(LoyaltyTransactionSerializer(queryset, many=True).data)

    @action(detail=True, methods=["post"])
    def adjust(self, request, pk=None):
        return self._post_entry(AdjustmentSerializer, request)

    @action(detail=True, methods=["post"])
    def bonus(self, request, pk=None):
        return self._post_entry(BonusSerializer, request)

    @action(detail=True, methods=["post"])
    def enroll(self, request, pk=None):
        """
        Credits the sign-up bonus. 204 when there is nothing to credit.
        """
        entry = LoyaltyService().enroll(self.get_object())
        if entry is None:
            return Response(status=status.HTTP_204_NO_CONTENT)
        return Response(LoyaltyTransactionSerializer(entry).data, status=status.HTTP_201_CREATED)

    def _post_entry(self, serializer_class, request):
        serializer = serializer_class(data=request.data, context={"request": request, "customer": self.get_object()})
        serializer.is_valid(raise_exception=True)
        entry = serializer.save()
        return Response(LoyaltyTransactionSerializer(entry).data, status=status.HTTP_201_CREATED)


class TransactionHistoryViewSet(viewsets.ReadOnlyModelViewSet):
    """
    GET /api/loyalty/transactions/
    Endpoint for the ledger. Filter by customer with ?customer=<id>.
    """

    serializer_class = LoyaltyTransactionSerializer

    def get_queryset(self):
        queryset = LoyaltyTransaction.objects.select_related("sale").order_by("-created_at", "-id")
        customer_id = self.request.query_params.get("customer")
        if customer_id:
            if not customer_id.isdigit():
                raise ValidationError({"customer": "A valid customer id is required."})
            queryset = queryset.filter(customer_id=customer_id)
        return queryset
