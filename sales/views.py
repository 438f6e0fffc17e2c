"""
API Views for the Sales application.
"""

from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from sales.models import Sale
from sales.serializers import CheckoutSerializer, QuoteSerializer, ReasonSerializer, SaleSerializer
from sales.services import SaleService


class SaleViewSet(
    mixins.CreateModelMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """
    POST /api/sales/sales/ checks out a cart.
    Sales are never edited; they move through refund and cancel.
    """

    serializer_class = SaleSerializer
    queryset = Sale.objects.select_related("discount_code").prefetch_related("items__product")

    def create(self, request, *args, **kwargs):
        serializer = CheckoutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        sale = SaleService().checkout(serializer.to_request())
        return Response(SaleSerializer(sale).data, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=["post"])
    def quote(self, request):
        """
        Totals the same request would produce, without committing anything.
        """
        serializer = CheckoutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        quote = SaleService().quote(serializer.to_request())
        return Response(QuoteSerializer(quote).data)

    @action(detail=True, methods=["post"])
    def refund(self, request, pk=None):
        return self._finish(request, SaleService().refund)

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):
        return self._finish(request, SaleService().cancel)

    def _finish(self, request, operation):
        serializer = ReasonSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        sale = operation(self.get_object(), reason=serializer.validated_data["reason"])
        return Response(SaleSerializer(self.get_queryset().get(pk=sale.pk)).data)
