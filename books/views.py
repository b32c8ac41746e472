from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from books import ledger
from books.models import Stock
from books.permissions import IsStaffOrReadOnly
from books.serializers import StockAdjustmentSerializer, StockSerializer
from history.audit import log_activity


class StockViewSet(
    mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet
):
    queryset = Stock.objects.select_related("book")
    serializer_class = StockSerializer
    permission_classes = [IsStaffOrReadOnly]

    @action(detail=True, methods=["patch"])
    def adjust_quantity(self, request, pk=None):
        """Add or withdraw copies of a book (copies bought, lost or damaged)."""
        stock = self.get_object()
        serializer = StockAdjustmentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        adjustment = serializer.validated_data["adjustment"]
        stock = ledger.adjust(stock.book_id, adjustment)
        log_activity(
            request.user.id,
            "AdjustStock",
            f"BookId={stock.book_id}, Adjustment={adjustment}, Quantity={stock.quantity}",
        )

        return Response(StockSerializer(stock).data, status=status.HTTP_200_OK)
