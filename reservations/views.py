from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAdminUser, IsAuthenticated
from rest_framework.response import Response

from reservations import services
from reservations.models import Reservation
from reservations.permissions import IsOwnerOrStaff
from reservations.serializers import (
    ReservationCreateSerializer,
    ReservationSerializer,
    ReservationUpdateSerializer,
)


class ReservationViewSet(viewsets.ModelViewSet):
    http_method_names = ["get", "post", "patch", "delete", "head", "options"]

    def get_permissions(self):
        if self.action in ("partial_update", "destroy"):
            return [IsAuthenticated(), IsAdminUser()]
        return [IsAuthenticated(), IsOwnerOrStaff()]

    def get_queryset(self):
        queryset = Reservation.objects.select_related("book", "member")

        if not self.request.user.is_staff:
            queryset = queryset.filter(member=self.request.user)
        else:
            member_id = self.request.query_params.get("member_id")
            if member_id:
                try:
                    queryset = queryset.filter(member_id=int(member_id))
                except (ValueError, TypeError):
                    queryset = queryset.none()

        status_param = self.request.query_params.get("status")
        if status_param:
            queryset = queryset.filter(status=status_param)

        return queryset.order_by("-created_at", "-id")

    def get_serializer_class(self):
        if self.action == "create":
            return ReservationCreateSerializer
        if self.action == "partial_update":
            return ReservationUpdateSerializer
        return ReservationSerializer

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        member = serializer.validated_data.get("member") or request.user
        reservation = services.create_reservation(
            member.pk, serializer.validated_data["book"].pk
        )
        return Response(
            ReservationSerializer(reservation).data, status=status.HTTP_201_CREATED
        )

    def partial_update(self, request, *args, **kwargs):
        """Staff correction of status or dates; never moves stock."""
        reservation = self.get_object()
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        reservation = services.update_reservation(
            reservation.pk, **serializer.validated_data
        )
        return Response(ReservationSerializer(reservation).data)

    def destroy(self, request, *args, **kwargs):
        reservation = self.get_object()
        services.delete_reservation(reservation.pk)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):
        reservation = self.get_object()
        reservation = services.cancel_reservation(reservation.pk)
        return Response(ReservationSerializer(reservation).data)

    @action(detail=False, methods=["get"])
    def pending(self, request):
        """Waiting list for a book, in the order copies will be handed out."""
        book_id = request.query_params.get("book")
        try:
            book_id = int(book_id)
        except (ValueError, TypeError):
            return Response(
                {"error": "Query parameter 'book' must be a book id."},
                status=status.HTTP_400_BAD_REQUEST,
            )

        entries = [
            {"position": position, **ReservationSerializer(reservation).data}
            for position, reservation in enumerate(
                services.list_pending_for_title(book_id), start=1
            )
        ]
        if not request.user.is_staff:
            # Members only learn their own place in the queue
            entries = [entry for entry in entries if entry["member"] == request.user.id]
        return Response(entries)
