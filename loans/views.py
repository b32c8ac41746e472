from django.core.exceptions import ValidationError
from django.utils.html import escape
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAdminUser, IsAuthenticated
from rest_framework.response import Response

from loans import services
from loans.models import Loan
from loans.permissions import IsOwnerOrStaff
from loans.policy import get_policy
from loans.serializers import (
    LoanCreateSerializer,
    LoanDetailSerializer,
    LoanDueDateSerializer,
    LoanListSerializer,
)
from notifications.telegram import send_telegram_message


class LoanViewSet(viewsets.ModelViewSet):
    http_method_names = ["get", "post", "patch", "delete", "head", "options"]

    def get_permissions(self):
        if self.action in ("partial_update", "destroy"):
            return [IsAuthenticated(), IsAdminUser()]
        return [IsAuthenticated(), IsOwnerOrStaff()]

    def get_queryset(self):
        queryset = Loan.objects.select_related("book", "member")

        if not self.request.user.is_staff:
            queryset = queryset.filter(member=self.request.user)
        else:
            member_id = self.request.query_params.get("member_id")
            if member_id:
                try:
                    queryset = queryset.filter(member_id=int(member_id))
                except (ValueError, TypeError):
                    queryset = queryset.none()

        is_active = self.request.query_params.get("is_active")
        if is_active == "true":
            queryset = queryset.filter(return_date__isnull=True)
        elif is_active == "false":
            queryset = queryset.filter(return_date__isnull=False)

        return queryset.order_by("-id")

    def get_serializer_class(self):
        if self.action == "create":
            return LoanCreateSerializer
        if self.action == "partial_update":
            return LoanDueDateSerializer
        if self.action == "list":
            return LoanListSerializer
        return LoanDetailSerializer

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        member = serializer.validated_data.get("member") or request.user
        book = serializer.validated_data["book"]
        loan = services.create_loan(member.pk, book.pk)

        send_telegram_message(
            "<b>📚 New Loan</b>\n"
            f"👤 <b>Member</b>: {escape(member.get_username())}\n"
            f"📖 <b>Book</b>: {escape(book.title)}\n"
            f"🗓️ <b>Due</b>: {loan.due_date:%Y-%m-%d}\n"
            f"🧾 <b>Loan ID</b>: {loan.id}"
        )

        return Response(LoanDetailSerializer(loan).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request, *args, **kwargs):
        """Staff correction of the due date."""
        loan = self.get_object()
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            loan = services.update_loan_due_date(
                loan.pk, serializer.validated_data["due_date"]
            )
        except ValidationError as e:
            return Response({"error": e.message_dict}, status=status.HTTP_400_BAD_REQUEST)

        return Response(LoanDetailSerializer(loan).data)

    def destroy(self, request, *args, **kwargs):
        loan = self.get_object()
        services.delete_loan(loan.pk)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=["post"])
    def return_loan(self, request, pk=None):
        loan = self.get_object()
        result = services.return_loan(loan.pk)

        return Response(
            {
                "loan": LoanDetailSerializer(result.loan).data,
                "fine": str(result.fine),
                "reservation_promoted": result.reservation_promoted,
            },
            status=status.HTTP_200_OK,
        )

    @action(detail=False, methods=["get"])
    def can_borrow(self, request):
        """Whether the current member is still under the active loan limit."""
        policy = get_policy()
        active = services.active_loan_count(request.user.id)
        return Response(
            {
                "can_borrow": active < policy.max_active_loans_per_member,
                "active_loans": active,
                "max_active_loans": policy.max_active_loans_per_member,
            }
        )
