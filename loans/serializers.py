from django.contrib.auth import get_user_model
from rest_framework import serializers

from books.models import Book
from books.serializers import BookSerializer
from loans.models import Loan


class LoanCreateSerializer(serializers.Serializer):
    book = serializers.PrimaryKeyRelatedField(queryset=Book.objects.all())
    # Staff may lend on behalf of a member; members always borrow for themselves
    member = serializers.PrimaryKeyRelatedField(
        queryset=get_user_model().objects.filter(is_active=True), required=False
    )

    def validate_member(self, value):
        request = self.context.get("request")
        if request and not request.user.is_staff and value.pk != request.user.pk:
            raise serializers.ValidationError("Members can only borrow for themselves.")
        return value


class LoanDueDateSerializer(serializers.Serializer):
    due_date = serializers.DateTimeField()


class LoanDetailSerializer(serializers.ModelSerializer):
    book = BookSerializer(read_only=True)
    member_email = serializers.CharField(source="member.email", read_only=True)
    is_active = serializers.BooleanField(read_only=True)
    is_overdue = serializers.BooleanField(read_only=True)
    days_overdue = serializers.IntegerField(read_only=True)

    class Meta:
        model = Loan
        fields = [
            "id",
            "book",
            "member",
            "member_email",
            "loan_date",
            "due_date",
            "return_date",
            "fine",
            "is_active",
            "is_overdue",
            "days_overdue",
        ]
        read_only_fields = fields


class LoanListSerializer(serializers.ModelSerializer):
    """Simplified serializer for listing loans"""

    book_title = serializers.CharField(source="book.title", read_only=True)
    is_active = serializers.BooleanField(read_only=True)
    is_overdue = serializers.BooleanField(read_only=True)

    class Meta:
        model = Loan
        fields = [
            "id",
            "book_title",
            "member",
            "loan_date",
            "due_date",
            "return_date",
            "fine",
            "is_active",
            "is_overdue",
        ]
        read_only_fields = fields
