from django.contrib.auth import get_user_model
from rest_framework import serializers

from books.models import Book
from books.serializers import BookSerializer
from reservations.models import Reservation


class ReservationCreateSerializer(serializers.Serializer):
    book = serializers.PrimaryKeyRelatedField(queryset=Book.objects.all())
    member = serializers.PrimaryKeyRelatedField(
        queryset=get_user_model().objects.filter(is_active=True), required=False
    )

    def validate_member(self, value):
        request = self.context.get("request")
        if request and not request.user.is_staff and value.pk != request.user.pk:
            raise serializers.ValidationError("Members can only reserve for themselves.")
        return value


class ReservationUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Reservation.Status.choices, required=False)
    created_at = serializers.DateTimeField(required=False)
    available_at = serializers.DateTimeField(required=False, allow_null=True)

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError("Nothing to update.")
        return attrs


class ReservationSerializer(serializers.ModelSerializer):
    book = BookSerializer(read_only=True)
    member_email = serializers.CharField(source="member.email", read_only=True)
    expiration_date = serializers.DateTimeField(read_only=True)

    class Meta:
        model = Reservation
        fields = [
            "id",
            "book",
            "member",
            "member_email",
            "status",
            "created_at",
            "available_at",
            "expiration_date",
            "assigned_stock",
        ]
        read_only_fields = fields
