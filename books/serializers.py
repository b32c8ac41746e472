from rest_framework import serializers

from books.models import Book, Stock


class BookSerializer(serializers.ModelSerializer):
    class Meta:
        model = Book
        fields = ["id", "title", "author"]


class StockSerializer(serializers.ModelSerializer):
    book = BookSerializer(read_only=True)
    is_available = serializers.BooleanField(read_only=True)

    class Meta:
        model = Stock
        fields = ["id", "book", "quantity", "is_available"]
        read_only_fields = ["quantity"]


class StockAdjustmentSerializer(serializers.Serializer):
    adjustment = serializers.IntegerField(min_value=-1000, max_value=1000)

    def validate_adjustment(self, value):
        if value == 0:
            raise serializers.ValidationError("Adjustment cannot be zero.")
        return value
