from rest_framework import serializers

from history.models import History


class HistorySerializer(serializers.ModelSerializer):
    class Meta:
        model = History
        fields = ["id", "event_type", "event_date", "loan", "reservation"]
        read_only_fields = fields
