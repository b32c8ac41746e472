from rest_framework import viewsets

from history.serializers import HistorySerializer
from history.services import history_for_member


class HistoryViewSet(viewsets.ReadOnlyModelViewSet):
    """Circulation events of the current member, newest first."""

    serializer_class = HistorySerializer

    def get_queryset(self):
        member_id = self.request.user.id
        if self.request.user.is_staff:
            requested = self.request.query_params.get("member_id")
            if requested:
                try:
                    member_id = int(requested)
                except (ValueError, TypeError):
                    return history_for_member(None).none()
        return history_for_member(member_id)
