from django.contrib import admin
from django.urls import include, path
from rest_framework import routers

from books.views import StockViewSet
from history.views import HistoryViewSet
from loans.views import LoanViewSet
from reservations.views import ReservationViewSet

router = routers.DefaultRouter()
router.register("loans", LoanViewSet, basename="loans")
router.register("reservations", ReservationViewSet, basename="reservations")
router.register("stocks", StockViewSet, basename="stocks")
router.register("history", HistoryViewSet, basename="history")

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/", include(router.urls)),
]
