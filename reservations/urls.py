from django.urls import path, include
from rest_framework import routers

from reservations.views import ReservationViewSet

app_name = "reservations"

router = routers.DefaultRouter()
router.register("reservations", ReservationViewSet, basename="reservations")

urlpatterns = [
    path("", include(router.urls)),
]
