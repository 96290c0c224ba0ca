from django.urls import path, include
from rest_framework import routers

from loans.views import LoanViewSet

app_name = "loans"

router = routers.DefaultRouter()
router.register("loans", LoanViewSet, basename="loans")

urlpatterns = [
    path("", include(router.urls)),
]
