from django.urls import path, include
from rest_framework import routers

from reviews.views import ReviewViewSet

app_name = "reviews"

router = routers.DefaultRouter()
router.register("reviews", ReviewViewSet, basename="reviews")

urlpatterns = [
    path("", include(router.urls)),
]
