from rest_framework import mixins, viewsets, status
from rest_framework.decorators import action
from rest_framework.response import Response

from reservations import services
from reservations.models import Reservation
from reservations.permissions import IsOwnerOrStaff
from reservations.serializers import (
    ReservationCreateSerializer,
    ReservationSerializer,
)


class ReservationViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    mixins.DestroyModelMixin,
    viewsets.GenericViewSet,
):
    permission_classes = [IsOwnerOrStaff]

    def get_queryset(self):
        queryset = Reservation.objects.select_related("book", "borrower")

        if not self.request.user.is_staff:
            queryset = queryset.filter(borrower=self.request.user)

        reservation_status = self.request.query_params.get("status")
        if reservation_status in Reservation.Status.values:
            queryset = queryset.filter(status=reservation_status)

        book_id = self.request.query_params.get("book_id")
        if book_id:
            try:
                queryset = queryset.filter(book_id=int(book_id))
            except (ValueError, TypeError):
                queryset = queryset.none()

        return queryset.order_by("-reservation_date", "-id")

    def get_serializer_class(self):
        if self.action == "create":
            return ReservationCreateSerializer
        return ReservationSerializer

    def create(self, request, *args, **kwargs):
        """Reserve a book that currently has no free copies"""
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        reservation = services.create_reservation(
            serializer.validated_data["book"], request.user
        )
        return Response(
            ReservationSerializer(reservation).data, status=status.HTTP_201_CREATED
        )

    def destroy(self, request, *args, **kwargs):
        """Reservations are never deleted: DELETE cancels"""
        reservation = services.cancel_reservation(kwargs["pk"], request.user)
        return Response(ReservationSerializer(reservation).data)

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):
        reservation = services.cancel_reservation(pk, request.user)
        return Response(ReservationSerializer(reservation).data)
