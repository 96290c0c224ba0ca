from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated, IsAuthenticatedOrReadOnly
from rest_framework.response import Response

from library_service.exceptions import Forbidden
from reviews import services
from reviews.models import Review
from reviews.serializers import (
    ReviewCreateSerializer,
    ReviewSerializer,
    ReviewUpdateSerializer,
)


class ReviewViewSet(viewsets.ModelViewSet):
    """
    Reviews are public to read. Writing goes through the review services,
    which tie every review to one of the caller's loans.
    """

    permission_classes = [IsAuthenticatedOrReadOnly]

    def get_queryset(self):
        queryset = Review.objects.select_related("loan__borrower", "book")

        book_id = self.request.query_params.get("book_id")
        if book_id:
            try:
                queryset = queryset.filter(book_id=int(book_id))
            except (ValueError, TypeError):
                queryset = queryset.none()

        return queryset

    def get_serializer_class(self):
        if self.action == "create":
            return ReviewCreateSerializer
        if self.action in ("update", "partial_update"):
            return ReviewUpdateSerializer
        return ReviewSerializer

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        review = services.create_review(
            data["book"], data["loan"], request.user, data["rating"], data["comment"]
        )
        return Response(ReviewSerializer(review).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        review = services.update_review(
            kwargs["pk"],
            request.user,
            rating=serializer.validated_data.get("rating"),
            comment=serializer.validated_data.get("comment"),
        )
        return Response(ReviewSerializer(review).data)

    def destroy(self, request, *args, **kwargs):
        services.delete_review(kwargs["pk"], request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(
        detail=False,
        methods=["get"],
        url_path=r"by-loan/(?P<loan_id>[^/.]+)",
        permission_classes=[IsAuthenticated],
    )
    def by_loan(self, request, loan_id=None):
        """Review attached to one of the caller's loans"""
        review = services.get_by_loan(loan_id)
        if review.loan.borrower_id != request.user.id and not request.user.is_staff:
            raise Forbidden()
        return Response(ReviewSerializer(review).data)
