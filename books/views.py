from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.permissions import IsAdminUser
from rest_framework.response import Response

from books import services
from books.permissions import IsLibrarianOrReadOnly
from books.serializers import BookSerializer, BookListSerializer
from library_service.pagination import LibraryPagination


class BookViewSet(viewsets.ModelViewSet):
    serializer_class = BookSerializer
    permission_classes = [IsLibrarianOrReadOnly]
    pagination_class = LibraryPagination

    def get_queryset(self):
        if self.action == "list":
            return services.list_books(self.request.query_params)
        return services.catalog_queryset()

    def get_serializer_class(self):
        if self.action == "list":
            return BookListSerializer
        return BookSerializer

    def get_object(self):
        obj = services.get_book(self.kwargs[self.lookup_field], services.catalog_queryset())
        self.check_object_permissions(self.request, obj)
        return obj

    def perform_create(self, serializer):
        serializer.instance = services.create_book(serializer.validated_data)

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop("partial", False)
        instance = self.get_object()
        serializer = self.get_serializer(instance, data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)

        services.update_book(instance.pk, dict(serializer.validated_data))

        return Response(BookSerializer(self.get_object()).data)

    def destroy(self, request, *args, **kwargs):
        services.delete_book(self.kwargs[self.lookup_field])
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=["get"], permission_classes=[IsAdminUser])
    def loans(self, request, pk=None):
        """Loan history of a book (staff only)"""
        from loans.serializers import LoanListSerializer
        from loans.services import list_for_book

        loans = list_for_book(pk)
        return Response(LoanListSerializer(loans, many=True).data)

    @action(detail=True, methods=["get"])
    def reservations(self, request, pk=None):
        """Waiting queue of a book, oldest first"""
        from reservations.serializers import ReservationQueueSerializer
        from reservations.services import list_active_for_book

        queue = list_active_for_book(pk)
        return Response(ReservationQueueSerializer(queue, many=True).data)

    @action(detail=True, methods=["get"])
    def reviews(self, request, pk=None):
        """Reviews of a book with rating statistics"""
        from reviews.serializers import ReviewSerializer
        from reviews.services import get_by_book, rating_summary

        reviews = get_by_book(pk)
        return Response(
            {
                "summary": rating_summary(reviews),
                "reviews": ReviewSerializer(reviews, many=True).data,
            }
        )
