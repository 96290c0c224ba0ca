from django.contrib.auth import get_user_model
from django.db import transaction
from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.permissions import IsAdminUser
from rest_framework.response import Response

from books.models import Book
from library_service.exceptions import Forbidden, NotFound
from library_service.pagination import LibraryPagination
from loans import services
from loans.models import Loan
from loans.permissions import IsOwnerOrStaff
from loans import policy
from loans.serializers import (
    LoanCreateSerializer,
    LoanDetailSerializer,
    LoanListSerializer,
)
from notifications.tasks import notify_new_loan


class LoanViewSet(viewsets.ModelViewSet):
    permission_classes = [IsOwnerOrStaff]
    pagination_class = LibraryPagination

    def get_queryset(self):
        """Optimized queryset with proper joins"""
        queryset = Loan.objects.select_related("book", "borrower")

        # Borrowers only ever see their own loans
        if not self.request.user.is_staff:
            queryset = queryset.filter(borrower=self.request.user)
        else:
            borrower_id = self.request.query_params.get("borrower_id")
            if borrower_id:
                try:
                    queryset = queryset.filter(borrower_id=int(borrower_id))
                except (ValueError, TypeError):
                    queryset = queryset.none()

        loan_status = self.request.query_params.get("status")
        if loan_status in Loan.Status.values:
            queryset = queryset.filter(status=loan_status)
        elif loan_status == "open":
            queryset = queryset.filter(status__in=Loan.OPEN_STATUSES)

        book_id = self.request.query_params.get("book_id")
        if book_id:
            try:
                queryset = queryset.filter(book_id=int(book_id))
            except (ValueError, TypeError):
                queryset = queryset.none()

        return queryset.order_by("-loan_date", "-id")

    def get_serializer_class(self):
        if self.action == "create":
            return LoanCreateSerializer
        elif self.action in ("list", "my"):
            return LoanListSerializer
        return LoanDetailSerializer

    def list(self, request, *args, **kwargs):
        services.reclassify_overdue()
        return super().list(request, *args, **kwargs)

    def create(self, request, *args, **kwargs):
        """
        Borrow a book for the current user.
        Staff may pass `borrower` to open the loan for someone else.
        """
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        borrower = request.user
        borrower_id = data.get("borrower")
        if borrower_id is not None and borrower_id != request.user.id:
            if not request.user.is_staff:
                raise Forbidden("Only staff can open loans for another user.")
            borrower = get_user_model().objects.filter(pk=borrower_id).first()
            if borrower is None:
                raise NotFound(f"User {borrower_id} not found.")

        loan = services.create_loan(data["book"], borrower, data.get("duration_days"))

        # Fire-and-forget; a failed notification never fails the loan
        transaction.on_commit(lambda: notify_new_loan.delay(loan.id))

        return Response(LoanDetailSerializer(loan).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        return Response(
            {"error": "Updating loans not allowed. Use the return action.", "code": "method_not_allowed"},
            status=status.HTTP_405_METHOD_NOT_ALLOWED,
        )

    def destroy(self, request, *args, **kwargs):
        return Response(
            {"error": "Deleting loans not allowed.", "code": "method_not_allowed"},
            status=status.HTTP_405_METHOD_NOT_ALLOWED,
        )

    @action(detail=True, methods=["post", "put"], url_path="return")
    def return_book(self, request, pk=None):
        loan = self.get_object()
        loan = services.return_loan(loan.pk)
        return Response(LoanDetailSerializer(loan).data, status=status.HTTP_200_OK)

    @action(detail=False, methods=["get"])
    def my(self, request):
        """Current user's open (active or overdue) loans"""
        services.reclassify_overdue()
        loans = services.list_active_for_borrower(request.user)
        return Response(LoanListSerializer(loans, many=True).data)

    @action(detail=False, methods=["get"])
    def can_borrow(self, request):
        """
        Check if the current user can borrow a book right now.
        Query parameter: book=<id>
        """
        try:
            book = Book.objects.filter(pk=int(request.query_params.get("book", ""))).first()
        except ValueError:
            book = None
        decision = policy.can_borrow(book, list(services.list_active_for_borrower(request.user)))

        if decision.allowed:
            return Response({"can_borrow": True, "message": "You can borrow this book"})

        reason = decision.reason()
        return Response(
            {
                "can_borrow": False,
                "reason": reason.default_code,
                "message": str(reason.detail),
            }
        )

    @action(detail=False, methods=["get"], permission_classes=[IsAdminUser])
    def stats(self, request):
        """Dashboard figures for administrators"""
        services.reclassify_overdue()
        return Response(services.library_stats())
