import logging
from datetime import timedelta

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.db.models import Avg, Count
from django.utils import timezone
from rest_framework import serializers

from books.models import Book
from books.services import get_book
from library_service.exceptions import (
    AlreadyBorrowed,
    AlreadyReturned,
    InvariantViolation,
    NoCopiesAvailable,
    NotFound,
)
from loans.models import Loan
from loans.policy import can_borrow

logger = logging.getLogger(__name__)


def loan_duration(duration_days=None):
    """Validated loan length in days (settings default when omitted)."""
    if duration_days is None:
        return settings.LOAN_DEFAULT_DAYS
    try:
        duration_days = int(duration_days)
    except (TypeError, ValueError):
        raise serializers.ValidationError({"duration_days": "Must be an integer."})
    if not 1 <= duration_days <= settings.LOAN_MAX_DAYS:
        raise serializers.ValidationError(
            {
                "duration_days": f"Loan period must be between 1 and "
                f"{settings.LOAN_MAX_DAYS} days."
            }
        )
    return duration_days


def get_loan(loan_id, queryset=None):
    if queryset is None:
        queryset = Loan.objects
    try:
        return queryset.select_related("book", "borrower").get(pk=loan_id)
    except (Loan.DoesNotExist, ValueError, TypeError):
        raise NotFound(f"Loan {loan_id} not found.")


def list_active_for_borrower(borrower):
    """Open (active or overdue) loans of a borrower."""
    return (
        Loan.objects.select_related("book")
        .filter(borrower=borrower, status__in=Loan.OPEN_STATUSES)
        .order_by("due_date", "id")
    )


def list_for_book(book_id):
    """Every loan of a book, archived books included, newest first."""
    book = get_book(book_id, Book.all_objects)
    return Loan.objects.select_related("borrower", "book").filter(book=book)


def open_loan(book, borrower, duration_days=None, now=None):
    """
    Take one copy of ``book`` and record the loan.

    The copy is taken with a conditional update, so a concurrent borrower of
    the last copy fails here with NoCopiesAvailable instead of driving the
    count negative. Must run inside the caller's transaction.
    """
    now = now or timezone.now()
    duration_days = loan_duration(duration_days)

    try:
        book.adjust_availability(-1)
    except InvariantViolation:
        raise NoCopiesAvailable()

    try:
        with transaction.atomic():
            loan = Loan.objects.create(
                book=book,
                borrower=borrower,
                loan_date=now,
                due_date=now + timedelta(days=duration_days),
            )
    except IntegrityError:
        raise AlreadyBorrowed()

    return loan


@transaction.atomic
def create_loan(book_id, borrower, duration_days=None):
    """
    Borrow a book.

    Raises NotFound, AlreadyBorrowed, StatusBlocked or NoCopiesAvailable,
    in that priority order.
    """
    duration_days = loan_duration(duration_days)
    now = timezone.now()

    try:
        book = Book.objects.select_for_update().filter(pk=book_id).first()
    except (ValueError, TypeError):
        book = None

    decision = can_borrow(book, list(list_active_for_borrower(borrower)), now)
    decision.raise_for_reason()

    loan = open_loan(book, borrower, duration_days, now)
    logger.info(
        "Loan %s opened: book %s to borrower %s, due %s (%s copies left)",
        loan.id,
        book.id,
        loan.borrower_id,
        loan.due_date.isoformat(),
        book.available_copies,
    )
    return loan


@transaction.atomic
def return_loan(loan_id):
    """
    Close an open loan and hand the freed copy to the oldest reservation.

    The promotion runs in this same transaction, so no direct borrower can
    take the copy ahead of the reservation queue.
    """
    from reservations.services import promote_next

    loan = get_loan(loan_id, Loan.objects.select_for_update())
    if loan.status == Loan.Status.RETURNED:
        raise AlreadyReturned()

    book = Book.all_objects.select_for_update().get(pk=loan.book_id)

    loan.status = Loan.Status.RETURNED
    loan.return_date = timezone.now()
    loan.save(update_fields=["status", "return_date"])

    book.adjust_availability(1)
    logger.info("Loan %s returned, book %s back in stock", loan.id, book.id)

    promote_next(book.pk)
    return loan


def reclassify_overdue(now=None):
    """Mark active loans past their due date as overdue. Idempotent."""
    now = now or timezone.now()
    updated = Loan.objects.filter(
        status=Loan.Status.ACTIVE, due_date__lt=now
    ).update(status=Loan.Status.OVERDUE)
    if updated:
        logger.info("Reclassified %s loan(s) as overdue", updated)
    return updated


def library_stats():
    """Figures for the admin dashboard."""
    from reservations.models import Reservation

    books = Book.objects.all()
    top_rated = (
        books.annotate(average_rating=Avg("reviews__rating"), reviews_count=Count("reviews"))
        .filter(reviews_count__gt=0)
        .order_by("-average_rating", "title")[:5]
    )
    total_books = books.count()
    borrowable_books = books.filter(
        available_copies__gt=0, status=Book.Status.AVAILABLE
    ).count()

    return {
        "total_books": total_books,
        "borrowable_books": borrowable_books,
        "unavailable_books": total_books - borrowable_books,
        "total_borrowers": get_user_model().objects.filter(is_staff=False).count(),
        "active_loans": Loan.objects.filter(status=Loan.Status.ACTIVE).count(),
        "overdue_loans": Loan.objects.filter(status=Loan.Status.OVERDUE).count(),
        "active_reservations": Reservation.objects.filter(
            status=Reservation.Status.ACTIVE
        ).count(),
        "top_rated_books": [
            {
                "id": book.id,
                "title": book.title,
                "author": book.author,
                "average_rating": round(book.average_rating, 2),
                "reviews_count": book.reviews_count,
            }
            for book in top_rated
        ],
    }
