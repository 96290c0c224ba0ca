import logging

from django.db import transaction
from django.db.models import Avg, Count, Q
from django.utils import timezone
from rest_framework import serializers

from books.models import Book
from library_service.exceptions import Conflict, NotFound

logger = logging.getLogger(__name__)


def catalog_queryset():
    """Catalog books annotated with their review aggregates."""
    return Book.objects.annotate(
        average_rating=Avg("reviews__rating"),
        reviews_count=Count("reviews", distinct=True),
    )


def get_book(book_id, queryset=None):
    if queryset is None:
        queryset = Book.objects
    try:
        return queryset.get(pk=book_id)
    except (Book.DoesNotExist, ValueError, TypeError):
        raise NotFound(f"Book {book_id} not found.")


def list_books(filters):
    """
    Filter the catalog.

    Supported keys: search (title, author or isbn), specialization,
    location, language, document_type, status and available=true|false.
    """
    queryset = catalog_queryset()

    search = (filters.get("search") or "").strip()
    if search:
        queryset = queryset.filter(
            Q(title__icontains=search)
            | Q(author__icontains=search)
            | Q(isbn__icontains=search)
        )

    for field in ("specialization", "location", "language", "document_type", "status"):
        value = filters.get(field)
        if value:
            queryset = queryset.filter(**{f"{field}__iexact": value})

    available = filters.get("available")
    if available == "true":
        queryset = queryset.filter(available_copies__gt=0, status=Book.Status.AVAILABLE)
    elif available == "false":
        queryset = queryset.exclude(available_copies__gt=0, status=Book.Status.AVAILABLE)

    return queryset.order_by("title", "author")


@transaction.atomic
def create_book(validated_data):
    total_copies = validated_data.get("total_copies", 1)
    book = Book.objects.create(
        **{**validated_data, "total_copies": total_copies, "available_copies": total_copies}
    )
    logger.info("Book %s created with %s copies", book.id, total_copies)
    return book


@transaction.atomic
def update_book(book_id, validated_data):
    """
    Apply an administrative patch.

    A new copy count re-clamps availability around the copies on loan.
    Free copies left by the update go to waiting reservations.
    """
    from reservations.services import promote_waiting

    book = get_book(book_id, Book.objects.select_for_update())

    total_copies = validated_data.pop("total_copies", None)
    # Checked against the locked row: loans may have opened since validation
    if total_copies is not None and total_copies < book.copies_on_loan:
        raise serializers.ValidationError(
            {
                "total_copies": f"{book.copies_on_loan} copies are on loan; "
                f"total copies cannot be lower."
            }
        )
    for field, value in validated_data.items():
        setattr(book, field, value)
    if total_copies is not None and total_copies != book.total_copies:
        book.set_total_copies(total_copies)
        logger.info(
            "Book %s copy count set to %s (%s available)",
            book.id,
            book.total_copies,
            book.available_copies,
        )
    book.save()

    promote_waiting(book)
    book.refresh_from_db()
    return book


@transaction.atomic
def delete_book(book_id):
    """
    Archive a book. Blocked while any of its loans is still open.
    """
    from loans.models import Loan
    from reservations.models import Reservation

    book = get_book(book_id, Book.objects.select_for_update())

    open_loans = Loan.objects.filter(book=book, status__in=Loan.OPEN_STATUSES).count()
    if open_loans:
        raise Conflict(
            f"Book {book.id} has {open_loans} open loan(s) and cannot be deleted."
        )

    cancelled = Reservation.objects.filter(
        book=book, status=Reservation.Status.ACTIVE
    ).update(status=Reservation.Status.CANCELLED, updated_at=timezone.now())

    book.is_archived = True
    book.save(update_fields=["is_archived", "updated_at"])
    logger.info(
        "Book %s archived, %s active reservation(s) cancelled", book.id, cancelled
    )
