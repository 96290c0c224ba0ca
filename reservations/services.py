import logging

from django.db import IntegrityError, transaction

from books.models import Book
from books.services import get_book
from library_service.exceptions import (
    AlreadyBorrowed,
    AlreadyReserved,
    BookAvailable,
    NotFound,
)
from loans.models import Loan
from loans.services import open_loan
from notifications.tasks import notify_reservation_fulfilled
from reservations.models import Reservation

logger = logging.getLogger(__name__)


def get_reservation(reservation_id, queryset=None):
    if queryset is None:
        queryset = Reservation.objects
    try:
        return queryset.get(pk=reservation_id)
    except (Reservation.DoesNotExist, ValueError, TypeError):
        raise NotFound(f"Reservation {reservation_id} not found.")


def list_active_for_book(book_id):
    """Waiting queue of a book in FIFO order."""
    book = get_book(book_id)
    return (
        Reservation.objects.select_related("borrower", "book")
        .filter(book=book, status=Reservation.Status.ACTIVE)
        .order_by("reservation_date", "id")
    )


@transaction.atomic
def create_reservation(book_id, borrower):
    """
    Join the waiting queue of a book that has no free copies.

    Raises NotFound, BookAvailable (borrow it directly instead),
    AlreadyBorrowed or AlreadyReserved.
    """
    book = get_book(book_id, Book.objects.select_for_update())

    if book.available_copies > 0:
        if book.status != Book.Status.AVAILABLE:
            # Copies are on the shelf; only a status change makes them lendable
            raise BookAvailable(
                f"Book {book.id} has free copies but is {book.status}; "
                f"it can be borrowed once the library makes it available again."
            )
        raise BookAvailable()

    if Loan.objects.filter(
        book=book, borrower=borrower, status__in=Loan.OPEN_STATUSES
    ).exists():
        raise AlreadyBorrowed()

    if Reservation.objects.filter(
        book=book, borrower=borrower, status=Reservation.Status.ACTIVE
    ).exists():
        raise AlreadyReserved()

    # The partial unique index settles concurrent duplicates
    try:
        with transaction.atomic():
            reservation = Reservation.objects.create(book=book, borrower=borrower)
    except IntegrityError:
        raise AlreadyReserved()

    logger.info(
        "Reservation %s created: book %s for borrower %s",
        reservation.id,
        book.id,
        reservation.borrower_id,
    )
    return reservation


@transaction.atomic
def cancel_reservation(reservation_id, user=None):
    """
    Cancel an active reservation.

    Cancelling a reservation that is already cancelled or fulfilled succeeds
    without changing it. Borrowers can only reach their own reservations.
    """
    reservation = get_reservation(reservation_id, Reservation.objects.select_for_update())
    if user is not None and not user.is_staff and reservation.borrower_id != user.id:
        raise NotFound(f"Reservation {reservation_id} not found.")

    if not reservation.is_active:
        return reservation

    reservation.status = Reservation.Status.CANCELLED
    reservation.save(update_fields=["status", "updated_at"])
    logger.info("Reservation %s cancelled", reservation.id)
    return reservation


def promote_next(book_id):
    """
    Give one free copy of a book to the oldest active reservation.

    The reservation becomes fulfilled and a loan is opened for its borrower,
    taking the copy back out of stock. Reservations whose borrower already
    holds an open loan of the book are cancelled and skipped. Nothing happens
    while the book is unavailable or under maintenance. Runs inside the
    caller's transaction and returns the fulfilled reservation, if any.
    """
    book = Book.all_objects.select_for_update().get(pk=book_id)
    if not book.accepts_promotion or book.available_copies <= 0:
        return None

    queue = (
        Reservation.objects.select_for_update()
        .filter(book=book, status=Reservation.Status.ACTIVE)
        .order_by("reservation_date", "id")
    )
    for reservation in queue:
        if Loan.objects.filter(
            book=book, borrower_id=reservation.borrower_id, status__in=Loan.OPEN_STATUSES
        ).exists():
            reservation.status = Reservation.Status.CANCELLED
            reservation.save(update_fields=["status", "updated_at"])
            logger.info(
                "Reservation %s cancelled: borrower %s already holds book %s",
                reservation.id,
                reservation.borrower_id,
                book.id,
            )
            continue

        loan = open_loan(book, reservation.borrower)
        reservation.status = Reservation.Status.FULFILLED
        reservation.loan = loan
        reservation.save(update_fields=["status", "loan", "updated_at"])
        logger.info(
            "Reservation %s fulfilled with loan %s (book %s)",
            reservation.id,
            loan.id,
            book.id,
        )

        reservation_id = reservation.id
        transaction.on_commit(lambda: notify_reservation_fulfilled.delay(reservation_id))
        return reservation

    return None


def promote_waiting(book):
    """Promote reservations until the book runs out of free copies or waiters."""
    promoted = []
    while True:
        reservation = promote_next(book.pk)
        if reservation is None:
            return promoted
        promoted.append(reservation)
