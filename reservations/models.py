from django.conf import settings
from django.db import models
from django.utils import timezone

from books.models import Book


class Reservation(models.Model):
    class Status(models.TextChoices):
        ACTIVE = "active", "Active"
        CANCELLED = "cancelled", "Cancelled"
        FULFILLED = "fulfilled", "Fulfilled"

    book = models.ForeignKey(Book, on_delete=models.PROTECT, related_name="reservations")
    borrower = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="reservations"
    )
    reservation_date = models.DateTimeField(default=timezone.now)
    status = models.CharField(
        max_length=9, choices=Status.choices, default=Status.ACTIVE
    )
    # Loan opened for the borrower when the reservation was fulfilled
    loan = models.OneToOneField(
        "loans.Loan",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="reservation",
    )
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        # Queue order
        ordering = ["reservation_date", "id"]
        constraints = [
            models.UniqueConstraint(
                fields=["book", "borrower"],
                condition=models.Q(status="active"),
                name="unique_active_reservation_per_borrower",
            ),
        ]

    def __str__(self):
        return f"{self.borrower} reserved {self.book.title} on {self.reservation_date:%Y-%m-%d}, id = {self.id}"

    @property
    def is_active(self):
        return self.status == self.Status.ACTIVE

    @property
    def queue_position(self):
        """1-based place in the book's waiting queue, None once closed."""
        if not self.is_active:
            return None
        ahead = Reservation.objects.filter(
            book_id=self.book_id, status=self.Status.ACTIVE
        ).filter(
            models.Q(reservation_date__lt=self.reservation_date)
            | models.Q(reservation_date=self.reservation_date, id__lt=self.id)
        )
        return ahead.count() + 1
