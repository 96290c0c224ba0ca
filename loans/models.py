from django.conf import settings
from django.db import models
from django.utils import timezone

from books.models import Book


class Loan(models.Model):
    class Status(models.TextChoices):
        ACTIVE = "active", "Active"
        RETURNED = "returned", "Returned"
        OVERDUE = "overdue", "Overdue"

    # Loans that still hold a copy.
    OPEN_STATUSES = (Status.ACTIVE, Status.OVERDUE)

    book = models.ForeignKey(Book, on_delete=models.PROTECT, related_name="loans")
    borrower = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="loans"
    )
    loan_date = models.DateTimeField(default=timezone.now)
    due_date = models.DateTimeField()
    return_date = models.DateTimeField(null=True, blank=True)
    status = models.CharField(
        max_length=8, choices=Status.choices, default=Status.ACTIVE
    )

    class Meta:
        ordering = ["-loan_date", "-id"]
        constraints = [
            # One open loan per (book, borrower)
            models.UniqueConstraint(
                fields=["book", "borrower"],
                condition=models.Q(status__in=["active", "overdue"]),
                name="unique_open_loan_per_borrower",
            ),
            models.CheckConstraint(
                condition=models.Q(due_date__gt=models.F("loan_date")),
                name="loan_due_after_loan_date",
            ),
            # Returned loans carry a return date, open ones do not
            models.CheckConstraint(
                condition=(
                    models.Q(status="returned", return_date__isnull=False)
                    | (~models.Q(status="returned") & models.Q(return_date__isnull=True))
                ),
                name="loan_return_date_matches_status",
            ),
        ]

    def __str__(self):
        return f"{self.borrower} borrowed {self.book.title} on {self.loan_date:%Y-%m-%d}, id = {self.id}"

    @property
    def is_open(self):
        return self.status in self.OPEN_STATUSES

    @property
    def is_returned(self):
        return self.status == self.Status.RETURNED

    @property
    def is_overdue(self):
        """Past due and still open, whether or not the sweep has run yet."""
        return self.is_open and timezone.now() > self.due_date

    @property
    def was_returned_late(self):
        return self.return_date is not None and self.return_date > self.due_date

    @property
    def days_overdue(self):
        """Whole days past the due date (0 if returned on time or not yet due)."""
        end = self.return_date or timezone.now()
        if end <= self.due_date:
            return 0
        return (end - self.due_date).days
