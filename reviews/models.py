from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from books.models import Book
from loans.models import Loan


class Review(models.Model):
    MIN_RATING = 1
    MAX_RATING = 5

    book = models.ForeignKey(Book, on_delete=models.PROTECT, related_name="reviews")
    # One review per loan
    loan = models.OneToOneField(Loan, on_delete=models.PROTECT, related_name="review")
    rating = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(MIN_RATING), MaxValueValidator(MAX_RATING)]
    )
    comment = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(rating__gte=1) & models.Q(rating__lte=5),
                name="review_rating_between_1_and_5",
            ),
        ]

    def __str__(self):
        return f"{self.rating}/5 for {self.book.title} (loan {self.loan_id})"

    @property
    def author(self):
        """Reviews belong to the borrower of their loan."""
        return self.loan.borrower
