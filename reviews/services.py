import logging

from django.db import IntegrityError, transaction

from books.models import Book
from books.services import get_book
from library_service.exceptions import Duplicate, Forbidden, InvalidRating, NotFound
from loans.models import Loan
from reviews.models import Review

logger = logging.getLogger(__name__)


def validate_rating(rating):
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise InvalidRating()
    if not Review.MIN_RATING <= rating <= Review.MAX_RATING:
        raise InvalidRating()
    return rating


def get_review(review_id, queryset=None):
    if queryset is None:
        queryset = Review.objects
    try:
        return queryset.select_related("loan", "book").get(pk=review_id)
    except (Review.DoesNotExist, ValueError, TypeError):
        raise NotFound(f"Review {review_id} not found.")


def _check_owner(review, borrower):
    # No staff override: only the borrower of the loan may touch its review
    if review.loan.borrower_id != borrower.pk:
        raise Forbidden("You can only modify your own reviews.")


@transaction.atomic
def create_review(book_id, loan_id, borrower, rating, comment=""):
    """
    Review a book through one of the caller's loans.

    Raises NotFound (no such loan), Forbidden (loan of another borrower or
    another book), Duplicate (the loan is already reviewed) or InvalidRating.
    """
    try:
        loan = Loan.objects.select_for_update().get(pk=loan_id)
    except (Loan.DoesNotExist, ValueError, TypeError):
        raise NotFound(f"Loan {loan_id} not found.")

    if loan.borrower_id != borrower.pk:
        raise Forbidden("You can only review books from your own loans.")
    if str(loan.book_id) != str(book_id):
        raise Forbidden("This loan is not for that book.")

    if Review.objects.filter(loan=loan).exists():
        raise Duplicate()

    rating = validate_rating(rating)

    try:
        with transaction.atomic():
            review = Review.objects.create(
                book_id=loan.book_id, loan=loan, rating=rating, comment=comment or ""
            )
    except IntegrityError:
        raise Duplicate()

    logger.info("Review %s created for loan %s (rating %s)", review.id, loan.id, rating)
    return review


@transaction.atomic
def update_review(review_id, borrower, rating=None, comment=None):
    review = get_review(review_id, Review.objects.select_for_update())
    _check_owner(review, borrower)

    if rating is not None:
        review.rating = validate_rating(rating)
    if comment is not None:
        review.comment = comment
    review.save()
    return review


@transaction.atomic
def delete_review(review_id, borrower):
    review = get_review(review_id, Review.objects.select_for_update())
    _check_owner(review, borrower)
    review.delete()
    logger.info("Review %s deleted", review_id)


def get_by_loan(loan_id):
    try:
        return Review.objects.select_related("loan__borrower", "book").get(loan_id=loan_id)
    except (Review.DoesNotExist, ValueError, TypeError):
        raise NotFound(f"No review for loan {loan_id}.")


def get_by_book(book_id):
    book = get_book(book_id, Book.all_objects)
    return Review.objects.select_related("loan__borrower").filter(book=book)


def rating_summary(reviews):
    """Average, count and 1..5 distribution of a set of reviews."""
    ratings = [review.rating for review in reviews]
    distribution = {
        str(value): ratings.count(value)
        for value in range(Review.MIN_RATING, Review.MAX_RATING + 1)
    }
    return {
        "average": round(sum(ratings) / len(ratings), 2) if ratings else None,
        "count": len(ratings),
        "distribution": distribution,
    }
