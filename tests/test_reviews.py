import pytest
from django.urls import reverse

from library_service.exceptions import Duplicate, Forbidden, InvalidRating, NotFound
from loans.services import create_loan, return_loan
from reviews import services
from reviews.models import Review

pytestmark = pytest.mark.django_db

REVIEWS_URL = reverse("reviews:reviews-list")


def by_loan_url(loan_id):
    return reverse("reviews:reviews-by-loan", args=[loan_id])


@pytest.fixture
def loan(book, borrower):
    return create_loan(book.id, borrower)


def test_review_own_loan(book, borrower, loan):
    review = services.create_review(book.id, loan.id, borrower, 4, "Très clair")

    assert review.book == book
    assert review.author == borrower
    assert review.rating == 4


def test_review_allowed_after_return(book, borrower, loan):
    return_loan(loan.id)

    review = services.create_review(book.id, loan.id, borrower, 5)

    assert review.comment == ""


def test_one_review_per_loan(book, borrower, loan):
    services.create_review(book.id, loan.id, borrower, 4)

    with pytest.raises(Duplicate):
        services.create_review(book.id, loan.id, borrower, 2)

    assert Review.objects.filter(loan=loan).count() == 1


def test_cannot_review_someone_elses_loan(book, other_borrower, loan):
    with pytest.raises(Forbidden):
        services.create_review(book.id, loan.id, other_borrower, 3)


def test_loan_must_match_book(make_book, borrower, loan):
    other_book = make_book(title="Mécanique des sols")

    with pytest.raises(Forbidden):
        services.create_review(other_book.id, loan.id, borrower, 3)


def test_unknown_loan(book, borrower):
    with pytest.raises(NotFound):
        services.create_review(book.id, 9999, borrower, 3)


@pytest.mark.parametrize("rating", [0, 6, -1, "5", 4.5, True, None])
def test_invalid_rating(book, borrower, loan, rating):
    with pytest.raises(InvalidRating):
        services.create_review(book.id, loan.id, borrower, rating)

    assert not Review.objects.exists()


def test_update_and_delete_own_review(book, borrower, other_borrower, loan):
    review = services.create_review(book.id, loan.id, borrower, 2)

    with pytest.raises(Forbidden):
        services.update_review(review.id, other_borrower, rating=5)

    review = services.update_review(review.id, borrower, rating=5)
    assert review.rating == 5
    assert review.comment == ""

    with pytest.raises(InvalidRating):
        services.update_review(review.id, borrower, rating=9)

    services.delete_review(review.id, borrower)
    assert not Review.objects.exists()


def test_staff_cannot_edit_borrower_review(book, borrower, admin_user, loan):
    review = services.create_review(book.id, loan.id, borrower, 3)

    with pytest.raises(Forbidden):
        services.delete_review(review.id, admin_user)


def test_rating_summary(make_book, make_user):
    book = make_book(total_copies=5)
    for rating in (5, 4, 4):
        user = make_user()
        loan = create_loan(book.id, user)
        services.create_review(book.id, loan.id, user, rating)

    summary = services.rating_summary(services.get_by_book(book.id))

    assert summary == {
        "average": 4.33,
        "count": 3,
        "distribution": {"1": 0, "2": 0, "3": 0, "4": 2, "5": 1},
    }


def test_rating_summary_without_reviews(book):
    summary = services.rating_summary(services.get_by_book(book.id))

    assert summary["average"] is None
    assert summary["count"] == 0


def test_create_review_via_api(client_for, borrower, book, loan):
    res = client_for(borrower).post(
        REVIEWS_URL, {"book": book.id, "loan": loan.id, "rating": 5, "comment": "Utile"}
    )
    assert res.status_code == 201
    assert res.data["author_name"] == borrower.full_name

    res = client_for(borrower).post(REVIEWS_URL, {"book": book.id, "loan": loan.id, "rating": 3})
    assert res.status_code == 409
    assert res.data["code"] == "duplicate"


def test_review_api_error_codes(client_for, borrower, other_borrower, book, loan):
    res = client_for(borrower).post(REVIEWS_URL, {"book": book.id, "loan": loan.id, "rating": 7})
    assert res.status_code == 400
    assert res.data["code"] == "invalid_rating"

    res = client_for(other_borrower).post(
        REVIEWS_URL, {"book": book.id, "loan": loan.id, "rating": 4}
    )
    assert res.status_code == 403
    assert res.data["code"] == "forbidden"


def test_reviews_are_public(api_client, borrower, book, loan):
    services.create_review(book.id, loan.id, borrower, 4)

    res = api_client.get(REVIEWS_URL)
    assert res.status_code == 200
    assert len(res.data) == 1

    res = api_client.get(reverse("books:books-reviews", args=[book.id]))
    assert res.data["summary"]["average"] == 4.0
    assert len(res.data["reviews"]) == 1

    res = api_client.post(REVIEWS_URL, {"book": book.id, "loan": loan.id, "rating": 4})
    assert res.status_code == 401


def test_review_by_loan(client_for, borrower, other_borrower, admin_user, book, loan):
    review = services.create_review(book.id, loan.id, borrower, 4)

    res = client_for(borrower).get(by_loan_url(loan.id))
    assert res.status_code == 200
    assert res.data["id"] == review.id

    assert client_for(other_borrower).get(by_loan_url(loan.id)).status_code == 403
    assert client_for(admin_user).get(by_loan_url(loan.id)).status_code == 200
    assert client_for(borrower).get(by_loan_url(9999)).status_code == 404
