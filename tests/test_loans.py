from datetime import timedelta

import pytest
from django.db import transaction
from django.urls import reverse
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from books.models import Book
from library_service.exceptions import (
    AlreadyBorrowed,
    AlreadyReturned,
    NoCopiesAvailable,
    NotFound,
    StatusBlocked,
)
from loans import services
from loans.models import Loan

pytestmark = pytest.mark.django_db

LOANS_URL = reverse("loans:loans-list")
MY_LOANS_URL = reverse("loans:loans-my")
STATS_URL = reverse("loans:loans-stats")
CAN_BORROW_URL = reverse("loans:loans-can-borrow")


def return_url(loan_id):
    return reverse("loans:loans-return-book", args=[loan_id])


def test_create_loan_takes_one_copy(book, borrower):
    loan = services.create_loan(book.id, borrower, duration_days=7)

    book.refresh_from_db()
    assert book.available_copies == 2
    assert loan.status == Loan.Status.ACTIVE
    assert loan.due_date - loan.loan_date == timedelta(days=7)
    assert loan.return_date is None


def test_default_loan_duration(book, borrower, settings):
    settings.LOAN_DEFAULT_DAYS = 14

    loan = services.create_loan(book.id, borrower)

    assert loan.due_date - loan.loan_date == timedelta(days=14)


def test_duration_outside_limits_rejected(book, borrower, settings):
    settings.LOAN_MAX_DAYS = 30

    with pytest.raises(ValidationError) as excinfo:
        services.create_loan(book.id, borrower, duration_days=31)

    assert "duration_days" in excinfo.value.detail


def test_borrow_return_round_trip_restores_copies(book, borrower):
    before = book.available_copies

    loan = services.create_loan(book.id, borrower)
    returned = services.return_loan(loan.id)

    book.refresh_from_db()
    assert book.available_copies == before
    assert returned.status == Loan.Status.RETURNED
    assert returned.return_date is not None


def test_no_second_open_loan_for_same_pair(book, borrower):
    services.create_loan(book.id, borrower)

    with pytest.raises(AlreadyBorrowed):
        services.create_loan(book.id, borrower)

    assert Loan.objects.filter(book=book, borrower=borrower, status=Loan.Status.ACTIVE).count() == 1
    book.refresh_from_db()
    assert book.available_copies == 2


def test_borrowing_again_after_return(book, borrower):
    first = services.create_loan(book.id, borrower)
    services.return_loan(first.id)

    second = services.create_loan(book.id, borrower)

    assert second.id != first.id
    assert second.status == Loan.Status.ACTIVE


def test_maintenance_status_blocks_before_copy_count(make_book, borrower):
    book = make_book(total_copies=5, status=Book.Status.MAINTENANCE)

    with pytest.raises(StatusBlocked):
        services.create_loan(book.id, borrower)

    book.refresh_from_db()
    assert book.available_copies == 5


def test_no_copies_available(make_book, borrower):
    book = make_book(total_copies=1, available_copies=0)

    with pytest.raises(NoCopiesAvailable):
        services.create_loan(book.id, borrower)


def test_unknown_book_not_found(borrower):
    with pytest.raises(NotFound):
        services.create_loan(424242, borrower)


def test_last_copy_goes_to_exactly_one_borrower(make_book, borrower, other_borrower):
    book = make_book(total_copies=1)
    # Both requests read the book while one copy was still free
    stale_copy = Book.objects.get(pk=book.pk)

    services.create_loan(book.id, borrower)

    with pytest.raises(NoCopiesAvailable):
        with transaction.atomic():
            services.open_loan(stale_copy, other_borrower)

    with pytest.raises(NoCopiesAvailable):
        services.create_loan(book.id, other_borrower)

    book.refresh_from_db()
    assert book.available_copies == 0
    assert Loan.objects.filter(book=book).count() == 1


def test_return_twice_fails(book, borrower):
    loan = services.create_loan(book.id, borrower)
    services.return_loan(loan.id)

    with pytest.raises(AlreadyReturned):
        services.return_loan(loan.id)

    book.refresh_from_db()
    assert book.available_copies == 3


def test_return_unknown_loan(db):
    with pytest.raises(NotFound):
        services.return_loan(99999)


def test_reclassify_overdue_is_idempotent(book, borrower, other_borrower):
    late = services.create_loan(book.id, borrower, duration_days=1)
    on_time = services.create_loan(book.id, other_borrower, duration_days=20)
    later = timezone.now() + timedelta(days=5)

    assert services.reclassify_overdue(later) == 1
    assert services.reclassify_overdue(later) == 0

    late.refresh_from_db()
    on_time.refresh_from_db()
    book.refresh_from_db()
    assert late.status == Loan.Status.OVERDUE
    assert on_time.status == Loan.Status.ACTIVE
    assert book.available_copies == 1


def test_overdue_loan_can_be_returned(book, borrower):
    loan = services.create_loan(book.id, borrower, duration_days=1)
    services.reclassify_overdue(timezone.now() + timedelta(days=3))

    returned = services.return_loan(loan.id)

    assert returned.status == Loan.Status.RETURNED
    book.refresh_from_db()
    assert book.available_copies == 3


def test_overdue_loan_still_counts_as_open(book, borrower):
    services.create_loan(book.id, borrower, duration_days=1)
    services.reclassify_overdue(timezone.now() + timedelta(days=3))

    with pytest.raises(AlreadyBorrowed):
        services.create_loan(book.id, borrower)
    assert len(services.list_active_for_borrower(borrower)) == 1


def test_list_for_book(book, borrower, other_borrower):
    first = services.create_loan(book.id, borrower)
    services.return_loan(first.id)
    services.create_loan(book.id, other_borrower)

    assert services.list_for_book(book.id).count() == 2


def test_borrow_via_api(client_for, borrower, book):
    res = client_for(borrower).post(LOANS_URL, {"book": book.id, "duration_days": 10})

    assert res.status_code == 201
    assert res.data["status"] == "active"
    assert res.data["book"]["available_copies"] == 2


def test_api_errors_are_distinct(client_for, borrower, make_book):
    client = client_for(borrower)
    blocked = make_book(status=Book.Status.MAINTENANCE)
    empty = make_book(total_copies=1, available_copies=0)
    free = make_book()
    client.post(LOANS_URL, {"book": free.id})

    cases = [
        (9999, 404, "not_found"),
        (free.id, 409, "already_borrowed"),
        (blocked.id, 409, "status_blocked"),
        (empty.id, 409, "no_copies_available"),
    ]
    for book_id, status_code, code in cases:
        res = client.post(LOANS_URL, {"book": book_id})
        assert res.status_code == status_code
        assert res.data["code"] == code


def test_borrower_cannot_borrow_for_someone_else(client_for, borrower, other_borrower, book):
    res = client_for(borrower).post(LOANS_URL, {"book": book.id, "borrower": other_borrower.id})

    assert res.status_code == 403


def test_staff_can_borrow_for_borrower(client_for, admin_user, borrower, book):
    res = client_for(admin_user).post(LOANS_URL, {"book": book.id, "borrower": borrower.id})

    assert res.status_code == 201
    assert res.data["borrower_email"] == borrower.email


def test_return_via_api(client_for, borrower, book):
    loan = services.create_loan(book.id, borrower)
    client = client_for(borrower)

    res = client.post(return_url(loan.id))
    assert res.status_code == 200
    assert res.data["status"] == "returned"

    res = client.post(return_url(loan.id))
    assert res.status_code == 409
    assert res.data["code"] == "already_returned"


def test_borrower_cannot_return_others_loan(client_for, borrower, other_borrower, book):
    loan = services.create_loan(book.id, other_borrower)

    res = client_for(borrower).post(return_url(loan.id))

    assert res.status_code == 404
    loan.refresh_from_db()
    assert loan.status == Loan.Status.ACTIVE


def test_my_loans_lists_open_loans_only(client_for, borrower, make_book):
    open_loan = services.create_loan(make_book().id, borrower)
    closed = services.create_loan(make_book(title="Other").id, borrower)
    services.return_loan(closed.id)

    res = client_for(borrower).get(MY_LOANS_URL)

    assert res.status_code == 200
    assert [item["id"] for item in res.data] == [open_loan.id]


def test_list_reclassifies_overdue_on_read(client_for, borrower, book):
    loan = services.create_loan(book.id, borrower, duration_days=1)
    Loan.objects.filter(pk=loan.pk).update(
        loan_date=timezone.now() - timedelta(days=5),
        due_date=timezone.now() - timedelta(days=4),
    )

    res = client_for(borrower).get(LOANS_URL)

    assert res.data["results"][0]["status"] == "overdue"
    assert res.data["results"][0]["is_overdue"] is True


def test_staff_sees_all_loans(client_for, admin_user, borrower, other_borrower, book):
    services.create_loan(book.id, borrower)
    services.create_loan(book.id, other_borrower)

    res = client_for(admin_user).get(LOANS_URL, {"borrower_id": borrower.id})
    assert res.data["count"] == 1

    res = client_for(admin_user).get(LOANS_URL, {"status": "active"})
    assert res.data["count"] == 2


def test_loan_listing_honours_limit(client_for, admin_user, borrower, other_borrower, book):
    services.create_loan(book.id, borrower)
    services.create_loan(book.id, other_borrower)

    res = client_for(admin_user).get(LOANS_URL, {"limit": 1})
    assert res.data["count"] == 2
    assert len(res.data["results"]) == 1

    res = client_for(admin_user).get(LOANS_URL, {"limit": 1, "page": 2})
    assert len(res.data["results"]) == 1
    assert res.data["previous"] is not None


def test_loans_cannot_be_deleted(client_for, admin_user, borrower, book):
    loan = services.create_loan(book.id, borrower)

    res = client_for(admin_user).delete(reverse("loans:loans-detail", args=[loan.id]))

    assert res.status_code == 405
    assert Loan.objects.filter(pk=loan.pk).exists()


def test_can_borrow_endpoint(client_for, borrower, make_book):
    blocked = make_book(status=Book.Status.UNAVAILABLE)
    client = client_for(borrower)

    res = client.get(CAN_BORROW_URL, {"book": blocked.id})
    assert res.data == {
        "can_borrow": False,
        "reason": "status_blocked",
        "message": "This book cannot be borrowed in its current status.",
    }

    res = client.get(CAN_BORROW_URL, {"book": make_book().id})
    assert res.data["can_borrow"] is True


def test_stats_for_admin_only(client_for, admin_user, borrower, book):
    services.create_loan(book.id, borrower)

    assert client_for(borrower).get(STATS_URL).status_code == 403

    res = client_for(admin_user).get(STATS_URL)
    assert res.status_code == 200
    assert res.data["total_books"] == 1
    assert res.data["active_loans"] == 1
    assert res.data["overdue_loans"] == 0
    assert res.data["total_borrowers"] == 1
