import pytest
from django.core.exceptions import ValidationError as DjangoValidationError
from django.http import Http404
from rest_framework import exceptions

from library_service.exceptions import (
    AlreadyBorrowed,
    Conflict,
    InvalidRating,
    NotFound,
    library_exception_handler,
)

pytestmark = pytest.mark.django_db


@pytest.mark.parametrize(
    "exc, status_code, code",
    [
        (AlreadyBorrowed(), 409, "already_borrowed"),
        (Conflict("Book 3 has 1 open loan(s)."), 409, "conflict"),
        (InvalidRating(), 400, "invalid_rating"),
        (NotFound("Loan 9 not found."), 404, "not_found"),
        (Http404(), 404, "not_found"),
        (exceptions.NotAuthenticated(), 401, "not_authenticated"),
    ],
)
def test_errors_share_one_shape(exc, status_code, code):
    response = library_exception_handler(exc, {})

    assert response.status_code == status_code
    assert response.data["code"] == code
    assert response.data["error"]
    assert "details" not in response.data


def test_custom_message_is_kept():
    response = library_exception_handler(Conflict("Book 3 has 1 open loan(s)."), {})

    assert response.data["error"] == "Book 3 has 1 open loan(s)."


def test_field_errors_carry_details():
    exc = exceptions.ValidationError({"title": ["This field is required."]})

    response = library_exception_handler(exc, {})

    assert response.status_code == 400
    assert response.data == {
        "error": "This field is required.",
        "code": "validation_error",
        "details": {"title": ["This field is required."]},
    }


def test_django_validation_error_is_rendered():
    exc = DjangoValidationError({"rating": ["Ensure this value is less than or equal to 5."]})

    response = library_exception_handler(exc, {})

    assert response.status_code == 400
    assert response.data["code"] == "validation_error"
    assert "rating" in response.data["details"]


def test_unknown_exceptions_are_left_to_django():
    assert library_exception_handler(ValueError("boom"), {}) is None
