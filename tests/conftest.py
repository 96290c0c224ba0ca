import itertools

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from books.models import Book

_emails = itertools.count(1)


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def make_user(db):
    def _make_user(**kwargs):
        kwargs.setdefault("email", f"student{next(_emails)}@2ie.edu")
        kwargs.setdefault("password", "S3cure-pass")
        kwargs.setdefault("first_name", "Aminata")
        kwargs.setdefault("last_name", "Ouedraogo")
        return get_user_model().objects.create_user(**kwargs)

    return _make_user


@pytest.fixture
def borrower(make_user):
    return make_user()


@pytest.fixture
def other_borrower(make_user):
    return make_user(first_name="Ibrahim", last_name="Sawadogo")


@pytest.fixture
def admin_user(make_user):
    return make_user(email="admin@2ie.edu", is_staff=True)


@pytest.fixture
def make_book(db):
    def _make_book(**kwargs):
        kwargs.setdefault("title", "Hydraulique générale et appliquée")
        kwargs.setdefault("author", "André Lencastre")
        kwargs.setdefault("specialization", "Eau et Assainissement")
        kwargs.setdefault("location", Book.Location.KAMBOINSE)
        kwargs.setdefault("total_copies", 3)
        kwargs.setdefault("available_copies", kwargs["total_copies"])
        return Book.objects.create(**kwargs)

    return _make_book


@pytest.fixture
def book(make_book):
    return make_book()


@pytest.fixture
def client_for(api_client):
    def _client_for(user):
        api_client.force_authenticate(user=user)
        return api_client

    return _client_for
