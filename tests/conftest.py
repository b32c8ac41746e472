import itertools

import pytest
from django.contrib.auth import get_user_model
from django.core.cache import cache
from rest_framework.test import APIClient

from books.models import Book, Stock
from library_service.celery import shutdown_requested


TEST_CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "library-service-tests",
    }
}


@pytest.fixture(autouse=True)
def clean_state(settings):
    settings.CACHES = TEST_CACHES
    cache.clear()
    shutdown_requested.clear()
    yield
    shutdown_requested.clear()


@pytest.fixture
def make_member(db):
    counter = itertools.count(1)

    def _make(**kwargs):
        n = next(counter)
        fields = {"username": f"member{n}", "email": f"member{n}@library.test"}
        fields.update(kwargs)
        return get_user_model().objects.create_user(password="s3cret-pass", **fields)

    return _make


@pytest.fixture
def member(make_member):
    return make_member(first_name="Ada", last_name="Reader")


@pytest.fixture
def staff(make_member):
    return make_member(username="librarian", is_staff=True)


@pytest.fixture
def make_book(db):
    def _make(title="Dune", quantity=1, author="Frank Herbert"):
        book = Book.objects.create(title=title, author=author)
        Stock.objects.create(book=book, quantity=quantity)
        return book

    return _make


@pytest.fixture
def stock_quantity():
    def _quantity(book):
        return Stock.objects.get(book=book).quantity

    return _quantity


@pytest.fixture
def api_client():
    return APIClient()
