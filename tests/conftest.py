"""Shared fixtures for the backend tests."""

import itertools
from datetime import timedelta

import pytest
from django.core.cache import cache
from django.utils import timezone
from rest_framework.test import APIClient

from blog.models import Author, Category, Post, Tag
from core.authentication import AdminContext

ADMIN_PASSWORD = "correct horse battery staple"


@pytest.fixture(autouse=True)
def _isolated_site(settings, tmp_path):
    settings.SITE_URL = "https://example.com"
    settings.FRONTEND_URL = "https://frontend.example.com"
    settings.REVALIDATION_SECRET = None
    settings.ADMIN_PASSWORD = ADMIN_PASSWORD
    settings.MEDIA_ROOT = tmp_path / "media"
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def admin_client(db):
    client = APIClient()
    response = client.post("/api/auth/login/", {"password": ADMIN_PASSWORD}, format="json")
    assert response.status_code == 200
    return client


@pytest.fixture
def admin_ctx():
    return AdminContext.trusted()


@pytest.fixture
def anonymous_ctx():
    return AdminContext.anonymous()


@pytest.fixture
def author(db):
    return Author.objects.create(name="Ada Lovelace")


@pytest.fixture
def category(db):
    return Category.objects.create(name="Engineering")


@pytest.fixture
def tag(db):
    return Tag.objects.create(name="python")


@pytest.fixture
def make_post(author):
    """Creates posts straight through the ORM; newer ``n`` means older date."""
    counter = itertools.count(1)

    def _make(title=None, status=Post.Status.PUBLISHED, published_at=None, body="Hello world", **extra):
        n = next(counter)
        if status == Post.Status.PUBLISHED and published_at is None:
            published_at = timezone.now() - timedelta(days=n)
        return Post.objects.create(
            author=extra.pop("author", author),
            title=title or f"Post number {n}",
            status=status,
            published_at=published_at,
            body=body,
            **extra,
        )

    return _make
