"""Tests for the listing / pagination service."""

from datetime import timedelta

import pytest
from django.utils import timezone

from blog import listing, store
from core.exceptions import ValidationError


class TestTotalPages:
    @pytest.mark.parametrize(
        "total,size,expected",
        [(0, 1, 0), (0, 10, 0), (1, 1, 1), (5, 2, 3), (6, 2, 3), (7, 3, 3), (100, 10, 10), (101, 10, 11)],
    )
    def test_ceil_division(self, total, size, expected):
        assert listing.total_pages(total, size) == expected

    def test_page_bounds(self):
        assert listing.page_bounds(1, 10) == (0, 10)
        assert listing.page_bounds(3, 4) == (8, 12)


@pytest.mark.django_db
class TestGetPage:
    def test_first_page_of_five_posts(self, make_post):
        for _ in range(5):
            make_post()

        page = listing.get_page(1, 2)

        assert len(page.items) == 2
        assert page.total_pages == 3
        assert page.current_page == 1
        assert page.total_items == 5
        assert page.has_next
        assert not page.has_previous

    def test_page_past_the_end_is_empty(self, make_post):
        for _ in range(5):
            make_post()

        page = listing.get_page(4, 2)

        assert page.items == []
        assert page.total_pages == 3
        assert page.current_page == 4
        assert not page.has_next

    def test_last_page_is_partial(self, make_post):
        for _ in range(5):
            make_post()

        page = listing.get_page(3, 2)

        assert len(page.items) == 1
        assert not page.has_next
        assert page.has_previous

    def test_pages_partition_all_items(self, make_post):
        posts = [make_post() for _ in range(7)]

        seen = []
        for number in range(1, 5):
            seen += [p.pk for p in listing.get_page(number, 3).items]

        assert len(seen) == 7
        assert sorted(seen) == sorted(p.pk for p in posts)

    def test_newest_first(self, make_post):
        older = make_post(published_at=timezone.now() - timedelta(days=10))
        newer = make_post(published_at=timezone.now() - timedelta(days=1))

        page = listing.get_page(1, 10)

        assert [p.pk for p in page.items] == [newer.pk, older.pk]

    def test_empty_store_has_zero_pages(self, db):
        page = listing.get_page(1, 10)

        assert page.items == []
        assert page.total_pages == 0
        assert page.total_items == 0
        assert not page.has_next
        assert not page.has_previous

    @pytest.mark.parametrize("number", [0, -1, -50])
    def test_page_number_below_one_is_clamped(self, make_post, number):
        make_post()

        page = listing.get_page(number, 10)

        assert page.current_page == 1
        assert len(page.items) == 1

    @pytest.mark.parametrize("size", [0, -3])
    def test_page_size_below_one_is_rejected(self, db, size):
        with pytest.raises(ValidationError):
            listing.get_page(1, size)

    def test_non_numeric_arguments_are_rejected(self, db):
        with pytest.raises(ValidationError):
            listing.get_page("two", 10)

    def test_page_size_is_capped(self, make_post, settings):
        settings.BLOG_MAX_PAGE_SIZE = 3
        for _ in range(5):
            make_post()

        page = listing.get_page(1, 50)

        assert page.page_size == 3
        assert len(page.items) == 3
        assert page.total_pages == 2

    def test_default_page_size_from_settings(self, make_post, settings):
        settings.BLOG_PAGE_SIZE = 2
        for _ in range(3):
            make_post()

        page = listing.get_page()

        assert page.page_size == 2
        assert page.total_pages == 2

    def test_drafts_and_scheduled_posts_are_not_listed(self, make_post):
        visible = make_post()
        make_post(status="draft")
        make_post(published_at=timezone.now() + timedelta(days=3))

        page = listing.get_page(1, 10)

        assert [p.pk for p in page.items] == [visible.pk]
        assert page.total_items == 1

    def test_explicit_filters_can_include_drafts(self, make_post):
        make_post()
        draft = make_post(status="draft")

        page = listing.get_page(1, 10, filters=store.PostFilter(status="draft"))

        assert [p.pk for p in page.items] == [draft.pk]


@pytest.mark.django_db
class TestPaginate:
    def test_any_queryset(self, make_post):
        for _ in range(4):
            make_post()

        page = listing.paginate(store.filter_posts(), 2, 3)

        assert len(page.items) == 1
        assert page.total_pages == 2

    def test_as_meta(self, make_post):
        make_post()

        meta = listing.paginate(store.filter_posts(), 1, 10).as_meta()

        assert meta == {
            "page": 1,
            "page_size": 10,
            "total_pages": 1,
            "total_items": 1,
            "has_next": False,
            "has_previous": False,
        }
