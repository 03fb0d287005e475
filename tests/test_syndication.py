"""Tests for RSS feeds, the sitemap and robots.txt."""

import xml.etree.ElementTree as ET
from unittest.mock import patch
from datetime import datetime, timedelta, timezone as dt_timezone

import pytest
from django.utils import timezone

from blog import cms, store, syndication
from blog.models import Project
from core.authentication import AdminContext
from core.exceptions import NotFound

SITEMAP = "{http://www.sitemaps.org/schemas/sitemap/0.9}"


def parse(xml):
    return ET.fromstring(xml.encode("utf-8"))


def feed_links(xml):
    return [item.findtext("link") for item in parse(xml).iter("item")]


@pytest.fixture
def dated_posts(make_post):
    return [
        make_post(title="New year", published_at=datetime(2024, 1, 1, tzinfo=dt_timezone.utc)),
        make_post(title="Unfinished", status="draft", published_at=datetime(2024, 2, 1, tzinfo=dt_timezone.utc)),
        make_post(title="Spring", published_at=datetime(2024, 3, 1, tzinfo=dt_timezone.utc)),
    ]


@pytest.mark.django_db
class TestBlogFeed:
    def test_only_published_posts_newest_first(self, dated_posts):
        new_year, _, spring = dated_posts

        links = feed_links(syndication.generate_feed("blog"))

        assert links == [
            f"https://example.com/blog/{spring.slug}",
            f"https://example.com/blog/{new_year.slug}",
        ]

    def test_item_fields(self, make_post, category, tag):
        post = make_post(title="Deep dive", description="All the details")
        post.categories.add(category)
        post.tags.add(tag)

        [item] = parse(syndication.generate_feed("blog")).iter("item")

        assert item.findtext("title") == "Deep dive"
        assert item.findtext("description") == "All the details"
        assert item.findtext("guid") == item.findtext("link")
        assert item.find("guid").get("isPermaLink") == "true"
        assert sorted(c.text for c in item.findall("category")) == ["Engineering", "python"]
        assert item.findtext("{http://purl.org/dc/elements/1.1/}creator") == "Ada Lovelace"
        assert item.findtext("pubDate")

    def test_channel_metadata(self, db, settings):
        settings.SITE_NAME = "Folio"

        channel = parse(syndication.generate_feed("blog")).find("channel")

        assert channel.findtext("title") == "Folio | Blog"
        assert channel.findtext("link") == "https://example.com/blog"
        assert channel.findtext("language") == "en-us"

    def test_links_follow_site_url(self, make_post, settings):
        settings.SITE_URL = "https://blog.example.net/"
        post = make_post()

        assert feed_links(syndication.generate_feed("blog")) == [f"https://blog.example.net/blog/{post.slug}"]

    def test_scheduled_posts_are_left_out(self, make_post):
        make_post(published_at=timezone.now() + timedelta(hours=2))

        assert feed_links(syndication.generate_feed("blog")) == []

    def test_limit(self, make_post):
        posts = [make_post() for _ in range(4)]

        links = feed_links(syndication.generate_feed("blog", limit=2))

        assert links == [f"https://example.com/blog/{p.slug}" for p in posts[:2]]

    def test_limit_is_bounded(self, settings):
        settings.SYNDICATION_FEED_LIMIT = 20

        assert syndication.feed_limit() == 20
        assert syndication.feed_limit(-5) == 0
        assert syndication.feed_limit(10_000) == syndication.MAX_FEED_ITEMS

    def test_invalid_limit_falls_back_to_default(self, settings):
        settings.SYNDICATION_FEED_LIMIT = 20

        assert syndication.feed_limit("abc") == 20
        assert syndication.feed_limit("") == 20
        assert syndication.feed_limit("2.5") == 20
        assert syndication.feed_limit("7") == 7

    def test_empty_feed_is_valid(self, db):
        channel = parse(syndication.generate_feed("blog")).find("channel")

        assert channel is not None
        assert channel.findall("item") == []

    def test_unknown_kind(self, db):
        with pytest.raises(NotFound):
            syndication.generate_feed("podcasts")

    def test_deleted_post_leaves_feed(self, dated_posts):
        new_year, _, spring = dated_posts

        store.delete_post(spring.slug)

        assert feed_links(syndication.generate_feed("blog")) == [f"https://example.com/blog/{new_year.slug}"]


@pytest.mark.django_db
class TestProjectsFeed:
    def test_published_projects(self, tag):
        shipped = Project.objects.create(title="Shipped", status="published",
                                         published_at=timezone.now() - timedelta(days=1))
        shipped.tags.add(tag)
        Project.objects.create(title="Hidden", status="draft")

        [item] = parse(syndication.generate_feed("projects")).iter("item")

        assert item.findtext("link") == "https://example.com/projects/shipped"
        assert [c.text for c in item.findall("category")] == ["python"]


@pytest.mark.django_db
class TestSitemap:
    def test_static_pages_and_content(self, make_post):
        post = make_post()
        make_post(status="draft", title="Secret draft")
        Project.objects.create(title="Shipped", status="published", published_at=timezone.now())

        root = parse(syndication.generate_sitemap())
        locs = [url.findtext(f"{SITEMAP}loc") for url in root.iter(f"{SITEMAP}url")]

        assert "https://example.com/" in locs
        assert "https://example.com/blog" in locs
        assert f"https://example.com/blog/{post.slug}" in locs
        assert "https://example.com/projects/shipped" in locs
        assert "https://example.com/blog/secret-draft" not in locs

    def test_entries_have_lastmod_for_content(self, make_post):
        post = make_post()

        root = parse(syndication.generate_sitemap())
        entry = next(url for url in root.iter(f"{SITEMAP}url")
                     if url.findtext(f"{SITEMAP}loc").endswith(post.slug))

        assert entry.findtext(f"{SITEMAP}lastmod") == post.updated_at.date().isoformat()
        assert entry.findtext(f"{SITEMAP}changefreq") == "weekly"


class TestRobots:
    def test_points_at_sitemap(self):
        text = syndication.generate_robots()

        assert text.startswith("User-agent: *\n")
        assert "Disallow: /api/" in text
        assert "Sitemap: https://example.com/sitemap.xml" in text
        assert "Host: example.com" in text


@pytest.mark.django_db
class TestSyndicationViews:
    def test_feed_response(self, api_client, make_post):
        post = make_post()

        response = api_client.get("/rss/blog")

        assert response.status_code == 200
        assert response["Content-Type"] == "application/xml; charset=utf-8"
        assert "public" in response["Cache-Control"]
        assert "max-age=3600" in response["Cache-Control"]
        assert feed_links(response.content.decode()) == [f"https://example.com/blog/{post.slug}"]

    def test_unknown_feed_is_404(self, api_client):
        assert api_client.get("/rss/podcasts").status_code == 404

    def test_sitemap_response(self, api_client):
        response = api_client.get("/sitemap.xml")

        assert response.status_code == 200
        assert response["Content-Type"] == "application/xml; charset=utf-8"
        assert parse(response.content.decode()).tag == f"{SITEMAP}urlset"

    def test_robots_response(self, api_client):
        response = api_client.get("/robots.txt")

        assert response.status_code == 200
        assert response["Content-Type"] == "text/plain; charset=utf-8"

    def test_feed_limit_parameter(self, api_client, make_post):
        posts = [make_post() for _ in range(3)]

        links = feed_links(api_client.get("/rss/blog", {"limit": 2}).content.decode())

        assert links == [f"https://example.com/blog/{p.slug}" for p in posts[:2]]

    def test_feed_limit_is_capped(self, api_client, make_post, settings):
        settings.SYNDICATION_FEED_LIMIT = 1
        for _ in range(3):
            make_post()

        with patch.object(syndication, "MAX_FEED_ITEMS", 2):
            response = api_client.get("/rss/blog", {"limit": 150})

        assert len(feed_links(response.content.decode())) == 2

    def test_invalid_feed_limit_uses_default(self, api_client, make_post, settings):
        settings.SYNDICATION_FEED_LIMIT = 1
        newest = make_post()
        make_post()

        response = api_client.get("/rss/blog", {"limit": "invalid"})

        assert response.status_code == 200
        assert feed_links(response.content.decode()) == [f"https://example.com/blog/{newest.slug}"]

    def test_feed_limits_are_cached_separately(self, api_client, make_post):
        for _ in range(3):
            make_post()

        assert len(feed_links(api_client.get("/rss/blog", {"limit": 1}).content.decode())) == 1
        assert len(feed_links(api_client.get("/rss/blog").content.decode())) == 3
        assert len(feed_links(api_client.get("/rss/blog", {"limit": 0}).content.decode())) == 0

    def test_feed_rejects_post(self, api_client):
        assert api_client.post("/rss/blog").status_code == 405

    def test_cached_feed_refreshes_after_a_committed_delete(
        self, api_client, make_post, django_capture_on_commit_callbacks
    ):
        keep = make_post()
        gone = make_post()
        assert len(feed_links(api_client.get("/rss/blog").content.decode())) == 2

        with django_capture_on_commit_callbacks(execute=True):
            store.delete_post(gone.slug)

        links = feed_links(api_client.get("/rss/blog").content.decode())
        assert links == [f"https://example.com/blog/{keep.slug}"]

    def test_cached_feed_refreshes_after_admin_create(
        self, api_client, author, django_capture_on_commit_callbacks
    ):
        assert feed_links(api_client.get("/rss/blog").content.decode()) == []

        with django_capture_on_commit_callbacks(execute=True):
            cms.create_post(AdminContext.trusted(), {
                "title": "Fresh", "status": "published", "author": author.slug,
            })

        assert feed_links(api_client.get("/rss/blog").content.decode()) == ["https://example.com/blog/fresh"]
