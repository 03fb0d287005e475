# backend/blog/syndication.py
"""
RSS feeds, sitemap and robots.txt built from the content store.

Only records visible to the public ever reach these documents, newest
``published_at`` first, and every link is absolute (SITE_URL + path).
"""
import io
import logging
from dataclasses import dataclass
from typing import Callable
from urllib.parse import urlsplit

from django.conf import settings
from django.utils.feedgenerator import Rss201rev2Feed
from django.utils.xmlutils import SimplerXMLGenerator

from core.exceptions import NotFound
from . import store

logger = logging.getLogger(__name__)

FEED_CONTENT_TYPE = "application/xml; charset=utf-8"
ROBOTS_CONTENT_TYPE = "text/plain; charset=utf-8"
SITEMAP_NS = "http://www.sitemaps.org/schemas/sitemap/0.9"
MAX_FEED_ITEMS = 100

ROBOTS_DISALLOW = ("/api/", "/admin/", "/_next/", "/static/")


def absolute_url(path=""):
    if path and not path.startswith("/"):
        path = f"/{path}"
    return f"{settings.SITE_URL.rstrip('/')}{path}"


def _visible_posts():
    return store.filter_posts(store.PostFilter.public())


def _visible_projects():
    return store.list_projects(published_only=True)


@dataclass(frozen=True)
class FeedKind:
    name: str
    title: str
    path_prefix: str
    records: Callable

    def item_path(self, record):
        return f"{self.path_prefix}/{record.slug}"


FEED_KINDS = {
    "blog": FeedKind("blog", "Blog", "/blog", _visible_posts),
    "projects": FeedKind("projects", "Projects", "/projects", _visible_projects),
}


def feed_limit(limit=None):
    """Clamps a requested item count to 0..MAX_FEED_ITEMS; unparseable values get the default."""
    try:
        limit = int(limit)
    except (TypeError, ValueError):
        limit = settings.SYNDICATION_FEED_LIMIT
    return max(0, min(limit, MAX_FEED_ITEMS))


def feed_items(kind, limit=None):
    try:
        feed_kind = FEED_KINDS[kind]
    except KeyError:
        raise NotFound(f"Unknown feed '{kind}'") from None
    limit = feed_limit(limit)
    if limit == 0:
        return feed_kind, []
    return feed_kind, list(feed_kind.records()[:limit])


def _item_categories(record):
    names = []
    if hasattr(record, "categories"):
        names.extend(c.name for c in record.categories.all())
    names.extend(t.name for t in record.tags.all())
    return names


def generate_feed(kind, limit=None) -> str:
    """RSS 2.0 document for ``kind`` ("blog" or "projects")."""
    feed_kind, records = feed_items(kind, limit)
    feed = Rss201rev2Feed(
        title=f"{settings.SITE_NAME} | {feed_kind.title}",
        link=absolute_url(feed_kind.path_prefix),
        description=settings.SITE_DESCRIPTION,
        language=settings.SITE_LANGUAGE,
        feed_url=absolute_url(f"/rss/{feed_kind.name}"),
        ttl=str(settings.SYNDICATION_CACHE_SECONDS // 60),
    )
    for record in records:
        link = absolute_url(feed_kind.item_path(record))
        author = getattr(record, "author", None)
        feed.add_item(
            title=record.title,
            link=link,
            description=record.description,
            unique_id=link,
            unique_id_is_permalink=True,
            pubdate=record.published_at,
            updateddate=record.updated_at,
            categories=_item_categories(record),
            author_name=author.name if author else None,
        )
    return feed.writeString("utf-8")


def sitemap_entries():
    for path, changefreq, priority in settings.SITEMAP_STATIC_PAGES:
        yield absolute_url(path), None, changefreq, priority
    for post in _visible_posts():
        yield absolute_url(f"/blog/{post.slug}"), post.updated_at, "weekly", "0.7"
    for project in _visible_projects():
        yield absolute_url(f"/projects/{project.slug}"), project.updated_at, "monthly", "0.6"


def generate_sitemap() -> str:
    stream = io.StringIO()
    xml = SimplerXMLGenerator(stream, "utf-8")
    xml.startDocument()
    xml.startElement("urlset", {"xmlns": SITEMAP_NS})
    for loc, lastmod, changefreq, priority in sitemap_entries():
        xml.startElement("url", {})
        xml.addQuickElement("loc", loc)
        if lastmod:
            xml.addQuickElement("lastmod", lastmod.date().isoformat())
        xml.addQuickElement("changefreq", changefreq)
        xml.addQuickElement("priority", priority)
        xml.endElement("url")
    xml.endElement("urlset")
    xml.endDocument()
    return stream.getvalue()


def generate_robots() -> str:
    lines = ["User-agent: *", "Allow: /"]
    lines += [f"Disallow: {path}" for path in ROBOTS_DISALLOW]
    lines += [
        "",
        f"Sitemap: {absolute_url('/sitemap.xml')}",
        f"Host: {urlsplit(settings.SITE_URL).netloc}",
    ]
    return "\n".join(lines) + "\n"
