# backend/blog/revalidation.py
"""
Keeps readers from seeing stale content after a write.

Two layers are refreshed once the write transaction commits:

* documents cached here (feeds, sitemap, robots, public listings) are keyed by
  a content generation counter; bumping it makes every old entry unreachable;
* the Next.js frontend is asked to revalidate the affected paths and tags.
"""
import logging
import uuid

import requests
from django.conf import settings
from django.core.cache import cache
from django.db import transaction
from django.db.models.signals import post_delete, post_save

logger = logging.getLogger(__name__)

GENERATION_KEY = "blog:content-generation"

SECTION_PATHS = {
    "post": "/blog",
    "project": "/projects",
}
SHARED_PATHS = ["/", "/sitemap.xml"]


def _fresh_generation():
    # a reseeded counter must not land on an earlier generation
    return uuid.uuid4().int >> 66


def content_generation():
    generation = cache.get(GENERATION_KEY)
    if generation is None:
        cache.add(GENERATION_KEY, _fresh_generation(), timeout=None)
        generation = cache.get(GENERATION_KEY)
    return generation


def bump_content_generation():
    try:
        return cache.incr(GENERATION_KEY)
    except ValueError:
        # key missing (evicted or never read)
        generation = _fresh_generation()
        cache.set(GENERATION_KEY, generation, timeout=None)
        return generation


def cached_document(name, builder, timeout=None):
    """Returns ``builder()`` cached under ``name`` for the current content generation."""
    key = f"blog:doc:{content_generation()}:{name}"
    value = cache.get(key)
    if value is None:
        value = builder()
        cache.set(key, value, timeout if timeout is not None else settings.SYNDICATION_CACHE_SECONDS)
    return value


def revalidation_targets(kind, slugs=()):
    section = SECTION_PATHS.get(kind)
    paths = list(SHARED_PATHS)
    tags = []
    if section:
        paths += [section, f"/rss{section}"]
        tags.append(f"{kind}s")
        for slug in slugs:
            paths.append(f"{section}/{slug}")
            tags.append(f"{kind}-{slug}")
    else:
        # taxonomy and author changes show up on every listing
        paths += ["/blog", "/projects", "/rss/blog", "/rss/projects"]
        tags += ["posts", "projects", kind]
    return paths, tags


def send_revalidation_request(paths, tags):
    """
    Asks the frontend to revalidate ``paths`` and ``tags``. Returns True on a
    200 answer; failures are logged and never raised into the write path.
    """
    secret_key = settings.REVALIDATION_SECRET
    if not secret_key:
        logger.debug("REVALIDATION_SECRET not set; skipping frontend revalidation")
        return False

    try:
        response = requests.post(
            f'{settings.FRONTEND_URL}/api/revalidate',
            json={
                'paths': paths,
                'tags': tags
            },
            headers={
                'x-revalidation-secret': secret_key,
                'Content-Type': 'application/json'
            },
            timeout=settings.REVALIDATION_TIMEOUT
        )
    except requests.exceptions.RequestException as e:
        logger.warning("Revalidation request error: %s", e)
        return False

    if response.status_code == 200:
        logger.info("Revalidation successful for %s", paths)
        return True
    logger.warning("Revalidation failed: %s - %s", response.status_code, response.text[:200])
    return False


def invalidate_content(kind, slugs=()):
    generation = bump_content_generation()
    logger.info("Content generation %s after %s change (%s)", generation, kind, ", ".join(slugs) or "-")
    paths, tags = revalidation_targets(kind, slugs)
    return send_revalidation_request(paths, tags)


def _schedule(kind, *slugs):
    slugs = tuple(dict.fromkeys(s for s in slugs if s))
    # runs immediately outside a transaction, and never for a rolled back one
    transaction.on_commit(lambda: invalidate_content(kind, slugs))


def revalidate_on_save(sender, instance, **kwargs):
    # the store sets _previous_slug when an update renames a record
    _schedule(sender._meta.model_name, getattr(instance, "_previous_slug", None), instance.slug)


def revalidate_on_delete(sender, instance, **kwargs):
    _schedule(sender._meta.model_name, instance.slug)


def connect_signals():
    from .models import Author, Category, Post, Project, Tag

    for model in (Post, Project, Author, Category, Tag):
        name = model._meta.model_name
        post_save.connect(revalidate_on_save, sender=model, dispatch_uid=f"revalidate-save-{name}")
        post_delete.connect(revalidate_on_delete, sender=model, dispatch_uid=f"revalidate-delete-{name}")
