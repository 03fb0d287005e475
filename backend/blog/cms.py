# backend/blog/cms.py
"""
Admin write surface.

Every operation takes the request's ``AdminContext`` and checks it before
anything else, so a caller without a session gets ``Unauthorized`` and no
state changes. Cache invalidation and frontend revalidation follow each
committed write (see revalidation.py).
"""
import logging

from core.authentication import AdminContext
from . import store
from .models import Post

logger = logging.getLogger(__name__)


def create_post(ctx: AdminContext, data):
    session = ctx.require_admin()
    post = store.create_post(data)
    logger.info("post %s created by %s", post.slug, session.subject)
    return post


def update_post(ctx: AdminContext, slug, patch, expected_version=None):
    session = ctx.require_admin()
    post = store.update_post(slug, patch, expected_version=expected_version)
    logger.info("post %s updated by %s (version %s)", post.slug, session.subject, post.version)
    return post


def delete_post(ctx: AdminContext, slug):
    session = ctx.require_admin()
    store.delete_post(slug)
    logger.info("post %s deleted by %s", slug, session.subject)
    return True


def publish_post(ctx: AdminContext, slug, published_at=None):
    """Publishes now, at ``published_at`` (may be in the future), or keeps an earlier date."""
    ctx.require_admin()
    patch = {"status": Post.Status.PUBLISHED}
    if published_at is not None:
        patch["published_at"] = published_at
    return update_post(ctx, slug, patch)


def unpublish_post(ctx: AdminContext, slug):
    ctx.require_admin()
    return update_post(ctx, slug, {"status": Post.Status.DRAFT})


def create_term(ctx: AdminContext, kind, data):
    session = ctx.require_admin()
    term = store.create_term(kind, data)
    logger.info("%s %s created by %s", kind, term.slug, session.subject)
    return term


def update_term(ctx: AdminContext, kind, slug, patch):
    session = ctx.require_admin()
    term = store.update_term(kind, slug, patch)
    logger.info("%s %s updated by %s", kind, term.slug, session.subject)
    return term


def delete_term(ctx: AdminContext, kind, slug):
    session = ctx.require_admin()
    store.delete_term(kind, slug)
    logger.info("%s %s deleted by %s", kind, slug, session.subject)
    return True


def create_project(ctx: AdminContext, data):
    session = ctx.require_admin()
    project = store.create_project(data)
    logger.info("project %s created by %s", project.slug, session.subject)
    return project


def update_project(ctx: AdminContext, slug, patch, expected_version=None):
    session = ctx.require_admin()
    project = store.update_project(slug, patch, expected_version=expected_version)
    logger.info("project %s updated by %s (version %s)", project.slug, session.subject, project.version)
    return project


def delete_project(ctx: AdminContext, slug):
    session = ctx.require_admin()
    store.delete_project(slug)
    logger.info("project %s deleted by %s", slug, session.subject)
    return True
