# backend/blog/store.py
"""
Content store access.

Every read and write of posts, projects and taxonomy goes through the
functions here; views, the admin surface, feeds and the listing service never
touch the ORM directly for content. Writes run in a single transaction so a
record and its category/tag associations change together or not at all.

Concurrency: last write wins, unless the caller passes ``expected_version``;
then a stale version is rejected with ``Conflict``.
"""
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import List, Optional

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import Count, F, ProtectedError, Q
from django.db.models.functions import Lower
from django.utils import timezone

from core.exceptions import Conflict, NotFound, StoreError, ValidationError
from .filters import PostFilterSet
from .models import Author, Category, Post, Project, Tag
from .utils import is_valid_slug

logger = logging.getLogger(__name__)

MAX_TAGS = 10
TEXT_LIMITS = {"description": 500, "body": 50000}

POST_FIELDS = frozenset({
    "title", "slug", "description", "body", "status", "featured", "featured_image",
    "meta_title", "meta_description", "published_at",
})
PROJECT_FIELDS = frozenset({
    "title", "slug", "description", "body", "status", "featured", "url",
    "repository_url", "published_at",
})
# name -> (model, many, required)
POST_RELATIONS = {
    "author": (Author, False, True),
    "categories": (Category, True, False),
    "tags": (Tag, True, False),
}
PROJECT_RELATIONS = {
    "tags": (Tag, True, False),
}

TERM_MODELS = {"category": Category, "tag": Tag, "author": Author}
TERM_FIELDS = {
    Category: frozenset({"name", "slug", "description"}),
    Tag: frozenset({"name", "slug", "description"}),
    Author: frozenset({"name", "slug", "email", "image", "bio", "website", "twitter", "github", "linkedin"}),
}

DEFAULT_SORT = "-published_at"
SORT_ORDERINGS = {
    "-published_at": (F("published_at").desc(nulls_last=True), "-id"),
    "published_at": (F("published_at").asc(nulls_last=True), "id"),
    "title": (Lower("title").asc(), "id"),
    "-title": (Lower("title").desc(), "-id"),
    "-created_at": ("-created_at", "-id"),
    "-updated_at": ("-updated_at", "-id"),
}


@dataclass
class PostFilter:
    status: Optional[str] = None
    category: Optional[str] = None
    tag: Optional[str] = None
    author: Optional[str] = None
    search: Optional[str] = None
    featured: Optional[bool] = None
    # any of these tag slugs
    tags: Optional[List[str]] = None
    # inclusive bounds on published_at; datetimes or ISO strings
    date_from: Optional[object] = None
    date_to: Optional[object] = None
    # True: visible to the public only; False: everything else
    published: Optional[bool] = None

    @classmethod
    def public(cls, **kwargs):
        kwargs["published"] = True
        return cls(**kwargs)

    def as_filter_data(self):
        data = {
            "status": self.status,
            "category": self.category,
            "tag": self.tag,
            "author": self.author,
            "q": self.search,
            "featured": self.featured,
            "published": self.published,
            "tags": ",".join(self.tags) if self.tags else None,
            "date_from": self.date_from,
            "date_to": self.date_to,
        }
        return {k: v for k, v in data.items() if v is not None and v != ""}


@dataclass(frozen=True)
class Pagination:
    offset: int = 0
    limit: Optional[int] = None


@dataclass
class PostListResult:
    items: List[Post]
    total_count: int


@contextmanager
def _store_errors(action):
    try:
        yield
    except (IntegrityError, ProtectedError) as exc:
        logger.info("Integrity conflict while trying to %s: %s", action, exc)
        raise Conflict(f"Could not {action}: it conflicts with or is referenced by another record") from exc
    except DatabaseError as exc:
        logger.exception("Database failure while trying to %s", action)
        raise StoreError() from exc


# ---------------------------
# Reads
# ---------------------------
def post_queryset():
    return Post.objects.select_related("author").prefetch_related("categories", "tags")


def ordering_for(sort):
    key = sort or DEFAULT_SORT
    try:
        return SORT_ORDERINGS[key]
    except KeyError:
        raise ValidationError(
            f"Unsupported sort '{key}'",
            details={"sort": [f"Choose one of: {', '.join(SORT_ORDERINGS)}"]},
        ) from None


def filter_posts(filters: Optional[PostFilter] = None, sort: Optional[str] = None):
    """Returns an unevaluated, ordered queryset for ``filters``."""
    qs = post_queryset()
    if filters is not None:
        filterset = PostFilterSet(filters.as_filter_data(), queryset=qs)
        if not filterset.is_valid():
            raise ValidationError("Invalid filter", details=filterset.errors.get_json_data())
        qs = filterset.qs
    return qs.order_by(*ordering_for(sort))


def list_posts(filters: Optional[PostFilter] = None, sort: Optional[str] = None,
               pagination: Optional[Pagination] = None) -> PostListResult:
    qs = filter_posts(filters, sort)
    if pagination is not None:
        if pagination.offset < 0 or (pagination.limit is not None and pagination.limit < 0):
            raise ValidationError("Pagination bounds must not be negative")
    with _store_errors("list posts"):
        total = qs.count()
        if pagination is not None:
            end = None if pagination.limit is None else pagination.offset + pagination.limit
            qs = qs[pagination.offset:end]
        items = list(qs)
    return PostListResult(items=items, total_count=total)


def get_post_by_slug(slug, published_only=False) -> Post:
    qs = post_queryset()
    if published_only:
        qs = qs.published()
    with _store_errors("load post"):
        try:
            return qs.get(slug=slug)
        except Post.DoesNotExist:
            raise NotFound(f"Post '{slug}' not found") from None


def list_projects(published_only=True):
    qs = Project.objects.prefetch_related("tags")
    if published_only:
        qs = qs.published()
    with _store_errors("list projects"):
        return list(qs.order_by(*SORT_ORDERINGS[DEFAULT_SORT]))


def get_project_by_slug(slug, published_only=False) -> Project:
    qs = Project.objects.prefetch_related("tags")
    if published_only:
        qs = qs.published()
    with _store_errors("load project"):
        try:
            return qs.get(slug=slug)
        except Project.DoesNotExist:
            raise NotFound(f"Project '{slug}' not found") from None


def term_model(kind):
    try:
        return TERM_MODELS[kind]
    except KeyError:
        raise NotFound(f"Unknown taxonomy '{kind}'") from None


def _terms_queryset(model):
    now = timezone.now()
    return model.objects.annotate(post_count=Count(
        "posts",
        filter=Q(posts__status=Post.Status.PUBLISHED, posts__published_at__lte=now),
        distinct=True,
    ))


def list_terms(kind):
    model = term_model(kind)
    with _store_errors(f"list {kind} records"):
        return list(_terms_queryset(model))


def get_term(kind, slug):
    model = term_model(kind)
    with _store_errors(f"load {kind}"):
        try:
            return _terms_queryset(model).get(slug=slug)
        except model.DoesNotExist:
            raise NotFound(f"{model._meta.verbose_name.capitalize()} '{slug}' not found") from None


# ---------------------------
# Input cleaning
# ---------------------------
def _reject_unknown(data, allowed):
    unknown = sorted(set(data) - set(allowed))
    if unknown:
        raise ValidationError("Unknown fields", details={name: ["Unknown field."] for name in unknown})


def _resolve(model, ref):
    if isinstance(ref, model):
        return ref
    return model.objects.filter(slug=ref).first()


def _clean_relations(data, relation_fields, partial, errors):
    resolved = {}
    for name, (model, many, required) in relation_fields.items():
        if name not in data:
            if required and not partial:
                errors[name] = ["This field is required."]
            continue
        value = data[name]
        if not many:
            obj = _resolve(model, value) if value else None
            if obj is None:
                errors[name] = [f"Unknown {model._meta.verbose_name} '{value}'." if value else "This field is required."]
            else:
                resolved[name] = obj
            continue
        refs = list(dict.fromkeys(value or []))
        if name == "tags" and len(refs) > MAX_TAGS:
            errors[name] = [f"At most {MAX_TAGS} tags are allowed."]
            continue
        objs = [(ref, _resolve(model, ref)) for ref in refs]
        missing = [str(ref) for ref, obj in objs if obj is None]
        if missing:
            errors[name] = [f"Unknown {model._meta.verbose_name_plural}: {', '.join(missing)}."]
        else:
            resolved[name] = [obj for _, obj in objs]
    return resolved


def _clean_values(model, data, fields, errors):
    values = {}
    for name in fields:
        if name not in data:
            continue
        value = data[name]
        field = model._meta.get_field(name)
        if value is None and not field.null:
            value = "" if field.empty_strings_allowed else value
        if isinstance(value, str) and name in ("title", "name", "slug"):
            value = value.strip()
        values[name] = value

    slug = values.get("slug")
    if slug == "":
        # blank slug: generated on create, kept on update
        values.pop("slug")
    elif slug is not None and not is_valid_slug(slug):
        errors["slug"] = ["Use lowercase letters, digits and single hyphens."]
    for name, limit in TEXT_LIMITS.items():
        if isinstance(values.get(name), str) and len(values[name]) > limit:
            errors[name] = [f"Ensure this field has no more than {limit} characters."]
    return values


def _apply(instance, values, errors, exclude=()):
    for name, value in values.items():
        setattr(instance, name, value)
    skip = set(exclude) | set(errors)
    try:
        instance.clean_fields(exclude=list(skip))
    except DjangoValidationError as exc:
        errors.update(exc.message_dict)
    if errors:
        raise ValidationError(f"Invalid {instance._meta.verbose_name} data", details=errors)


def _ensure_slug_free(model, slug, instance_pk=None):
    if not slug:
        return
    qs = model.objects.filter(slug=slug)
    if instance_pk is not None:
        qs = qs.exclude(pk=instance_pk)
    if qs.exists():
        raise Conflict(f"A {model._meta.verbose_name} with slug '{slug}' already exists",
                       details={"slug": ["Already in use."]})


# ---------------------------
# Publishable writes (posts and projects)
# ---------------------------
def _create_publishable(model, data, fields, relation_fields):
    _reject_unknown(data, fields | set(relation_fields))
    errors = {}
    values = _clean_values(model, data, fields, errors)
    with _store_errors(f"create {model._meta.verbose_name}"), transaction.atomic():
        relations = _clean_relations(data, relation_fields, partial=False, errors=errors)
        instance = model()
        for name, obj in relations.items():
            if not isinstance(obj, list):
                setattr(instance, name, obj)
        _apply(instance, values, errors, exclude=("version", "word_count", "reading_time", *relation_fields))
        _ensure_slug_free(model, instance.slug)
        instance.save()
        for name, objs in relations.items():
            if isinstance(objs, list):
                getattr(instance, name).set(objs)
    return instance


def _update_publishable(model, slug, patch, fields, relation_fields, expected_version=None):
    _reject_unknown(patch, fields | set(relation_fields))
    errors = {}
    values = _clean_values(model, patch, fields, errors)
    with _store_errors(f"update {model._meta.verbose_name}"), transaction.atomic():
        try:
            instance = model.objects.select_for_update().get(slug=slug)
        except model.DoesNotExist:
            raise NotFound(f"{model._meta.verbose_name.capitalize()} '{slug}' not found") from None
        if expected_version is not None and int(expected_version) != instance.version:
            raise Conflict(
                f"{model._meta.verbose_name.capitalize()} '{slug}' was changed by another edit",
                details={"version": [f"Current version is {instance.version}."]},
            )
        instance._previous_slug = instance.slug
        relations = _clean_relations(patch, relation_fields, partial=True, errors=errors)
        for name, obj in relations.items():
            if not isinstance(obj, list):
                setattr(instance, name, obj)
        _apply(instance, values, errors, exclude=("version", "word_count", "reading_time", *relation_fields))
        _ensure_slug_free(model, instance.slug, instance.pk)
        instance.version += 1
        instance.save()
        for name, objs in relations.items():
            if isinstance(objs, list):
                getattr(instance, name).set(objs)
    return instance


def _delete_publishable(model, slug):
    with _store_errors(f"delete {model._meta.verbose_name}"), transaction.atomic():
        try:
            instance = model.objects.select_for_update().get(slug=slug)
        except model.DoesNotExist:
            raise NotFound(f"{model._meta.verbose_name.capitalize()} '{slug}' not found") from None
        instance.delete()
    return instance


def create_post(data) -> Post:
    post = _create_publishable(Post, data, POST_FIELDS, POST_RELATIONS)
    logger.info("Created post %s", post.slug)
    return get_post_by_slug(post.slug)


def update_post(slug, patch, expected_version=None) -> Post:
    post = _update_publishable(Post, slug, patch, POST_FIELDS, POST_RELATIONS, expected_version)
    logger.info("Updated post %s (version %s)", post.slug, post.version)
    return get_post_by_slug(post.slug)


def delete_post(slug) -> bool:
    """Hard delete. Raises NotFound when the slug is already gone."""
    _delete_publishable(Post, slug)
    logger.info("Deleted post %s", slug)
    return True


def create_project(data) -> Project:
    project = _create_publishable(Project, data, PROJECT_FIELDS, PROJECT_RELATIONS)
    logger.info("Created project %s", project.slug)
    return get_project_by_slug(project.slug)


def update_project(slug, patch, expected_version=None) -> Project:
    project = _update_publishable(Project, slug, patch, PROJECT_FIELDS, PROJECT_RELATIONS, expected_version)
    logger.info("Updated project %s (version %s)", project.slug, project.version)
    return get_project_by_slug(project.slug)


def delete_project(slug) -> bool:
    _delete_publishable(Project, slug)
    logger.info("Deleted project %s", slug)
    return True


# ---------------------------
# Taxonomy and authors
# ---------------------------
def create_term(kind, data):
    model = term_model(kind)
    fields = TERM_FIELDS[model]
    _reject_unknown(data, fields)
    errors = {}
    values = _clean_values(model, data, fields, errors)
    with _store_errors(f"create {kind}"), transaction.atomic():
        instance = model()
        _apply(instance, values, errors)
        _ensure_slug_free(model, instance.slug)
        instance.save()
    logger.info("Created %s %s", kind, instance.slug)
    return get_term(kind, instance.slug)


def update_term(kind, slug, patch):
    model = term_model(kind)
    fields = TERM_FIELDS[model]
    _reject_unknown(patch, fields)
    errors = {}
    values = _clean_values(model, patch, fields, errors)
    with _store_errors(f"update {kind}"), transaction.atomic():
        try:
            instance = model.objects.select_for_update().get(slug=slug)
        except model.DoesNotExist:
            raise NotFound(f"{model._meta.verbose_name.capitalize()} '{slug}' not found") from None
        instance._previous_slug = instance.slug
        _apply(instance, values, errors)
        _ensure_slug_free(model, instance.slug, instance.pk)
        instance.save()
    logger.info("Updated %s %s", kind, instance.slug)
    return get_term(kind, instance.slug)


def delete_term(kind, slug):
    """Categories and tags drop their post links; an author still owning posts is a Conflict."""
    model = term_model(kind)
    with _store_errors(f"delete {kind}"), transaction.atomic():
        try:
            instance = model.objects.select_for_update().get(slug=slug)
        except model.DoesNotExist:
            raise NotFound(f"{model._meta.verbose_name.capitalize()} '{slug}' not found") from None
        instance.delete()
    logger.info("Deleted %s %s", kind, slug)
    return instance
