# backend/blog/views.py
import logging

from django.conf import settings
from django.http import Http404, HttpResponse, HttpResponseBadRequest, HttpResponseServerError
from django.shortcuts import render
from django.utils.cache import patch_cache_control
from django.views.decorators.http import require_GET
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from core.authentication import AdminContext
from core.exceptions import NotFound, RenderError, StoreError, ValidationError
from . import cms, listing, store, syndication
from .rendering import highlight_stylesheet, render_post
from .revalidation import cached_document
from .serializers import (
    AuthorSerializer, AuthorWriteSerializer, CategorySerializer, PostDetailSerializer,
    PostListSerializer, PostWriteSerializer, ProjectDetailSerializer, ProjectSerializer,
    ProjectWriteSerializer, TagSerializer, TermWriteSerializer,
)

logger = logging.getLogger(__name__)


class AdminContextMixin:
    """Builds the request-scoped ``AdminContext`` once, before the handler runs."""

    def initial(self, request, *args, **kwargs):
        super().initial(request, *args, **kwargs)
        self.admin = AdminContext.from_request(request)


def _public_cache(response, max_age):
    patch_cache_control(response, public=True, max_age=max_age)
    return response


def _private(response):
    patch_cache_control(response, private=True, no_store=True)
    return response


def _csv(value):
    if not value:
        return None
    return [item.strip() for item in value.split(',') if item.strip()] or None


# ---------------------------
# Posts
# ---------------------------
class PostViewSet(AdminContextMixin, viewsets.ViewSet):
    lookup_field = 'slug'

    def _filters(self, params):
        common = dict(
            category=params.get('category') or None,
            tag=params.get('tag') or None,
            author=params.get('author') or None,
            search=params.get('q') or None,
            featured=params.get('featured') or None,
            tags=_csv(params.get('tags') or params.get('tagIds')),
            date_from=params.get('date_from') or params.get('dateFrom') or None,
            date_to=params.get('date_to') or params.get('dateTo') or None,
        )
        if self.admin.is_admin:
            # drafts and scheduled posts are only listed for the admin
            return store.PostFilter(status=params.get('status') or None,
                                    published=params.get('published') or None, **common)
        return store.PostFilter.public(**common)

    def _page_payload(self, params):
        page = listing.get_page(
            params.get('page'),
            params.get('page_size'),
            self._filters(params),
            params.get('sort') or None,
        )
        return {
            'success': True,
            'results': PostListSerializer(page.items, many=True).data,
            **page.as_meta(),
        }

    def list(self, request):
        params = request.query_params
        if self.admin.is_admin:
            return _private(Response(self._page_payload(params)))
        payload = cached_document(
            f"posts:{params.urlencode()}",
            lambda: self._page_payload(params),
            settings.BLOG_LIST_CACHE_SECONDS,
        )
        return _public_cache(Response(payload), settings.BLOG_LIST_CACHE_SECONDS)

    def retrieve(self, request, slug=None):
        post = store.get_post_by_slug(slug, published_only=not self.admin.is_admin)
        return Response(PostDetailSerializer(post).data)

    def create(self, request):
        self.admin.require_admin()
        serializer = PostWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data, _ = serializer.split_version()
        post = cms.create_post(self.admin, data)
        return Response(PostDetailSerializer(post).data, status=status.HTTP_201_CREATED)

    def _update(self, request, slug, partial):
        self.admin.require_admin()
        serializer = PostWriteSerializer(data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        data, version = serializer.split_version()
        post = cms.update_post(self.admin, slug, data, expected_version=version)
        return Response(PostDetailSerializer(post).data)

    def update(self, request, slug=None):
        return self._update(request, slug, partial=False)

    def partial_update(self, request, slug=None):
        return self._update(request, slug, partial=True)

    def destroy(self, request, slug=None):
        cms.delete_post(self.admin, slug)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=['post'])
    def publish(self, request, slug=None):
        post = cms.publish_post(self.admin, slug, request.data.get('published_at'))
        return Response(PostDetailSerializer(post).data)

    @action(detail=True, methods=['post'])
    def unpublish(self, request, slug=None):
        post = cms.unpublish_post(self.admin, slug)
        return Response(PostDetailSerializer(post).data)


# ---------------------------
# Categories / Tags / Authors
# ---------------------------
class TermViewSet(AdminContextMixin, viewsets.ViewSet):
    lookup_field = 'slug'
    kind = None
    serializer_class = None
    write_serializer_class = TermWriteSerializer

    def list(self, request):
        terms = store.list_terms(self.kind)
        return Response({'success': True, 'results': self.serializer_class(terms, many=True).data})

    def retrieve(self, request, slug=None):
        return Response(self.serializer_class(store.get_term(self.kind, slug)).data)

    def _validated(self, request, partial=False):
        self.admin.require_admin()
        serializer = self.write_serializer_class(data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        return dict(serializer.validated_data)

    def create(self, request):
        term = cms.create_term(self.admin, self.kind, self._validated(request))
        return Response(self.serializer_class(term).data, status=status.HTTP_201_CREATED)

    def update(self, request, slug=None):
        term = cms.update_term(self.admin, self.kind, slug, self._validated(request))
        return Response(self.serializer_class(term).data)

    def partial_update(self, request, slug=None):
        term = cms.update_term(self.admin, self.kind, slug, self._validated(request, partial=True))
        return Response(self.serializer_class(term).data)

    def destroy(self, request, slug=None):
        cms.delete_term(self.admin, self.kind, slug)
        return Response(status=status.HTTP_204_NO_CONTENT)


class CategoryViewSet(TermViewSet):
    kind = 'category'
    serializer_class = CategorySerializer


class TagViewSet(TermViewSet):
    kind = 'tag'
    serializer_class = TagSerializer


class AuthorViewSet(TermViewSet):
    kind = 'author'
    serializer_class = AuthorSerializer
    write_serializer_class = AuthorWriteSerializer


# ---------------------------
# Projects
# ---------------------------
class ProjectViewSet(AdminContextMixin, viewsets.ViewSet):
    lookup_field = 'slug'

    def list(self, request):
        projects = store.list_projects(published_only=not self.admin.is_admin)
        return Response({'success': True, 'results': ProjectSerializer(projects, many=True).data})

    def retrieve(self, request, slug=None):
        project = store.get_project_by_slug(slug, published_only=not self.admin.is_admin)
        return Response(ProjectDetailSerializer(project).data)

    def _validated(self, request, partial=False):
        self.admin.require_admin()
        serializer = ProjectWriteSerializer(data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        return serializer.split_version()

    def create(self, request):
        data, _ = self._validated(request)
        project = cms.create_project(self.admin, data)
        return Response(ProjectDetailSerializer(project).data, status=status.HTTP_201_CREATED)

    def update(self, request, slug=None):
        data, version = self._validated(request)
        project = cms.update_project(self.admin, slug, data, expected_version=version)
        return Response(ProjectDetailSerializer(project).data)

    def partial_update(self, request, slug=None):
        data, version = self._validated(request, partial=True)
        project = cms.update_project(self.admin, slug, data, expected_version=version)
        return Response(ProjectDetailSerializer(project).data)

    def destroy(self, request, slug=None):
        cms.delete_project(self.admin, slug)
        return Response(status=status.HTTP_204_NO_CONTENT)


# ---------------------------
# Syndication
# ---------------------------
def _syndication_response(body, content_type):
    response = HttpResponse(body, content_type=content_type)
    return _public_cache(response, settings.SYNDICATION_CACHE_SECONDS)


@require_GET
def feed_view(request, kind):
    if kind not in syndication.FEED_KINDS:
        raise Http404(f"Unknown feed '{kind}'")
    limit = syndication.feed_limit(request.GET.get("limit"))
    xml = cached_document(f"feed:{kind}:{limit}", lambda: syndication.generate_feed(kind, limit))
    return _syndication_response(xml, syndication.FEED_CONTENT_TYPE)


@require_GET
def sitemap_xml(request):
    xml = cached_document("sitemap", syndication.generate_sitemap)
    return _syndication_response(xml, syndication.FEED_CONTENT_TYPE)


@require_GET
def robots_txt(request):
    text = cached_document("robots", syndication.generate_robots)
    return _syndication_response(text, syndication.ROBOTS_CONTENT_TYPE)


# ---------------------------
# Server-rendered pages
# ---------------------------
@require_GET
def post_list_page(request):
    filters = store.PostFilter.public(
        category=request.GET.get('category') or None,
        tag=request.GET.get('tag') or None,
    )
    try:
        page = listing.get_page(request.GET.get('page'), settings.BLOG_PAGE_SIZE, filters)
    except ValidationError as exc:
        return HttpResponseBadRequest(exc.message)
    except StoreError:
        return HttpResponseServerError("Internal server error")
    return render(request, 'blog/post_list.html', {'page': page, 'posts': page.items})


@require_GET
def post_detail_page(request, slug):
    try:
        post = store.get_post_by_slug(slug, published_only=True)
        document = render_post(post)
    except NotFound:
        raise Http404(f"Post '{slug}' not found")
    except RenderError:
        logger.exception("Could not render post %s", slug)
        return HttpResponseServerError("Internal server error")
    except StoreError:
        return HttpResponseServerError("Internal server error")
    return render(request, 'blog/post_detail.html', {
        'post': post,
        'document': document,
        'highlight_css': highlight_stylesheet(),
    })
