# backend/blog/filters.py
import django_filters
from django.db.models import Q

from .models import Post


class CharInFilter(django_filters.BaseInFilter, django_filters.CharFilter):
    pass


class PostFilterSet(django_filters.FilterSet):
    status = django_filters.ChoiceFilter(choices=Post.Status.choices)
    category = django_filters.CharFilter(field_name='categories__slug', distinct=True)
    tag = django_filters.CharFilter(field_name='tags__slug', distinct=True)
    tags = CharInFilter(field_name='tags__slug', lookup_expr='in', distinct=True)
    author = django_filters.CharFilter(field_name='author__slug')
    featured = django_filters.BooleanFilter()
    published = django_filters.BooleanFilter(method='filter_published')
    q = django_filters.CharFilter(method='filter_search')
    date_from = django_filters.DateTimeFilter(field_name='published_at', lookup_expr='gte')
    date_to = django_filters.DateTimeFilter(field_name='published_at', lookup_expr='lte')

    class Meta:
        model = Post
        fields = [
            'status', 'category', 'tag', 'tags', 'author', 'featured',
            'published', 'q', 'date_from', 'date_to',
        ]

    def filter_published(self, queryset, name, value):
        if value is None:
            return queryset
        return queryset.published() if value else queryset.unpublished()

    def filter_search(self, queryset, name, value):
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(Q(title__icontains=value) | Q(description__icontains=value))
