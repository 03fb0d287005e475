# backend/blog/serializers.py
from dataclasses import asdict

from rest_framework import serializers

from .models import Author, Category, Post, Project, Tag
from .rendering import render_post
from .store import MAX_TAGS, TEXT_LIMITS
from .syndication import absolute_url


class AuthorSerializer(serializers.ModelSerializer):
    post_count = serializers.IntegerField(read_only=True, default=0)

    class Meta:
        model = Author
        fields = ('name', 'slug', 'email', 'image', 'bio', 'website', 'twitter', 'github', 'linkedin',
                  'post_count')


class AuthorSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = Author
        fields = ('name', 'slug', 'image')


class CategorySerializer(serializers.ModelSerializer):
    post_count = serializers.IntegerField(read_only=True, default=0)

    class Meta:
        model = Category
        fields = ('name', 'slug', 'description', 'post_count')


class TagSerializer(serializers.ModelSerializer):
    post_count = serializers.IntegerField(read_only=True, default=0)

    class Meta:
        model = Tag
        fields = ('name', 'slug', 'description', 'post_count')


class TermSummarySerializer(serializers.Serializer):
    name = serializers.CharField()
    slug = serializers.CharField()


class PostListSerializer(serializers.ModelSerializer):
    author = AuthorSummarySerializer(read_only=True)
    categories = TermSummarySerializer(many=True, read_only=True)
    tags = TermSummarySerializer(many=True, read_only=True)
    url = serializers.SerializerMethodField()

    class Meta:
        model = Post
        fields = ('title', 'slug', 'description', 'featured_image', 'featured', 'status', 'author',
                  'categories', 'tags', 'published_at', 'updated_at', 'word_count', 'reading_time', 'url')

    def get_url(self, obj):
        return absolute_url(obj.get_absolute_url())


class PostDetailSerializer(PostListSerializer):
    class Meta(PostListSerializer.Meta):
        fields = PostListSerializer.Meta.fields + (
            'body', 'meta_title', 'meta_description', 'created_at', 'version',
        )

    def to_representation(self, instance):
        data = super().to_representation(instance)
        document = render_post(instance)
        data['html'] = document.html
        data['headings'] = [asdict(h) for h in document.headings]
        return data


class PublishableWriteSerializer(serializers.Serializer):
    """Shape check for admin writes; the store re-validates against the database."""
    title = serializers.CharField(max_length=200)
    slug = serializers.SlugField(max_length=300, required=False, allow_blank=True)
    description = serializers.CharField(max_length=TEXT_LIMITS['description'], required=False, allow_blank=True)
    body = serializers.CharField(max_length=TEXT_LIMITS['body'], required=False, allow_blank=True,
                                 trim_whitespace=False)
    status = serializers.ChoiceField(choices=Post.Status.choices, required=False)
    featured = serializers.BooleanField(required=False)
    published_at = serializers.DateTimeField(required=False, allow_null=True)
    tags = serializers.ListField(child=serializers.SlugField(), required=False, max_length=MAX_TAGS)
    # optimistic concurrency: the version the client last saw
    version = serializers.IntegerField(required=False, min_value=1, write_only=True)

    def split_version(self):
        data = dict(self.validated_data)
        return data, data.pop('version', None)


class PostWriteSerializer(PublishableWriteSerializer):
    featured_image = serializers.URLField(required=False, allow_blank=True)
    meta_title = serializers.CharField(max_length=255, required=False, allow_blank=True)
    meta_description = serializers.CharField(max_length=320, required=False, allow_blank=True)
    author = serializers.SlugField()
    categories = serializers.ListField(child=serializers.SlugField(), required=False)


class ProjectSerializer(serializers.ModelSerializer):
    tags = TermSummarySerializer(many=True, read_only=True)
    link = serializers.SerializerMethodField()

    class Meta:
        model = Project
        fields = ('title', 'slug', 'description', 'status', 'featured', 'url', 'repository_url', 'tags',
                  'published_at', 'updated_at', 'link')

    def get_link(self, obj):
        return absolute_url(obj.get_absolute_url())


class ProjectDetailSerializer(ProjectSerializer):
    class Meta(ProjectSerializer.Meta):
        fields = ProjectSerializer.Meta.fields + ('body', 'created_at', 'version')

    def to_representation(self, instance):
        data = super().to_representation(instance)
        document = render_post(instance)
        data['html'] = document.html
        data['headings'] = [asdict(h) for h in document.headings]
        return data


class ProjectWriteSerializer(PublishableWriteSerializer):
    url = serializers.URLField(required=False, allow_blank=True)
    repository_url = serializers.URLField(required=False, allow_blank=True)


class TermWriteSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=120)
    slug = serializers.SlugField(max_length=140, required=False, allow_blank=True)
    description = serializers.CharField(required=False, allow_blank=True)


class AuthorWriteSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=120)
    slug = serializers.SlugField(max_length=140, required=False, allow_blank=True)
    email = serializers.EmailField(required=False, allow_blank=True)
    image = serializers.URLField(required=False, allow_blank=True)
    bio = serializers.CharField(required=False, allow_blank=True)
    website = serializers.URLField(required=False, allow_blank=True)
    twitter = serializers.CharField(max_length=60, required=False, allow_blank=True)
    github = serializers.CharField(max_length=60, required=False, allow_blank=True)
    linkedin = serializers.CharField(max_length=120, required=False, allow_blank=True)
