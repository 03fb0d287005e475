# backend/blog/models.py
from django.db import models
from django.db.models import Q
from django.urls import reverse
from django.utils import timezone

from .utils import translit_slugify, unique_slug, count_words, reading_time_minutes


class PublishableQuerySet(models.QuerySet):
    def published(self):
        """Records a visitor may see: published and not scheduled for later."""
        return self.filter(
            status=Publishable.Status.PUBLISHED,
            published_at__isnull=False,
            published_at__lte=timezone.now(),
        )

    def unpublished(self):
        return self.exclude(pk__in=self.published().values("pk"))


class Author(models.Model):
    name = models.CharField(max_length=120)
    slug = models.SlugField(max_length=140, unique=True, blank=True)
    email = models.EmailField(blank=True)
    image = models.URLField(blank=True)
    bio = models.TextField(blank=True)
    website = models.URLField(blank=True)
    twitter = models.CharField(max_length=60, blank=True)
    github = models.CharField(max_length=60, blank=True)
    linkedin = models.CharField(max_length=120, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['name']

    def save(self, *args, **kwargs):
        if not self.slug:
            self.slug = unique_slug(Author, translit_slugify(self.name, 120), self.pk, 140)
        super().save(*args, **kwargs)

    def __str__(self):
        return self.name


class Category(models.Model):
    name = models.CharField(max_length=120, unique=True)
    slug = models.SlugField(max_length=140, unique=True, blank=True)
    description = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['name']
        verbose_name_plural = "Categories"

    def save(self, *args, **kwargs):
        if not self.slug:
            self.slug = unique_slug(Category, translit_slugify(self.name, 120), self.pk, 140)
        super().save(*args, **kwargs)

    def __str__(self):
        return self.name


class Tag(models.Model):
    name = models.CharField(max_length=80, unique=True)
    slug = models.SlugField(max_length=100, unique=True, blank=True)
    description = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['name']

    def save(self, *args, **kwargs):
        if not self.slug:
            self.slug = unique_slug(Tag, translit_slugify(self.name, 96), self.pk, 100)
        super().save(*args, **kwargs)

    def __str__(self):
        return self.name


class Publishable(models.Model):
    class Status(models.TextChoices):
        DRAFT = 'draft', 'Draft'
        PUBLISHED = 'published', 'Published'

    title = models.CharField(max_length=200)
    slug = models.SlugField(max_length=300, unique=True, blank=True)
    description = models.TextField(blank=True, max_length=500)
    body = models.TextField(blank=True)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.DRAFT, db_index=True)
    featured = models.BooleanField(default=False)
    # bumped on every store update; used for optimistic concurrency and render caching
    version = models.PositiveIntegerField(default=1)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    published_at = models.DateTimeField(null=True, blank=True, db_index=True)

    objects = PublishableQuerySet.as_manager()

    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        if not self.slug:
            self.slug = unique_slug(type(self), translit_slugify(self.title, 250), self.pk, 300)
        if self.status == self.Status.PUBLISHED and self.published_at is None:
            self.published_at = timezone.now()
        super().save(*args, **kwargs)

    @property
    def is_published(self):
        return (
            self.status == self.Status.PUBLISHED
            and self.published_at is not None
            and self.published_at <= timezone.now()
        )


class Post(Publishable):
    author = models.ForeignKey(Author, on_delete=models.PROTECT, related_name='posts')
    featured_image = models.URLField(blank=True)
    categories = models.ManyToManyField(Category, related_name='posts', blank=True)
    tags = models.ManyToManyField(Tag, related_name='posts', blank=True)

    # SEO / metadata
    meta_title = models.CharField(max_length=255, blank=True)
    meta_description = models.CharField(max_length=320, blank=True)

    word_count = models.PositiveIntegerField(default=0)
    reading_time = models.PositiveIntegerField(default=1)

    class Meta:
        ordering = ['-published_at', '-id']
        indexes = [
            models.Index(fields=['status', 'published_at'], name='blog_post_status_pub_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=~Q(status='published') | Q(published_at__isnull=False),
                name='blog_post_published_has_date',
            ),
        ]

    def save(self, *args, **kwargs):
        # If meta_title missing, default to title
        if not self.meta_title:
            self.meta_title = self.title[:255]
        self.word_count = count_words(self.body)
        self.reading_time = reading_time_minutes(self.word_count)
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.title} ({self.get_status_display()})"

    def get_absolute_url(self):
        return reverse('post-page', kwargs={'slug': self.slug})


class Project(Publishable):
    url = models.URLField(blank=True)
    repository_url = models.URLField(blank=True)
    tags = models.ManyToManyField(Tag, related_name='projects', blank=True)

    class Meta:
        ordering = ['-published_at', '-id']
        constraints = [
            models.CheckConstraint(
                condition=~Q(status='published') | Q(published_at__isnull=False),
                name='blog_project_published_has_date',
            ),
        ]

    def __str__(self):
        return self.title

    def get_absolute_url(self):
        return f"/projects/{self.slug}"
