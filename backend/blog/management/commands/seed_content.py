from datetime import timedelta

from django.core.management.base import BaseCommand
from django.utils import timezone

from blog import cms, store
from blog.models import Author, Category, Tag
from blog.utils import translit_slugify
from core.authentication import AdminContext
from core.exceptions import Conflict

SAMPLE_POSTS = [
    {
        'title': 'Getting started with Django',
        'description': 'A practical first look at models, views and the admin.',
        'body': (
            '## Why Django\n\nBatteries included, see https://www.djangoproject.com\n\n'
            '## Installing\n\n```bash\npip install django\n```\n\n'
            '## Why Django\n\nYes, twice: heading ids stay unique.\n'
        ),
        'categories': ['engineering'],
        'tags': ['python', 'django'],
    },
    {
        'title': 'Notes on writing RSS feeds',
        'description': 'Absolute links, stable guids and newest first.',
        'body': '## Feeds\n\n| field | rule |\n| :--- | ---: |\n| link | absolute |\n| guid | permalink |\n',
        'categories': ['engineering'],
        'tags': ['rss'],
    },
    {
        'title': 'A draft about productivity',
        'description': 'Not ready yet.',
        'body': 'Still ~~thinking~~ writing.',
        'categories': ['life'],
        'tags': ['productivity'],
        'draft': True,
    },
]

SAMPLE_PROJECTS = [
    {
        'title': 'Portfolio backend',
        'description': 'Blog pipeline, feeds and a tiny CMS.',
        'body': 'Built with Django REST Framework.',
        'tags': ['python', 'django'],
        'repository_url': 'https://github.com/example/portfolio',
    },
]


class Command(BaseCommand):
    help = 'Creates sample authors, taxonomy, posts and projects for local development'

    def add_arguments(self, parser):
        parser.add_argument('--author', default='Site Owner', help='Display name of the sample author')

    def handle(self, *args, **options):
        ctx = AdminContext.trusted(subject='seed_content')

        author, created = Author.objects.get_or_create(
            name=options['author'],
            defaults={'bio': 'Writes software and occasionally about it.'},
        )
        if created:
            self.stdout.write(f'Created author: {author.name}')

        for name in ('Engineering', 'Life'):
            _, created = Category.objects.get_or_create(slug=name.lower(), defaults={'name': name})
            if created:
                self.stdout.write(f'Created category: {name}')

        for name in ('python', 'django', 'rss', 'productivity'):
            _, created = Tag.objects.get_or_create(slug=name, defaults={'name': name})
            if created:
                self.stdout.write(f'Created tag: {name}')

        now = timezone.now()
        for i, template in enumerate(SAMPLE_POSTS):
            data = {k: v for k, v in template.items() if k != 'draft'}
            data['author'] = author.slug
            data['slug'] = translit_slugify(template['title'])
            if template.get('draft'):
                data['status'] = 'draft'
            else:
                data['status'] = 'published'
                data['published_at'] = now - timedelta(days=7 * (len(SAMPLE_POSTS) - i))
            try:
                post = cms.create_post(ctx, data)
            except Conflict:
                self.stdout.write(f'Skipped existing post: {template["title"]}')
                continue
            self.stdout.write(self.style.SUCCESS(f'Created post: {post.slug} ({post.status})'))

        for template in SAMPLE_PROJECTS:
            try:
                project = cms.create_project(
                    ctx, {**template, 'slug': translit_slugify(template['title']), 'status': 'published'}
                )
            except Conflict:
                self.stdout.write(f'Skipped existing project: {template["title"]}')
                continue
            self.stdout.write(self.style.SUCCESS(f'Created project: {project.slug}'))

        total = store.list_posts().total_count
        self.stdout.write(self.style.SUCCESS(f'Done. {total} posts in the store.'))
