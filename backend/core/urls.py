# backend/core/urls.py
from django.conf import settings
from django.urls import path, include

from blog import views as blog_views
from .views import AdminLoginView, AdminLogoutView, AdminSessionView, health_check

urlpatterns = [
    # Blog API
    path('api/blog/', include(('blog.urls', 'blog'), namespace='blog')),
    path('api/media/', include(('media.urls', 'media'), namespace='media')),

    # Admin session
    path('api/auth/login/', AdminLoginView.as_view(), name='admin-login'),
    path('api/auth/logout/', AdminLogoutView.as_view(), name='admin-logout'),
    path('api/auth/session/', AdminSessionView.as_view(), name='admin-session'),

    # Syndication
    path('rss/<slug:kind>', blog_views.feed_view, name='feed'),
    path('sitemap.xml', blog_views.sitemap_xml, name='sitemap'),
    path('robots.txt', blog_views.robots_txt, name='robots'),

    # Pages
    path('blog/', blog_views.post_list_page, name='post-list-page'),
    path('blog/<slug:slug>', blog_views.post_detail_page, name='post-page'),

    path('health/', health_check, name='health-check'),
]

# Serve uploaded media in DEBUG
if settings.DEBUG:
    from django.conf.urls.static import static
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
