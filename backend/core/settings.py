# backend/core/settings.py
import os
from pathlib import Path
from datetime import timedelta
import dj_database_url
from dotenv import load_dotenv

load_dotenv()

env = os.environ.get


def env_bool(name, default="False"):
    return env(name, default).strip().lower() in ("1", "true", "yes", "on")


BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = env('SECRET_KEY', 'dev-only-secret-key-change-me')
DEBUG = env_bool("DEBUG")

ALLOWED_HOSTS = [h.strip() for h in env("ALLOWED_HOSTS", "").split(",") if h.strip()] + [
    "localhost", "127.0.0.1", "testserver",
]

RENDER_EXTERNAL_HOSTNAME = env('RENDER_EXTERNAL_HOSTNAME')
if RENDER_EXTERNAL_HOSTNAME:
    ALLOWED_HOSTS.append(RENDER_EXTERNAL_HOSTNAME)

# ========== SITE ==========
SITE_URL = env("SITE_URL", "http://localhost:8000").rstrip("/")
SITE_NAME = env("SITE_NAME", "Portfolio")
SITE_DESCRIPTION = env("SITE_DESCRIPTION", "Notes on software, projects and everything in between.")
SITE_LANGUAGE = env("SITE_LANGUAGE", "en-us")
FRONTEND_URL = env('FRONTEND_URL', 'http://localhost:3000').rstrip("/")
REVALIDATION_SECRET = env("REVALIDATION_SECRET", "").strip() or None
REVALIDATION_TIMEOUT = int(env("REVALIDATION_TIMEOUT", "10"))

CSRF_TRUSTED_ORIGINS = [
    "http://localhost:3000", "http://127.0.0.1:3000",
] + [o.strip() for o in env("CSRF_TRUSTED_ORIGINS", "").split(",") if o.strip()]

CORS_ALLOWED_ORIGINS = [
    "http://localhost:3000", "http://127.0.0.1:3000",
] + [o.strip() for o in env("CORS_ALLOWED_ORIGINS", "").split(",") if o.strip()]

CORS_ALLOW_ALL_ORIGINS = False
CORS_ALLOW_CREDENTIALS = True
CORS_ALLOW_METHODS = ['DELETE', 'GET', 'OPTIONS', 'PATCH', 'POST', 'PUT']
CORS_ALLOW_HEADERS = [
    'accept', 'accept-encoding', 'content-type',
    'dnt', 'origin', 'user-agent', 'x-csrftoken', 'x-requested-with',
]

# ========== ADMIN SESSION ==========
# Single shared credential; see core/authentication.py
ADMIN_PASSWORD = env("ADMIN_PASSWORD", "")
ADMIN_SESSION_COOKIE = env("ADMIN_SESSION_COOKIE", "admin-session")
ADMIN_SESSION_SALT = "core.admin-session"
ADMIN_SESSION_MAX_AGE = int(timedelta(days=7).total_seconds())

# ========== STATIC / MEDIA ==========
STATIC_URL = "/static/"
STATIC_ROOT = BASE_DIR / "staticfiles"
STORAGES = {
    "default": {"BACKEND": "django.core.files.storage.FileSystemStorage"},
    "staticfiles": {"BACKEND": "whitenoise.storage.CompressedStaticFilesStorage"},
}

MEDIA_URL = env('MEDIA_URL', '/media/')
MEDIA_ROOT = Path(env("MEDIA_ROOT", str(BASE_DIR / "uploads")))
MEDIA_MAX_UPLOAD_SIZE = int(env("MEDIA_MAX_UPLOAD_SIZE", str(5 * 1024 * 1024)))
MEDIA_ALLOWED_CONTENT_TYPES = ("image/",)

# ========== DATABASE ==========
DATABASES = {
    'default': dj_database_url.config(
        default=env('DATABASE_URL', f"sqlite:///{BASE_DIR / 'db.sqlite3'}"),
        conn_max_age=600,
        conn_health_checks=True,
    )
}

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "folio",
    }
}

# ========== BLOG ==========
BLOG_PAGE_SIZE = int(env("BLOG_PAGE_SIZE", "10"))
BLOG_MAX_PAGE_SIZE = 100
BLOG_LIST_CACHE_SECONDS = int(env("BLOG_LIST_CACHE_SECONDS", "60"))
BLOG_RENDER_CACHE_SECONDS = 60 * 60 * 24
# Raw HTML in post bodies is sanitized unless this is switched on.
BLOG_ALLOW_RAW_HTML = env_bool("BLOG_ALLOW_RAW_HTML")
BLOG_WORDS_PER_MINUTE = 200

# ========== SYNDICATION ==========
SYNDICATION_CACHE_SECONDS = int(env("SYNDICATION_CACHE_SECONDS", "3600"))
SYNDICATION_FEED_LIMIT = int(env("SYNDICATION_FEED_LIMIT", "50"))
SITEMAP_STATIC_PAGES = [
    # (path, changefreq, priority)
    ("/", "monthly", "1.0"),
    ("/about", "monthly", "0.8"),
    ("/projects", "weekly", "0.9"),
    ("/blog", "weekly", "0.9"),
    ("/resume", "monthly", "0.7"),
    ("/contact", "yearly", "0.6"),
]

# ========== MIDDLEWARE ==========
MIDDLEWARE = [
    "corsheaders.middleware.CorsMiddleware",
    "django.middleware.security.SecurityMiddleware",
    "whitenoise.middleware.WhiteNoiseMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

# ========== APPS ==========
INSTALLED_APPS = [
    # Django core apps
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.staticfiles",

    # Local apps
    "blog.apps.BlogConfig",
    "media.apps.MediaConfig",

    # Third-party apps
    "whitenoise.runserver_nostatic",
    "rest_framework",
    "corsheaders",
    'django_filters',
]

ROOT_URLCONF = "core.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
                "core.views.site_context",
            ],
        },
    },
]

WSGI_APPLICATION = "core.wsgi.application"

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# ========== REST FRAMEWORK ==========
REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': [],
    'DEFAULT_PERMISSION_CLASSES': ['rest_framework.permissions.AllowAny'],
    'UNAUTHENTICATED_USER': None,
    'DEFAULT_RENDERER_CLASSES': ['rest_framework.renderers.JSONRenderer'],
    'EXCEPTION_HANDLER': 'core.exceptions.api_exception_handler',
    'PAGE_SIZE': BLOG_PAGE_SIZE,
}

# ========== SECURITY ==========
if not DEBUG:
    SECURE_SSL_REDIRECT = env_bool("SECURE_SSL_REDIRECT")
    SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")
    SECURE_CONTENT_TYPE_NOSNIFF = True
    SECURE_HSTS_SECONDS = int(env("SECURE_HSTS_SECONDS", "0"))

# Logging
LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'simple': {'format': '%(asctime)s %(levelname)s %(name)s: %(message)s'},
    },
    'handlers': {
        'console': {"class": 'logging.StreamHandler', 'formatter': 'simple'},
    },
    'loggers': {
        'blog': {'handlers': ['console'], 'level': 'INFO' if DEBUG else 'WARNING', 'propagate': False},
        'media': {'handlers': ['console'], 'level': 'INFO' if DEBUG else 'WARNING', 'propagate': False},
        'core': {'handlers': ['console'], 'level': 'INFO' if DEBUG else 'WARNING', 'propagate': False},
    },
    'root': {'handlers': ['console'], 'level': 'INFO' if DEBUG else 'WARNING'},
}
