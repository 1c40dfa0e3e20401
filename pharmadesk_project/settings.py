import os
import sys
from pathlib import Path
import dj_database_url

BASE_DIR = Path(__file__).resolve().parent.parent

_secret_key = os.environ.get('DJANGO_SECRET_KEY', '')
if not _secret_key:
    if os.environ.get('DEBUG', 'False').lower() == 'true':
        _secret_key = 'dev-only-insecure-key-not-for-production'
    else:
        print("ERROR: DJANGO_SECRET_KEY must be set in production!")
        print("Generate one with: python -c \"from django.core.management.utils import get_random_secret_key; print(get_random_secret_key())\"")
        sys.exit(1)
SECRET_KEY = _secret_key

DEBUG = os.environ.get('DEBUG', 'False').lower() == 'true'

_allowed_hosts = os.environ.get('ALLOWED_HOSTS', '')
if _allowed_hosts:
    ALLOWED_HOSTS = [h.strip() for h in _allowed_hosts.split(',') if h.strip()]
elif DEBUG:
    ALLOWED_HOSTS = ['localhost', '127.0.0.1', '*']
else:
    print("ERROR: ALLOWED_HOSTS must be set in production!")
    sys.exit(1)

_csrf_origins = []
if os.environ.get('CSRF_TRUSTED_ORIGINS'):
    _csrf_origins.extend([o.strip() for o in os.environ.get('CSRF_TRUSTED_ORIGINS').split(',') if o.strip()])
CSRF_TRUSTED_ORIGINS = _csrf_origins

X_FRAME_OPTIONS = 'SAMEORIGIN'

INSTALLED_APPS = [
    'unfold',
    'unfold.contrib.filters',
    'unfold.contrib.forms',
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'django_celery_beat',
    'storages',
    'pharmadesk',
]

UNFOLD = {
    "SITE_TITLE": "PharmaDesk",
    "SITE_HEADER": "Pharmacy Operations",
    "SITE_SYMBOL": "local_pharmacy",
    "SHOW_HISTORY": True,
    "SHOW_VIEW_ON_SITE": True,
    "ENVIRONMENT": "pharmadesk_project.settings.environment_callback",
    "DASHBOARD_CALLBACK": "pharmadesk.admin.dashboard_callback",
    "SIDEBAR": {
        "show_search": True,
        "show_all_applications": True,
        "navigation": [
            {
                "title": "Dashboard",
                "separator": False,
                "items": [
                    {
                        "title": "Task board",
                        "icon": "view_kanban",
                        "link": "/",
                    },
                ],
            },
            {
                "title": "Operations",
                "separator": True,
                "items": [
                    {
                        "title": "Tasks",
                        "icon": "task_alt",
                        "link": "/admin/pharmadesk/task/",
                    },
                    {
                        "title": "Messages",
                        "icon": "mail",
                        "link": "/admin/pharmadesk/message/",
                    },
                    {
                        "title": "Knowledge base",
                        "icon": "menu_book",
                        "link": "/admin/pharmadesk/knowledgeresource/",
                    },
                    {
                        "title": "Folders",
                        "icon": "folder",
                        "link": "/admin/pharmadesk/folder/",
                    },
                ],
            },
            {
                "title": "System",
                "separator": True,
                "items": [
                    {
                        "title": "Organizations",
                        "icon": "domain",
                        "link": "/admin/pharmadesk/organization/",
                        "permission": lambda request: request.user.is_superuser,
                    },
                    {
                        "title": "Members",
                        "icon": "badge",
                        "link": "/admin/pharmadesk/member/",
                    },
                    {
                        "title": "System settings",
                        "icon": "settings",
                        "link": "/admin/pharmadesk/systemsettings/",
                        "permission": lambda request: request.user.is_superuser,
                    },
                    {
                        "title": "System logs",
                        "icon": "list_alt",
                        "link": "/admin/pharmadesk/systemlog/",
                        "permission": lambda request: request.user.is_superuser,
                    },
                ],
            },
        ],
    },
}


def environment_callback(request):
    """
    Callback to display environment badge in admin header.
    """
    if DEBUG:
        return ["Development", "warning"]
    return ["Production", "success"]


MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'whitenoise.middleware.WhiteNoiseMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'pharmadesk.middleware.OrganizationMiddleware',
    'pharmadesk.middleware.ForcePasswordChangeMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'pharmadesk_project.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [BASE_DIR / 'templates'],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.debug',
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'pharmadesk_project.wsgi.application'

DATABASES = {
    'default': dj_database_url.config(
        default=os.environ.get('DATABASE_URL', f"sqlite:///{BASE_DIR / 'db.sqlite3'}"),
        conn_max_age=600,
    )
}

AUTH_PASSWORD_VALIDATORS = [
    {'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator'},
    {'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator', 'OPTIONS': {'min_length': 6}},
    {'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator'},
    {'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator'},
]

LANGUAGE_CODE = 'en-us'
TIME_ZONE = os.environ.get('TIME_ZONE', 'UTC')
USE_I18N = True
USE_TZ = True

LOGIN_URL = '/login/'
LOGIN_REDIRECT_URL = '/'
LOGOUT_REDIRECT_URL = '/login/'

STATIC_URL = '/static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'

AZURE_STORAGE_ENABLED = os.environ.get('AZURE_STORAGE_ACCOUNT_NAME') is not None

if AZURE_STORAGE_ENABLED:
    AZURE_ACCOUNT_NAME = os.environ.get('AZURE_STORAGE_ACCOUNT_NAME')
    AZURE_ACCOUNT_KEY = os.environ.get('AZURE_STORAGE_ACCOUNT_KEY')
    AZURE_CONTAINER = os.environ.get('AZURE_STORAGE_CONTAINER', 'attachments')
    AZURE_CUSTOM_DOMAIN = os.environ.get('AZURE_STORAGE_CUSTOM_DOMAIN', None)

    STORAGES = {
        "default": {
            "BACKEND": "storages.backends.azure_storage.AzureStorage",
            "OPTIONS": {
                "account_name": AZURE_ACCOUNT_NAME,
                "account_key": AZURE_ACCOUNT_KEY,
                "azure_container": AZURE_CONTAINER,
                "custom_domain": AZURE_CUSTOM_DOMAIN,
                "expiration_secs": 3600,
            },
        },
        "staticfiles": {
            "BACKEND": "whitenoise.storage.CompressedManifestStaticFilesStorage",
        },
    }
else:
    STORAGES = {
        "default": {
            "BACKEND": "django.core.files.storage.FileSystemStorage",
        },
        "staticfiles": {
            "BACKEND": "whitenoise.storage.CompressedManifestStaticFilesStorage",
        },
    }
    MEDIA_URL = '/media/'
    MEDIA_ROOT = BASE_DIR / 'media'

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

CELERY_BROKER_URL = os.environ.get('REDIS_URL', 'redis://localhost:6379/0')
CELERY_RESULT_BACKEND = os.environ.get('REDIS_URL', 'redis://localhost:6379/0')
CELERY_ACCEPT_CONTENT = ['json']
CELERY_TASK_SERIALIZER = 'json'
CELERY_RESULT_SERIALIZER = 'json'
CELERY_TIMEZONE = 'UTC'
CELERY_BEAT_SCHEDULER = 'django_celery_beat.schedulers:DatabaseScheduler'

ENCRYPTION_KEY = os.environ.get('ENCRYPTION_KEY', None)

# AI proxy (Gemini REST API)
GEMINI_API_KEY = os.environ.get('GEMINI_API_KEY', '')
GEMINI_MODEL = os.environ.get('GEMINI_MODEL', 'gemini-2.5-flash')
GEMINI_API_URL = os.environ.get('GEMINI_API_URL', 'https://generativelanguage.googleapis.com/v1beta')
AI_REQUEST_TIMEOUT = int(os.environ.get('AI_REQUEST_TIMEOUT', 30))

# Knowledge base uploads
KNOWLEDGE_MAX_UPLOAD_SIZE = int(os.environ.get('KNOWLEDGE_MAX_UPLOAD_SIZE', 20 * 1024 * 1024))
MESSAGE_MAX_ATTACHMENT_SIZE = int(os.environ.get('MESSAGE_MAX_ATTACHMENT_SIZE', 10 * 1024 * 1024))

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'INFO',
    },
    'loggers': {
        'pharmadesk': {
            'handlers': ['console'],
            'level': 'DEBUG',
            'propagate': False,
        },
    },
}

SITE_URL = os.environ.get('SITE_URL', 'http://localhost:5000')

EMAIL_BACKEND = os.environ.get('EMAIL_BACKEND', 'django.core.mail.backends.console.EmailBackend')
EMAIL_HOST = os.environ.get('EMAIL_HOST', 'smtp.office365.com')
EMAIL_PORT = int(os.environ.get('EMAIL_PORT', 587))
EMAIL_USE_TLS = os.environ.get('EMAIL_USE_TLS', 'True').lower() == 'true'
EMAIL_HOST_USER = os.environ.get('EMAIL_HOST_USER', '')
EMAIL_HOST_PASSWORD = os.environ.get('EMAIL_HOST_PASSWORD', '')
DEFAULT_FROM_EMAIL = os.environ.get('DEFAULT_FROM_EMAIL', 'noreply@pharmadesk.app')
