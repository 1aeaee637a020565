from pathlib import Path
from celery.schedules import crontab

import environ

env = environ.Env(
    DEBUG=(bool, False),
    DJANGO_ENV=(str, 'development'),
)

BASE_DIR = Path(__file__).resolve().parent.parent.parent

env_file = BASE_DIR / '.env'
if env_file.exists():
    environ.Env.read_env(str(env_file))

# Environment detection
DJANGO_ENV = env('DJANGO_ENV', default='development')  # development | staging | production
IS_PRODUCTION = DJANGO_ENV == 'production'
IS_STAGING = DJANGO_ENV == 'staging'
IS_DEVELOPMENT = DJANGO_ENV == 'development'

# Security
SECRET_KEY = env('DJANGO_SECRET_KEY', default='insecure-dev-key-change-in-production')
DEBUG = env.bool('DEBUG', default=IS_DEVELOPMENT)
ALLOWED_HOSTS = env.list('ALLOWED_HOSTS', default=['localhost', '127.0.0.1', '0.0.0.0'])

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    # Third party
    'rest_framework',
    # Local apps
    'registration.apps.RegistrationConfig',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'config.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
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

WSGI_APPLICATION = 'config.wsgi.application'
ASGI_APPLICATION = 'config.asgi.application'

# Database: MySQL in Docker and managed deployments
DATABASES = {
    'default': {
        'ENGINE': env('DB_ENGINE', default='django.db.backends.mysql'),
        'NAME': env('DB_NAME', default='khamoshchat'),
        'USER': env('DB_USER', default='khamoshchat'),
        'PASSWORD': env('DB_PASSWORD', default='khamoshchat'),
        'HOST': env('DB_HOST', default='db'),
        'PORT': env('DB_PORT', default='3306'),
        'OPTIONS': {
            'charset': 'utf8mb4',
            'init_command': "SET sql_mode='STRICT_TRANS_TABLES'",
            **( {'ssl': {'ca': env('DB_SSL_CA', default='')}} if env('DB_SSL_CA', default='') else {} ),
        },
    }
}

# Registration store regions: each region is a database alias above
REGISTRATION_STORE = {
    'BACKEND': env('REGISTRATION_STORE_BACKEND', default='database'),  # database | memory
    'PENDING_DB': env('REGISTRATION_PENDING_DB', default='default'),
    'IDENTITY_DB': env('REGISTRATION_IDENTITY_DB', default='default'),
    'REGION': env('REGISTRATION_STORE_REGION', default='local'),
}

# Registration protocol
REGISTRATION_PENDING_TTL = env.int('REGISTRATION_PENDING_TTL', default=60 * 60)  # seconds
REGISTRATION_MAX_CODE_ATTEMPTS = env.int('REGISTRATION_MAX_CODE_ATTEMPTS', default=5)
REGISTRATION_MAX_ONE_TIME_KEYS = 200

AUTH_PASSWORD_VALIDATORS = [
    {'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator'},
    {'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator', 'OPTIONS': {'min_length': 8}},
    {'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator'},
    {'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator'},
]

# REST Framework
REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': (),
    'DEFAULT_PERMISSION_CLASSES': (
        'rest_framework.permissions.AllowAny',
    ),
    'DEFAULT_RENDERER_CLASSES': (
        'rest_framework.renderers.JSONRenderer',
    ),
    'DEFAULT_PARSER_CLASSES': (
        'rest_framework.parsers.JSONParser',
    ),
    'UNAUTHENTICATED_USER': None,
    'DEFAULT_THROTTLE_RATES': {
        'anon': '100/hour',
        'registration_initiate': env('REGISTRATION_INITIATE_RATE', default='10/hour'),
        'registration_finalize': env('REGISTRATION_FINALIZE_RATE', default='30/hour'),
    },
}

# Redis: same structure for Docker and managed Redis
REDIS_URL = env('REDIS_URL', default='redis://redis:6379/0')

CACHES = {
    'default': {
        'BACKEND': 'django_redis.cache.RedisCache',
        'LOCATION': REDIS_URL,
        'OPTIONS': {
            'CLIENT_CLASS': 'django_redis.client.DefaultClient',
            **({'CONNECTION_POOL_KWARGS': {'ssl_cert_reqs': None}} if REDIS_URL.startswith('rediss://') else {}),
        },
    }
}

# Session
SESSION_ENGINE = 'django.contrib.sessions.backends.cache'
SESSION_CACHE_ALIAS = 'default'

# Celery
CELERY_BROKER_URL = env('CELERY_BROKER_URL', default=REDIS_URL)
CELERY_RESULT_BACKEND = env('CELERY_RESULT_BACKEND', default=REDIS_URL)
CELERY_ACCEPT_CONTENT = ['json']
CELERY_TASK_SERIALIZER = 'json'
CELERY_RESULT_SERIALIZER = 'json'
CELERY_TIMEZONE = 'UTC'
CELERY_BROKER_CONNECTION_RETRY_ON_STARTUP = True
CELERY_BEAT_SCHEDULE = {
    'cleanup-expired-pending-registrations': {
        'task': 'registration.cleanup_expired_pending',
        'schedule': crontab(minute='*/15'),  # every 15 minutes
    },
}

# Internationalization
LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True

STATIC_URL = '/static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

KHAMOSHCHAT_VERSION = '1.0.0'

# Logging
LOG_LEVEL = env('LOG_LEVEL', default='DEBUG' if IS_DEVELOPMENT else 'INFO')
LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{levelname} {asctime} {module} {process:d} {thread:d} {message}',
            'style': '{',
        },
        'simple': {
            'format': '{levelname} {asctime} {module} {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose' if IS_PRODUCTION else 'simple',
        },
    },
    'root': {
        'handlers': ['console', 'file'] if IS_PRODUCTION else ['console'],
        'level': LOG_LEVEL,
    },
    'loggers': {
        'django': {'handlers': ['console'], 'level': LOG_LEVEL, 'propagate': False},
        'django.db.backends': {'handlers': ['console'], 'level': 'WARNING', 'propagate': False},
        'celery': {
            'handlers': ['console', 'file'] if IS_PRODUCTION else ['console'],
            'level': LOG_LEVEL,
            'propagate': False,
        },
    },
}
if IS_PRODUCTION:
    (BASE_DIR / 'logs').mkdir(exist_ok=True)
    LOGGING['handlers']['file'] = {
        'class': 'logging.handlers.RotatingFileHandler',
        'filename': BASE_DIR / 'logs' / 'khamoshchat.log',
        'maxBytes': 10 * 1024 * 1024,
        'backupCount': 5,
        'formatter': 'verbose',
    }

# Security headers: production only
if IS_PRODUCTION:
    SECURE_SSL_REDIRECT = True
    SECURE_PROXY_SSL_HEADER = ('HTTP_X_FORWARDED_PROTO', 'https')
    SESSION_COOKIE_SECURE = True
    CSRF_COOKIE_SECURE = True
    SECURE_HSTS_SECONDS = 31536000
    SECURE_HSTS_INCLUDE_SUBDOMAINS = True
    SECURE_HSTS_PRELOAD = True
    SECURE_CONTENT_TYPE_NOSNIFF = True
    X_FRAME_OPTIONS = 'DENY'

# Sentry: optional
SENTRY_DSN = env('SENTRY_DSN', default='')
if SENTRY_DSN:
    import sentry_sdk
    from sentry_sdk.integrations.django import DjangoIntegration
    from sentry_sdk.integrations.celery import CeleryIntegration
    from sentry_sdk.integrations.redis import RedisIntegration
    sentry_sdk.init(
        dsn=SENTRY_DSN,
        integrations=[DjangoIntegration(), CeleryIntegration(), RedisIntegration()],
        traces_sample_rate=0.1 if IS_PRODUCTION else 1.0,
        send_default_pii=False,
        environment=DJANGO_ENV,
    )
