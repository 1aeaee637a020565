from .base import *

DEBUG = False
SECRET_KEY = 'test-only-secret-key'

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
    }
}

REGISTRATION_STORE = {
    'BACKEND': 'database',
    'PENDING_DB': 'default',
    'IDENTITY_DB': 'default',
    'REGION': 'test',
}
REGISTRATION_PENDING_TTL = 60 * 60
REGISTRATION_MAX_CODE_ATTEMPTS = 5

REST_FRAMEWORK = {
    **REST_FRAMEWORK,
    'DEFAULT_THROTTLE_RATES': {
        'anon': '10000/minute',
        'registration_initiate': '10000/minute',
        'registration_finalize': '10000/minute',
    },
}

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_BROKER_URL = 'memory://'
CELERY_RESULT_BACKEND = 'cache+memory://'

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'handlers': {
        'null': {'class': 'logging.NullHandler'},
    },
    'root': {
        'handlers': ['null'],
        'level': 'WARNING',
    },
}
