from django.conf import settings
from django.contrib import admin
from django.urls import path, include
from rest_framework.decorators import api_view, permission_classes, authentication_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from django.db import connections, DatabaseError
from django.core.cache import cache

from registration.stores import RegistrationStoreConfig


def _database_ok(alias):
    try:
        with connections[alias].cursor() as cursor:
            cursor.execute("SELECT 1")
        return True
    except DatabaseError:
        return False


@api_view(['GET'])
@authentication_classes([])
@permission_classes([AllowAny])
def health_check(request):
    store = RegistrationStoreConfig.from_settings()

    # Check both store regions
    aliases = {store.pending_db, store.identity_db}
    db_ok = all(_database_ok(alias) for alias in aliases)

    # Check cache (throttle counters live here)
    cache_ok = False
    try:
        cache.set('health_check', 'ok', 10)
        cache_ok = cache.get('health_check') == 'ok'
    except Exception:
        cache_ok = False

    healthy = db_ok and cache_ok
    return Response({
        'status': 'ok' if healthy else 'degraded',
        'db': 'connected' if db_ok else 'disconnected',
        'cache': 'connected' if cache_ok else 'disconnected',
        'region': store.region,
        'version': settings.KHAMOSHCHAT_VERSION,
    }, status=200 if healthy else 503)


urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/health/', health_check, name='health-check'),
    path('api/registration/', include('registration.urls')),
]
