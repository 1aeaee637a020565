import logging

from django.http import HttpResponse
from rest_framework import status
from rest_framework.exceptions import ParseError
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.throttling import AnonRateThrottle
from rest_framework.views import APIView

from . import services
from .exceptions import MalformedInput, RegistrationError
from .serializers import FinalizeRegistrationSerializer, InitiateRegistrationSerializer
from .stores import get_registration_store

logger = logging.getLogger(__name__)


class RegistrationInitiateThrottle(AnonRateThrottle):
    """Limit code issuance per client to curb SMS pumping"""
    scope = 'registration_initiate'


class RegistrationFinalizeThrottle(AnonRateThrottle):
    """Limit code guesses per client"""
    scope = 'registration_finalize'


class RegistrationView(APIView):
    authentication_classes = []
    permission_classes = [AllowAny]
    # Injected with as_view(store=...); defaults to the process-wide client
    store = None

    def get_store(self):
        return self.store or get_registration_store()

    def get_request_data(self, request):
        """Parsed body, or None when it is not a JSON object."""
        try:
            data = request.data
        except ParseError:
            return None
        return data if hasattr(data, 'items') else None


class InitiateRegistrationView(RegistrationView):
    throttle_classes = [RegistrationInitiateThrottle]

    def post(self, request):
        """
        Phase 1: claim an identity key for a phone number.
        Success is 204 with no body. Failures carry no detail: 400 for a
        malformed request, 500 for everything else.
        """
        data = self.get_request_data(request)
        if data is None:
            return Response(status=status.HTTP_400_BAD_REQUEST)
        serializer = InitiateRegistrationSerializer(data=data)
        if not serializer.is_valid():
            return Response(status=status.HTTP_400_BAD_REQUEST)

        try:
            services.initiate(self.get_store(), **serializer.validated_data)
        except MalformedInput as e:
            logger.info(f'Rejected registration request: {e.detail}')
            return Response(status=status.HTTP_400_BAD_REQUEST)
        except RegistrationError as e:
            logger.error(f'Registration initiate failed: {e.detail}')
            return Response(status=status.HTTP_500_INTERNAL_SERVER_ERROR)
        except Exception as e:
            logger.exception(f'Unexpected registration initiate error: {e}')
            return Response(status=status.HTTP_500_INTERNAL_SERVER_ERROR)

        return Response(status=status.HTTP_204_NO_CONTENT)


class FinalizeRegistrationView(RegistrationView):
    throttle_classes = [RegistrationFinalizeThrottle]

    def post(self, request):
        """
        Phase 2: prove the code and possession of the identity key, then
        commit the key bundle. Success is 204; failures return a short
        text/plain reason (403 code, 401 signature, 400 input, 500 server).
        """
        data = self.get_request_data(request)
        if data is None:
            return self._error_response(MalformedInput('request body is not a JSON object'))
        serializer = FinalizeRegistrationSerializer(data=data)
        if not serializer.is_valid():
            return self._error_response(MalformedInput(str(serializer.errors)))

        try:
            services.finalize(self.get_store(), **serializer.validated_data)
        except RegistrationError as e:
            return self._error_response(e)
        except Exception as e:
            logger.exception(f'Unexpected registration finalize error: {e}')
            return self._text_response('internal error', status.HTTP_500_INTERNAL_SERVER_ERROR)

        return Response(status=status.HTTP_204_NO_CONTENT)

    def _error_response(self, exc):
        if exc.status_code >= 500:
            logger.error(f'Registration finalize failed: {exc.detail}')
        else:
            logger.info(f'Registration finalize rejected ({exc.status_code}): {exc.detail}')
        return self._text_response(exc.reason, exc.status_code)

    def _text_response(self, reason, status_code):
        return HttpResponse(reason, status=status_code, content_type='text/plain; charset=utf-8')
