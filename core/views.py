"""
Preference API Views.

Implements:
- GET /preferences/ - Selected language and last order phone
- PUT /preferences/ - Select a language
"""
import logging

from django.http import JsonResponse
from rest_framework import serializers, status
from rest_framework.response import Response
from rest_framework.views import APIView

from .preferences import Language, SitePreferences, UnsupportedLanguageError
from .storage import SessionBackend

logger = logging.getLogger(__name__)


def health_check(request):
    """Health check endpoint for container orchestration."""
    return JsonResponse({'status': 'healthy', 'service': 'storefront-api'})


class LanguageSerializer(serializers.Serializer):
    language = serializers.CharField(max_length=8)


class PreferencesView(APIView):

    def _response(self, preferences):
        return Response({
            'language': str(preferences.language),
            'languages': [{'code': code, 'name': name} for code, name in Language.choices],
            'last_order_phone': preferences.last_order_phone,
        })

    def get(self, request):
        return self._response(SitePreferences(SessionBackend(request.session)))

    def put(self, request):
        serializer = LanguageSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        preferences = SitePreferences(SessionBackend(request.session))
        try:
            preferences.set_language(serializer.validated_data['language'])
        except UnsupportedLanguageError as e:
            logger.info(f"Rejected language selection: {e}")
            return Response(
                {'error': 'Validation Error', 'detail': str(e)},
                status=status.HTTP_400_BAD_REQUEST
            )
        return self._response(preferences)
