"""
Tests for storage, site preferences and rate limiting.
"""
import tempfile
from unittest.mock import MagicMock, patch

import redis
from django.test import SimpleTestCase, override_settings
from rest_framework.response import Response
from rest_framework.test import APIRequestFactory, APITestCase

from core import rate_limiting
from core.preferences import DEFAULT_LANGUAGE, Language, SitePreferences, UnsupportedLanguageError
from core.rate_limiting import get_client_ip, rate_limit
from core.storage import (
    LANGUAGE_KEY,
    FileBackend,
    MemoryBackend,
    RedisBackend,
    SessionBackend,
    StorageSlot,
    get_default_backend,
)


class FakeSession(dict):
    modified = False


class StorageBackendTestCase(SimpleTestCase):
    """Test cases for the storage backends."""

    def test_memory_backend(self):
        backend = MemoryBackend()
        self.assertIsNone(backend.get('k'))
        self.assertTrue(backend.set('k', b'v'))
        self.assertEqual(backend.get('k'), b'v')
        backend.delete('k')
        self.assertIsNone(backend.get('k'))

    def test_file_backend_round_trip(self):
        with tempfile.TemporaryDirectory() as directory:
            backend = FileBackend(f'{directory}/nested')
            self.assertIsNone(backend.get('shopping-cart'))

            self.assertTrue(backend.set('shopping-cart', b'[]'))
            self.assertEqual(FileBackend(f'{directory}/nested').get('shopping-cart'), b'[]')

            self.assertTrue(backend.delete('shopping-cart'))
            self.assertIsNone(backend.get('shopping-cart'))

    def test_file_backend_write_failure(self):
        with tempfile.NamedTemporaryFile() as not_a_directory:
            backend = FileBackend(not_a_directory.name)
            with self.assertLogs('core.storage', level='ERROR'):
                self.assertFalse(backend.set('k', b'v'))

    def test_redis_backend_namespaces_keys(self):
        client = MagicMock()
        client.get.return_value = b'[]'
        backend = RedisBackend(client, namespace='abc')

        self.assertEqual(backend.get('shopping-cart'), b'[]')
        client.get.assert_called_once_with('storefront:abc:shopping-cart')

        backend.set('shopping-cart', b'[1]')
        client.set.assert_called_once_with('storefront:abc:shopping-cart', b'[1]')

    def test_redis_backend_errors_degrade(self):
        client = MagicMock()
        client.get.side_effect = redis.ConnectionError('down')
        client.set.side_effect = redis.ConnectionError('down')
        backend = RedisBackend(client)

        with self.assertLogs('core.storage', level='ERROR'):
            self.assertIsNone(backend.get('k'))
            self.assertFalse(backend.set('k', b'v'))

    def test_session_backend(self):
        session = FakeSession()
        backend = SessionBackend(session)

        self.assertTrue(backend.set('k', 'Oʻzbekcha'.encode('utf-8')))
        self.assertTrue(session.modified)
        self.assertEqual(session['k'], 'Oʻzbekcha')
        self.assertEqual(backend.get('k'), 'Oʻzbekcha'.encode('utf-8'))

        self.assertFalse(backend.set('bad', b'\xff'))

        session['other'] = ['not', 'text']
        self.assertIsNone(backend.get('other'))

    def test_storage_slot(self):
        backend = MemoryBackend()
        slot = StorageSlot(backend, 'shopping-cart')

        self.assertIsNone(slot.load())
        slot.save(b'[]')
        self.assertEqual(backend.get('shopping-cart'), b'[]')
        slot.clear()
        self.assertIsNone(slot.load())

    @override_settings(STOREFRONT_STORAGE='file', STOREFRONT_STORAGE_DIR='/tmp/storefront-test')
    def test_default_backend_from_settings(self):
        backend = get_default_backend('client-1')
        self.assertIsInstance(backend, FileBackend)
        self.assertEqual(str(backend.directory), '/tmp/storefront-test/client-1')

    @override_settings(STOREFRONT_STORAGE='floppy')
    def test_unknown_backend_falls_back_to_memory(self):
        with self.assertLogs('core.storage', level='WARNING'):
            self.assertIsInstance(get_default_backend(), MemoryBackend)


class SitePreferencesTestCase(SimpleTestCase):
    """Test cases for language selection and its subscribers."""

    def setUp(self):
        self.backend = MemoryBackend()
        self.preferences = SitePreferences(self.backend)

    def test_default_language(self):
        self.assertEqual(self.preferences.language, DEFAULT_LANGUAGE)

    def test_stored_language_restored(self):
        self.backend.set(LANGUAGE_KEY, b'ru')
        self.assertEqual(SitePreferences(self.backend).language, Language.RUSSIAN)

    def test_unsupported_stored_language_ignored(self):
        self.backend.set(LANGUAGE_KEY, b'xx')
        with self.assertLogs('core.preferences', level='WARNING'):
            self.assertEqual(SitePreferences(self.backend).language, DEFAULT_LANGUAGE)

    def test_set_language_notifies_once_per_change(self):
        """
        Test: Subscribers hear about real changes only.

        Given: One subscriber
        When: Selecting ru twice, then kk after unsubscribing
        Then: The subscriber is called once with ru, and kk is persisted
        """
        seen = []
        unsubscribe = self.preferences.subscribe(seen.append)

        self.preferences.set_language('ru')
        self.preferences.set_language('ru')
        unsubscribe()
        self.preferences.set_language('kk')

        self.assertEqual(seen, [Language.RUSSIAN])
        self.assertEqual(self.backend.get(LANGUAGE_KEY), b'kk')
        unsubscribe()

    def test_unsupported_language_rejected(self):
        with self.assertRaises(UnsupportedLanguageError):
            self.preferences.set_language('en')
        self.assertEqual(self.preferences.language, DEFAULT_LANGUAGE)

    def test_last_order_phone(self):
        self.assertEqual(self.preferences.last_order_phone, '')
        self.preferences.remember_order_phone('+998901234567')
        self.assertEqual(SitePreferences(self.backend).last_order_phone, '+998901234567')


@override_settings(RATE_LIMIT_ENABLED=True)
class RateLimitTestCase(SimpleTestCase):
    """Test cases for the rate limiting decorator."""

    class LimitedView:
        @rate_limit(max_requests=2, window_seconds=60)
        def get(self, request):
            return Response({'ok': True})

    def setUp(self):
        self.factory = APIRequestFactory()
        self.counts = {}

        def incr(key):
            self.counts[key] = self.counts.get(key, 0) + 1
            return self.counts[key]

        self.redis = MagicMock()
        self.redis.incr.side_effect = incr
        self.redis.ttl.return_value = 42

    def request(self, ip='10.0.0.1'):
        return self.factory.get('/api/catalog/autocomplete/', REMOTE_ADDR=ip)

    def test_limit_exceeded(self):
        view = self.LimitedView()
        with patch.object(rate_limiting, 'get_redis_client', return_value=self.redis):
            first = view.get(self.request())
            view.get(self.request())
            third = view.get(self.request())
            other_client = view.get(self.request(ip='10.0.0.2'))

        self.assertEqual(first['X-RateLimit-Remaining'], '1')
        self.assertEqual(third.status_code, 429)
        self.assertEqual(third['Retry-After'], '42')
        self.assertEqual(other_client.status_code, 200)
        self.redis.expire.assert_any_call(
            'storefront:rate_limit:RateLimitTestCase.LimitedView.get:10.0.0.1', 60
        )

    def test_fails_open_without_redis(self):
        view = self.LimitedView()
        with patch.object(rate_limiting, 'get_redis_client', return_value=None):
            for _ in range(5):
                self.assertEqual(view.get(self.request()).status_code, 200)

    def test_fails_open_on_redis_error(self):
        self.redis.incr.side_effect = redis.ConnectionError('down')
        view = self.LimitedView()
        with patch.object(rate_limiting, 'get_redis_client', return_value=self.redis):
            with self.assertLogs('core.rate_limiting', level='ERROR'):
                self.assertEqual(view.get(self.request()).status_code, 200)

    @override_settings(RATE_LIMIT_ENABLED=False)
    def test_disabled(self):
        view = self.LimitedView()
        with patch.object(rate_limiting, 'get_redis_client') as mock_get:
            view.get(self.request())
        mock_get.assert_not_called()

    def test_client_ip_from_forwarded_header(self):
        request = self.factory.get('/', HTTP_X_FORWARDED_FOR='203.0.113.5, 10.0.0.1')
        self.assertEqual(get_client_ip(request), '203.0.113.5')


class PreferencesAPITestCase(APITestCase):
    """Test cases for the preferences and health endpoints."""

    def test_health_check(self):
        response = self.client.get('/health/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['status'], 'healthy')

    def test_get_defaults(self):
        response = self.client.get('/api/preferences/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['language'], 'uz')
        self.assertEqual(len(response.data['languages']), len(Language.choices))

    def test_select_language_persists_in_session(self):
        response = self.client.put('/api/preferences/', {'language': 'tg'}, format='json')
        self.assertEqual(response.data['language'], 'tg')

        response = self.client.get('/api/preferences/')
        self.assertEqual(response.data['language'], 'tg')

    def test_unsupported_language(self):
        response = self.client.put('/api/preferences/', {'language': 'en'}, format='json')
        self.assertEqual(response.status_code, 400)
