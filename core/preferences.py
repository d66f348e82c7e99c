"""
Site preferences shared by the storefront components.

A SitePreferences instance is created once per client and passed to every
component that needs the UI language; consumers subscribe to changes
instead of listening for a page-wide event.
"""
import logging
from typing import Callable, List

from django.db import models

from .storage import LANGUAGE_KEY, LAST_ORDER_PHONE_KEY, StorageBackend

logger = logging.getLogger(__name__)


class Language(models.TextChoices):
    UZBEK = 'uz', 'Oʻzbekcha'
    RUSSIAN = 'ru', 'Русский'
    KAZAKH = 'kk', 'Қазақша'
    TAJIK = 'tg', 'Тоҷикӣ'
    TURKMEN = 'tk', 'Türkmençe'
    KYRGYZ = 'ky', 'Кыргызча'
    PERSIAN = 'fa', 'فارسی'


DEFAULT_LANGUAGE = Language.UZBEK


class UnsupportedLanguageError(ValueError):
    """Raised when a language code outside Language is selected."""
    def __init__(self, code):
        self.code = code
        super().__init__(f"Unsupported language: {code!r}")


class SitePreferences:
    """Selected language and last order phone for one client."""

    def __init__(self, backend: StorageBackend):
        self.backend = backend
        self._subscribers: List[Callable[[str], None]] = []
        self._language = self._load_language()

    def _load_language(self) -> str:
        raw = self.backend.get(LANGUAGE_KEY)
        if raw is None:
            return DEFAULT_LANGUAGE
        code = raw.decode('utf-8', errors='replace').strip()
        if code not in Language.values:
            logger.warning(f"Stored language {code!r} is not supported, using {DEFAULT_LANGUAGE}")
            return DEFAULT_LANGUAGE
        return Language(code)

    @property
    def language(self) -> str:
        return self._language

    def set_language(self, code: str) -> None:
        """
        Select a UI language, persist it and notify subscribers.

        Subscribers are only called when the value actually changes.

        Raises:
            UnsupportedLanguageError: If code is not a Language value
        """
        if code not in Language.values:
            raise UnsupportedLanguageError(code)
        language = Language(code)
        if language == self._language:
            return
        self._language = language
        if not self.backend.set(LANGUAGE_KEY, language.value.encode('utf-8')):
            logger.warning(f"Language {language} selected but could not be persisted")
        for callback in list(self._subscribers):
            callback(language)

    def subscribe(self, callback: Callable[[str], None]) -> Callable[[], None]:
        """Register a language-change callback; returns its unsubscribe function."""
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    @property
    def last_order_phone(self) -> str:
        raw = self.backend.get(LAST_ORDER_PHONE_KEY)
        return raw.decode('utf-8', errors='replace') if raw else ''

    def remember_order_phone(self, phone: str) -> None:
        if not self.backend.set(LAST_ORDER_PHONE_KEY, phone.encode('utf-8')):
            logger.warning("Could not persist last order phone")
