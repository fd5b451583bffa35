"""diskcache-backed persistence for finished translations."""

import logging
from pathlib import Path
from typing import Optional, Union

import diskcache

from hustleai.domain.interfaces.translation_store import TranslationStore
from hustleai.domain.models.common import LanguageCode

logger = logging.getLogger(__name__)

# Bumping the version orphans every entry written under the old one
CACHE_VERSION = "1.0"
DEFAULT_EXPIRY_SECONDS = 7 * 24 * 60 * 60


def store_key(text: str, target: LanguageCode, source: LanguageCode) -> str:
    return f"v{CACHE_VERSION} {source}->{target} {text.strip()}"


class DiskTranslationStore(TranslationStore):
    """Translations in a diskcache directory, tagged by target language.

    Entries expire after a week. Like the status store this is advisory:
    I/O failures are logged and read as a miss.
    """

    def __init__(self, directory: Union[str, Path], expire_s: float = DEFAULT_EXPIRY_SECONDS):
        self.directory = Path(directory)
        self.expire_s = expire_s
        self._cache = diskcache.Cache(str(self.directory))
        logger.info(f"DiskTranslationStore initialized at {self.directory} ({len(self._cache)} entries)")

    def get(self, text: str, target: LanguageCode, source: LanguageCode) -> Optional[str]:
        try:
            value = self._cache.get(store_key(text, target, source))
        except Exception as e:
            logger.warning(f"Failed to read stored translation: {e}")
            return None
        return value if isinstance(value, str) else None

    def set(self, text: str, translation: str, target: LanguageCode, source: LanguageCode) -> None:
        try:
            self._cache.set(store_key(text, target, source), translation, expire=self.expire_s, tag=target)
        except Exception as e:
            logger.warning(f"Failed to store translation: {e}")

    def clear(self, language: Optional[LanguageCode] = None) -> None:
        if language is None:
            removed = self._cache.clear()
        else:
            removed = self._cache.evict(language)
        logger.info(f"Cleared {removed} stored translation(s){f' for {language}' if language else ''}")

    def close(self) -> None:
        self._cache.close()
