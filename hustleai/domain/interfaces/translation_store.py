"""Interface for persisted translations."""

import abc
from typing import Optional

from ..models.common import LanguageCode


class TranslationStore(abc.ABC):
    """Keeps finished translations across process restarts."""

    @abc.abstractmethod
    def get(self, text: str, target: LanguageCode, source: LanguageCode) -> Optional[str]:
        pass

    @abc.abstractmethod
    def set(self, text: str, translation: str, target: LanguageCode, source: LanguageCode) -> None:
        pass

    @abc.abstractmethod
    def clear(self, language: Optional[LanguageCode] = None) -> None:
        """Drops every stored translation, or only those into `language`."""
        pass

    def close(self) -> None:
        pass
