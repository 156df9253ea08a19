from __future__ import annotations

import asyncio
import logging
from typing import Iterable, List

from ..config import Settings
from ..core.gemini import GeminiClient

LOGGER = logging.getLogger(__name__)

DEFAULT_TRANSLATE_MODEL = "gemini-2.0-flash-lite"

SUPPORTED_LANGUAGES: List[str] = [
    "US", "AR", "DE", "ES", "FR", "ID", "IT", "JP", "KR", "NL", "PL", "TH",
    "TR", "TW", "VN", "RU", "PT", "SV", "FI", "MS", "IN", "HI", "BN",
]

_PROMPT_TEMPLATE = """
Translate the following Chinese text into the {language} language.
Requirements:
1. Keep the translation accurate and natural
2. Keep the tone and emotion of the original
3. Keep technical terms accurate
4. Output only the translated text, without any extra explanation

Text to translate:
{text}
"""


class TranslationError(RuntimeError):
    """Raised when the model produces no usable translation."""


class UnsupportedLanguageError(ValueError):
    """Raised for a target language code outside :data:`SUPPORTED_LANGUAGES`."""


def get_supported_languages() -> List[str]:
    return list(SUPPORTED_LANGUAGES)


def is_language_supported(language_code: str | None) -> bool:
    return language_code in SUPPORTED_LANGUAGES


class Translator:
    def __init__(self, client: GeminiClient, *, model: str = DEFAULT_TRANSLATE_MODEL) -> None:
        self.client = client
        self.model = model

    @classmethod
    def from_settings(cls, settings: Settings) -> "Translator":
        return cls(GeminiClient.from_settings(settings), model=settings.gemini_translate_model)

    async def translate(self, text: str, target_language: str) -> str:
        if not text or not text.strip():
            raise ValueError("text to translate is empty")
        if not is_language_supported(target_language):
            raise UnsupportedLanguageError(f"unsupported language code: {target_language}")

        LOGGER.info(f"[translate] translating {len(text)} chars to {target_language}")
        prompt = _PROMPT_TEMPLATE.format(language=target_language.lower(), text=text)
        response = await self.client.generate_content(self.model, prompt)
        translated = response.text.strip()
        if not translated:
            raise TranslationError("translation result is empty")
        LOGGER.info(f"[translate] ✅ {text[:50]}... -> {translated[:50]}...")
        return translated

    async def translate_many(
        self,
        texts: Iterable[str],
        target_language: str,
        *,
        delay_seconds: float = 1.0,
    ) -> List[str]:
        """Translate ``texts`` one after another, pausing between requests."""
        items = list(texts)
        if not items:
            raise ValueError("no texts to translate")
        results: List[str] = []
        for i, text in enumerate(items):
            LOGGER.info(f"[translate] item {i + 1}/{len(items)}")
            results.append(await self.translate(text, target_language))
            if i < len(items) - 1 and delay_seconds > 0:
                await asyncio.sleep(delay_seconds)
        return results


__all__ = [
    "SUPPORTED_LANGUAGES",
    "TranslationError",
    "Translator",
    "UnsupportedLanguageError",
    "get_supported_languages",
    "is_language_supported",
]
