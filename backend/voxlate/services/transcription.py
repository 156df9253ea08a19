from __future__ import annotations

import asyncio
import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path

import aiofiles

from ..config import Settings
from ..core.gemini import GeminiClient, file_part, text_part
from ..schemas import GeminiFile

LOGGER = logging.getLogger(__name__)

DEFAULT_TRANSCRIBE_MODEL = "gemini-2.5-flash"

TRANSCRIBE_PROMPT = """
Analyse this audio file and extract the spoken dialogue, then translate it and output
one continuous passage of plain Chinese text.
Follow these rules strictly:
1. Transcribe only human speech, ignore background music and noise
2. Keep keywords untranslated, translate everything else into Chinese
"""

ORIGINAL_PROMPT = """
Transcribe the provided audio verbatim, in the language that is spoken in it.
Follow these rules strictly:
1. Only transcribe, do not translate or summarise anything
2. Keep filler words, proper nouns and punctuation where they can be recognised
3. If there are several speakers, separate them briefly when needed (for example A:/B:)
4. If there is no clear human voice, say so explicitly
Output plain text only, without any explanation unrelated to the task.
"""

BOTH_ORIGINAL_PROMPT = """
Transcribe the provided audio verbatim, in the language that is spoken in it.
Only transcribe, do not translate or summarise. Output plain text only.
"""

BOTH_CHINESE_PROMPT = """
Analyse this audio file, extract the spoken dialogue, translate it into Chinese and output
one continuous passage of plain Chinese text.
Transcribe only human voices, separate speakers where possible, and say so if there is no
clear voice. Output plain Chinese text only.
"""

_AUDIO_MIME_FALLBACK = {
    ".mp3": "audio/mp3",
    ".m4a": "audio/mp4",
    ".aac": "audio/aac",
    ".ogg": "audio/ogg",
    ".flac": "audio/flac",
    ".wav": "audio/wav",
}


class TranscriptionError(RuntimeError):
    """Raised when an audio file cannot be transcribed."""


@dataclass(frozen=True)
class BilingualTranscript:
    original: str
    chinese: str


def guess_audio_mime(path: Path) -> str:
    suffix = path.suffix.lower()
    if suffix in _AUDIO_MIME_FALLBACK:
        return _AUDIO_MIME_FALLBACK[suffix]
    guessed, _ = mimetypes.guess_type(path.name)
    return guessed or "audio/mp3"


class Transcriber:
    """Transcribes audio files by uploading them through the Gemini File API."""

    def __init__(
        self,
        client: GeminiClient,
        *,
        model: str = DEFAULT_TRANSCRIBE_MODEL,
        max_file_mb: float = 20,
    ) -> None:
        self.client = client
        self.model = model
        self.max_file_mb = max_file_mb

    @classmethod
    def from_settings(cls, settings: Settings) -> "Transcriber":
        return cls(
            GeminiClient.from_settings(settings),
            model=settings.gemini_transcribe_model,
            max_file_mb=settings.max_transcribe_mb,
        )

    async def _upload(self, audio_path: str | Path) -> GeminiFile:
        path = Path(audio_path)
        if not path.is_file():
            raise FileNotFoundError(f"audio file not found: {path}")

        size_mb = path.stat().st_size / (1024 * 1024)
        if size_mb > self.max_file_mb:
            raise TranscriptionError(
                f"audio file is {size_mb:.2f}MB, the limit is {self.max_file_mb}MB"
            )

        LOGGER.info(f"[transcribe] 🎧 uploading {path} ({size_mb:.2f}MB)")
        async with aiofiles.open(path, "rb") as handle:
            audio = await handle.read()
        mime_type = guess_audio_mime(path)
        uploaded = await self.client.upload_file(audio, mime_type, display_name=path.name)
        if not uploaded.mime_type:
            uploaded = uploaded.model_copy(update={"mime_type": mime_type})
        return uploaded

    async def _ask(self, uploaded: GeminiFile, prompt: str, label: str) -> str:
        contents = [
            {
                "role": "user",
                "parts": [file_part(uploaded.uri, uploaded.mime_type or "audio/mp3"), text_part(prompt)],
            }
        ]
        response = await self.client.generate_content(self.model, contents)
        text = response.text.strip()
        if not text:
            raise TranscriptionError(f"{label} result is empty")
        LOGGER.info(f"[transcribe] ✅ {label}: {len(text)} chars")
        return text

    async def transcribe(self, audio_path: str | Path) -> str:
        """Transcribe speech and render it as Chinese text."""
        uploaded = await self._upload(audio_path)
        return await self._ask(uploaded, TRANSCRIBE_PROMPT, "transcription")

    async def transcribe_original(self, audio_path: str | Path) -> str:
        """Verbatim transcription in the spoken language, without translation."""
        uploaded = await self._upload(audio_path)
        return await self._ask(uploaded, ORIGINAL_PROMPT, "original transcription")

    async def transcribe_both(self, audio_path: str | Path) -> BilingualTranscript:
        """One upload, two concurrent requests: the original text and its Chinese rendering."""
        uploaded = await self._upload(audio_path)
        original, chinese = await asyncio.gather(
            self._ask(uploaded, BOTH_ORIGINAL_PROMPT, "original transcription"),
            self._ask(uploaded, BOTH_CHINESE_PROMPT, "chinese transcription"),
        )
        return BilingualTranscript(original=original, chinese=chinese)


__all__ = [
    "BilingualTranscript",
    "ORIGINAL_PROMPT",
    "TRANSCRIBE_PROMPT",
    "Transcriber",
    "TranscriptionError",
    "guess_audio_mime",
]
