from __future__ import annotations

import base64
import binascii
import contextlib
import logging
import math
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Sequence

import aiofiles
import aiofiles.os

from ..config import Settings
from ..core import wav
from ..core.gemini import GeminiClient
from ..core.pcm import GEMINI_PCM_FORMAT, AudioFormat, PcmAudio, concatenate
from ..schemas import GeminiResponse
from .paragraphs import collapse_line_breaks, paragraphs
from .voices import validate_voice

LOGGER = logging.getLogger(__name__)

DEFAULT_TTS_MODEL = "gemini-2.5-flash-preview-tts"
DEFAULT_MAX_PARAGRAPH_INTERVAL = 30.0


class SynthesisEmptyResponse(RuntimeError):
    """Raised when the voice model answers without any candidate."""


class SynthesisNoAudioData(RuntimeError):
    """Raised when the voice model's answer has no usable audio payload."""


class EmptyTextError(ValueError):
    """Raised when there is no text to synthesize."""


class InvalidIntervalError(ValueError):
    """Raised for a paragraph interval that is not finite or exceeds the configured maximum."""


@dataclass(frozen=True)
class SpeakerVoice:
    speaker: str
    voice_name: str


def _voice_config(voice_name: str) -> Dict[str, Any]:
    return {"prebuiltVoiceConfig": {"voiceName": voice_name}}


def extract_audio(response: GeminiResponse) -> bytes:
    """Pull the base64 audio payload out of a TTS response and decode it."""
    if not response.candidates:
        raise SynthesisEmptyResponse("Gemini TTS returned no candidates")
    content = response.candidates[0].content
    if content is None or not content.parts:
        raise SynthesisNoAudioData("Gemini TTS response has no content parts")
    inline = next((part.inline_data for part in content.parts if part.inline_data is not None), None)
    if inline is None or not inline.data:
        raise SynthesisNoAudioData("Gemini TTS response has no audio data")
    try:
        audio = base64.b64decode(inline.data)
    except (binascii.Error, ValueError) as exc:
        raise SynthesisNoAudioData("Gemini TTS audio data is not valid base64") from exc
    if not audio:
        raise SynthesisNoAudioData("Gemini TTS audio data decoded to nothing")
    return audio


class VoiceSynthesizer:
    """Turns one piece of text into PCM with a Gemini prebuilt voice."""

    def __init__(
        self,
        client: GeminiClient,
        *,
        model: str = DEFAULT_TTS_MODEL,
        audio_format: AudioFormat = GEMINI_PCM_FORMAT,
    ) -> None:
        self.client = client
        self.model = model
        self.audio_format = audio_format

    @classmethod
    def from_settings(cls, settings: Settings) -> "VoiceSynthesizer":
        return cls(GeminiClient.from_settings(settings), model=settings.gemini_tts_model)

    async def synthesize(self, text: str, voice_name: str) -> PcmAudio:
        voice = validate_voice(voice_name)
        preview = text[:100] + ("..." if len(text) > 100 else "")
        LOGGER.info(f"[speech] 🎙️ synthesizing {len(text)} chars with {voice}: {preview}")
        response = await self.client.generate_content(
            self.model,
            text,
            generation_config={
                "responseModalities": ["AUDIO"],
                "speechConfig": {"voiceConfig": _voice_config(voice)},
            },
        )
        return self._to_pcm(response)

    async def synthesize_multi_speaker(self, text: str, speakers: Sequence[SpeakerVoice]) -> PcmAudio:
        if not speakers:
            raise ValueError("at least one speaker voice is required")
        speaker_configs: List[Dict[str, Any]] = []
        for entry in speakers:
            if not entry.speaker or not entry.voice_name:
                raise ValueError("speaker voice entries need both a speaker and a voice name")
            speaker_configs.append(
                {"speaker": entry.speaker, "voiceConfig": _voice_config(validate_voice(entry.voice_name))}
            )
        LOGGER.info(f"[speech] 🎙️ multi-speaker synthesis with {len(speaker_configs)} speaker(s)")
        response = await self.client.generate_content(
            self.model,
            text,
            generation_config={
                "responseModalities": ["AUDIO"],
                "speechConfig": {"multiSpeakerVoiceConfig": {"speakerVoiceConfigs": speaker_configs}},
            },
        )
        return self._to_pcm(response)

    def _to_pcm(self, response: GeminiResponse) -> PcmAudio:
        audio = extract_audio(response)
        if wav.is_wav(audio):
            audio = wav.decode(audio)
        remainder = len(audio) % self.audio_format.block_align
        if remainder:
            LOGGER.warning(f"[speech] dropping {remainder} trailing byte(s) of a partial frame")
            audio = audio[:-remainder]
        LOGGER.info(f"[speech] 🔊 got {len(audio)} bytes ({self.audio_format.duration_of(audio):.2f}s)")
        return PcmAudio(audio, self.audio_format)


async def write_output(path: Path, payload: bytes) -> None:
    """Write ``payload`` to ``path`` through a temporary sibling so readers never see a partial file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(f".{path.name}.{uuid.uuid4().hex}.part")
    try:
        async with aiofiles.open(tmp, "wb") as handle:
            await handle.write(payload)
        await aiofiles.os.replace(tmp, path)
    except Exception:
        with contextlib.suppress(OSError):
            tmp.unlink()
        raise


class SpeechGenerator:
    """Produces a speech file from text, optionally pausing between paragraphs."""

    def __init__(
        self,
        synthesizer: VoiceSynthesizer,
        *,
        audio_format: AudioFormat | None = None,
        max_interval: float = DEFAULT_MAX_PARAGRAPH_INTERVAL,
    ) -> None:
        self.synthesizer = synthesizer
        self.audio_format = audio_format or synthesizer.audio_format
        self.max_interval = max_interval

    @classmethod
    def from_settings(cls, settings: Settings) -> "SpeechGenerator":
        return cls(
            VoiceSynthesizer.from_settings(settings),
            max_interval=settings.max_paragraph_interval_seconds,
        )

    def check_interval(self, paragraph_interval: float | None) -> float:
        """Return the interval as a float, rejecting non-finite values and values above ``max_interval``."""
        interval = float(paragraph_interval or 0.0)
        if not math.isfinite(interval):
            raise InvalidIntervalError(f"paragraph interval must be finite, got {interval}")
        if interval > self.max_interval:
            raise InvalidIntervalError(
                f"paragraph interval {interval}s exceeds the maximum of {self.max_interval}s"
            )
        return interval

    async def generate_speech(
        self,
        text: str,
        voice_name: str | None,
        output_path: str | Path,
        paragraph_interval: float = 0.0,
    ) -> Path:
        """Synthesize ``text`` into ``output_path`` and return the path.

        With a positive ``paragraph_interval`` every non-empty line is
        synthesized on its own, in order, and the results are joined with
        ``paragraph_interval`` seconds of silence into a WAV file. Otherwise,
        or when there is only one paragraph, line breaks are collapsed and the
        text is synthesized in a single request. Non-finite intervals and
        intervals above ``max_interval`` raise :class:`InvalidIntervalError`
        before any synthesis request is made.
        """
        if not text or not text.strip():
            raise EmptyTextError("text to synthesize is empty")
        interval = self.check_interval(paragraph_interval)
        voice = validate_voice(voice_name)
        output_path = Path(output_path)

        if not interval > 0:
            return await self._generate_single(collapse_line_breaks(text), voice, output_path)

        parts = paragraphs(text)
        if len(parts) == 1:
            LOGGER.info("[speech] only one paragraph, skipping silence insertion")
            return await self._generate_single(collapse_line_breaks(text), voice, output_path)

        LOGGER.info(f"[speech] ▶️ {len(parts)} paragraphs, {interval}s between paragraphs")
        buffers: List[PcmAudio] = []
        for paragraph in parts:
            LOGGER.info(f"[speech] paragraph {paragraph.index}/{len(parts)}")
            buffers.append(await self.synthesizer.synthesize(paragraph.text, voice))

        pcm = concatenate(buffers, [interval] * (len(parts) - 1), self.audio_format)
        await write_output(output_path, wav.encode(pcm, self.audio_format))
        LOGGER.info(
            f"[speech] ✅ wrote {output_path} ({self.audio_format.duration_of(pcm):.2f}s, {len(parts)} paragraphs)"
        )
        return output_path

    async def generate_multi_speaker_speech(
        self,
        text: str,
        speakers: Sequence[SpeakerVoice],
        output_path: str | Path,
    ) -> Path:
        if not text or not text.strip():
            raise EmptyTextError("text to synthesize is empty")
        output_path = Path(output_path)
        if output_path.suffix.lower() != ".wav":
            raise ValueError("multi-speaker output must be a .wav file")
        pcm = await self.synthesizer.synthesize_multi_speaker(text, speakers)
        await write_output(output_path, wav.encode(pcm.data, pcm.format))
        LOGGER.info(f"[speech] ✅ wrote {output_path} ({len(speakers)} speakers)")
        return output_path

    async def _generate_single(self, text: str, voice: str, output_path: Path) -> Path:
        pcm = await self.synthesizer.synthesize(text, voice)
        data = pcm.data if isinstance(pcm, PcmAudio) else bytes(pcm)
        if output_path.suffix.lower() == ".wav":
            payload = wav.encode(data, self.audio_format)
        else:
            payload = data
        await write_output(output_path, payload)
        size_mb = len(payload) / (1024 * 1024)
        LOGGER.info(f"[speech] ✅ wrote {output_path} ({size_mb:.2f}MB)")
        return output_path


__all__ = [
    "EmptyTextError",
    "InvalidIntervalError",
    "SpeakerVoice",
    "SpeechGenerator",
    "SynthesisEmptyResponse",
    "SynthesisNoAudioData",
    "VoiceSynthesizer",
    "extract_audio",
    "write_output",
]
