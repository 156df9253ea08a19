"""
FFmpeg helpers for pulling an MP3 audio track out of uploaded media.

The extraction adapts to the source stream: it never upsamples below CD
quality, never downmixes below stereo unless the source is mono, and keeps the
bitrate at or above 192 kbps.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import ffmpeg

LOGGER = logging.getLogger(__name__)

DEFAULT_BITRATE_KBPS = 320
MIN_BITRATE_KBPS = 192
DEFAULT_SAMPLE_RATE = 48000
MIN_SAMPLE_RATE = 44100
DEFAULT_CHANNELS = 2


class AudioExtractionError(RuntimeError):
    """Raised when audio cannot be extracted from a media file."""


@dataclass(frozen=True)
class ExtractionParams:
    bitrate_kbps: int
    sample_rate: int
    channels: int


def check_ffmpeg_available() -> bool:
    return shutil.which("ffmpeg") is not None and shutil.which("ffprobe") is not None


def probe_audio_stream(media_path: str | Path) -> Optional[Dict[str, Any]]:
    """Return the first audio stream reported by ffprobe, or ``None``."""
    try:
        metadata = ffmpeg.probe(str(media_path))
    except ffmpeg.Error as e:
        error_msg = e.stderr.decode(errors="replace") if e.stderr else str(e)
        raise AudioExtractionError(f"ffprobe failed: {error_msg}") from e
    return next(
        (stream for stream in metadata.get("streams", []) if stream.get("codec_type") == "audio"),
        None,
    )


def _as_int(value: Any) -> Optional[int]:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return None


def select_extraction_params(stream: Dict[str, Any]) -> ExtractionParams:
    """Pick MP3 encoding parameters from an ffprobe audio stream description."""
    bitrate = DEFAULT_BITRATE_KBPS
    sample_rate = DEFAULT_SAMPLE_RATE
    channels = DEFAULT_CHANNELS

    source_bit_rate = _as_int(stream.get("bit_rate"))
    if source_bit_rate:
        source_kbps = source_bit_rate // 1000
        if source_kbps < MIN_BITRATE_KBPS:
            bitrate = max(MIN_BITRATE_KBPS, source_kbps)
        elif source_kbps > DEFAULT_BITRATE_KBPS:
            LOGGER.info(f"[ffmpeg] high quality source ({source_kbps}kbps), capping at {DEFAULT_BITRATE_KBPS}kbps")

    source_rate = _as_int(stream.get("sample_rate"))
    if source_rate:
        sample_rate = max(MIN_SAMPLE_RATE, source_rate)

    source_channels = _as_int(stream.get("channels"))
    if source_channels:
        channels = min(DEFAULT_CHANNELS, source_channels)

    return ExtractionParams(bitrate_kbps=bitrate, sample_rate=sample_rate, channels=channels)


def extract_audio_adaptive(media_path: str | Path, audio_path: str | Path) -> ExtractionParams:
    """Encode the audio track of ``media_path`` to MP3 at ``audio_path``."""
    stream = probe_audio_stream(media_path)
    if stream is None:
        raise AudioExtractionError(f"no audio stream found in {media_path}")

    params = select_extraction_params(stream)
    LOGGER.info(
        f"[ffmpeg] extracting {media_path}: {params.bitrate_kbps}kbps, "
        f"{params.sample_rate}Hz, {params.channels}ch"
    )
    Path(audio_path).parent.mkdir(parents=True, exist_ok=True)
    try:
        (
            ffmpeg.input(str(media_path))
            .output(
                str(audio_path),
                vn=None,
                acodec="libmp3lame",
                audio_bitrate=f"{params.bitrate_kbps}k",
                ar=params.sample_rate,
                ac=params.channels,
                **{"q:a": 0},
                format="mp3",
            )
            .overwrite_output()
            .run(capture_stdout=True, capture_stderr=True, quiet=True)
        )
    except ffmpeg.Error as e:
        error_msg = e.stderr.decode(errors="replace") if e.stderr else str(e)
        LOGGER.error(f"[ffmpeg] extraction failed: {error_msg}")
        raise AudioExtractionError(f"Audio extraction failed: {error_msg}") from e

    LOGGER.info(f"[ffmpeg] ✅ audio written to {audio_path}")
    return params


async def extract_audio_adaptive_async(media_path: str | Path, audio_path: str | Path) -> ExtractionParams:
    return await asyncio.to_thread(extract_audio_adaptive, media_path, audio_path)


__all__ = [
    "AudioExtractionError",
    "ExtractionParams",
    "check_ffmpeg_available",
    "extract_audio_adaptive",
    "extract_audio_adaptive_async",
    "probe_audio_stream",
    "select_extraction_params",
]
