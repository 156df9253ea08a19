# voxlate/core/pcm.py
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Sequence, Union

LOGGER = logging.getLogger(__name__)


class EmptyInputError(ValueError):
    """Raised when there is nothing to concatenate."""


class PcmFormatMismatch(ValueError):
    """Raised when a buffer does not match the format of a concatenation run."""


@dataclass(frozen=True)
class AudioFormat:
    """Sample layout of an interleaved little-endian signed PCM stream."""

    sample_rate: int
    channels: int
    bit_depth: int

    def __post_init__(self) -> None:
        if self.sample_rate <= 0:
            raise ValueError(f"sample_rate must be positive, got {self.sample_rate}")
        if self.channels <= 0:
            raise ValueError(f"channels must be positive, got {self.channels}")
        if self.bit_depth <= 0 or self.bit_depth % 8:
            raise ValueError(f"bit_depth must be a positive multiple of 8, got {self.bit_depth}")

    @property
    def bytes_per_sample(self) -> int:
        return self.bit_depth // 8

    @property
    def block_align(self) -> int:
        return self.channels * self.bytes_per_sample

    @property
    def byte_rate(self) -> int:
        return self.sample_rate * self.block_align

    def duration_of(self, data: bytes) -> float:
        return len(data) / self.byte_rate


# Gemini TTS always answers with 24 kHz mono 16-bit PCM.
GEMINI_PCM_FORMAT = AudioFormat(sample_rate=24000, channels=1, bit_depth=16)


@dataclass(frozen=True)
class PcmAudio:
    data: bytes
    format: AudioFormat = GEMINI_PCM_FORMAT

    def __len__(self) -> int:
        return len(self.data)

    @property
    def duration(self) -> float:
        return self.format.duration_of(self.data)


PcmInput = Union[bytes, bytearray, PcmAudio]


def silence(duration_seconds: float, audio_format: AudioFormat = GEMINI_PCM_FORMAT) -> bytes:
    """Return a zero-filled PCM buffer lasting ``duration_seconds``.

    Zero, negative and non-finite durations produce an empty buffer.
    """
    if not duration_seconds or not math.isfinite(duration_seconds) or duration_seconds < 0:
        return b""
    samples_per_channel = max(0, math.floor(audio_format.sample_rate * duration_seconds))
    total_samples = samples_per_channel * audio_format.channels
    return bytes(total_samples * audio_format.bytes_per_sample)


def _unwrap(buffer: PcmInput, audio_format: AudioFormat, position: int) -> bytes:
    if isinstance(buffer, PcmAudio):
        if buffer.format != audio_format:
            raise PcmFormatMismatch(
                f"paragraph {position} is {buffer.format}, expected {audio_format}"
            )
        data = buffer.data
    else:
        data = bytes(buffer)
    if len(data) % audio_format.block_align:
        raise PcmFormatMismatch(
            f"paragraph {position} has {len(data)} bytes, "
            f"not a multiple of block align {audio_format.block_align}"
        )
    return data


def concatenate(
    buffers: Sequence[PcmInput],
    silence_durations: Sequence[float] = (),
    audio_format: AudioFormat = GEMINI_PCM_FORMAT,
) -> bytes:
    """Join paragraph PCM buffers in order, inserting a silence gap after each one but the last.

    ``silence_durations[i]`` is the gap between paragraph ``i`` and ``i + 1``.
    Missing entries count as zero-length gaps; surplus entries are ignored.
    Every buffer must share ``audio_format``: a differently tagged
    :class:`PcmAudio` or a buffer holding a partial frame raises
    :class:`PcmFormatMismatch`.
    """
    if not buffers:
        raise EmptyInputError("no PCM buffers to concatenate")

    segments = [_unwrap(buffer, audio_format, i + 1) for i, buffer in enumerate(buffers)]
    last = len(segments) - 1

    gaps: list[bytes] = []
    total = 0
    for i, segment in enumerate(segments):
        total += len(segment)
        if i == last:
            continue
        duration = silence_durations[i] if i < len(silence_durations) else 0.0
        gap = silence(duration, audio_format)
        gaps.append(gap)
        total += len(gap)

    out = bytearray(total)
    offset = 0
    for i, segment in enumerate(segments):
        out[offset:offset + len(segment)] = segment
        offset += len(segment)
        if i < last and gaps[i]:
            out[offset:offset + len(gaps[i])] = gaps[i]
            offset += len(gaps[i])

    if offset != total:
        raise RuntimeError(f"PCM write offset {offset} does not match computed length {total}")

    LOGGER.debug(
        "[pcm] joined %d segment(s) into %d bytes (%.2fs)",
        len(segments), total, audio_format.duration_of(out),
    )
    return bytes(out)


__all__ = [
    "AudioFormat",
    "EmptyInputError",
    "GEMINI_PCM_FORMAT",
    "PcmAudio",
    "PcmFormatMismatch",
    "concatenate",
    "silence",
]
