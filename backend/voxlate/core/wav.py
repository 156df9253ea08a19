# voxlate/core/wav.py
from __future__ import annotations

import struct

from .pcm import GEMINI_PCM_FORMAT, AudioFormat

WAV_HEADER_SIZE = 44
_WAVE_FORMAT_PCM = 1
_CHUNK_HEADER = struct.Struct("<4sI")


class InvalidWavFormat(ValueError):
    """Raised when a buffer is not a RIFF/WAVE container."""


class DataChunkNotFound(ValueError):
    """Raised when a RIFF/WAVE container carries no ``data`` chunk."""


def is_wav(buf: bytes) -> bool:
    return len(buf) >= 12 and buf[:4] == b"RIFF" and buf[8:12] == b"WAVE"


def encode(pcm: bytes, audio_format: AudioFormat = GEMINI_PCM_FORMAT) -> bytes:
    """Wrap raw PCM in a canonical 44-byte-header WAV container."""
    data_size = len(pcm)
    header = struct.pack(
        "<4sI4s4sIHHIIHH4sI",
        b"RIFF",
        36 + data_size,
        b"WAVE",
        b"fmt ",
        16,
        _WAVE_FORMAT_PCM,
        audio_format.channels,
        audio_format.sample_rate,
        audio_format.byte_rate,
        audio_format.block_align,
        audio_format.bit_depth,
        b"data",
        data_size,
    )
    return header + bytes(pcm)


def decode(buf: bytes) -> bytes:
    """Return the PCM payload of the first ``data`` chunk in ``buf``.

    Chunks are walked from offset 12; odd-sized chunks carry one pad byte.
    A ``data`` chunk whose declared size runs past the end of the buffer is
    returned truncated to the bytes actually present.
    """
    if len(buf) < WAV_HEADER_SIZE:
        raise InvalidWavFormat(f"buffer too short for a WAV header ({len(buf)} bytes)")
    if not is_wav(buf):
        raise InvalidWavFormat("missing RIFF/WAVE signature")

    offset = 12
    while offset + _CHUNK_HEADER.size <= len(buf):
        chunk_id, size = _CHUNK_HEADER.unpack_from(buf, offset)
        body = offset + _CHUNK_HEADER.size
        if chunk_id == b"data":
            return bytes(buf[body:body + size])
        offset = body + size + (size & 1)
    raise DataChunkNotFound("no data chunk in WAV buffer")


__all__ = ["DataChunkNotFound", "InvalidWavFormat", "WAV_HEADER_SIZE", "decode", "encode", "is_wav"]
