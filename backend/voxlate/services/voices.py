from __future__ import annotations

import logging
from typing import Dict, List

from ..schemas import VoiceOption

LOGGER = logging.getLogger(__name__)


DEFAULT_VOICE = "Kore"

VOICE_DESCRIPTIONS: Dict[str, str] = {
    "Zephyr": "Bright",
    "Puck": "Upbeat",
    "Charon": "Informative",
    "Kore": "Firm",
    "Fenrir": "Excitable",
    "Leda": "Youthful",
    "Orus": "Firm",
    "Aoede": "Breezy",
    "Callirrhoe": "Easy-going",
    "Autonoe": "Bright",
    "Enceladus": "Breathy",
    "Iapetus": "Clear",
    "Umbriel": "Easy-going",
    "Algieba": "Smooth",
    "Despina": "Smooth",
    "Erinome": "Clear",
    "Algenib": "Gravelly",
    "Rasalgethi": "Informative",
    "Laomedeia": "Upbeat",
    "Achernar": "Soft",
    "Alnilam": "Firm",
    "Schedar": "Even",
    "Gacrux": "Mature",
    "Pulcherrima": "Forward",
    "Achird": "Friendly",
    "Zubenelgenubi": "Casual",
    "Vindemiatrix": "Gentle",
    "Sadachbia": "Lively",
    "Sadaltager": "Knowledgeable",
    "Sulafat": "Warm",
}

VOICE_OPTIONS: List[str] = list(VOICE_DESCRIPTIONS)


def is_valid_voice(voice_name: str | None) -> bool:
    return voice_name in VOICE_DESCRIPTIONS


def validate_voice(voice_name: str | None) -> str:
    """Return ``voice_name`` if it is a known prebuilt voice, else :data:`DEFAULT_VOICE`."""
    if is_valid_voice(voice_name):
        return voice_name  # type: ignore[return-value]
    LOGGER.warning(f"[voices] unknown voice {voice_name!r}, using default {DEFAULT_VOICE}")
    return DEFAULT_VOICE


def voice_options() -> List[str]:
    return list(VOICE_OPTIONS)


def voice_options_with_descriptions() -> List[VoiceOption]:
    return [
        VoiceOption(
            name=voice,
            description=VOICE_DESCRIPTIONS[voice],
            display_name=f"{voice} - {VOICE_DESCRIPTIONS[voice]}",
        )
        for voice in VOICE_OPTIONS
    ]


__all__ = [
    "DEFAULT_VOICE",
    "VOICE_DESCRIPTIONS",
    "VOICE_OPTIONS",
    "is_valid_voice",
    "validate_voice",
    "voice_options",
    "voice_options_with_descriptions",
]
