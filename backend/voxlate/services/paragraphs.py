from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List

_LINE_BREAKS = re.compile(r"(?:\r\n|\r|\n)+")


@dataclass(frozen=True)
class Paragraph:
    index: int
    text: str


def segment(text: str) -> List[str]:
    """Split ``text`` into paragraphs on newlines.

    Pieces are trimmed and empty ones dropped. Text without any newline is
    returned as a single paragraph, untouched.
    """
    if "\n" not in text:
        return [text]
    return [piece.strip() for piece in text.split("\n") if piece.strip()]


def paragraphs(text: str) -> List[Paragraph]:
    return [Paragraph(index=i, text=piece) for i, piece in enumerate(segment(text), start=1)]


def collapse_line_breaks(text: str) -> str:
    return _LINE_BREAKS.sub(" ", text).strip()


__all__ = ["Paragraph", "collapse_line_breaks", "paragraphs", "segment"]
