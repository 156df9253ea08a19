from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict


# ---------------------------------------------------------------------------
# Gemini generateContent response
# ---------------------------------------------------------------------------


class GeminiInlineData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    mime_type: Optional[str] = Field(default=None, alias="mimeType")
    data: Optional[str] = None


class GeminiPart(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    text: Optional[str] = None
    inline_data: Optional[GeminiInlineData] = Field(default=None, alias="inlineData")


class GeminiContent(BaseModel):
    role: Optional[str] = None
    parts: List[GeminiPart] = Field(default_factory=list)


class GeminiCandidate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    content: Optional[GeminiContent] = None
    finish_reason: Optional[str] = Field(default=None, alias="finishReason")


class GeminiResponse(BaseModel):
    candidates: List[GeminiCandidate] = Field(default_factory=list)

    @property
    def text(self) -> str:
        """Concatenated text parts of the first candidate."""
        if not self.candidates or self.candidates[0].content is None:
            return ""
        return "".join(part.text or "" for part in self.candidates[0].content.parts)


# ---------------------------------------------------------------------------
# HTTP API
# ---------------------------------------------------------------------------


class GenerateSpeechRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    text: str = ""
    target_language: Optional[str] = Field(default=None, alias="targetLanguage")
    voice_name: Optional[str] = Field(default=None, alias="voiceName")
    transcription_id: Optional[str] = Field(default=None, alias="transcriptionId")
    paragraph_interval: Optional[float] = Field(default=None, alias="paragraphInterval")
    skip_translate: bool = Field(default=False, alias="skipTranslate")


class GenerateSpeechResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    audio_file_name: str = Field(serialization_alias="audioFileName")
    original_text: str = Field(serialization_alias="originalText")
    translated_text: str = Field(serialization_alias="translatedText")
    target_language: str = Field(serialization_alias="targetLanguage")
    voice_name: str = Field(serialization_alias="voiceName")
    paragraph_interval: float = Field(serialization_alias="paragraphInterval")
    file_size: float = Field(serialization_alias="fileSize")
    message: str = "Speech generated"


class TranslateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    text: str = ""
    target_language: Optional[str] = Field(default=None, alias="targetLanguage")


class ExtractedAudioRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    audio_name: Optional[str] = Field(default=None, alias="audioName")
    video_name: Optional[str] = Field(default=None, alias="videoName")


class DeleteAudioRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    audio_file_name: Optional[str] = Field(default=None, alias="audioFileName")


class VoiceOption(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    description: str
    display_name: str = Field(serialization_alias="displayName")


class GeminiFile(BaseModel):
    """File resource returned by the Gemini File API."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    uri: str
    mime_type: Optional[str] = Field(default=None, alias="mimeType")
    state: Optional[str] = None
    display_name: Optional[str] = Field(default=None, alias="displayName")
