# voxlate/core/gemini.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import aiohttp
from pydantic import ValidationError

from ..config import Settings
from ..schemas import GeminiFile, GeminiResponse

LOGGER = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com"
API_VERSION = "v1beta"


class GeminiNotConfiguredError(RuntimeError):
    """Raised when no Gemini API key is available."""


class GeminiAPIError(RuntimeError):
    """Raised when the Gemini endpoint answers with an error or an unreadable body."""

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status

    @property
    def hint(self) -> str:
        """Short human-readable explanation suitable for API clients."""
        lowered = str(self).lower()
        if "api key" in lowered or self.status in (401, 403):
            return "Gemini API key is invalid or missing"
        if "quota" in lowered or self.status == 429:
            return "Gemini quota exhausted or rate limited, try again later"
        if "rate limit" in lowered:
            return "Gemini rate limit exceeded, try again later"
        if "too long" in lowered:
            return "Input text is too long, please shorten it"
        return f"Gemini request failed: {self}"


def text_part(text: str) -> Dict[str, Any]:
    return {"text": text}


def file_part(file_uri: str, mime_type: str) -> Dict[str, Any]:
    return {"fileData": {"mimeType": mime_type, "fileUri": file_uri}}


class GeminiClient:
    """Minimal async client for the Gemini ``generateContent`` REST endpoint."""

    def __init__(
        self,
        api_key: str | None,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout_seconds: float = 120.0,
    ) -> None:
        self.api_key = (api_key or "").strip()
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds

    @classmethod
    def from_settings(cls, settings: Settings) -> "GeminiClient":
        return cls(
            settings.gemini_api_key,
            base_url=settings.gemini_base_url,
            timeout_seconds=settings.gemini_timeout_seconds,
        )

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def validate_config(self) -> bool:
        """Cheap local check of the key; no network round-trip."""
        if not self.api_key:
            LOGGER.warning("[gemini] GEMINI_API_KEY is not set")
            return False
        if not self.api_key.startswith("AIza"):
            LOGGER.warning("[gemini] API key does not look like a Google API key")
            return False
        return True

    def _url(self, model: str) -> str:
        return f"{self.base_url}/{API_VERSION}/models/{model}:generateContent"

    def _upload_url(self) -> str:
        return f"{self.base_url}/upload/{API_VERSION}/files"

    def _require_key(self) -> None:
        if not self.api_key:
            raise GeminiNotConfiguredError("GEMINI_API_KEY is not configured")

    @staticmethod
    async def _raise_for_status(resp: aiohttp.ClientResponse) -> None:
        if resp.status != 200:
            body = await resp.text()
            raise GeminiAPIError(f"Gemini HTTP {resp.status}: {body[:300]}", status=resp.status)

    @classmethod
    async def _read_json(cls, resp: aiohttp.ClientResponse) -> Any:
        await cls._raise_for_status(resp)
        try:
            return await resp.json(content_type=None)
        except ValueError as exc:
            raise GeminiAPIError("Gemini returned a non-JSON body", status=resp.status) from exc

    async def generate_content(
        self,
        model: str,
        contents: List[Dict[str, Any]] | str,
        *,
        generation_config: Optional[Dict[str, Any]] = None,
    ) -> GeminiResponse:
        """Send one ``generateContent`` request and return the parsed response.

        ``contents`` may be a plain string, which is sent as a single user turn.
        """
        self._require_key()

        if isinstance(contents, str):
            contents = [{"role": "user", "parts": [text_part(contents)]}]
        payload: Dict[str, Any] = {"contents": contents}
        if generation_config:
            payload["generationConfig"] = generation_config

        headers = {
            "x-goog-api-key": self.api_key,
            "Content-Type": "application/json",
        }
        timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)

        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.post(self._url(model), json=payload, headers=headers) as resp:
                data = await self._read_json(resp)

        try:
            parsed = GeminiResponse.model_validate(data)
        except ValidationError as exc:
            raise GeminiAPIError(f"Unexpected Gemini response shape: {exc.error_count()} error(s)") from exc
        LOGGER.debug(f"[gemini] {model} answered with {len(parsed.candidates)} candidate(s)")
        return parsed

    async def upload_file(
        self,
        data: bytes,
        mime_type: str,
        *,
        display_name: str | None = None,
    ) -> GeminiFile:
        """Upload ``data`` through the File API and return the stored file.

        Uses the two-step resumable protocol: a ``start`` request that returns
        an upload URL, then a single ``upload, finalize`` request with the bytes.
        """
        self._require_key()

        metadata: Dict[str, Any] = {"file": {"display_name": display_name} if display_name else {}}
        start_headers = {
            "x-goog-api-key": self.api_key,
            "X-Goog-Upload-Protocol": "resumable",
            "X-Goog-Upload-Command": "start",
            "X-Goog-Upload-Header-Content-Length": str(len(data)),
            "X-Goog-Upload-Header-Content-Type": mime_type,
            "Content-Type": "application/json",
        }
        timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)

        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.post(self._upload_url(), json=metadata, headers=start_headers) as resp:
                await self._raise_for_status(resp)
                upload_url = resp.headers.get("X-Goog-Upload-URL")
            if not upload_url:
                raise GeminiAPIError("Gemini upload session did not return an upload URL")

            finalize_headers = {
                "x-goog-api-key": self.api_key,
                "X-Goog-Upload-Command": "upload, finalize",
                "X-Goog-Upload-Offset": "0",
            }
            async with session.post(upload_url, data=data, headers=finalize_headers) as resp:
                body = await self._read_json(resp)

        try:
            uploaded = GeminiFile.model_validate(body.get("file", body) if isinstance(body, dict) else body)
        except ValidationError as exc:
            raise GeminiAPIError(f"Unexpected Gemini file shape: {exc.error_count()} error(s)") from exc
        if uploaded.state == "FAILED":
            raise GeminiAPIError(f"Gemini could not process uploaded file {uploaded.name}")
        LOGGER.info(f"[gemini] 📤 uploaded {len(data)} bytes as {uploaded.name} ({uploaded.state or 'unknown state'})")
        return uploaded


__all__ = [
    "GeminiAPIError",
    "GeminiClient",
    "GeminiNotConfiguredError",
    "file_part",
    "text_part",
]
