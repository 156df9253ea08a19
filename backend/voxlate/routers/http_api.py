from __future__ import annotations

import contextlib
import json
import logging
import math
import os
import time
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, AsyncIterator

import aiofiles
from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi.responses import FileResponse, JSONResponse, StreamingResponse

from ..config import Settings, get_settings
from ..core.ffmpeg_utils import extract_audio_adaptive_async
from ..core.gemini import GeminiAPIError
from ..schemas import (
    DeleteAudioRequest,
    ExtractedAudioRequest,
    GenerateSpeechRequest,
    GenerateSpeechResponse,
    TranslateRequest,
)
from ..services.speech import SpeechGenerator
from ..services.transcription import Transcriber
from ..services.translation import Translator, UnsupportedLanguageError, get_supported_languages
from ..services.voices import is_valid_voice, voice_options_with_descriptions

LOGGER = logging.getLogger(__name__)

router = APIRouter()

ALLOWED_UPLOAD_EXTENSIONS = {
    ".mp4", ".avi", ".mov", ".wmv", ".flv", ".webm", ".mkv",
    ".mp3", ".m4a", ".aac", ".ogg", ".flac", ".wav",
}
_UPLOAD_CHUNK = 1024 * 1024


# ===========================================================
# Dependencies
# ===========================================================
def get_transcriber(settings: Settings = Depends(get_settings)) -> Transcriber:
    return Transcriber.from_settings(settings)


def get_translator(settings: Settings = Depends(get_settings)) -> Translator:
    return Translator.from_settings(settings)


def get_speech_generator(settings: Settings = Depends(get_settings)) -> SpeechGenerator:
    return SpeechGenerator.from_settings(settings)


# ===========================================================
# Helpers
# ===========================================================
def _error(status_code: int, error: str, details: Any = None) -> JSONResponse:
    body: dict[str, Any] = {"success": False, "error": error}
    if details is not None:
        body["details"] = details
    return JSONResponse(status_code=status_code, content=body)


def _describe(exc: Exception) -> str:
    if isinstance(exc, GeminiAPIError):
        return exc.hint
    return str(exc) or exc.__class__.__name__


def _safe_name(name: str | None) -> str:
    """Reject anything that is not a bare file name inside the served directory."""
    if not name or os.path.basename(name) != name or name in {".", ".."} or "\\" in name:
        raise HTTPException(status_code=400, detail="Invalid file name")
    return name


def _sse(event_type: str, data: Any) -> str:
    return f"data: {json.dumps({'type': event_type, 'data': data}, ensure_ascii=False)}\n\n"


async def _save_upload(upload: UploadFile, field: str, settings: Settings) -> Path:
    filename = upload.filename or ""
    ext = Path(filename).suffix.lower()
    mime = upload.content_type or ""
    if ext not in ALLOWED_UPLOAD_EXTENSIONS or not (mime.startswith("audio/") or mime.startswith("video/")):
        raise HTTPException(
            status_code=415,
            detail="Only video/audio files are supported: " + ", ".join(sorted(e[1:] for e in ALLOWED_UPLOAD_EXTENSIONS)),
        )

    settings.upload_dir.mkdir(parents=True, exist_ok=True)
    target = settings.upload_dir / f"{field}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}{ext}"
    limit = settings.max_upload_mb * 1024 * 1024
    written = 0
    try:
        async with aiofiles.open(target, "wb") as handle:
            while chunk := await upload.read(_UPLOAD_CHUNK):
                written += len(chunk)
                if written > limit:
                    raise HTTPException(status_code=413, detail=f"File exceeds {settings.max_upload_mb}MB limit")
                await handle.write(chunk)
    except Exception:
        with contextlib.suppress(FileNotFoundError):
            target.unlink()
        raise
    LOGGER.info(f"[upload] 📥 saved {filename} -> {target} ({written} bytes)")
    return target


def _next_audio_file_name(output_dir: Path, target_language: str) -> str:
    date_str = datetime.now().strftime("%m%d")
    prefix = f"{date_str}_{target_language}_"
    existing = [p for p in output_dir.glob(f"{prefix}*.wav") if p.is_file()]
    return f"{prefix}{len(existing) + 1}.wav"


# ===========================================================
# Transcription
# ===========================================================
@router.post("/transcribe")
async def transcribe_video(
    video: UploadFile = File(...),
    settings: Settings = Depends(get_settings),
    transcriber: Transcriber = Depends(get_transcriber),
) -> StreamingResponse:
    """Extract audio from an uploaded video and transcribe it, reporting progress as SSE."""
    upload_path = await _save_upload(video, "video", settings)
    video_file_name = Path(video.filename or upload_path.name).name
    audio_file_name = Path(video_file_name).stem + ".mp3"
    settings.output_dir.mkdir(parents=True, exist_ok=True)
    audio_path = settings.output_dir / audio_file_name

    async def events() -> AsyncIterator[str]:
        try:
            yield _sse("status", "Extracting high quality audio from video...")
            await extract_audio_adaptive_async(upload_path, audio_path)
            yield _sse("status", "Audio extracted, transcribing...")
            transcription = await transcriber.transcribe(audio_path)
            yield _sse(
                "complete",
                {
                    "transcription": transcription,
                    "audioFileName": audio_file_name,
                    "videoFileName": video_file_name,
                    "message": "Transcription complete",
                },
            )
        except Exception as exc:
            LOGGER.exception(f"[transcribe] ❌ failed for {video_file_name}: {exc}")
            yield _sse("error", _describe(exc))
        finally:
            with contextlib.suppress(FileNotFoundError):
                upload_path.unlink()

    return StreamingResponse(
        events(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )


@router.post("/transcribe-audio")
async def transcribe_audio(
    audio: UploadFile = File(...),
    settings: Settings = Depends(get_settings),
    transcriber: Transcriber = Depends(get_transcriber),
):
    upload_path = await _save_upload(audio, "audio", settings)
    try:
        transcription = await transcriber.transcribe(upload_path)
    except Exception as exc:
        LOGGER.exception(f"[transcribe] ❌ audio transcription failed: {exc}")
        return _error(500, _describe(exc))
    finally:
        with contextlib.suppress(FileNotFoundError):
            upload_path.unlink()
    return {"success": True, "transcription": transcription, "message": "Audio transcription complete"}


@router.post("/transcribe-extracted-audio")
async def transcribe_extracted_audio(
    payload: ExtractedAudioRequest,
    settings: Settings = Depends(get_settings),
    transcriber: Transcriber = Depends(get_transcriber),
):
    if not payload.audio_name:
        return _error(400, "Audio file name is required")
    audio_path = settings.output_dir / _safe_name(payload.audio_name)
    if not audio_path.is_file():
        return JSONResponse(
            status_code=404,
            content={"error": "Audio file not found, it may have been cleaned up", "requestedFile": payload.audio_name},
        )
    try:
        transcription = await transcriber.transcribe(audio_path)
    except Exception as exc:
        LOGGER.exception(f"[transcribe] ❌ extracted audio transcription failed: {exc}")
        return _error(500, _describe(exc))
    return {"success": True, "transcription": transcription, "message": "Audio transcription complete"}


# ===========================================================
# Audio files
# ===========================================================
@router.get("/download-audio/{filename}")
async def download_audio(filename: str, settings: Settings = Depends(get_settings)):
    audio_path = settings.output_dir / _safe_name(filename)
    if not audio_path.is_file():
        return _error(404, "Audio file not found")
    media_type = "audio/wav" if audio_path.suffix.lower() == ".wav" else "audio/mpeg"
    return FileResponse(
        audio_path,
        media_type=media_type,
        filename=filename,
        headers={
            "Cache-Control": "no-cache, no-store, must-revalidate",
            "Pragma": "no-cache",
            "Expires": "0",
            "X-Content-Type-Options": "nosniff",
        },
    )


@router.delete("/delete-audio")
async def delete_audio(payload: DeleteAudioRequest, settings: Settings = Depends(get_settings)):
    if not payload.audio_file_name:
        return _error(400, "Audio file name is required")
    audio_path = settings.output_dir / _safe_name(payload.audio_file_name)
    if not audio_path.is_file():
        return _error(404, "Audio file not found", "The file may already have been deleted or moved")
    audio_path.unlink()
    LOGGER.info(f"[audio] 🗑️ deleted {audio_path}")
    return {"success": True, "message": f"Audio file {payload.audio_file_name} deleted"}


# ===========================================================
# Catalogs
# ===========================================================
@router.get("/supported-languages")
async def supported_languages() -> dict:
    return {"success": True, "languages": get_supported_languages()}


@router.get("/voice-options")
async def voice_options() -> dict:
    return {
        "success": True,
        "voices": [option.model_dump(by_alias=True) for option in voice_options_with_descriptions()],
    }


@router.get("/voice-sample/{voice_name}")
async def voice_sample(voice_name: str, settings: Settings = Depends(get_settings)):
    if not is_valid_voice(voice_name):
        return _error(400, "Invalid voice name")
    sample_name = f"voice_sample_{voice_name}.wav"
    sample_path = settings.soundcheck_dir / sample_name
    if not sample_path.is_file():
        return _error(404, "Voice sample not found")
    return FileResponse(
        sample_path,
        media_type="audio/wav",
        headers={
            "Content-Disposition": f'inline; filename="{sample_name}"',
            "Cache-Control": "public, max-age=3600",
        },
    )


# ===========================================================
# Translation & speech
# ===========================================================
@router.post("/generate-speech")
async def generate_speech(
    payload: GenerateSpeechRequest,
    settings: Settings = Depends(get_settings),
    translator: Translator = Depends(get_translator),
    generator: SpeechGenerator = Depends(get_speech_generator),
):
    text = payload.text or ""
    if not text.strip():
        return _error(400, "Text must not be empty")
    if not payload.target_language:
        return _error(400, "Target language is required")
    if not payload.voice_name:
        return _error(400, "Voice name is required")
    interval = payload.paragraph_interval or 0.0
    if not math.isfinite(interval) or interval < 0:
        return _error(400, "Paragraph interval must be a non-negative number")
    if interval > settings.max_paragraph_interval_seconds:
        return _error(
            400,
            "Paragraph interval is too long",
            f"The maximum is {settings.max_paragraph_interval_seconds} seconds",
        )

    LOGGER.info(
        f"[speech] request lang={payload.target_language} voice={payload.voice_name} interval={interval}s"
    )

    if payload.skip_translate:
        translated_text = text
        LOGGER.info("[speech] translation skipped, using text as-is")
    else:
        try:
            translated_text = await translator.translate(text, payload.target_language)
        except UnsupportedLanguageError as exc:
            return _error(400, "Text translation failed", str(exc))
        except Exception as exc:
            LOGGER.exception(f"[speech] ❌ translation failed: {exc}")
            return _error(500, "Text translation failed", _describe(exc))

    settings.output_dir.mkdir(parents=True, exist_ok=True)
    audio_file_name = _next_audio_file_name(settings.output_dir, payload.target_language)
    audio_path = settings.output_dir / audio_file_name

    try:
        await generator.generate_speech(translated_text, payload.voice_name, audio_path, interval)
    except Exception as exc:
        LOGGER.exception(f"[speech] ❌ generation failed: {exc}")
        return _error(500, "Speech generation failed", _describe(exc))

    if not audio_path.is_file():
        return _error(500, "Speech file generation failed", "Generated audio file does not exist")

    file_size_mb = audio_path.stat().st_size / (1024 * 1024)
    LOGGER.info(f"[speech] ✅ {audio_file_name} ({file_size_mb:.2f}MB)")
    response = GenerateSpeechResponse(
        audio_file_name=audio_file_name,
        original_text=text,
        translated_text=translated_text,
        target_language=payload.target_language,
        voice_name=payload.voice_name,
        paragraph_interval=interval,
        file_size=file_size_mb,
    )
    return response.model_dump(by_alias=True)


@router.post("/translate-text")
async def translate_text(payload: TranslateRequest, translator: Translator = Depends(get_translator)):
    text = payload.text or ""
    if not text.strip():
        return _error(400, "Text must not be empty")
    if not payload.target_language:
        return _error(400, "Target language is required")
    try:
        translated_text = await translator.translate(text, payload.target_language)
    except UnsupportedLanguageError as exc:
        return _error(400, "Translation failed", str(exc))
    except Exception as exc:
        LOGGER.exception(f"[translate] ❌ failed: {exc}")
        return _error(500, "Translation failed", _describe(exc))
    return {
        "success": True,
        "originalText": text,
        "translatedText": translated_text,
        "targetLanguage": payload.target_language,
        "message": "Translation complete",
    }


@router.get("/health")
async def api_health() -> dict:
    return {"status": "OK", "timestamp": datetime.now().isoformat()}
