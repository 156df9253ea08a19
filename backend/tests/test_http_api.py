from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, List

import pytest
from fastapi import HTTPException

from voxlate.core import wav
from voxlate.core.pcm import GEMINI_PCM_FORMAT, PcmAudio
from voxlate.routers import http_api
from voxlate.schemas import DeleteAudioRequest, ExtractedAudioRequest, GenerateSpeechRequest, TranslateRequest
from voxlate.services.speech import SpeechGenerator
from voxlate.services.translation import UnsupportedLanguageError


class StubTranslator:
    def __init__(self) -> None:
        self.calls: List[tuple] = []

    async def translate(self, text: str, target_language: str) -> str:
        self.calls.append((text, target_language))
        if target_language == "XX":
            raise UnsupportedLanguageError("unsupported language code: XX")
        return f"[{target_language}] {text}"


class StubSynthesizer:
    audio_format = GEMINI_PCM_FORMAT

    def __init__(self) -> None:
        self.texts: List[str] = []

    async def synthesize(self, text: str, voice_name: str) -> PcmAudio:
        self.texts.append(text)
        return PcmAudio(b"\x01\x00" * 50)


class StubTranscriber:
    def __init__(self, answer: str = "transcript") -> None:
        self.answer = answer
        self.paths: List[Path] = []

    async def transcribe(self, path: Path) -> str:
        self.paths.append(Path(path))
        return self.answer


def _body(response: Any) -> Any:
    return json.loads(response.body)


def test_generate_speech_with_paragraph_interval(settings) -> None:
    synth = StubSynthesizer()
    translator = StubTranslator()
    request = GenerateSpeechRequest.model_validate(
        {"text": "第一段\n第二段", "targetLanguage": "US", "voiceName": "Puck", "paragraphInterval": 0.5}
    )

    result = asyncio.run(
        http_api.generate_speech(request, settings, translator, SpeechGenerator(synth))  # type: ignore[arg-type]
    )

    assert result["success"] is True
    assert result["translatedText"] == "[US] 第一段\n第二段"
    assert result["paragraphInterval"] == 0.5
    assert result["audioFileName"].endswith("_US_1.wav")
    assert synth.texts == ["[US] 第一段", "第二段"]
    pcm = wav.decode((settings.output_dir / result["audioFileName"]).read_bytes())
    assert len(pcm) == 100 + 24000 + 100


def test_generate_speech_numbering_and_skip_translate(settings) -> None:
    translator = StubTranslator()
    generator = SpeechGenerator(StubSynthesizer())  # type: ignore[arg-type]
    request = GenerateSpeechRequest(text="Hello", target_language="FR", voice_name="Kore", skip_translate=True)

    first = asyncio.run(http_api.generate_speech(request, settings, translator, generator))  # type: ignore[arg-type]
    second = asyncio.run(http_api.generate_speech(request, settings, translator, generator))  # type: ignore[arg-type]

    assert translator.calls == []
    assert first["translatedText"] == "Hello"
    assert first["audioFileName"].endswith("_FR_1.wav")
    assert second["audioFileName"].endswith("_FR_2.wav")


@pytest.mark.parametrize(
    "payload",
    [
        {"text": "  ", "targetLanguage": "US", "voiceName": "Kore"},
        {"text": "hi", "voiceName": "Kore"},
        {"text": "hi", "targetLanguage": "US"},
        {"text": "hi", "targetLanguage": "US", "voiceName": "Kore", "paragraphInterval": -1},
    ],
)
def test_generate_speech_validation(settings, payload) -> None:
    request = GenerateSpeechRequest.model_validate(payload)
    response = asyncio.run(
        http_api.generate_speech(request, settings, StubTranslator(), SpeechGenerator(StubSynthesizer()))  # type: ignore[arg-type]
    )
    assert response.status_code == 400
    assert _body(response)["success"] is False


def test_generate_speech_unsupported_language(settings) -> None:
    request = GenerateSpeechRequest(text="hi", target_language="XX", voice_name="Kore")
    response = asyncio.run(
        http_api.generate_speech(request, settings, StubTranslator(), SpeechGenerator(StubSynthesizer()))  # type: ignore[arg-type]
    )
    assert response.status_code == 400
    assert "XX" in _body(response)["details"]


def test_translate_text(settings) -> None:
    result = asyncio.run(
        http_api.translate_text(TranslateRequest(text="你好", target_language="JP"), StubTranslator())  # type: ignore[arg-type]
    )
    assert result["translatedText"] == "[JP] 你好"
    assert result["targetLanguage"] == "JP"


def test_transcribe_extracted_audio(settings) -> None:
    settings.output_dir.mkdir(parents=True)
    (settings.output_dir / "clip.mp3").write_bytes(b"\x00")
    transcriber = StubTranscriber("hello there")

    result = asyncio.run(
        http_api.transcribe_extracted_audio(ExtractedAudioRequest(audio_name="clip.mp3"), settings, transcriber)  # type: ignore[arg-type]
    )
    missing = asyncio.run(
        http_api.transcribe_extracted_audio(ExtractedAudioRequest(audio_name="gone.mp3"), settings, transcriber)  # type: ignore[arg-type]
    )

    assert result["transcription"] == "hello there"
    assert missing.status_code == 404
    assert _body(missing)["requestedFile"] == "gone.mp3"


def test_delete_audio(settings) -> None:
    settings.output_dir.mkdir(parents=True)
    target = settings.output_dir / "1019_US_1.wav"
    target.write_bytes(b"RIFF")

    result = asyncio.run(http_api.delete_audio(DeleteAudioRequest(audio_file_name=target.name), settings))
    again = asyncio.run(http_api.delete_audio(DeleteAudioRequest(audio_file_name=target.name), settings))

    assert result["success"] is True
    assert not target.exists()
    assert again.status_code == 404


def test_rejects_path_traversal(settings) -> None:
    with pytest.raises(HTTPException) as excinfo:
        asyncio.run(http_api.download_audio("../secrets.txt", settings))
    assert excinfo.value.status_code == 400


def test_catalog_routes(settings) -> None:
    languages = asyncio.run(http_api.supported_languages())
    voices = asyncio.run(http_api.voice_options())
    missing_sample = asyncio.run(http_api.voice_sample("Kore", settings))
    bad_voice = asyncio.run(http_api.voice_sample("Nobody", settings))

    assert len(languages["languages"]) == 23
    assert voices["voices"][0] == {"name": "Zephyr", "description": "Bright", "displayName": "Zephyr - Bright"}
    assert missing_sample.status_code == 404
    assert bad_voice.status_code == 400


@pytest.fixture
def api_client(settings, monkeypatch: pytest.MonkeyPatch):
    """Return a factory for a TestClient wired to ``settings`` and the given dependency stubs."""
    from fastapi.testclient import TestClient

    from voxlate import main
    from voxlate.config import get_settings

    def _provide(value: Any):
        return lambda: value

    def _make(app_settings=None, **stubs: Any) -> TestClient:
        current = app_settings or settings
        monkeypatch.setattr(main, "settings", current)
        main.app.dependency_overrides[get_settings] = lambda: current
        for name, stub in stubs.items():
            main.app.dependency_overrides[getattr(http_api, name)] = _provide(stub)
        return TestClient(main.app)

    yield _make
    main.app.dependency_overrides.clear()


def _events(body: str) -> List[dict]:
    return [json.loads(line[len("data: "):]) for line in body.splitlines() if line.startswith("data: ")]


def test_app_routes_through_client(settings, api_client) -> None:
    with api_client(get_translator=StubTranslator()) as client:
        health = client.get("/health")
        translated = client.post("/api/translate-text", json={"text": "hola", "targetLanguage": "US"})
        unknown = client.post("/api/translate-text", json={"text": "hola", "targetLanguage": "XX"})

    assert health.status_code == 200
    assert health.json()["status"] == "OK"
    assert translated.json()["translatedText"] == "[US] hola"
    assert unknown.status_code == 400
    assert settings.upload_dir.is_dir()


@pytest.mark.parametrize(
    "raw_interval",
    ["Infinity", "-Infinity", "NaN", "31", "1e7"],
)
def test_generate_speech_rejects_unusable_interval(settings, api_client, raw_interval: str) -> None:
    synth = StubSynthesizer()
    body = '{"text": "a\\nb", "targetLanguage": "US", "voiceName": "Kore", "skipTranslate": true, "paragraphInterval": %s}'
    with api_client(get_speech_generator=SpeechGenerator(synth)) as client:  # type: ignore[arg-type]
        response = client.post(
            "/api/generate-speech",
            content=body % raw_interval,
            headers={"Content-Type": "application/json"},
        )

    assert response.status_code == 400
    assert response.json()["success"] is False
    assert synth.texts == []
    assert not any(settings.output_dir.glob("*.wav"))


def test_generate_speech_interval_at_limit(settings) -> None:
    synth = StubSynthesizer()
    request = GenerateSpeechRequest(
        text="a\nb", target_language="US", voice_name="Kore", skip_translate=True, paragraph_interval=0.01
    )
    strict = settings.model_copy(update={"max_paragraph_interval_seconds": 0.01})

    result = asyncio.run(
        http_api.generate_speech(request, strict, StubTranslator(), SpeechGenerator(synth))  # type: ignore[arg-type]
    )

    assert result["success"] is True
    assert synth.texts == ["a", "b"]


# ---------------------------------------------------------------------------
# Uploads
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    ("filename", "mime"),
    [("notes.txt", "text/plain"), ("clip.mp3", "text/plain"), ("clip.exe", "audio/mpeg")],
)
def test_upload_filter_rejects_unsupported_files(settings, api_client, filename: str, mime: str) -> None:
    transcriber = StubTranscriber()
    with api_client(get_transcriber=transcriber) as client:
        response = client.post("/api/transcribe-audio", files={"audio": (filename, b"data", mime)})

    assert response.status_code == 415
    assert transcriber.paths == []
    assert list(settings.upload_dir.iterdir()) == []


def test_upload_over_size_limit_is_removed(settings, api_client) -> None:
    tiny = settings.model_copy(update={"max_upload_mb": 0})
    transcriber = StubTranscriber()
    with api_client(tiny, get_transcriber=transcriber) as client:
        response = client.post("/api/transcribe-audio", files={"audio": ("clip.mp3", b"x" * 64, "audio/mpeg")})

    assert response.status_code == 413
    assert transcriber.paths == []
    assert list(settings.upload_dir.iterdir()) == []


def test_transcribe_audio_removes_upload(settings, api_client) -> None:
    transcriber = StubTranscriber("hello")
    with api_client(get_transcriber=transcriber) as client:
        response = client.post("/api/transcribe-audio", files={"audio": ("clip.mp3", b"mp3-data", "audio/mpeg")})

    assert response.status_code == 200
    assert response.json()["transcription"] == "hello"
    assert transcriber.paths[0].parent == settings.upload_dir
    assert transcriber.paths[0].name.startswith("audio-")
    assert list(settings.upload_dir.iterdir()) == []


def test_transcribe_streams_progress_events(settings, api_client, monkeypatch: pytest.MonkeyPatch) -> None:
    extracted: List[tuple] = []

    async def fake_extract(media_path: Path, audio_path: Path) -> None:
        extracted.append((Path(media_path), Path(audio_path)))
        Path(audio_path).write_bytes(b"mp3")

    monkeypatch.setattr(http_api, "extract_audio_adaptive_async", fake_extract)
    transcriber = StubTranscriber("bonjour")
    with api_client(get_transcriber=transcriber) as client:
        response = client.post("/api/transcribe", files={"video": ("talk.mp4", b"video-bytes", "video/mp4")})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    events = _events(response.text)
    assert [e["type"] for e in events] == ["status", "status", "complete"]
    assert events[-1]["data"]["transcription"] == "bonjour"
    assert events[-1]["data"]["audioFileName"] == "talk.mp3"
    assert events[-1]["data"]["videoFileName"] == "talk.mp4"
    assert transcriber.paths == [settings.output_dir / "talk.mp3"]
    assert extracted[0][0].parent == settings.upload_dir
    assert list(settings.upload_dir.iterdir()) == []
    assert (settings.output_dir / "talk.mp3").exists()


def test_transcribe_reports_error_event(settings, api_client, monkeypatch: pytest.MonkeyPatch) -> None:
    from voxlate.core.ffmpeg_utils import AudioExtractionError

    async def broken_extract(media_path: Path, audio_path: Path) -> None:
        raise AudioExtractionError("no audio stream found")

    monkeypatch.setattr(http_api, "extract_audio_adaptive_async", broken_extract)
    transcriber = StubTranscriber()
    with api_client(get_transcriber=transcriber) as client:
        response = client.post("/api/transcribe", files={"video": ("talk.mp4", b"video-bytes", "video/mp4")})

    events = _events(response.text)
    assert [e["type"] for e in events] == ["status", "error"]
    assert "no audio stream" in events[-1]["data"]
    assert transcriber.paths == []
    assert list(settings.upload_dir.iterdir()) == []
