from __future__ import annotations

from types import SimpleNamespace

import pytest

from app.dependencies import get_openai_client
from app.services import transcription


class FakeOpenAI:
    """Records calls made through the synchronous OpenAI client surface."""

    def __init__(self, *, translation="Xin chào", transcript="Hello there", error=None):  # noqa: ANN001
        self.translation = translation
        self.transcript = transcript
        self.error = error
        self.completion_calls = []
        self.transcription_calls = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._complete))
        self.audio = SimpleNamespace(transcriptions=SimpleNamespace(create=self._transcribe))

    def _complete(self, **kwargs):  # noqa: ANN003
        self.completion_calls.append(kwargs)
        if self.error:
            raise self.error
        message = SimpleNamespace(content=self.translation)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])

    def _transcribe(self, **kwargs):  # noqa: ANN003
        self.transcription_calls.append(kwargs)
        return self.transcript


@pytest.fixture
def fake_openai(api_client):
    def install(**kwargs):  # noqa: ANN003
        client = FakeOpenAI(**kwargs)
        api_client.app.dependency_overrides[get_openai_client] = lambda: client
        return client

    return install


def test_translate_text_returns_camel_case_payload(api_client, fake_openai) -> None:
    client = fake_openai(translation="  Xin chào  ")

    resp = api_client.post("/api/translate-text", json={"text": " Hello ", "direction": "en-to-vi"})

    assert resp.status_code == 200
    assert resp.json() == {
        "originalText": "Hello",
        "translatedText": "Xin chào",
        "direction": "en-to-vi",
        "success": True,
    }
    (call,) = client.completion_calls
    assert call["model"] == "gpt-4o"
    assert call["temperature"] == 0.3
    assert "from English to Vietnamese" in call["messages"][0]["content"]
    assert call["messages"][1] == {"role": "user", "content": " Hello "}


@pytest.mark.parametrize(
    "payload, message",
    [
        ({"direction": "en-to-vi"}, "No text provided"),
        ({"text": 42, "direction": "en-to-vi"}, "No text provided"),
        ({"text": "Hello", "direction": "en-to-fr"}, "Invalid translation direction"),
        ({"text": "Hello", "direction": "vi-to-ru"}, "Invalid translation direction"),
    ],
)
def test_translate_text_validation(api_client, fake_openai, payload, message) -> None:  # noqa: ANN001
    fake_openai()
    resp = api_client.post("/api/translate-text", json=payload)
    assert resp.status_code == 400
    assert resp.json() == {"error": message}


def test_translate_text_empty_model_output_falls_back(api_client, fake_openai) -> None:
    fake_openai(translation=None)
    resp = api_client.post("/api/translate-text", json={"text": "Chào", "direction": "vi-to-en"})
    assert resp.json()["translatedText"] == "Translation failed"


def test_translate_text_upstream_failure(api_client, fake_openai) -> None:
    fake_openai(error=RuntimeError("rate limited"))
    resp = api_client.post("/api/translate-text", json={"text": "Chào", "direction": "vi-to-en"})
    assert resp.status_code == 500
    assert resp.json() == {"error": "rate limited"}


def test_transcribe_translate_round_trip(api_client, fake_openai) -> None:
    client = fake_openai(transcript=" Привет ", translation="Xin chào")

    resp = api_client.post(
        "/api/transcribe-translate",
        files={"file": ("blob", b"\x00" * 2048, "audio/webm;codecs=opus")},
        data={"direction": "ru-to-vi"},
    )

    assert resp.status_code == 200
    assert resp.json() == {
        "originalText": "Привет",
        "translatedText": "Xin chào",
        "direction": "ru-to-vi",
        "success": True,
    }
    (call,) = client.transcription_calls
    assert call["model"] == "gpt-4o-transcribe"
    assert call["language"] == "ru"
    assert call["response_format"] == "text"
    assert call["temperature"] == 0.0
    assert call["file"][0] == "recording.webm"
    assert call["file"][2] == "audio/webm"
    assert "Russian speech" in call["prompt"]
    assert client.completion_calls[0]["messages"][1]["content"] == "Привет"


def test_transcribe_translate_requires_file(api_client, fake_openai) -> None:
    fake_openai()
    resp = api_client.post("/api/transcribe-translate", data={"direction": "vi-to-en"})
    assert resp.status_code == 400
    assert resp.json() == {"error": "No audio file provided"}


def test_transcribe_translate_rejects_bad_direction(api_client, fake_openai) -> None:
    fake_openai()
    resp = api_client.post(
        "/api/transcribe-translate",
        files={"file": ("clip.wav", b"\x00" * 2048, "audio/wav")},
        data={"direction": "sideways"},
    )
    assert resp.status_code == 400
    assert resp.json() == {"error": "Invalid translation direction"}


def test_transcribe_translate_rejects_oversized_audio(api_client, fake_openai, monkeypatch) -> None:  # noqa: ANN001
    client = fake_openai()
    monkeypatch.setattr(transcription, "MAX_AUDIO_BYTES", 1024)

    resp = api_client.post(
        "/api/transcribe-translate",
        files={"file": ("clip.wav", b"\x00" * 2048, "audio/wav")},
        data={"direction": "vi-to-en"},
    )

    assert resp.status_code == 400
    assert resp.json() == {"error": "Audio file too large. Maximum size is 25MB."}
    assert client.transcription_calls == []


def test_transcribe_translate_reports_silence(api_client, fake_openai) -> None:
    client = fake_openai(transcript="   ")

    resp = api_client.post(
        "/api/transcribe-translate",
        files={"file": ("clip.mp4", b"\x00" * 2048, "audio/mp4")},
        data={"direction": "en-to-vi"},
    )

    assert resp.status_code == 400
    assert resp.json()["error"].startswith("No speech detected in audio.")
    assert client.completion_calls == []


@pytest.mark.parametrize(
    "filename, content_type, expected",
    [
        ("take.webm", "audio/webm", ("take.webm", "audio/webm")),
        (None, "audio/wav", ("recording.wav", "audio/wav")),
        ("voice.m4a", "audio/mp4", ("recording.mp4", "audio/mp4")),
        ("voice.ogg", "audio/ogg", ("recording.mp4", "audio/mp4")),
    ],
)
def test_normalize_upload(filename, content_type, expected) -> None:  # noqa: ANN001
    upload = transcription.normalize_upload(filename, content_type, b"")
    assert (upload.filename, upload.content_type) == expected


def test_suspicious_transcripts_are_detected() -> None:
    assert transcription.looks_suspicious(" ... ")
    assert transcription.looks_suspicious("Um.")
    assert not transcription.looks_suspicious("Umbrella")
