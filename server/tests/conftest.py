from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

import httpx
import pytest
from aiortc import RTCSessionDescription
from fastapi.testclient import TestClient
from pyee.asyncio import AsyncIOEventEmitter

from app.services.realtime_voice import (
    DEBUG,
    ERROR,
    RECORDING_STARTED,
    RECORDING_STOPPED,
    RealtimeVoiceService,
)
from app.services.signaling import SignalingClient
from app.services.tools import ToolRegistry

OFFER_SDP = "v=0\r\no=- 1 1 IN IP4 127.0.0.1\r\ns=offer\r\n"
ANSWER_SDP = "v=0\r\no=- 2 2 IN IP4 127.0.0.1\r\ns=answer\r\n"
RELAY_URL = "http://relay.test/api/open-ai-realtime"


class FakeTrack:
    kind = "audio"

    def __init__(self) -> None:
        self.stop_calls = 0

    def stop(self) -> None:
        self.stop_calls += 1


class FakeCapture:
    def __init__(self) -> None:
        self.audio = FakeTrack()
        self.video = None


class FakeDataChannel(AsyncIOEventEmitter):
    def __init__(self, label: str) -> None:
        super().__init__()
        self.label = label
        self.readyState = "connecting"
        self.sent: list[dict[str, Any]] = []
        self.close_calls = 0

    def send(self, data: str) -> None:
        self.sent.append(json.loads(data))

    def close(self) -> None:
        self.close_calls += 1
        self.readyState = "closed"

    def open(self) -> None:
        self.readyState = "open"
        self.emit("open")

    def deliver(self, message: Any) -> None:
        self.emit("message", message if isinstance(message, str) else json.dumps(message))


class FakePeerConnection(AsyncIOEventEmitter):
    def __init__(self, *, remote_error: Optional[Exception] = None, close_error: Optional[Exception] = None) -> None:
        super().__init__()
        self.remote_error = remote_error
        self.close_error = close_error
        self.tracks: list[Any] = []
        self.channel: Optional[FakeDataChannel] = None
        self.localDescription: Optional[RTCSessionDescription] = None
        self.remoteDescription: Optional[RTCSessionDescription] = None
        self.connectionState = "new"
        self.iceConnectionState = "new"
        self.close_calls = 0

    def addTrack(self, track: Any) -> None:
        self.tracks.append(track)

    def createDataChannel(self, label: str) -> FakeDataChannel:
        self.channel = FakeDataChannel(label)
        return self.channel

    async def createOffer(self) -> RTCSessionDescription:
        return RTCSessionDescription(sdp=OFFER_SDP, type="offer")

    async def setLocalDescription(self, description: RTCSessionDescription) -> None:
        self.localDescription = description

    async def setRemoteDescription(self, description: RTCSessionDescription) -> None:
        if self.remote_error is not None:
            raise self.remote_error
        self.remoteDescription = description

    async def close(self) -> None:
        self.close_calls += 1
        self.connectionState = "closed"
        if self.close_error is not None:
            raise self.close_error


class FakeSink:
    def __init__(self) -> None:
        self.tracks: list[Any] = []
        self.start_calls = 0
        self.stop_calls = 0

    def addTrack(self, track: Any) -> None:
        self.tracks.append(track)

    async def start(self) -> None:
        self.start_calls += 1

    async def stop(self) -> None:
        self.stop_calls += 1


class SignalRecorder:
    def __init__(self, service: RealtimeVoiceService) -> None:
        self.events: list[tuple[str, Any]] = []
        for name in (DEBUG, ERROR, RECORDING_STARTED, RECORDING_STOPPED):
            service.on(name, self._recorder(name))

    def _recorder(self, name: str) -> Callable[..., None]:
        def record(*args: Any) -> None:
            self.events.append((name, args[0] if args else None))

        return record

    def count(self, name: str) -> int:
        return sum(1 for event, _ in self.events if event == name)

    @property
    def errors(self) -> list[Exception]:
        return [payload for event, payload in self.events if event == ERROR]


@dataclass
class VoiceHarness:
    service: RealtimeVoiceService
    signals: SignalRecorder
    sink: FakeSink
    peer_connections: list[FakePeerConnection] = field(default_factory=list)
    relay_requests: list[httpx.Request] = field(default_factory=list)
    captures: list[FakeCapture] = field(default_factory=list)

    @property
    def pc(self) -> FakePeerConnection:
        return self.peer_connections[-1]

    @property
    def channel(self) -> FakeDataChannel:
        assert self.pc.channel is not None
        return self.pc.channel


@pytest.fixture
def voice_harness() -> Callable[..., VoiceHarness]:
    """Build a voice service wired to in-process fakes instead of aiortc and audio devices."""

    def build(
        *,
        tools: Optional[ToolRegistry] = None,
        relay_handler: Optional[Callable[[httpx.Request], httpx.Response]] = None,
        capture_factory: Optional[Callable[..., Any]] = None,
        remote_error: Optional[Exception] = None,
        close_error: Optional[Exception] = None,
    ) -> VoiceHarness:
        sink = FakeSink()
        peer_connections: list[FakePeerConnection] = []
        relay_requests: list[httpx.Request] = []
        captures: list[FakeCapture] = []

        def default_relay(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text=ANSWER_SDP, headers={"content-type": "application/sdp"})

        def relay(request: httpx.Request) -> httpx.Response:
            relay_requests.append(request)
            return (relay_handler or default_relay)(request)

        def pc_factory() -> FakePeerConnection:
            pc = FakePeerConnection(remote_error=remote_error, close_error=close_error)
            peer_connections.append(pc)
            return pc

        def default_capture(constraints: Any) -> FakeCapture:
            capture = FakeCapture()
            captures.append(capture)
            return capture

        service = RealtimeVoiceService(
            tools=tools,
            signaling=SignalingClient(relay_url=RELAY_URL, transport=httpx.MockTransport(relay)),
            instructions="Translate what you hear.",
            model="test-realtime-model",
            peer_connection_factory=pc_factory,
            capture_factory=capture_factory or default_capture,
            playback_factory=lambda: sink,
        )
        return VoiceHarness(
            service=service,
            signals=SignalRecorder(service),
            sink=sink,
            peer_connections=peer_connections,
            relay_requests=relay_requests,
            captures=captures,
        )

    return build


@pytest.fixture
def api_client():
    """TestClient whose dependency overrides are reset after each test."""

    from app.main import app

    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()
