"""Realtime voice session management.

A :class:`RealtimeVoiceService` owns at most one :class:`VoiceSession` at a
time. Starting a session captures the microphone, negotiates a WebRTC peer
connection with the realtime endpoint through the signaling relay and opens
the ``oai-events`` data channel used for control messages. Remote audio is
handed to a playback sink.

Observers subscribe to the service like any pyee emitter::

    service = RealtimeVoiceService()
    service.on("debug", print)
    service.on("error", lambda exc: print("error:", exc))
    await service.start()

Emitted events: ``debug`` (str), ``error`` (Exception), ``recordingStarted``
and ``recordingStopped``.
"""
from __future__ import annotations

import asyncio
import inspect
import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Union

from aiortc import RTCPeerConnection, RTCSessionDescription
from aiortc.contrib.media import MediaPlayer, MediaRecorder
from pyee.asyncio import AsyncIOEventEmitter
from typing_extensions import assert_never

from ..models.realtime_events import (
    ClientEvent,
    IgnoredEvent,
    ResponseCreateEvent,
    ResponseStatus,
    SessionConfig,
    SessionUpdateEvent,
    ToolInvocation,
    decode_server_event,
    function_call_output,
)
from .signaling import SignalingClient
from .tools import ToolRegistry, default_registry

from ..config import settings

logger = logging.getLogger(__name__)

DATA_CHANNEL_LABEL = "oai-events"

DEBUG = "debug"
ERROR = "error"
RECORDING_STARTED = "recordingStarted"
RECORDING_STOPPED = "recordingStopped"


class SessionState(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    ACTIVE = "active"
    CLOSED = "closed"


class VoiceSessionError(RuntimeError):
    """Failure reported to observers through the ``error`` event."""


class _SessionClosed(Exception):
    """The session was stopped while ``start()`` was suspended."""


@dataclass(frozen=True)
class AudioConstraints:
    """Capture settings tuned for speech recognition."""

    channel_count: int = 1
    sample_rate: int = 24_000
    echo_cancellation: bool = True
    noise_suppression: bool = True
    auto_gain_control: bool = True


async def open_microphone(constraints: AudioConstraints) -> MediaPlayer:
    """Open the configured capture device through ffmpeg.

    ffmpeg exposes no echo-cancel or noise-suppression switches; point
    ``AUDIO_INPUT_DEVICE`` at a processed source (e.g. PulseAudio's
    ``module-echo-cancel``) to honour those constraints.
    """

    options = {
        "channels": str(constraints.channel_count),
        "sample_rate": str(constraints.sample_rate),
    }
    device_side = [
        name
        for name, enabled in (
            ("echo cancellation", constraints.echo_cancellation),
            ("noise suppression", constraints.noise_suppression),
            ("auto gain control", constraints.auto_gain_control),
        )
        if enabled
    ]
    if device_side:
        logger.warning(
            "%s requested; ffmpeg cannot apply them, so %s must already be a processed source",
            ", ".join(device_side),
            settings.audio_input_device,
        )
    return await asyncio.to_thread(
        MediaPlayer,
        settings.audio_input_device,
        format=settings.audio_input_format,
        options=options,
    )


async def open_speaker() -> MediaRecorder:
    """Playback sink writing remote audio to the configured output device."""

    return await asyncio.to_thread(
        MediaRecorder,
        settings.audio_output_device,
        format=settings.audio_output_format,
    )


CaptureFactory = Callable[[AudioConstraints], Union[Any, Awaitable[Any]]]


def _capture_tracks(capture: Any) -> list[Any]:
    return [track for track in (getattr(capture, "audio", None), getattr(capture, "video", None)) if track]


@dataclass
class VoiceSession:
    """Resources and lifecycle state of one realtime voice exchange."""

    session_id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    state: SessionState = SessionState.IDLE
    peer_connection: Any = None
    data_channel: Any = None
    capture: Any = None
    playback: Any = None
    worker: Optional[asyncio.Task] = None
    inbox: asyncio.Queue = field(default_factory=asyncio.Queue)
    # recordingStarted was emitted for this session
    started: bool = False
    handled_calls: set[str] = field(default_factory=set)

    @property
    def handles_released(self) -> bool:
        return all(
            handle is None
            for handle in (self.peer_connection, self.data_channel, self.capture, self.playback, self.worker)
        )


class RealtimeVoiceService(AsyncIOEventEmitter):
    """Handles lifecycle of OpenAI Realtime voice sessions over WebRTC."""

    def __init__(
        self,
        *,
        tools: Optional[ToolRegistry] = None,
        signaling: Optional[SignalingClient] = None,
        instructions: Optional[str] = None,
        model: Optional[str] = None,
        constraints: AudioConstraints = AudioConstraints(),
        peer_connection_factory: Callable[[], Any] = RTCPeerConnection,
        capture_factory: CaptureFactory = open_microphone,
        playback_factory: Callable[[], Union[Any, Awaitable[Any]]] = open_speaker,
    ) -> None:
        super().__init__()
        self._tools = tools if tools is not None else default_registry()
        self._signaling = signaling or SignalingClient()
        self._instructions = instructions or settings.realtime_instructions
        self._model = model or settings.realtime_model
        self._constraints = constraints
        self._peer_connection_factory = peer_connection_factory
        self._capture_factory = capture_factory
        self._playback_factory = playback_factory
        self._session: Optional[VoiceSession] = None

    @property
    def session(self) -> Optional[VoiceSession]:
        return self._session

    @property
    def state(self) -> SessionState:
        return self._session.state if self._session else SessionState.IDLE

    @property
    def is_recording(self) -> bool:
        return self.state is SessionState.ACTIVE

    # -- lifecycle ------------------------------------------------------------

    async def start(self) -> None:
        """Open a new realtime session.

        Failures are reported through the ``error`` event and leave the
        session ``closed``; nothing is raised to the caller.
        """

        if self._session and self._session.state in (SessionState.CONNECTING, SessionState.ACTIVE):
            self._debug("Session already running; ignoring start request")
            return

        session = VoiceSession(state=SessionState.CONNECTING)
        self._session = session
        logger.info(f"[Session {session.session_id}] Starting realtime voice session (model={self._model})")

        try:
            await self._connect(session)
        except _SessionClosed:
            logger.info(f"[Session {session.session_id}] Stopped while connecting; releasing late resources")
            await self._release(session)
        except Exception as exc:
            if session.state is SessionState.CLOSED:
                logger.info(f"[Session {session.session_id}] Connect aborted after stop: {exc}")
                await self._release(session)
                return
            error = VoiceSessionError(f"Failed to start recording: {exc}")
            error.__cause__ = exc
            self._emit_error(error)
            await self._teardown(session)

    async def stop(self) -> None:
        """Terminate the realtime session and clean up resources."""

        session = self._session
        if session is None or session.state in (SessionState.IDLE, SessionState.CLOSED):
            return
        await self._teardown(session)

    async def drain(self) -> None:
        """Wait until every message received so far has been handled."""

        session = self._session
        if session is None or session.worker is None or session.worker.done():
            return
        await session.inbox.join()

    async def _connect(self, session: VoiceSession) -> None:
        self._debug("Initializing WebRTC connection...")
        pc = self._peer_connection_factory()
        session.peer_connection = pc

        @pc.on("connectionstatechange")
        def on_connection_state_change() -> None:
            self._debug(f"WebRTC connection state: {pc.connectionState}")

        @pc.on("iceconnectionstatechange")
        def on_ice_connection_state_change() -> None:
            self._debug(f"ICE connection state: {pc.iceConnectionState}")

        playback = self._playback_factory()
        if inspect.isawaitable(playback):
            playback = await playback
        session.playback = playback
        self._ensure_open(session)

        @pc.on("track")
        async def on_track(track: Any) -> None:
            sink = session.playback
            if sink is None or track.kind != "audio":
                return
            self._debug("Received audio track from OpenAI")
            try:
                sink.addTrack(track)
                await sink.start()
            except Exception as exc:
                self._emit_error(VoiceSessionError(f"Failed to play remote audio: {exc}"))

        capture = self._capture_factory(self._constraints)
        if inspect.isawaitable(capture):
            capture = await capture
        session.capture = capture
        self._ensure_open(session)

        for track in _capture_tracks(capture):
            pc.addTrack(track)

        channel = pc.createDataChannel(DATA_CHANNEL_LABEL)
        session.data_channel = channel
        self._bind_channel(session, channel)

        self._debug("Creating WebRTC offer...")
        offer = await pc.createOffer()
        self._ensure_open(session)
        await pc.setLocalDescription(offer)
        self._ensure_open(session)

        self._debug("Sending offer to OpenAI...")
        local_sdp = pc.localDescription.sdp if pc.localDescription else offer.sdp
        answer_sdp = await self._signaling.exchange(local_sdp, self._model)
        self._ensure_open(session)

        self._debug("Received OpenAI answer, establishing connection...")
        await pc.setRemoteDescription(RTCSessionDescription(sdp=answer_sdp, type="answer"))
        self._ensure_open(session)

        session.state = SessionState.ACTIVE
        session.started = True
        self.emit(RECORDING_STARTED)
        self._debug("Recording session started successfully")

    @staticmethod
    def _ensure_open(session: VoiceSession) -> None:
        if session.state is SessionState.CLOSED:
            raise _SessionClosed()

    async def _teardown(self, session: VoiceSession) -> None:
        self._debug("Attempting to stop recording and clean up resources...")
        session.state = SessionState.CLOSED
        await self._release(session)
        if session.started:
            self.emit(RECORDING_STOPPED)
        self._debug("Recording session stopped and state reset.")

    async def _release(self, session: VoiceSession) -> None:
        """Release every handle; a failing step does not skip the others."""

        worker, session.worker = session.worker, None
        if worker is not None and worker is not asyncio.current_task():
            worker.cancel()
        # Unblock drain() callers waiting on messages that will never run.
        while True:
            try:
                session.inbox.get_nowait()
            except asyncio.QueueEmpty:
                break
            session.inbox.task_done()

        try:
            if session.data_channel is not None:
                await self._attempt(session.data_channel.close)
            for track in _capture_tracks(session.capture):
                await self._attempt(track.stop)
            if session.peer_connection is not None:
                await self._attempt(session.peer_connection.close)
            if session.playback is not None:
                await self._attempt(session.playback.stop)
        finally:
            session.data_channel = None
            session.capture = None
            session.peer_connection = None
            session.playback = None

    async def _attempt(self, action: Callable[[], Any]) -> None:
        try:
            result = action()
            if inspect.isawaitable(result):
                await result
        except Exception as exc:
            error = VoiceSessionError(f"Error during resource cleanup: {exc}")
            error.__cause__ = exc
            self._emit_error(error)

    # -- control messages -----------------------------------------------------

    def _bind_channel(self, session: VoiceSession, channel: Any) -> None:
        @channel.on("open")
        def on_open() -> None:
            self._send_session_update(session)

        @channel.on("message")
        def on_message(message: Union[str, bytes]) -> None:
            if session.state is SessionState.CLOSED:
                return
            session.inbox.put_nowait(message)

        @channel.on("close")
        def on_close() -> None:
            self._debug("Data channel closed")

        session.worker = asyncio.create_task(self._consume(session))

    async def _consume(self, session: VoiceSession) -> None:
        # One message at a time so tool results go out in request order.
        # A tool may stop the session; the worker exits after that message.
        while session.state is not SessionState.CLOSED:
            message = await session.inbox.get()
            try:
                await self._handle_message(session, message)
            finally:
                session.inbox.task_done()

    async def _handle_message(self, session: VoiceSession, message: Union[str, bytes]) -> None:
        try:
            event = decode_server_event(message)
            if isinstance(event, ToolInvocation):
                await self._handle_tool_invocation(session, event)
            elif isinstance(event, ResponseStatus):
                if event.failed:
                    self._emit_error(VoiceSessionError(event.error_message or "Response failed"))
            elif isinstance(event, IgnoredEvent):
                logger.debug(f"[Session {session.session_id}] Ignoring server event {event.type}")
            else:
                assert_never(event)
        except Exception as exc:
            self._emit_error(exc)

    async def _handle_tool_invocation(self, session: VoiceSession, call: ToolInvocation) -> None:
        if call.call_id:
            if call.call_id in session.handled_calls:
                logger.debug(f"[Session {session.session_id}] Call {call.call_id} already answered")
                return
            session.handled_calls.add(call.call_id)

        self._debug(f"Running tool {call.name} for call {call.call_id}")
        try:
            envelope = await self._tools.invoke(call.name, call.arguments)
        except Exception as exc:
            logger.exception(f"[Session {session.session_id}] Tool {call.name} raised")
            error = VoiceSessionError(f"Tool {call.name} failed: {exc}")
            error.__cause__ = exc
            self._emit_error(error)
            envelope = {"success": False, "error": str(exc)}

        self._send_event(session, function_call_output(call.call_id, envelope))
        self._send_event(session, ResponseCreateEvent())

    def _send_session_update(self, session: VoiceSession) -> None:
        self._send_event(
            session,
            SessionUpdateEvent(
                session=SessionConfig(instructions=self._instructions, tools=self._tools.schemas())
            ),
        )

    def _send_event(self, session: VoiceSession, event: ClientEvent) -> None:
        channel = session.data_channel
        if channel is None or channel.readyState != "open":
            logger.warning(f"[Session {session.session_id}] Data channel not open; dropping {event.type}")
            return
        channel.send(event.to_wire())
        logger.debug(f"[Session {session.session_id}] Sent {event.type}")

    # -- signals --------------------------------------------------------------

    def _debug(self, message: str) -> None:
        session_id = self._session.session_id if self._session else "-"
        logger.debug(f"[Session {session_id}] {message}")
        self.emit(DEBUG, message)

    def _emit_error(self, error: Exception) -> None:
        session_id = self._session.session_id if self._session else "-"
        logger.error(f"[Session {session_id}] {error}")
        # pyee raises unhandled "error" events; observers are optional here.
        if self.listeners(ERROR):
            self.emit(ERROR, error)


async def main() -> None:  # pragma: no cover - manual utility
    logging.basicConfig(level=settings.log_level)
    service = RealtimeVoiceService()
    service.on(DEBUG, lambda message: logger.info("debug: %s", message))
    service.on(ERROR, lambda error: logger.error("error: %s", error))
    await service.start()
    try:
        while service.is_recording:
            await asyncio.sleep(1)
    finally:
        await service.stop()


if __name__ == "__main__":  # pragma: no cover - manual utility
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
