"""Microphone and speech-output collaborators for the assistant widget.

The service never records or plays sound itself. The browser streams recorded
chunks up to a ``StreamedAudioCapture`` and fetches the text to speak from a
``ClientPlayback``, reporting back when playback ends.
"""
from typing import Callable, Protocol

from storefront.services.errors import CaptureUnavailable


class AudioCapture(Protocol):
    def start(self) -> None: ...

    def stop(self) -> bytes: ...


class SpeechSynthesizer(Protocol):
    def speak(self, text: str, on_end: Callable[[], None]) -> None: ...

    def cancel(self) -> None: ...


class StreamedAudioCapture:
    """Buffers audio chunks uploaded by the browser while a capture is open."""

    def __init__(self, max_bytes: int = 10 * 1024 * 1024):
        self.max_bytes = max_bytes
        self._chunks: list[bytes] | None = None
        self._size = 0

    @property
    def active(self) -> bool:
        return self._chunks is not None

    def start(self):
        if self._chunks is not None:
            raise CaptureUnavailable("microphone already in use")
        self._chunks = []
        self._size = 0

    def feed(self, chunk: bytes):
        if self._chunks is None:
            raise CaptureUnavailable("no capture in progress")
        if self._size + len(chunk) > self.max_bytes:
            raise CaptureUnavailable("recording too large")
        self._chunks.append(chunk)
        self._size += len(chunk)

    def stop(self) -> bytes:
        chunks, self._chunks = self._chunks or [], None
        self._size = 0
        return b"".join(chunks)


class ClientPlayback:
    """Holds the utterance the browser should speak until it reports completion."""

    def __init__(self):
        self.pending: str | None = None
        self._on_end: Callable[[], None] | None = None

    def speak(self, text: str, on_end: Callable[[], None]):
        self.pending = text
        self._on_end = on_end

    def finish(self):
        on_end, self._on_end = self._on_end, None
        self.pending = None
        if on_end is not None:
            on_end()

    def cancel(self):
        self.pending = None
        self._on_end = None
