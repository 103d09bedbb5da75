"""Optional speech input/output behind one small capability interface.

The widget never talks to a platform speech API directly. It gets a
:class:`VoiceIO` from :func:`select_voice`: either :class:`EngineVoice`, which
drives a recognition engine and a speech engine supplied by the host, or
:class:`UnavailableVoice` when no recognizer exists or voice is turned off.

Engines report back through the ``on_*`` methods of :class:`EngineVoice`.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Optional, Protocol

logger = logging.getLogger(__name__)

SPEECH_ERROR_MESSAGE = "Sorry, I couldn't hear that. Please try again."


class CaptureState(str, Enum):
    idle = "idle"
    listening = "listening"


# -----------------------------
# Engine & listener protocols
# -----------------------------
class RecognitionEngine(Protocol):
    def start(self) -> None: ...

    def stop(self) -> None: ...


class SpeechEngine(Protocol):
    def speak(self, text: str) -> Any: ...

    def cancel(self) -> None: ...


class VoiceListener(Protocol):
    def on_interim(self, transcript: str) -> None: ...

    def on_final(self, transcript: str) -> None: ...

    def on_listening(self, listening: bool) -> None: ...

    def on_speaking(self, speaking: bool) -> None: ...

    def on_error(self, message: str) -> None: ...


class VoiceIO(Protocol):
    available: bool
    is_listening: bool
    is_speaking: bool

    def start_capture(self) -> None: ...

    def stop_capture(self) -> None: ...

    def speak(self, text: str) -> None: ...


# -----------------------------
# Variants
# -----------------------------
class UnavailableVoice:
    """No speech support: every operation is a no-op."""

    available = False
    is_listening = False
    is_speaking = False

    def start_capture(self) -> None:
        pass

    def stop_capture(self) -> None:
        pass

    def speak(self, text: str) -> None:
        pass


class EngineVoice:
    """Speech capture/playback on top of host-provided engines.

    Capture follows ``idle --start--> listening --final|stop--> idle``; an
    error from the recognizer also returns to ``idle`` and surfaces
    :data:`SPEECH_ERROR_MESSAGE`. Playback keeps at most one utterance: a new
    :meth:`speak` cancels whatever is still playing.
    """

    available = True

    def __init__(
        self,
        recognizer: RecognitionEngine,
        synthesizer: Optional[SpeechEngine],
        listener: VoiceListener,
    ) -> None:
        self.recognizer = recognizer
        self.synthesizer = synthesizer
        self.listener = listener
        self.state = CaptureState.idle
        self.is_speaking = False
        self._utterance: Any = None

    @property
    def is_listening(self) -> bool:
        return self.state is CaptureState.listening

    # --------- capture ----------
    def start_capture(self) -> None:
        if self.state is CaptureState.listening:
            return
        self.recognizer.start()

    def stop_capture(self) -> None:
        if self.state is CaptureState.listening:
            self.recognizer.stop()
            self.on_end()

    def on_start(self) -> None:
        self.state = CaptureState.listening
        self.listener.on_listening(True)

    def on_result(self, transcript: str, is_final: bool) -> None:
        if self.state is not CaptureState.listening:
            return
        if is_final:
            self.listener.on_final(transcript)
            self.on_end()
        elif transcript:
            self.listener.on_interim(transcript)

    def on_end(self) -> None:
        if self.state is CaptureState.idle:
            return
        self.state = CaptureState.idle
        self.listener.on_listening(False)

    def on_error(self, reason: str) -> None:
        logger.error("speech recognition error: %s", reason)
        self.on_end()
        self.listener.on_error(SPEECH_ERROR_MESSAGE)

    # --------- playback ----------
    def speak(self, text: str) -> None:
        if self.synthesizer is None:
            return
        self.synthesizer.cancel()
        if self.is_speaking:
            self.is_speaking = False
            self.listener.on_speaking(False)
        self._utterance = self.synthesizer.speak(text)

    def on_speech_start(self, utterance: Any = None) -> None:
        if utterance is not None and utterance is not self._utterance:
            return
        self.is_speaking = True
        self.listener.on_speaking(True)

    def on_speech_end(self, utterance: Any = None) -> None:
        # A cancelled utterance may still report its end; ignore it.
        if utterance is not None and utterance is not self._utterance:
            return
        self._utterance = None
        if self.is_speaking:
            self.is_speaking = False
            self.listener.on_speaking(False)


def select_voice(
    enabled: bool,
    listener: VoiceListener,
    recognizer: Optional[RecognitionEngine] = None,
    synthesizer: Optional[SpeechEngine] = None,
) -> VoiceIO:
    """Feature detection: fall back to :class:`UnavailableVoice` when needed."""
    if not enabled:
        return UnavailableVoice()
    if recognizer is None:
        logger.warning("Speech recognition not supported, voice controls disabled")
        return UnavailableVoice()
    return EngineVoice(recognizer, synthesizer, listener)
