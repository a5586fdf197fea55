"""Device adapters: camera, picked files, text-to-speech and microphone.

Blocking driver calls run in worker threads so the orchestrator loop keeps
serving timer ticks and recognizer callbacks.
"""

from __future__ import annotations

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Optional

import cv2
import pyttsx3
import speech_recognition as sr

from .errors import CaptureError, RecognitionError
from .interfaces import ErrorCallback, ResultCallback

LOGGER = logging.getLogger("walkguide.devices")


class OpenCVCamera:
    """Grab single JPEG frames from an OpenCV ``VideoCapture`` device."""

    def __init__(self, index: int = 0, *, jpeg_quality: int = 85) -> None:
        self.index = index
        self.jpeg_quality = jpeg_quality
        self._cap: cv2.VideoCapture | None = None

    def _open(self) -> cv2.VideoCapture:
        if self._cap is not None and self._cap.isOpened():
            return self._cap
        cap = cv2.VideoCapture(self.index)
        if not cap.isOpened():
            cap.release()
            raise CaptureError(f"Unable to open camera {self.index}")
        self._cap = cap
        LOGGER.info("Camera %d opened", self.index)
        return cap

    def _grab(self) -> bytes:
        try:
            return self._grab_frame()
        except cv2.error as exc:
            self.release()
            raise CaptureError(f"OpenCV error: {exc}") from exc

    def _grab_frame(self) -> bytes:
        cap = self._open()
        ret, frame = cap.read()
        if not ret or frame is None:
            # Reopen on the next attempt; a stuck device rarely recovers in place.
            self.release()
            raise CaptureError("Failed to read frame")
        ok, buffer = cv2.imencode(".jpg", frame, [cv2.IMWRITE_JPEG_QUALITY, self.jpeg_quality])
        if not ok:
            raise CaptureError("Failed to encode frame")
        return buffer.tobytes()

    async def capture(self) -> bytes:
        return await asyncio.to_thread(self._grab)

    def release(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None


class FileCapture:
    """Capture source for a user-picked image file."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path).expanduser()

    async def capture(self) -> bytes:
        try:
            return await asyncio.to_thread(self.path.read_bytes)
        except OSError as exc:
            raise CaptureError(f"Cannot read {self.path}: {exc}") from exc


class Pyttsx3Speech:
    """Offline text-to-speech; one worker thread owns the engine."""

    def __init__(self, *, rate: int | None = None, voice_hint: str | None = "ja") -> None:
        self.rate = rate
        self.voice_hint = voice_hint
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="tts")
        self._engine = None

    def _ensure_engine(self):
        if self._engine is None:
            engine = pyttsx3.init()
            if self.rate:
                engine.setProperty("rate", self.rate)
            if self.voice_hint:
                for voice in engine.getProperty("voices"):
                    languages = " ".join(str(lang) for lang in getattr(voice, "languages", []))
                    if self.voice_hint in voice.id.lower() or self.voice_hint in languages.lower():
                        engine.setProperty("voice", voice.id)
                        break
            self._engine = engine
        return self._engine

    def _speak_blocking(self, text: str) -> None:
        engine = self._ensure_engine()
        engine.say(text)
        engine.runAndWait()

    async def speak(self, text: str) -> None:
        if not text:
            return
        LOGGER.debug("TTS: %s", text[:30])
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(self._executor, self._speak_blocking, text)

    async def stop(self) -> None:
        if self._engine is not None:
            self._engine.stop()

    def close(self) -> None:
        self._executor.shutdown(wait=False)


class GoogleSpeechRecognizer:
    """One-shot command recognition with ``speech_recognition``.

    Audio is captured in the library's background thread; each phrase is sent
    to the Google web recognizer and reported as a final result. Unintelligible
    audio is reported as an empty final result, request failures through
    ``on_error``.
    """

    def __init__(self, *, phrase_time_limit: float = 5.0, device_index: int | None = None) -> None:
        self.phrase_time_limit = phrase_time_limit
        self.device_index = device_index
        self._recognizer = sr.Recognizer()
        self._microphone: sr.Microphone | None = None
        self._stopper = None

    @property
    def is_listening(self) -> bool:
        return self._stopper is not None

    def _prepare_microphone(self) -> sr.Microphone:
        if self._microphone is None:
            try:
                microphone = sr.Microphone(device_index=self.device_index)
                with microphone as source:
                    self._recognizer.adjust_for_ambient_noise(source, duration=0.5)
            except (OSError, AttributeError) as exc:
                raise RecognitionError(f"Microphone unavailable: {exc}") from exc
            self._microphone = microphone
        return self._microphone

    async def listen(
        self,
        locale: str,
        on_result: ResultCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> bool:
        if self._stopper is not None:
            return True
        microphone = await asyncio.to_thread(self._prepare_microphone)

        def _callback(recognizer: sr.Recognizer, audio: sr.AudioData) -> None:
            try:
                text = recognizer.recognize_google(audio, language=locale)
            except sr.UnknownValueError:
                on_result("", True)
            except sr.RequestError as exc:
                LOGGER.warning("Speech recognition request failed: %s", exc)
                if on_error is not None:
                    on_error(RecognitionError(str(exc)))
            else:
                on_result(text, True)

        self._stopper = self._recognizer.listen_in_background(
            microphone, _callback, phrase_time_limit=self.phrase_time_limit
        )
        LOGGER.info("Listening (%s)", locale)
        return True

    async def stop(self) -> None:
        stopper, self._stopper = self._stopper, None
        if stopper is not None:
            stopper(wait_for_stop=False)
            LOGGER.info("Stopped listening")


__all__ = [
    "OpenCVCamera",
    "FileCapture",
    "Pyttsx3Speech",
    "GoogleSpeechRecognizer",
]
