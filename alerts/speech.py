"""Text-to-speech alert output."""
import logging
import os
import tempfile
import threading
import uuid

logger = logging.getLogger(__name__)


class Speaker:
    """
    Speaks alert messages with gTTS and pygame.

    A new utterance stops the one in flight. Every failure is logged and
    swallowed: speech is never critical.
    """

    def __init__(self, enabled: bool = False):
        self.enabled = enabled
        self._lock = threading.Lock()
        self._mixer_ready = False
        self._current_file = None

    def set_enabled(self, enabled: bool):
        self.enabled = bool(enabled)
        if not self.enabled:
            self.cancel()

    def speak(self, text: str) -> bool:
        """Speak ``text`` if enabled; returns whether playback started."""
        if not self.enabled or not isinstance(text, str) or not text.strip():
            return False
        with self._lock:
            try:
                self._cancel_locked()
                filepath = self._synthesize(text)
                self._play(filepath)
                return True
            except Exception as e:
                logger.debug("Speech output failed: %s", e)
                return False

    def cancel(self):
        with self._lock:
            try:
                self._cancel_locked()
            except Exception as e:
                logger.debug("Speech cancel failed: %s", e)

    def _synthesize(self, text: str) -> str:
        import gtts

        filepath = os.path.join(tempfile.gettempdir(), f"fib_alert_{uuid.uuid4().hex[:8]}.mp3")
        gtts.gTTS(text).save(filepath)
        return filepath

    def _play(self, filepath: str):
        import pygame

        if not self._mixer_ready:
            pygame.mixer.init()
            self._mixer_ready = True
        pygame.mixer.music.load(filepath)
        pygame.mixer.music.play()
        self._current_file = filepath

    def _cancel_locked(self):
        if self._mixer_ready:
            import pygame

            pygame.mixer.music.stop()
            pygame.mixer.music.unload()
        if self._current_file:
            try:
                os.remove(self._current_file)
            except OSError:
                pass
            self._current_file = None
