import html
import logging
import os
import re
import tempfile
import threading
from typing import Optional

import bleach
import pyttsx3
from fastapi import HTTPException
from starlette.concurrency import run_in_threadpool

from services.posts import PostService

logger = logging.getLogger(__name__)

# tags that end a line or paragraph when read aloud
BLOCK_TAG = re.compile(
    r"<\s*/?\s*(p|div|br|hr|h[1-6]|li|ul|ol|blockquote|pre|tr|td|th|table|section|article|header|footer)\b[^>]*>",
    re.IGNORECASE,
)


class SpeechSynthesizer:
    """Wraps the OS speech engine with a fixed voice profile"""

    VOICE_GENDER = "female"
    # SAPI5 voices carry no gender, only a name
    FEMALE_VOICE_NAMES = ("zira", "hazel", "susan", "helena", "hortense", "katja", "elsa", "haruka", "huihui", "heera")
    VOLUME = 1.0
    RATE = 200  # words per minute

    def __init__(self, driver_name: Optional[str] = None):
        self.driver_name = driver_name
        # the engine keeps a single event loop per driver and isn't reentrant
        self._lock = threading.Lock()

    def _select_voice(self, engine) -> None:
        for voice in engine.getProperty("voices") or []:
            gender = (getattr(voice, "gender", None) or "").lower()
            name = (getattr(voice, "name", None) or "").lower()
            if self.VOICE_GENDER in gender or self.VOICE_GENDER in name:
                engine.setProperty("voice", voice.id)
                return

        for voice in engine.getProperty("voices") or []:
            name = (getattr(voice, "name", None) or "").lower()
            if any(known in name for known in self.FEMALE_VOICE_NAMES):
                engine.setProperty("voice", voice.id)
                return

    def synthesize(self, text: str) -> bytes:
        """
        Speak text into a WAV waveform

        Args:
            text: Plain text to read aloud

        Returns:
            The WAV file contents
        """
        fd, path = tempfile.mkstemp(suffix=".wav")
        os.close(fd)
        try:
            with self._lock:
                engine = pyttsx3.init(self.driver_name)
                self._select_voice(engine)
                engine.setProperty("volume", self.VOLUME)
                engine.setProperty("rate", self.RATE)
                engine.save_to_file(text, path)
                engine.runAndWait()
                engine.stop()

            with open(path, "rb") as f:
                return f.read()
        finally:
            os.remove(path)


class TextReaderService:
    def __init__(self, post_service: PostService, synthesizer: SpeechSynthesizer):
        self.post_service = post_service
        self.synthesizer = synthesizer

    @staticmethod
    def to_plain_text(content: str) -> str:
        """Strip HTML markup so only the readable text reaches the speech engine"""
        spaced = BLOCK_TAG.sub(" ", content or "")
        text = html.unescape(bleach.clean(spaced, tags=set(), strip=True))
        return " ".join(text.split())

    async def read_post(self, post_id: str) -> bytes:
        """
        Generate audio for a post's content

        Raises:
            HTTPException: 404 if the post is missing or has nothing to read,
                500 if the speech engine fails
        """
        post = await run_in_threadpool(self.post_service.get, post_id)

        text = self.to_plain_text(post.content)
        if not text:
            raise HTTPException(status_code=404, detail="Post content is empty and cannot be read")

        try:
            audio = await run_in_threadpool(self.synthesizer.synthesize, text)
        except Exception as e:
            logger.exception("Speech synthesis failed for post %s", post_id)
            raise HTTPException(status_code=500, detail=f"Failed to generate audio: {str(e)}")

        if not audio:
            raise HTTPException(status_code=500, detail="Failed to generate audio: engine produced no output")
        return audio
