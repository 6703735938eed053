import base64
import logging
import secrets
import threading
import time
from dataclasses import dataclass

import requests

from .errors import FetchFailure
from .models import OutcomeKind

logger = logging.getLogger(__name__)

GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
CAPTCHA_PROMPT = "Extract the text from this CAPTCHA image. Return only the text."


class VisionCaptchaSolver:
    """Reads CAPTCHA images with the Gemini generateContent REST API."""

    def __init__(self, api_key, model="gemini-2.5-flash", timeout=30, session=None):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.session = session or requests

    def solve(self, image, mime_type="image/png"):
        if not self.api_key:
            raise FetchFailure(OutcomeKind.CAPTCHA_UNSOLVED, "No vision API key configured")

        payload = {
            "contents": [{
                "parts": [
                    {"text": CAPTCHA_PROMPT},
                    {"inlineData": {"mimeType": mime_type,
                                    "data": base64.b64encode(image).decode("ascii")}},
                ]
            }]
        }

        # key travels in a header, never in the URL
        try:
            response = self.session.post(
                GEMINI_URL.format(model=self.model),
                headers={"x-goog-api-key": self.api_key},
                json=payload,
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            raise FetchFailure(OutcomeKind.UPSTREAM_UNAVAILABLE, "Vision service unavailable",
                               detail=type(e).__name__) from e

        try:
            result = response.json()
        except ValueError as e:
            raise FetchFailure(OutcomeKind.CAPTCHA_UNSOLVED, "Vision service returned invalid JSON",
                               detail=type(e).__name__) from e

        text = _candidate_text(result)
        if not text:
            logger.warning("Vision service gave no usable CAPTCHA candidate")
            raise FetchFailure(OutcomeKind.CAPTCHA_UNSOLVED, "Failed to solve CAPTCHA. Please try again.")

        logger.info("🧠 CAPTCHA solved by vision model")
        return text


def _candidate_text(result):
    try:
        return result["candidates"][0]["content"]["parts"][0]["text"].strip()
    except (KeyError, IndexError, TypeError, AttributeError):
        return ""


@dataclass(frozen=True)
class Challenge:
    code: str
    expires_at: float


class ChallengeStore:
    """Numeric CAPTCHA codes handed to browser sessions, one per session id."""

    def __init__(self, ttl=300, clock=time.monotonic):
        self.ttl = ttl
        self.clock = clock
        self._challenges = {}
        self._lock = threading.Lock()

    def issue(self, session_id):
        code = f"{1000 + secrets.randbelow(9000)}"
        with self._lock:
            self._purge()
            self._challenges[session_id] = Challenge(code, self.clock() + self.ttl)
        logger.debug("New CAPTCHA issued for session %s", session_id)
        return code

    def verify(self, session_id, attempt):
        """Consume the session's challenge; True only if it is live and matches."""
        with self._lock:
            challenge = self._challenges.pop(session_id, None)
        if challenge is None or challenge.expires_at < self.clock():
            return False
        return secrets.compare_digest(challenge.code.encode(), str(attempt or "").strip().encode())

    def _purge(self):
        now = self.clock()
        for session_id in [k for k, c in self._challenges.items() if c.expires_at < now]:
            del self._challenges[session_id]

    def __len__(self):
        return len(self._challenges)
