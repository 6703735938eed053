import base64

import pytest
import requests

from case_fetcher.captcha import CAPTCHA_PROMPT, ChallengeStore, VisionCaptchaSolver
from case_fetcher.errors import FetchFailure
from case_fetcher.models import OutcomeKind


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self.payload


class FakeVisionSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def post(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if self.error:
            raise self.error
        return self.response


def _reply(text):
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def test_solver_sends_instruction_and_base64_image() -> None:
    session = FakeVisionSession(FakeResponse(_reply("  7XK2p \n")))
    solver = VisionCaptchaSolver("key-123", model="gemini-test", session=session)

    assert solver.solve(b"\x89PNG", mime_type="image/png") == "7XK2p"

    url, kwargs = session.calls[0]
    assert "gemini-test:generateContent" in url
    assert kwargs["headers"] == {"x-goog-api-key": "key-123"}
    assert "key-123" not in url
    assert "params" not in kwargs
    parts = kwargs["json"]["contents"][0]["parts"]
    assert parts[0]["text"] == CAPTCHA_PROMPT
    assert parts[1]["inlineData"] == {"mimeType": "image/png",
                                      "data": base64.b64encode(b"\x89PNG").decode("ascii")}


@pytest.mark.parametrize("payload", [{}, {"candidates": []}, _reply("   ")])
def test_solver_without_usable_candidate_is_unsolved(payload) -> None:
    solver = VisionCaptchaSolver("key", session=FakeVisionSession(FakeResponse(payload)))
    with pytest.raises(FetchFailure) as excinfo:
        solver.solve(b"img")
    assert excinfo.value.kind is OutcomeKind.CAPTCHA_UNSOLVED


def test_solver_network_error_is_upstream_unavailable() -> None:
    solver = VisionCaptchaSolver("key", session=FakeVisionSession(error=requests.Timeout("slow")))
    with pytest.raises(FetchFailure) as excinfo:
        solver.solve(b"img")
    assert excinfo.value.kind is OutcomeKind.UPSTREAM_UNAVAILABLE


def test_solver_http_error_is_upstream_unavailable() -> None:
    solver = VisionCaptchaSolver("key", session=FakeVisionSession(FakeResponse({}, status_code=503)))
    with pytest.raises(FetchFailure) as excinfo:
        solver.solve(b"img")
    assert excinfo.value.kind is OutcomeKind.UPSTREAM_UNAVAILABLE


def test_solver_without_api_key_does_not_call_out() -> None:
    session = FakeVisionSession(FakeResponse(_reply("abc")))
    with pytest.raises(FetchFailure):
        VisionCaptchaSolver(None, session=session).solve(b"img")
    assert session.calls == []


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_challenge_codes_are_four_digits() -> None:
    store = ChallengeStore()
    code = store.issue("session-a")
    assert len(code) == 4 and code.isdigit()


def test_challenges_are_kept_per_session() -> None:
    store = ChallengeStore()
    code_a = store.issue("a")
    code_b = store.issue("b")
    assert store.verify("b", code_b)
    assert store.verify("a", code_a)


def test_challenge_is_consumed_on_verify() -> None:
    store = ChallengeStore()
    code = store.issue("a")
    assert store.verify("a", code)
    assert not store.verify("a", code)


def test_wrong_attempt_fails_and_consumes() -> None:
    store = ChallengeStore()
    code = store.issue("a")
    wrong = "0000" if code != "0000" else "1111"
    assert not store.verify("a", wrong)
    assert not store.verify("a", code)


def test_expired_challenge_fails() -> None:
    clock = FakeClock()
    store = ChallengeStore(ttl=60, clock=clock)
    code = store.issue("a")
    clock.now += 61
    assert not store.verify("a", code)


def test_unknown_session_fails() -> None:
    assert not ChallengeStore().verify(None, "1234")


def test_expired_challenges_are_purged_on_issue() -> None:
    clock = FakeClock()
    store = ChallengeStore(ttl=10, clock=clock)
    store.issue("old")
    clock.now += 11
    store.issue("new")
    assert len(store) == 1


class NotJsonResponse(FakeResponse):
    def json(self):
        raise requests.exceptions.JSONDecodeError("Expecting value", "<html>quota page</html>", 0)


def test_solver_non_json_reply_is_unsolved() -> None:
    solver = VisionCaptchaSolver("key", session=FakeVisionSession(NotJsonResponse(None)))
    with pytest.raises(FetchFailure) as excinfo:
        solver.solve(b"img")
    assert excinfo.value.kind is OutcomeKind.CAPTCHA_UNSOLVED


def test_solver_error_message_does_not_echo_exception_text() -> None:
    error = requests.ConnectionError("failed for url https://vision.example/?key=key-123")
    solver = VisionCaptchaSolver("key-123", session=FakeVisionSession(error=error))
    with pytest.raises(FetchFailure) as excinfo:
        solver.solve(b"img")
    assert excinfo.value.message == "Vision service unavailable"
    assert excinfo.value.detail == "ConnectionError"
