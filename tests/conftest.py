import atexit
import faulthandler
import os
import sys
import tempfile
import threading
from typing import List, Optional

import pytest

# Keep test logs out of the user's home directory (read at import of callsight.utils.logger)
os.environ.setdefault("CALLSIGHT_LOG_DIR", os.path.join(tempfile.gettempdir(), "callsight-test-logs"))

from callsight.core.cancellation import CancellationToken  # noqa: E402
from callsight.core.models import CallRecord  # noqa: E402
from callsight.providers.base import LLMProvider  # noqa: E402


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _start_watchdog(timeout_seconds: int) -> Optional[threading.Timer]:
    if timeout_seconds <= 0:
        return None

    def _kill() -> None:
        try:
            faulthandler.dump_traceback(file=sys.stderr, all_threads=True)
        except Exception:
            pass
        # Hard exit: guarantees CI can't hang forever.
        os._exit(2)

    timer = threading.Timer(timeout_seconds, _kill)
    timer.daemon = True
    timer.start()
    return timer


def pytest_sessionstart(session) -> None:  # noqa: ANN001
    try:
        faulthandler.enable(all_threads=True)
    except Exception:
        pass

    # Absolute upper bound for the whole test run (default: 10 minutes).
    watchdog_seconds = _env_int("PYTEST_WATCHDOG_TIMEOUT_SECONDS", 10 * 60)
    timer = _start_watchdog(watchdog_seconds)

    if timer is not None:
        atexit.register(timer.cancel)


class RecordingToken(CancellationToken):
    """Cancellation token that records sleeps instead of waiting.

    If `cancel_on_sleep` is set, the token cancels itself when that many
    sleeps (1-based) have been requested.
    """

    def __init__(self, cancel_on_sleep: Optional[int] = None):
        super().__init__()
        self.sleeps: List[float] = []
        self.cancel_on_sleep = cancel_on_sleep

    def sleep(self, seconds: float) -> bool:
        self.sleeps.append(seconds)
        if self.cancel_on_sleep is not None and len(self.sleeps) >= self.cancel_on_sleep:
            self.cancel()
        return not self.is_cancelled


class ScriptedProvider(LLMProvider):
    """Provider returning scripted texts or raising scripted exceptions, in order.

    Once the script is exhausted the last entry is repeated.
    """

    def __init__(self, script, name: str = "scripted", model: str = "test-model"):
        self.script = list(script)
        self.prompts: List[str] = []
        self._name = name
        self._model = model

    def generate(self, prompt, system_message=None):
        self.prompts.append(prompt)
        index = min(len(self.prompts), len(self.script)) - 1
        entry = self.script[index]
        if isinstance(entry, BaseException):
            raise entry
        if callable(entry):
            return entry()
        return entry

    def health_check(self):
        return True

    def get_name(self):
        return self._name

    @property
    def model(self):
        return self._model

    @property
    def call_count(self) -> int:
        return len(self.prompts)


def classification_json(categories=("PRICING INQUIRY",), sentiment="positive", summary="ok"):
    import json

    return json.dumps(
        {"categories": list(categories), "sentiment": sentiment, "summary": summary}
    )


@pytest.fixture
def token():
    return RecordingToken()


@pytest.fixture
def make_token():
    return RecordingToken


@pytest.fixture
def make_provider():
    return ScriptedProvider


@pytest.fixture
def make_json():
    return classification_json


@pytest.fixture
def sample_calls():
    return [
        CallRecord(id="call-1", phone="555-0001", customer="Ann", duration=100,
                   transcript="I need a quote for brakes", call_reason="Pricing"),
        CallRecord(id="call-2", phone="555-0002", customer="Bob", duration=50,
                   transcript="Can I book an oil change tomorrow?"),
        CallRecord(id="call-3", phone="555-0001", customer="Ann", duration=30,
                   transcript="The service last week was terrible"),
    ]

