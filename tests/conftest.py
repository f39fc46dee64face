import pytest
import sys
from pathlib import Path
from typing import Dict, List, Optional

# Ensure src/ is in the python path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from dockergen.cli.formatter import OutputFormatter  # noqa: E402
from dockergen.core.models import OutputConfig, RuntimeContainer  # noqa: E402
from dockergen.utils.diagnostics import (  # noqa: E402
    DaemonUnreachable,
    SignalFailed,
    SubscriptionFailed,
    SubscriptionLost,
    TemplateError,
)

STREAM_CLOSED = object()


class FakeSubscription:
    """In-memory event stream; an empty queue behaves like a probe timeout."""

    def __init__(self, items=None):
        self.items = list(items or [])
        self.closed = False

    def get(self, timeout):
        if self.closed:
            raise SubscriptionLost("closed")
        if not self.items:
            return None
        item = self.items.pop(0)
        if item is STREAM_CLOSED:
            self.closed = True
            raise SubscriptionLost("stream closed")
        return item

    def close(self):
        self.closed = True


class FakeConnection:
    """Stands in for a DockerConnection and records every call."""

    def __init__(self, containers: Optional[List[RuntimeContainer]] = None, endpoint: str = "unix:///fake.sock"):
        self.endpoint = endpoint
        self.containers = containers if containers is not None else [RuntimeContainer(id="abc123")]
        self.ping_error: Optional[Exception] = None
        self.list_error: Optional[Exception] = None
        self.subscribe_error: Optional[Exception] = None
        self.kill_failures: Dict[str, str] = {}
        self.subscription = FakeSubscription()
        self.pings = 0
        self.list_calls = 0
        self.subscribe_calls = 0
        self.kills: List[tuple] = []

    def ping(self):
        self.pings += 1
        if self.ping_error is not None:
            raise self.ping_error

    def list_containers(self):
        self.list_calls += 1
        if self.list_error is not None:
            raise self.list_error
        return self.containers

    def subscribe_events(self):
        self.subscribe_calls += 1
        if self.subscribe_error is not None:
            raise self.subscribe_error
        return self.subscription

    def kill(self, container, signal):
        self.kills.append((container, signal))
        if container in self.kill_failures:
            raise SignalFailed(container, signal, self.kill_failures[container])


class RecordingRenderer:
    """Renderer double: returns a scripted change flag per destination."""

    def __init__(self, changed: Optional[Dict[str, bool]] = None, default: bool = True):
        self.changed = dict(changed or {})
        self.default = default
        self.failures: Dict[str, str] = {}
        self.calls: List[tuple] = []

    def render(self, config: OutputConfig, containers):
        self.calls.append((config.label, containers))
        if config.label in self.failures:
            raise TemplateError(self.failures[config.label], template=config.template)
        return self.changed.get(config.label, self.default)


class RecordingNotifier:
    def __init__(self):
        self.calls: List[tuple] = []

    def notify(self, config: OutputConfig, connection):
        self.calls.append((config.label, connection))

    @property
    def labels(self) -> List[str]:
        return [label for label, _ in self.calls]


@pytest.fixture(autouse=True)
def reset_log_level():
    """
    Restores the default stderr threshold after tests that change it.
    """
    yield
    OutputFormatter.set_level("INFO")


@pytest.fixture
def root_dir(tmp_path):
    """
    Returns a temporary directory to hold templates and rendered outputs.
    """
    return tmp_path


@pytest.fixture
def fake_connection():
    return FakeConnection()


@pytest.fixture
def recording_renderer():
    return RecordingRenderer()


@pytest.fixture
def recording_notifier():
    return RecordingNotifier()


__all__ = [
    "STREAM_CLOSED",
    "DaemonUnreachable",
    "FakeConnection",
    "FakeSubscription",
    "RecordingNotifier",
    "RecordingRenderer",
    "SubscriptionFailed",
]
