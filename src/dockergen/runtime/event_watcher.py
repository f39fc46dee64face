from __future__ import annotations

import threading
from typing import Callable, List, Optional

from dockergen.cli.formatter import OutputFormatter
from dockergen.core.models import LifecycleEvent, OutputConfig
from dockergen.infrastructure.docker_client import DockerClient, EventSubscription
from dockergen.runtime.contracts import (
    PING_INTERVAL_SECONDS,
    RETRY_DELAY_SECONDS,
    WatcherSignal,
    WatcherState,
    transition_watcher_state,
)
from dockergen.utils.diagnostics import (
    DaemonUnreachable,
    DockerGenError,
    SubscriptionFailed,
    SubscriptionLost,
)

ConnectFn = Callable[[], DockerClient]
GenerateFn = Callable[[List[OutputConfig], DockerClient], object]


class EventWatcher:
    """Keeps watch-enabled outputs in sync with container lifecycle events.

    Every actionable event (start, stop, die) triggers one generate-all pass
    over *all* watched outputs; the container named in the event is not used
    for targeting because templates usually aggregate over every container.

    The daemon is pinged whenever no event arrives within ``ping_interval``
    seconds. Any failure drops the subscription and the connection handle and
    waits ``retry_delay`` seconds before the next attempt. Failures are never
    fatal; the loop only ends when ``stop_event`` is set.
    """

    def __init__(
        self,
        outputs: List[OutputConfig],
        connect: ConnectFn,
        generate: GenerateFn,
        stop_event: threading.Event,
        connection: Optional[DockerClient] = None,
        retry_delay: float = RETRY_DELAY_SECONDS,
        ping_interval: float = PING_INTERVAL_SECONDS,
    ) -> None:
        self.outputs = list(outputs)
        self.retry_delay = retry_delay
        self.ping_interval = ping_interval
        self.state: WatcherState = WatcherState.STOPPED
        self.connection: Optional[DockerClient] = None
        self.subscription: Optional[EventSubscription] = None

        self._connect_fn = connect
        self._generate = generate
        self._stop_event = stop_event
        self._initial_connection = connection
        self._thread: Optional[threading.Thread] = None

    def start(self, background: bool = True) -> None:
        """Enter the watcher lifecycle, adopting the initial connection if one was given."""
        if self.state != WatcherState.STOPPED:
            return

        self._signal(WatcherSignal.START)
        if self._initial_connection is not None:
            self.connection = self._initial_connection
            self._signal(WatcherSignal.CONNECT_SUCCESS)

        if background:
            self._thread = threading.Thread(target=self.run, name="event-watcher", daemon=True)
            self._thread.start()

    def stop(self) -> None:
        """Request shutdown; wakes a blocked wait by closing the event stream."""
        self._stop_event.set()
        subscription = self.subscription
        if subscription is not None:
            subscription.close()

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run(self) -> None:
        while not self._stop_event.is_set():
            self.step()
        self._drop()
        self._signal(WatcherSignal.STOP)

    def step(self) -> None:
        """Advance the state machine by one wait boundary."""
        if self.state == WatcherState.DISCONNECTED:
            self._connect()
            return

        if not self._probe():
            return

        if self.state == WatcherState.CONNECTED and not self._subscribe():
            return

        self._await_event()

    def handle_event(self, event: LifecycleEvent) -> bool:
        """Run a generate-all pass for actionable events; returns whether one ran."""
        if not event.actionable:
            return False

        OutputFormatter.log(f"Received event {event.status.value} for container {event.short_id}", severity="info")
        self._generate(self.outputs, self.connection)
        return True

    def _connect(self) -> None:
        try:
            connection = self._connect_fn()
        except DockerGenError as exc:
            OutputFormatter.log(f"Unable to connect to docker daemon: {exc}", severity="error")
            self._signal(WatcherSignal.CONNECT_FAILURE)
            self._pause()
            return

        self.connection = connection
        self._signal(WatcherSignal.CONNECT_SUCCESS)
        OutputFormatter.log(f"Connected to docker daemon at {connection.endpoint}", severity="success")

        # Events may have been missed while disconnected.
        self._generate(self.outputs, connection)

    def _probe(self) -> bool:
        try:
            self.connection.ping()
        except DaemonUnreachable as exc:
            OutputFormatter.log(f"Unable to ping docker daemon: {exc}", severity="error")
            self._drop()
            self._signal(WatcherSignal.PING_FAILURE)
            self._pause()
            return False

        self._signal(WatcherSignal.PING_SUCCESS)
        return True

    def _subscribe(self) -> bool:
        try:
            self.subscription = self.connection.subscribe_events()
        except SubscriptionFailed as exc:
            OutputFormatter.log(f"Error registering docker event listener: {exc}", severity="error")
            self._signal(WatcherSignal.SUBSCRIBE_FAILURE)
            self._pause()
            return False

        self._signal(WatcherSignal.SUBSCRIBE_SUCCESS)
        OutputFormatter.log("Watching docker events", severity="info")
        return True

    def _await_event(self) -> None:
        try:
            event = self.subscription.get(timeout=self.ping_interval)
        except SubscriptionLost as exc:
            if not self._stop_event.is_set():
                OutputFormatter.log(f"Docker event stream lost: {exc}", severity="warning")
            self._drop()
            self._signal(WatcherSignal.STREAM_CLOSED)
            self._pause()
            return

        if event is None:
            self._signal(WatcherSignal.TIMEOUT)
            return

        self._signal(WatcherSignal.EVENT)
        self.handle_event(event)

    def _drop(self) -> None:
        if self.subscription is not None:
            self.subscription.close()
            self.subscription = None
        self.connection = None

    def _pause(self) -> None:
        self._stop_event.wait(self.retry_delay)

    def _signal(self, signal: WatcherSignal) -> None:
        self.state = transition_watcher_state(self.state, signal)
